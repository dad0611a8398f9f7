"""Safety classifier that drops obviously unsafe links before import."""

from typing import Protocol

from mindful.components.smart_import.models import RawItem

BLOCKED_KEYWORDS = ("porn", "xxx", "onlyfans", "nsfw")

BLOCKED_DOMAINS = ("pornhub.com", "xvideos.com")


class SafetyClassifier(Protocol):
    async def is_safe(self, item: RawItem) -> bool: ...


class BasicSafetyFilter:
    """Blocks known domains, and keywords in the URL or name."""

    def __init__(self, blocked_keywords=BLOCKED_KEYWORDS, blocked_domains=BLOCKED_DOMAINS):
        self.blocked_keywords = tuple(k.lower() for k in blocked_keywords)
        self.blocked_domains = tuple(d.lower() for d in blocked_domains)

    async def is_safe(self, item: RawItem) -> bool:
        url = item.url.lower()
        name = (item.name or "").lower()

        if any(domain in url for domain in self.blocked_domains):
            return False
        if any(keyword in url or keyword in name for keyword in self.blocked_keywords):
            return False
        return True
