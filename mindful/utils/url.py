"""URL helpers used for bookmark de-duplication and outbound sanitizing."""

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

DEFAULT_PORTS = (80, 443)

TRACKING_PARAM_PREFIXES = (
    "utm_",
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "vero_",
    "igshid",
    "msclkid",
)

_REPEATED_SLASHES = re.compile(r"/{2,}")
_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def normalize_url(raw: str) -> str:
    """Normalize a URL into a canonical form for equality comparisons.

    - Lowercases scheme and host.
    - Removes default ports (80 and 443).
    - Drops the fragment.
    - Collapses repeated slashes and removes a trailing slash (except root).
    - Sorts query parameters by key.

    Input that does not parse as an absolute URL is returned trimmed.

    Example:
        normalize_url("HTTPS://Example.com:443/foo/?b=2&a=1#frag")
        -> "https://example.com/foo?a=1&b=2"
    """
    text = (raw or "").strip()
    try:
        parts = urlsplit(text)
        port = parts.port
    except ValueError:
        return text

    if not parts.scheme or (parts.scheme in ("http", "https") and not parts.hostname):
        return text

    netloc = parts.netloc
    if parts.hostname is not None:
        host = parts.hostname.lower()
        if ":" in host:
            host = f"[{host}]"
        if port is not None and port not in DEFAULT_PORTS:
            host = f"{host}:{port}"
        userinfo = parts.netloc.rpartition("@")[0] if "@" in parts.netloc else ""
        netloc = f"{userinfo}@{host}" if userinfo else host

    path = _REPEATED_SLASHES.sub("/", parts.path).rstrip("/") or "/"

    query = ""
    if parts.query:
        # First value wins for repeated keys
        pairs: dict[str, str] = {}
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            pairs.setdefault(key, value)
        query = urlencode(sorted(pairs.items()))

    return urlunsplit((parts.scheme, netloc, path, query, ""))


def construct_valid_url(url: str) -> str:
    """Prepend http:// when the URL has no http(s) scheme."""
    if not url.startswith("http://") and not url.startswith("https://"):
        return f"http://{url}"
    return url


def is_http_url(url: str) -> bool:
    """True when the string begins with an http or https scheme."""
    return bool(_HTTP_URL.match(url or ""))


def sanitize_url_for_ai(raw: str) -> str:
    """Strip fragments and known tracking parameters before a URL leaves the process."""
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw
    if not parts.scheme:
        return raw

    kept = []
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        lower = key.lower()
        if any(lower.startswith(prefix) for prefix in TRACKING_PARAM_PREFIXES):
            continue
        kept.append((key, value))

    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), ""))


def truncate_for_ai(text: str, max_len: int) -> str:
    """Clip text to max_len characters."""
    if not text:
        return text
    return text[:max_len] if len(text) > max_len else text
