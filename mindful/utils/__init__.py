from .id_generator import create_unique_id, generate_id, new_item_id
from .logging import get_logger, setup_logging
from .time_utils import get_timestamp_ms
from .url import construct_valid_url, is_http_url, normalize_url, sanitize_url_for_ai, truncate_for_ai

__all__ = [
    "create_unique_id",
    "generate_id",
    "new_item_id",
    "get_logger",
    "setup_logging",
    "get_timestamp_ms",
    "construct_valid_url",
    "is_http_url",
    "normalize_url",
    "sanitize_url_for_ai",
    "truncate_for_ai",
]
