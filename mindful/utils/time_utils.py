"""Time helpers."""

import time


def get_timestamp_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
