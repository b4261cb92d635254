"""Clock helpers shared by services and tests."""

from __future__ import annotations

import time


def now_ms() -> int:
    """Return the current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)
