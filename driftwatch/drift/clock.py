"""
Millisecond clocks for drift tracking.

All drift timestamps are integer epoch milliseconds. A clock is any zero-arg
callable returning one; tests pass a ManualClock.
"""
from typing import Callable, Optional
import logging
import time

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def system_clock() -> int:
    """Wall-clock epoch milliseconds, degrading to float seconds when needed"""
    try:
        return time.time_ns() // 1_000_000
    except (AttributeError, OSError):
        return int(time.time() * 1000)


def read_clock(clock: Clock) -> Optional[int]:
    """Read a clock, returning None instead of raising if it is unavailable"""
    try:
        return int(clock())
    except Exception as e:
        logger.warning(f"Clock unavailable, time-based signals disabled: {e}")
        return None


class ManualClock:
    """Clock advanced explicitly by the caller"""

    def __init__(self, start_ms: int = 0):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int = 0, seconds: float = 0, minutes: float = 0) -> int:
        self.now_ms += int(ms + seconds * 1000 + minutes * 60_000)
        return self.now_ms
