"""Wall-clock helpers.

All limiter arithmetic uses integer milliseconds since the unix epoch.
"""

import time
from datetime import timedelta
from typing import Callable

from ratelimit.exceptions import ClockError, ConfigError

Clock = Callable[[], int]


def system_clock() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def read_clock(clock: Clock) -> int:
    """Read a clock, rejecting times before the epoch.

    Raises:
        ClockError: If the clock reports a negative timestamp.
    """
    now = int(clock())
    if now < 0:
        raise ClockError(now)
    return now


def to_millis(value: int | timedelta, name: str = "duration") -> int:
    """Normalize a duration to a positive number of milliseconds.

    Args:
        value: Milliseconds as int, or a timedelta
        name: Parameter name used in the error message

    Raises:
        ConfigError: If the duration is not a positive whole number of ms.
    """
    if isinstance(value, timedelta):
        millis = value // timedelta(milliseconds=1)
    elif isinstance(value, int) and not isinstance(value, bool):
        millis = value
    else:
        raise ConfigError(f"{name} must be an int of milliseconds or a timedelta")
    if millis <= 0:
        raise ConfigError(f"{name} must be positive, got {millis}ms")
    return millis
