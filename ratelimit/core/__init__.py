"""Core utilities for the rate limiter."""

from ratelimit.core.clock import read_clock, system_clock, to_millis
from ratelimit.core.config import DEFAULT_PREFIX, Settings, settings
from ratelimit.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "DEFAULT_PREFIX",
    "Settings",
    "settings",
    "get_logger",
    "get_log_context",
    "setup_logging",
    "read_clock",
    "system_clock",
    "to_millis",
]
