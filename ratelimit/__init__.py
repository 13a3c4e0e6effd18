"""Rate limiting against a shared counter store.

Stateless clients in any number of processes agree on one quota per
identifier because every check runs as a single atomic script in the
shared store (Redis).
"""

from ratelimit.builder import RateLimitBuilder
from ratelimit.exceptions import (
    ClockError,
    ConfigError,
    InvalidIdentifier,
    RateLimitError,
    StoreUnavailable,
    UnsupportedVariant,
)
from ratelimit.limiter import RateLimit
from ratelimit.limiters import (
    Admitted,
    Decision,
    Denied,
    FixedWindow,
    Limiter,
    SlidingLogs,
    SlidingWindow,
    TokenBucket,
)
from ratelimit.store import InMemoryScriptExecutor, RedisScriptExecutor, ScriptExecutor

__all__ = [
    # Main classes
    "RateLimit",
    "RateLimitBuilder",
    # Limiters
    "FixedWindow",
    "SlidingWindow",
    "SlidingLogs",
    "TokenBucket",
    "Limiter",
    # Decisions
    "Admitted",
    "Denied",
    "Decision",
    # Stores
    "ScriptExecutor",
    "RedisScriptExecutor",
    "InMemoryScriptExecutor",
    # Errors
    "RateLimitError",
    "ConfigError",
    "ClockError",
    "InvalidIdentifier",
    "StoreUnavailable",
    "UnsupportedVariant",
]
