"""Rate limiting algorithms and the atomic scripts they run."""

from ratelimit.limiters.models import Admitted, Decision, Denied, ScriptCall
from ratelimit.limiters.redis_lua import SCRIPTS
from ratelimit.limiters.variants import (
    LIMITERS,
    FixedWindow,
    Limiter,
    SlidingLogs,
    SlidingWindow,
    TokenBucket,
)

__all__ = [
    # Models
    "Admitted",
    "Denied",
    "Decision",
    "ScriptCall",
    # Limiters
    "FixedWindow",
    "SlidingWindow",
    "SlidingLogs",
    "TokenBucket",
    "Limiter",
    "LIMITERS",
    # Scripts
    "SCRIPTS",
]
