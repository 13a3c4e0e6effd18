from datetime import timedelta
from typing import Any, Optional, Union

from ratelimit.core.clock import Clock, system_clock
from ratelimit.core.config import Settings, settings
from ratelimit.limiter import RateLimit
from ratelimit.limiters.variants import Limiter
from ratelimit.store.base import ScriptExecutor
from ratelimit.store.redis_executor import RedisScriptExecutor


class RateLimitBuilder:
    """Step by step construction of a RateLimit.

    Nothing is validated until build(), which raises ConfigError for
    every invalid or missing option.

    Example:
        >>> limiter = (
        ...     RateLimit.builder()
        ...     .redis(redis_client)
        ...     .limiter(FixedWindow(tokens=10, window=timedelta(seconds=1)))
        ...     .timeout(timedelta(milliseconds=200))
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        self._store: Optional[ScriptExecutor] = None
        self._limiter: Optional[Limiter] = None
        self._prefix: Optional[str] = None
        self._timeout: Optional[Union[int, timedelta]] = None
        self._analytics = False
        self._clock: Clock = system_clock

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "RateLimitBuilder":
        """Seed prefix, timeout and analytics from settings."""
        config = config or settings
        builder = cls().prefix(config.prefix).analytics(config.analytics)
        if config.timeout_ms is not None:
            builder.timeout(config.timeout_ms)
        return builder

    def store(self, store: ScriptExecutor) -> "RateLimitBuilder":
        """Use an atomic script executor for the shared store."""
        self._store = store
        return self

    def redis(self, redis_client: Any) -> "RateLimitBuilder":
        """Use a redis.asyncio client as the shared store.

        The client stays owned by the caller.
        """
        self._store = RedisScriptExecutor(redis_client)
        return self

    def limiter(self, limiter: Limiter) -> "RateLimitBuilder":
        """Select the rate limiting algorithm and its parameters."""
        self._limiter = limiter
        return self

    def prefix(self, prefix: str) -> "RateLimitBuilder":
        """Namespace for the keys written to the store.

        Use a distinct prefix per application sharing one store. An empty
        prefix selects the default "@upstash/ratelimit", which keeps keys
        compatible with the Upstash JavaScript rate limit library.
        """
        self._prefix = prefix
        return self

    def timeout(self, timeout: Union[int, timedelta]) -> "RateLimitBuilder":
        """Allow requests through when the store does not answer in time.

        Use this to keep serving during store or network outages.
        """
        self._timeout = timeout
        return self

    def analytics(self, enabled: bool = True) -> "RateLimitBuilder":
        """Record admitted/denied counts per identifier in the store."""
        self._analytics = enabled
        return self

    def clock(self, clock: Clock) -> "RateLimitBuilder":
        """Override the epoch millisecond clock."""
        self._clock = clock
        return self

    def build(self) -> RateLimit:
        """Finalize the builder.

        Raises:
            ConfigError: If the store or limiter is missing, or an option
                is invalid.
        """
        return RateLimit(
            store=self._store,
            limiter=self._limiter,
            prefix=self._prefix,
            timeout=self._timeout,
            analytics=self._analytics,
            clock=self._clock,
        )
