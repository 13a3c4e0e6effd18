"""Rate limit orchestration.

RateLimit turns one limit(identifier) call into exactly one atomic
script round trip against the shared store. It holds no local state and
takes no locks: concurrent callers, in this process or any other, are
serialized by the store.
"""

import asyncio
import time
from datetime import timedelta
from typing import Any, Optional, Union

from ratelimit.analytics import Analytics
from ratelimit.core.clock import Clock, read_clock, system_clock, to_millis
from ratelimit.core.config import DEFAULT_PREFIX
from ratelimit.core.logging import get_log_context, get_logger
from ratelimit.exceptions import (
    ConfigError,
    InvalidIdentifier,
    StoreUnavailable,
    UnsupportedVariant,
)
from ratelimit.limiters.models import Decision, ScriptCall
from ratelimit.limiters.variants import LIMITERS, Limiter
from ratelimit.store.base import ScriptExecutor

logger = get_logger(__name__)


class RateLimit:
    """Enforces one limiter against a shared store.

    Use RateLimit.builder() for the documented construction path; the
    constructor performs the same validation.
    """

    def __init__(
        self,
        store: ScriptExecutor,
        limiter: Limiter,
        prefix: Optional[str] = None,
        timeout: Optional[Union[int, timedelta]] = None,
        analytics: bool = False,
        clock: Clock = system_clock,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            store: Executor for the shared store's atomic scripts
            limiter: One of FixedWindow, SlidingWindow, SlidingLogs, TokenBucket
            prefix: Key namespace, defaults to "@upstash/ratelimit"
            timeout: Fail-open bound for the store round trip (ms or timedelta)
            analytics: Record admitted/denied counts per identifier
            clock: Returns the current time in epoch milliseconds

        Raises:
            ConfigError: On a missing store or limiter, an unknown limiter
                type, a non-string prefix or a non-positive timeout.
        """
        if store is None:
            raise ConfigError("No store was defined.")
        if not isinstance(store, ScriptExecutor):
            raise ConfigError(f"Store must be a ScriptExecutor, got {type(store).__name__}")
        if limiter is None:
            raise ConfigError("No limiter was defined.")
        if not isinstance(limiter, LIMITERS):
            raise ConfigError(f"Unknown limiter type: {type(limiter).__name__}")
        if prefix is not None and not isinstance(prefix, str):
            raise ConfigError("Prefix must be a string")

        self._store = store
        self._limiter = limiter
        self._prefix = prefix or DEFAULT_PREFIX
        self._timeout_ms = None if timeout is None else to_millis(timeout, "timeout")
        self._clock = clock
        self._analytics = Analytics(store, self._prefix) if analytics else None

    @staticmethod
    def builder() -> "RateLimitBuilder":
        """Create a RateLimit builder instance."""
        from ratelimit.builder import RateLimitBuilder
        return RateLimitBuilder()

    @property
    def limiter(self) -> Limiter:
        return self._limiter

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def timeout_ms(self) -> Optional[int]:
        return self._timeout_ms

    @property
    def analytics_enabled(self) -> bool:
        return self._analytics is not None

    async def limit(self, identifier: str) -> Decision:
        """Apply limiting based on a unique identifier such as a user id or IP.

        With a timeout configured the whole call, analytics included,
        finishes within that bound.

        Args:
            identifier: Non-empty caller identifier

        Returns:
            Admitted or Denied.

        Raises:
            InvalidIdentifier: If identifier is empty.
            ClockError: If the system clock is before the epoch.
            UnsupportedVariant: If the store has no script for the limiter.
            StoreUnavailable: If the store fails and no timeout is configured.
        """
        if not isinstance(identifier, str) or not identifier:
            raise InvalidIdentifier()

        now = read_clock(self._clock)
        call = self._limiter.prepare(self._prefix, identifier, now)
        if not self._store.supports(call.script_id):
            raise UnsupportedVariant(call.script_id)

        started = time.perf_counter()
        deadline = None
        if self._timeout_ms is not None:
            deadline = asyncio.get_running_loop().time() + self._timeout_ms / 1000

        try:
            reply = await self._execute(call, deadline)
            decision = self._limiter.interpret(reply, now)
        except asyncio.TimeoutError as e:
            if deadline is None:
                raise StoreUnavailable("Store timed out", script_id=call.script_id) from e
            decision = self._fail_open(identifier, now, "timeout")
        except StoreUnavailable:
            if deadline is None:
                raise
            decision = self._fail_open(identifier, now, "store_unavailable")

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.debug(
            "Rate limit decision",
            extra=get_log_context(
                identifier=identifier,
                limiter=self._limiter.name,
                prefix=self._prefix,
                decision="admitted" if decision.allowed else "denied",
                reason=decision.reason,
                duration_ms=duration_ms,
            ),
        )

        if self._analytics is not None:
            await self._record(identifier, decision, now, deadline)
        return decision

    async def _execute(self, call: ScriptCall, deadline: Optional[float]) -> Any:
        if deadline is None:
            return await self._store.execute(call.script_id, call.keys, call.args)
        return await asyncio.wait_for(
            self._store.execute(call.script_id, call.keys, call.args),
            timeout=self._remaining(deadline),
        )

    async def _record(
        self, identifier: str, decision: Decision, now: int, deadline: Optional[float]
    ) -> None:
        if deadline is None:
            await self._analytics.record(identifier, decision, now)
            return
        remaining = self._remaining(deadline)
        if remaining <= 0:
            logger.debug(
                "Skipping analytics, timeout already spent",
                extra=get_log_context(identifier=identifier, prefix=self._prefix),
            )
            return
        await self._analytics.record(identifier, decision, now, timeout=remaining)

    @staticmethod
    def _remaining(deadline: float) -> float:
        return max(0.0, deadline - asyncio.get_running_loop().time())

    def _fail_open(self, identifier: str, now: int, reason: str) -> Decision:
        logger.warning(
            f"Rate limiting fail-open triggered due to {reason}. "
            "Request allowed without rate limit check.",
            extra=get_log_context(
                identifier=identifier,
                limiter=self._limiter.name,
                prefix=self._prefix,
                decision="admitted",
                reason=reason,
            ),
        )
        return self._limiter.fail_open(now, reason)

    def __repr__(self) -> str:
        return (
            f"RateLimit(limiter={self._limiter!r}, prefix={self._prefix!r}, "
            f"timeout_ms={self._timeout_ms!r}, analytics={self.analytics_enabled})"
        )
