"""Optional usage analytics.

Counts decisions per identifier in hourly hashes
``{prefix}:analytics:{hour_bucket}``. Fields are
``{identifier}:admitted`` and ``{identifier}:denied``, plus
``{identifier}:timeout`` and ``{identifier}:store_unavailable`` for
requests let through while the store could not answer.
"""

import asyncio
from typing import Optional

from ratelimit.core.logging import get_log_context, get_logger
from ratelimit.exceptions import RateLimitError
from ratelimit.keys import bucket_for
from ratelimit.limiters.models import Decision
from ratelimit.limiters.redis_lua import ANALYTICS
from ratelimit.store.base import ScriptExecutor

logger = get_logger(__name__)

HOUR_MS = 60 * 60 * 1000
RETENTION_MS = 90 * 24 * HOUR_MS  # 90 days


def outcome_of(decision: Decision) -> str:
    if decision.reason is not None:
        return decision.reason
    return "admitted" if decision.allowed else "denied"


class Analytics:
    """Records one counter increment per limit() decision."""

    def __init__(self, store: ScriptExecutor, prefix: str) -> None:
        self._store = store
        self._prefix = prefix

    def key_for(self, now: int) -> str:
        return f"{self._prefix}:analytics:{bucket_for(now, HOUR_MS)}"

    async def record(
        self,
        identifier: str,
        decision: Decision,
        now: int,
        timeout: Optional[float] = None,
    ) -> None:
        """Record a decision. Failures are logged, never raised.

        Args:
            identifier: Caller identifier
            decision: Decision returned by limit()
            now: Epoch milliseconds of the request
            timeout: Seconds to wait for the store, None waits indefinitely
        """
        pending = self._store.execute(
            ANALYTICS,
            [self.key_for(now)],
            [f"{identifier}:{outcome_of(decision)}", RETENTION_MS],
        )
        try:
            if timeout is None:
                await pending
            else:
                await asyncio.wait_for(pending, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Analytics write timed out",
                extra=get_log_context(identifier=identifier, prefix=self._prefix),
            )
        except RateLimitError as e:
            logger.warning(
                f"Failed to record analytics: {e.message}",
                extra=get_log_context(identifier=identifier, prefix=self._prefix),
            )
