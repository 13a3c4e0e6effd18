"""In-memory script executor.

Runs the same protocols as the Lua scripts against a process local
dictionary. Every script holds a single lock for its whole run, which
gives the same atomicity guarantee Redis gives EVAL, but only inside
one process. Suitable for tests and single-instance development.
"""

import asyncio
from typing import Any, Callable, Optional, Sequence, Union

from ratelimit.core.clock import Clock, system_clock
from ratelimit.exceptions import UnsupportedVariant
from ratelimit.limiters.redis_lua import (
    ANALYTICS,
    FIXED_WINDOW,
    SLIDING_LOGS,
    SLIDING_WINDOW,
    TOKEN_BUCKET,
)
from ratelimit.store.base import ScriptExecutor


class InMemoryScriptExecutor(ScriptExecutor):
    """Process local store with per-key expiration.

    Note: state is not shared between processes and is lost on restart.
    """

    def __init__(self, clock: Clock = system_clock) -> None:
        self._data: dict[str, Any] = {}
        self._expires_at: dict[str, int] = {}
        self._clock = clock
        self._lock = asyncio.Lock()
        self._scripts: dict[str, Callable[[list, list], Any]] = {
            FIXED_WINDOW: self._fixed_window,
            SLIDING_WINDOW: self._sliding_window,
            SLIDING_LOGS: self._sliding_logs,
            TOKEN_BUCKET: self._token_bucket,
            ANALYTICS: self._analytics,
        }

    def supports(self, script_id: str) -> bool:
        return script_id in self._scripts

    async def execute(
        self,
        script_id: str,
        keys: Sequence[str],
        args: Sequence[Union[int, str]],
    ) -> Any:
        handler = self._scripts.get(script_id)
        if handler is None:
            raise UnsupportedVariant(script_id)
        async with self._lock:
            self._remove_expired()
            return handler(list(keys), list(args))

    async def cleanup_expired(self) -> int:
        """Remove all expired keys from the store.

        Returns:
            Number of keys removed.
        """
        async with self._lock:
            return self._remove_expired()

    def __len__(self) -> int:
        return len(self._data)

    def _remove_expired(self) -> int:
        now = self._clock()
        expired_keys = [
            key for key, expires_at in self._expires_at.items() if expires_at <= now
        ]
        for key in expired_keys:
            self._data.pop(key, None)
            del self._expires_at[key]
        return len(expired_keys)

    def get(self, key: str) -> Optional[Any]:
        """Return the raw value stored at key, or None if absent or expired."""
        expires_at = self._expires_at.get(key)
        if expires_at is not None and expires_at <= self._clock():
            self._data.pop(key, None)
            self._expires_at.pop(key, None)
            return None
        return self._data.get(key)

    def pttl(self, key: str) -> int:
        """Milliseconds until key expires; -1 without expiry, -2 if absent."""
        if self.get(key) is None:
            return -2
        expires_at = self._expires_at.get(key)
        if expires_at is None:
            return -1
        return expires_at - self._clock()

    def _pexpire(self, key: str, ttl: int) -> None:
        self._expires_at[key] = self._clock() + ttl

    def _fixed_window(self, keys: list, args: list) -> int:
        key = keys[0]
        window = int(args[0])
        count = int(self.get(key) or 0) + 1
        self._data[key] = count
        if count == 1:
            self._pexpire(key, window)
        return count

    def _sliding_window(self, keys: list, args: list) -> int:
        current_key, previous_key = keys
        tokens, now, window = (int(a) for a in args[:3])
        current = int(self.get(current_key) or 0)
        previous = int(self.get(previous_key) or 0)

        elapsed_fraction = (now % window) / window
        estimated = previous * (1 - elapsed_fraction) + current
        if estimated >= tokens:
            return -1

        count = current + 1
        self._data[current_key] = count
        if count == 1:
            self._pexpire(current_key, window * 2 + 1000)
        return count

    def _sliding_logs(self, keys: list, args: list) -> list[int]:
        key = keys[0]
        tokens, now, window = (int(a) for a in args[:3])
        member = str(args[3])

        log: dict[str, int] = {
            m: score for m, score in (self.get(key) or {}).items()
            if score > now - window
        }
        if len(log) >= tokens:
            self._data[key] = log
            return [-1, min(log.values())]

        log[member] = now
        self._data[key] = log
        self._pexpire(key, window)
        return [len(log), min(log.values())]

    def _token_bucket(self, keys: list, args: list) -> list[int]:
        key = keys[0]
        max_tokens, now, interval, refill_rate, ttl = (int(a) for a in args[:5])

        state = self.get(key)
        if state is None:
            tokens, refilled_at = max_tokens, now
        else:
            tokens, refilled_at = state["tokens"], state["refilled_at"]

        elapsed = max(0, (now - refilled_at) // interval)
        refilled = min(max_tokens, tokens + elapsed * refill_rate)
        if refilled < 1:
            return [-1, refilled_at + interval]

        remaining = refilled - 1
        self._data[key] = {"tokens": remaining, "refilled_at": now}
        self._pexpire(key, ttl)
        return [remaining, now + interval]

    def _analytics(self, keys: list, args: list) -> int:
        key = keys[0]
        field = str(args[0])
        ttl = int(args[1])
        counters = self.get(key)
        if counters is None:
            counters = {}
            self._data[key] = counters
            self._pexpire(key, ttl)
        counters[field] = counters.get(field, 0) + 1
        return counters[field]
