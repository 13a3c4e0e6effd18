"""Rate limiting algorithms.

Each limiter is a small dataclass holding its parameters. It knows which
atomic script it needs, how to build that script's keys and arguments
for one request, and how to turn the script reply into a Decision.
The set of limiters is closed: RateLimit only accepts the classes
listed in LIMITERS.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Union

from ratelimit.core.clock import to_millis
from ratelimit.exceptions import ConfigError, StoreUnavailable
from ratelimit.keys import (
    bucket_end,
    bucket_for,
    identifier_key,
    sliding_window_keys,
    window_key,
)
from ratelimit.limiters.models import Admitted, Decision, Denied, ScriptCall
from ratelimit.limiters.redis_lua import (
    FIXED_WINDOW,
    SLIDING_LOGS,
    SLIDING_WINDOW,
    TOKEN_BUCKET,
)


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    return value


def _as_int(value: Any, script_id: str) -> int:
    """Coerce a scalar script reply to int."""
    if isinstance(value, bytes):
        value = value.decode()
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StoreUnavailable(
            f"Malformed reply from '{script_id}': {value!r}", script_id=script_id
        ) from None


def _as_pair(value: Any, script_id: str) -> tuple[int, int]:
    """Coerce a two element script reply to a pair of ints."""
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise StoreUnavailable(
            f"Malformed reply from '{script_id}': {value!r}", script_id=script_id
        )
    return _as_int(value[0], script_id), _as_int(value[1], script_id)


@dataclass
class FixedWindow:
    """Fixed window counter.

    Allows `tokens` requests per `window`. Requests bunched on either side
    of a window boundary can admit up to twice `tokens` in a short span.
    """
    tokens: int
    window: Union[int, timedelta]

    name = "fixed_window"
    script_id = FIXED_WINDOW

    def __post_init__(self) -> None:
        self.tokens = _positive_int(self.tokens, "tokens")
        self.window = to_millis(self.window, "window")

    @property
    def limit(self) -> int:
        return self.tokens

    def prepare(self, prefix: str, identifier: str, now: int) -> ScriptCall:
        bucket = bucket_for(now, self.window)
        return ScriptCall(
            script_id=self.script_id,
            keys=[window_key(prefix, identifier, bucket)],
            args=[self.window],
        )

    def interpret(self, reply: Any, now: int) -> Decision:
        count = _as_int(reply, self.script_id)
        reset_at = bucket_end(bucket_for(now, self.window), self.window)
        if count <= self.tokens:
            return Admitted(limit=self.tokens, remaining=self.tokens - count, reset_at=reset_at)
        return Denied(limit=self.tokens, reset_at=reset_at)

    def fail_open(self, now: int, reason: str) -> Admitted:
        return Admitted(
            limit=self.tokens,
            remaining=self.tokens,
            reset_at=bucket_end(bucket_for(now, self.window), self.window),
            reason=reason,
        )


@dataclass
class SlidingWindow:
    """Sliding window approximation over two fixed window counters.

    The previous window's count is weighted by how much of it still
    overlaps the sliding window ending now.
    """
    tokens: int
    window: Union[int, timedelta]

    name = "sliding_window"
    script_id = SLIDING_WINDOW

    def __post_init__(self) -> None:
        self.tokens = _positive_int(self.tokens, "tokens")
        self.window = to_millis(self.window, "window")

    @property
    def limit(self) -> int:
        return self.tokens

    def prepare(self, prefix: str, identifier: str, now: int) -> ScriptCall:
        current_key, previous_key = sliding_window_keys(
            prefix, identifier, bucket_for(now, self.window)
        )
        return ScriptCall(
            script_id=self.script_id,
            keys=[current_key, previous_key],
            args=[self.tokens, now, self.window],
        )

    def interpret(self, reply: Any, now: int) -> Decision:
        count = _as_int(reply, self.script_id)
        reset_at = bucket_end(bucket_for(now, self.window), self.window)
        if count < 0:
            return Denied(limit=self.tokens, reset_at=reset_at)
        return Admitted(limit=self.tokens, remaining=max(0, self.tokens - count), reset_at=reset_at)

    def fail_open(self, now: int, reason: str) -> Admitted:
        return Admitted(
            limit=self.tokens,
            remaining=self.tokens,
            reset_at=bucket_end(bucket_for(now, self.window), self.window),
            reason=reason,
        )


@dataclass
class SlidingLogs:
    """Exact sliding window backed by a log of admitted request timestamps.

    Storage grows with one entry per admitted request inside the window.
    """
    tokens: int
    window: Union[int, timedelta]

    name = "sliding_logs"
    script_id = SLIDING_LOGS

    def __post_init__(self) -> None:
        self.tokens = _positive_int(self.tokens, "tokens")
        self.window = to_millis(self.window, "window")

    @property
    def limit(self) -> int:
        return self.tokens

    def prepare(self, prefix: str, identifier: str, now: int) -> ScriptCall:
        # Requests landing on the same millisecond still need distinct members
        member = f"{now}:{uuid.uuid4().hex}"
        return ScriptCall(
            script_id=self.script_id,
            keys=[identifier_key(prefix, identifier)],
            args=[self.tokens, now, self.window, member],
        )

    def interpret(self, reply: Any, now: int) -> Decision:
        count, oldest = _as_pair(reply, self.script_id)
        reset_at = max(oldest + self.window, now)
        if count < 0:
            return Denied(limit=self.tokens, reset_at=reset_at)
        return Admitted(limit=self.tokens, remaining=max(0, self.tokens - count), reset_at=reset_at)

    def fail_open(self, now: int, reason: str) -> Admitted:
        return Admitted(
            limit=self.tokens,
            remaining=self.tokens,
            reset_at=now + self.window,
            reason=reason,
        )


@dataclass
class TokenBucket:
    """Token bucket refilled by `refill_rate` tokens every `interval`.

    A new identifier starts with a full bucket of `max_tokens`.
    """
    max_tokens: int
    refill_rate: int
    interval: Union[int, timedelta]

    name = "token_bucket"
    script_id = TOKEN_BUCKET

    def __post_init__(self) -> None:
        self.max_tokens = _positive_int(self.max_tokens, "max_tokens")
        self.refill_rate = _positive_int(self.refill_rate, "refill_rate")
        self.interval = to_millis(self.interval, "interval")

    @property
    def limit(self) -> int:
        return self.max_tokens

    @property
    def ttl(self) -> int:
        """Milliseconds after which an idle bucket would be full again."""
        return (math.ceil(self.max_tokens / self.refill_rate) + 1) * self.interval

    def prepare(self, prefix: str, identifier: str, now: int) -> ScriptCall:
        return ScriptCall(
            script_id=self.script_id,
            keys=[identifier_key(prefix, identifier)],
            args=[self.max_tokens, now, self.interval, self.refill_rate, self.ttl],
        )

    def interpret(self, reply: Any, now: int) -> Decision:
        remaining, reset_at = _as_pair(reply, self.script_id)
        reset_at = max(reset_at, now)
        if remaining < 0:
            return Denied(limit=self.max_tokens, reset_at=reset_at)
        return Admitted(limit=self.max_tokens, remaining=remaining, reset_at=reset_at)

    def fail_open(self, now: int, reason: str) -> Admitted:
        return Admitted(
            limit=self.max_tokens,
            remaining=self.max_tokens,
            reset_at=now + self.interval,
            reason=reason,
        )


Limiter = Union[FixedWindow, SlidingWindow, SlidingLogs, TokenBucket]

LIMITERS = (FixedWindow, SlidingWindow, SlidingLogs, TokenBucket)
