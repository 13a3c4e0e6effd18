"""Rate limiting data models.

This module contains the decision types returned by limit() and the
script invocation built by each limiter variant.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union


@dataclass(frozen=True)
class Admitted:
    """The request was admitted.

    Attributes:
        limit: Maximum number of requests the limiter allows
        remaining: Requests left before the limiter starts denying
        reset_at: Epoch milliseconds at which the current window ends
        reason: None for store backed decisions, otherwise why the
            request was let through without a store answer
    """
    limit: int
    remaining: int
    reset_at: int
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return True

    def retry_after_ms(self, now_ms: int) -> int:
        return 0


@dataclass(frozen=True)
class Denied:
    """The request was denied.

    Attributes:
        limit: Maximum number of requests the limiter allows
        reset_at: Epoch milliseconds at which the current window ends
    """
    limit: int
    reset_at: int

    @property
    def allowed(self) -> bool:
        return False

    @property
    def remaining(self) -> int:
        return 0

    @property
    def reason(self) -> Optional[str]:
        return None

    def retry_after_ms(self, now_ms: int) -> int:
        """Milliseconds the caller should wait before trying again."""
        return max(0, self.reset_at - now_ms)


Decision = Union[Admitted, Denied]


@dataclass(frozen=True)
class ScriptCall:
    """One atomic script invocation against the shared store."""
    script_id: str
    keys: Sequence[str]
    args: Sequence[Union[int, str]]
