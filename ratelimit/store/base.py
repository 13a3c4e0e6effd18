from abc import ABC, abstractmethod
from typing import Any, Sequence, Union


class ScriptExecutor(ABC):
    """Abstract base class for atomic script executors.

    An executor runs one named script against the shared store as a
    single indivisible unit: no other operation touching the same keys
    can observe or interleave with its partial reads and writes.
    """

    @abstractmethod
    async def execute(
        self,
        script_id: str,
        keys: Sequence[str],
        args: Sequence[Union[int, str]],
    ) -> Any:
        """Run a script atomically.

        Args:
            script_id: Name of the script (see ratelimit.limiters.redis_lua)
            keys: Ordered storage keys the script touches
            args: Ordered scalar arguments

        Returns:
            The script reply, an int or a list of ints.

        Raises:
            UnsupportedVariant: If the executor has no such script.
            StoreUnavailable: On connection failure, timeout or script error.
        """
        pass

    @abstractmethod
    def supports(self, script_id: str) -> bool:
        """Return True if execute() can run script_id."""
        pass
