"""Redis backed script executor.

Runs the rate limiting Lua scripts with EVAL so each call is atomic
relative to every other command on the same keys, across all processes
sharing the Redis instance.
"""

from typing import Any, Mapping, Optional, Sequence, Union

import redis
import redis.asyncio as aioredis

from ratelimit.core.config import settings
from ratelimit.core.logging import get_logger
from ratelimit.exceptions import StoreUnavailable, UnsupportedVariant
from ratelimit.limiters.redis_lua import SCRIPTS
from ratelimit.store.base import ScriptExecutor

logger = get_logger(__name__)


class RedisScriptExecutor(ScriptExecutor):
    """Executes atomic scripts on a redis.asyncio client.

    The client is owned by the caller unless the executor was created
    with from_url(), in which case close() releases it.
    """

    def __init__(
        self,
        redis_client: Any,
        scripts: Optional[Mapping[str, str]] = None,
        owns_client: bool = False,
    ) -> None:
        """Initialize the executor.

        Args:
            redis_client: A redis.asyncio.Redis (or compatible) client
            scripts: Script id to Lua source mapping, defaults to all scripts
            owns_client: Close the client in close()
        """
        self._redis = redis_client
        self._scripts = dict(SCRIPTS if scripts is None else scripts)
        self._owns_client = owns_client

    @classmethod
    def from_url(cls, redis_url: Optional[str] = None, **kwargs: Any) -> "RedisScriptExecutor":
        """Create an executor with its own client for redis_url."""
        client = aioredis.from_url(redis_url or settings.redis_url, **kwargs)
        return cls(client, owns_client=True)

    def supports(self, script_id: str) -> bool:
        return script_id in self._scripts

    async def execute(
        self,
        script_id: str,
        keys: Sequence[str],
        args: Sequence[Union[int, str]],
    ) -> Any:
        script = self._scripts.get(script_id)
        if script is None:
            raise UnsupportedVariant(script_id)
        try:
            return await self._redis.eval(
                script,
                len(keys),  # Number of keys
                *keys,
                *args,
            )
        except redis.ConnectionError as e:
            logger.error(f"Redis connection failed running '{script_id}': {e}")
            raise StoreUnavailable(f"Redis connection failed: {e}", script_id=script_id) from e
        except redis.TimeoutError as e:
            logger.warning(f"Redis timeout running '{script_id}': {e}")
            raise StoreUnavailable(f"Redis timeout: {e}", script_id=script_id) from e
        except redis.RedisError as e:
            logger.error(f"Lua script '{script_id}' failed: {e}")
            raise StoreUnavailable(f"Redis error: {e}", script_id=script_id) from e

    async def close(self) -> None:
        """Close the client if this executor created it."""
        if self._owns_client and self._redis is not None:
            await self._redis.aclose()
            self._redis = None
