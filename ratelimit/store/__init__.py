"""Atomic script executors for the shared counter store."""

from ratelimit.store.base import ScriptExecutor
from ratelimit.store.memory import InMemoryScriptExecutor
from ratelimit.store.redis_executor import RedisScriptExecutor

__all__ = [
    "ScriptExecutor",
    "InMemoryScriptExecutor",
    "RedisScriptExecutor",
]
