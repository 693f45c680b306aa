"""Cache stores for swrev."""

from swrev.adapters.base import SWRCache
from swrev.adapters.memory import MemoryCache
from swrev.adapters.redis import RedisCache

__all__ = [
    "MemoryCache",
    "RedisCache",
    "SWRCache",
]
