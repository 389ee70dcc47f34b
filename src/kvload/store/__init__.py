"""Store adapters for kvload.

- StoreClient: the async contract the workload engine drives
- RedisStore: standalone / cluster Redis implementation
"""

from kvload.store.base import StoreClient, StoreError, StoreUnavailableError
from kvload.store.redis import RedisStore, create_redis_client

__all__ = [
    "StoreClient",
    "StoreError",
    "StoreUnavailableError",
    "RedisStore",
    "create_redis_client",
]
