"""Redis store adapter for kvload.

Provides the StoreClient operations over the redis-py async client,
for both standalone servers and Redis Cluster deployments.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, cast

import redis.asyncio as redis
from redis.asyncio.cluster import ClusterNode, RedisCluster

from kvload.config import Settings
from kvload.store.base import StoreClient

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> Redis | RedisCluster:
    """Build a Redis client for the configured topology.

    Standalone mode uses a blocking connection pool capped at
    ``pool_max_active``. When the pool is exhausted a command waits up to
    ``pool_wait_timeout_seconds`` and then fails with ``ConnectionError``,
    which the workload records as a failed operation.
    """
    nodes = settings.node_addresses

    if settings.redis_cluster_enable:
        logger.info(f"Creating Redis Cluster client with {len(nodes)} startup node(s)")
        return RedisCluster(
            startup_nodes=[ClusterNode(host, port) for host, port in nodes],
            username=settings.redis_user,
            password=settings.redis_password,
            socket_timeout=settings.redis_timeout_seconds,
            socket_connect_timeout=settings.redis_timeout_seconds,
            max_connections=settings.pool_max_active,
            decode_responses=False,
        )

    host, port = nodes[0]
    if len(nodes) > 1:
        logger.warning(f"Standalone mode ignores extra nodes, using {host}:{port}")
    logger.info(
        f"Creating Redis client for {host}:{port}/{settings.redis_database} "
        f"(max_active={settings.pool_max_active}, max_idle={settings.pool_max_idle}, "
        f"min_idle={settings.pool_min_idle})"
    )
    pool = redis.BlockingConnectionPool(
        host=host,
        port=port,
        db=settings.redis_database,
        username=settings.redis_user,
        password=settings.redis_password,
        socket_timeout=settings.redis_timeout_seconds,
        socket_connect_timeout=settings.redis_timeout_seconds,
        max_connections=settings.pool_max_active,
        timeout=settings.pool_wait_timeout_seconds,
        decode_responses=False,  # Values are opaque bytes
    )
    return redis.Redis(connection_pool=pool)


class RedisStore(StoreClient):
    """StoreClient backed by a redis-py async client."""

    def __init__(
        self,
        client: Any,
        *,
        scan_match: str = "*",
        scan_batch_size: int = 1000,
        shutdown_timeout: float | None = None,
    ) -> None:
        self.client = client
        self.scan_match = scan_match
        self.scan_batch_size = scan_batch_size
        self.shutdown_timeout = shutdown_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisStore":
        return cls(
            create_redis_client(settings),
            scan_match=f"{settings.key_prefix}*",
            scan_batch_size=settings.scan_batch_size,
            shutdown_timeout=settings.redis_shutdown_timeout_seconds,
        )

    async def scan_all_keys(self) -> set[str]:
        """Collect all matching keys with SCAN.

        SCAN returns at most ``scan_batch_size`` keys per round trip and
        terminates once the cursor wraps back to zero.
        """
        keys: set[str] = set()
        async for key in self.client.scan_iter(match=self.scan_match, count=self.scan_batch_size):
            keys.add(key.decode() if isinstance(key, bytes) else key)
        return keys

    async def get(self, key: str) -> bytes | None:
        return cast(bytes | None, await self.client.get(key))

    async def set(self, key: str, value: bytes) -> None:
        await self.client.set(key, value)

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except Exception:
            return False

    async def close(self) -> None:
        """Close Redis connections, bounded by the shutdown timeout."""
        try:
            await asyncio.wait_for(self.client.aclose(), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Redis client did not close within {self.shutdown_timeout}s")
