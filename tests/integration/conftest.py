"""Integration test fixtures using Docker.

Provides a containerized Redis for running the workload against a real
server. Tests skip when no Docker daemon is reachable.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import docker
import pytest
import pytest_asyncio
import redis.asyncio as redis

from kvload.config import Settings


@dataclass
class RedisService:
    """Handle for a running Redis container and its published port."""

    container: Any
    host: str

    @property
    def port(self) -> int:
        self.container.reload()
        ports = self.container.attrs["NetworkSettings"]["Ports"].get("6379/tcp")
        if not ports:
            raise RuntimeError(f"Port 6379/tcp not exposed on container {self.container.short_id}")
        return int(ports[0]["HostPort"])


def _docker_host(client: docker.DockerClient) -> str:
    base_url = client.api.base_url
    if base_url.startswith(("unix://", "npipe://", "http+docker://")):
        return "localhost"
    return urlparse(base_url).hostname or "localhost"


@pytest.fixture(scope="session")
def docker_client():
    """Create a Docker client or skip if Docker is unavailable."""
    try:
        client = docker.from_env()
        client.ping()
    except Exception as exc:
        pytest.skip(f"Docker not available: {exc}")
    yield client
    client.close()


@pytest.fixture(scope="session")
def redis_container(docker_client) -> Iterator[RedisService]:
    """Start a Redis container for the test session."""
    container = docker_client.containers.run(
        "redis:7-alpine",
        detach=True,
        ports={"6379/tcp": None},
    )
    try:
        yield RedisService(container=container, host=_docker_host(docker_client))
    finally:
        container.remove(force=True, v=True)


@pytest_asyncio.fixture
async def redis_client(redis_container: RedisService):
    """Raw client for seeding and inspecting the server; flushed after each test."""
    client = redis.Redis(host=redis_container.host, port=redis_container.port)
    await _wait_for_redis(client)
    yield client
    await client.flushdb()
    await client.aclose()


@pytest.fixture
def redis_settings(redis_container: RedisService) -> Callable[..., Settings]:
    """Settings pointing at the container, with small workload defaults."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "redis_nodes": f"{redis_container.host}:{redis_container.port}",
            "redis_timeout_seconds": 5.0,
            "redis_shutdown_timeout_seconds": 5.0,
            "pool_max_active": 50,
            "dataset_size": 200,
            "data_size": 64,
            "scan_batch_size": 50,
            "preset_thread_num": 8,
            "thread_num": 4,
            "thread_rate_limit": 200,
            "enable_metrics": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


async def _wait_for_redis(client, timeout: float = 30.0) -> None:
    """Wait for Redis to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            await client.ping()
            return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)
