from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Tolerance for read + update rates that sum to 1.0 in floating point
_RATE_EPSILON = 1e-9


def parse_node_addresses(raw_nodes: str) -> list[tuple[str, int]]:
    """Parse a comma-separated ``host:port`` list.

    Raises:
        ValueError: An entry is not ``host:port`` with a port in 1-65535,
            or the list is empty.
    """
    addresses: list[tuple[str, int]] = []
    for raw in raw_nodes.split(","):
        raw = raw.strip()
        if not raw:
            continue
        host, sep, port = raw.rpartition(":")
        if not sep or not host or not port.isdigit() or not 0 < int(port) <= 65535:
            raise ValueError(f"Invalid Redis node address: {raw!r} (expected host:port)")
        addresses.append((host, int(port)))
    if not addresses:
        raise ValueError("redis_nodes must contain at least one host:port entry")
    return addresses


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "kvload"

    # Redis topology and credentials
    redis_database: int = Field(default=0, ge=0, validation_alias="REDIS_DATABASE")
    redis_nodes: str = Field(
        default="localhost:6379", validation_alias="REDIS_CLUSTER_NODES_URL"
    )
    redis_user: str | None = Field(default=None, validation_alias="REDIS_USER")
    redis_password: str | None = Field(default=None, validation_alias="REDIS_PASSWORD")
    redis_cluster_enable: bool = Field(default=False, validation_alias="REDIS_CLUSTER_ENABLE")
    redis_timeout_seconds: float = Field(
        default=15.0, gt=0, validation_alias="REDIS_TIMEOUT_SECONDS"
    )
    redis_shutdown_timeout_seconds: float = Field(
        default=100.0, ge=0, validation_alias="REDIS_SHUTDOWN_TIMEOUT_SECONDS"
    )

    # Connection pool (max_idle/min_idle are informational for redis-py pools)
    pool_max_active: int = Field(default=3000, ge=1, validation_alias="POOL_MAX_ACTIVE")
    pool_max_idle: int = Field(default=10, ge=0, validation_alias="POOL_MAX_IDLE")
    pool_min_idle: int = Field(default=5, ge=0, validation_alias="POOL_MIN_IDLE")
    pool_wait_timeout_seconds: float = Field(
        default=5.0, gt=0, validation_alias="POOL_WAIT_TIMEOUT_SECONDS"
    )

    # Dataset
    data_size: int = Field(default=1024, ge=0, validation_alias="DATA_SIZE")
    dataset_size: int = Field(default=100000, ge=0, validation_alias="DATA_SET_SIZE")
    scan_batch_size: int = Field(default=1000, ge=1, validation_alias="SCAN_BATCH_SIZE")
    key_prefix: str = Field(default="", validation_alias="KEY_PREFIX")
    key_seed: int | None = Field(default=None, validation_alias="KEY_SEED")

    # Preset phase
    preset_thread_num: int = Field(default=100, ge=1, validation_alias="PRESET_THREAD_NUM")
    verify_preset: bool = Field(default=True, validation_alias="VERIFY_PRESET")

    # Steady state
    thread_num: int = Field(default=100, ge=1, validation_alias="THREAD_NUM")
    thread_rate_limit: int = Field(default=100, ge=1, validation_alias="THREAD_RATE_LIMIT")
    rate_limit_window_seconds: float = Field(
        default=1.0, gt=0, validation_alias="RATE_LIMIT_WINDOW_SECONDS"
    )
    thread_rate_limit_timeout_ms: float = Field(
        default=2, ge=0, validation_alias="THREAD_RATE_LIMIT_TIMEOUT_MS"
    )
    rate_limit_scope: Literal["worker", "global"] = Field(
        default="worker", validation_alias="RATE_LIMIT_SCOPE"
    )
    read_rate_percent: float = Field(
        default=0.25, ge=0.0, le=1.0, validation_alias="READ_RATE_PERCENT"
    )
    update_rate_percent: float = Field(
        default=0.75, ge=0.0, le=1.0, validation_alias="UPDATE_RATE_PERCENT"
    )

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    metrics_port: int = Field(default=9090, ge=0, le=65535, validation_alias="METRICS_PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    @model_validator(mode="after")
    def _check_operation_rates(self) -> "Settings":
        total = self.read_rate_percent + self.update_rate_percent
        if total > 1.0 + _RATE_EPSILON:
            raise ValueError(
                "read_rate_percent + update_rate_percent must be <= 1.0, "
                f"got {total:.4f}"
            )
        return self

    @field_validator("redis_nodes")
    @classmethod
    def _check_redis_nodes(cls, value: str) -> str:
        parse_node_addresses(value)
        return value

    @property
    def node_addresses(self) -> list[tuple[str, int]]:
        """``redis_nodes`` as (host, port) pairs."""
        return parse_node_addresses(self.redis_nodes)

    @property
    def rate_limit_timeout_seconds(self) -> float:
        return self.thread_rate_limit_timeout_ms / 1000.0

    @property
    def idle_rate_percent(self) -> float:
        """Probability mass that maps to neither read nor update."""
        return max(0.0, 1.0 - self.read_rate_percent - self.update_rate_percent)


# Loaded on first use so that an invalid environment surfaces at the caller
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or load the process settings from the environment."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next call reloads them (for testing)."""
    global _settings
    _settings = None
