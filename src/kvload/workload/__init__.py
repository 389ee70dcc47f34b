"""Workload engine for kvload.

- RateLimiter: sliding-window permit limiter with bounded wait
- OperationMix: read / update / idle decision policy
- Worker: sequential rate-limited operation loop
- PresetCoordinator: bounded bulk load of missing keys
- LoadEngine: boot sequence and worker lifecycle
"""

from kvload.workload.engine import BootReport, LoadEngine, RunSummary
from kvload.workload.mix import OperationMix
from kvload.workload.preset import PresetCoordinator, PresetResult
from kvload.workload.rate_limit import RateLimiter
from kvload.workload.worker import Worker, WorkerStats

__all__ = [
    "BootReport",
    "LoadEngine",
    "RunSummary",
    "OperationMix",
    "PresetCoordinator",
    "PresetResult",
    "RateLimiter",
    "Worker",
    "WorkerStats",
]
