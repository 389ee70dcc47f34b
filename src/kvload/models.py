from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OperationKind(str, Enum):
    """Kind of store call issued by the workload."""

    READ = "read"
    UPDATE = "update"
    PRESET = "preset"


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class OperationRecord:
    """One timed store call, handed straight to a metrics sink."""

    kind: OperationKind
    key: str
    latency_seconds: float
    outcome: Outcome
    error_type: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS
