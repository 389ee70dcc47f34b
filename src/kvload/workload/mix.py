from __future__ import annotations

import random

from kvload.models import OperationKind


class OperationMix:
    """Read/update decision policy.

    A uniform draw u in [0, 1) selects READ when u < read_rate and UPDATE
    when u < read_rate + update_rate. Any remaining probability mass is an
    idle slice: ``choose`` returns None and the worker issues no call.
    """

    def __init__(
        self,
        read_rate: float,
        update_rate: float,
        rng: random.Random | None = None,
    ) -> None:
        if read_rate < 0 or update_rate < 0:
            raise ValueError("operation rates must be non-negative")
        if read_rate + update_rate > 1.0 + 1e-9:
            raise ValueError(
                f"read_rate + update_rate must be <= 1.0, got {read_rate + update_rate:.4f}"
            )
        self.read_rate = read_rate
        self.update_rate = update_rate
        self._rng = rng or random.Random()

    @property
    def idle_rate(self) -> float:
        return max(0.0, 1.0 - self.read_rate - self.update_rate)

    def decide(self, draw: float) -> OperationKind | None:
        """Map a draw in [0, 1) to an operation kind."""
        if draw < self.read_rate:
            return OperationKind.READ
        if draw < self.read_rate + self.update_rate:
            return OperationKind.UPDATE
        return None

    def choose(self) -> OperationKind | None:
        return self.decide(self._rng.random())
