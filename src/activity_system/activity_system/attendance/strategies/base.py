from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TimingDecision:
    is_late: bool
    late_reason: Optional[str] = None


class CheckInTimingStrategy(ABC):
    """Strategy Pattern: how a check-in at ``delay_minutes`` from the target is treated.

    Negative delay means the user is early.
    """

    @abstractmethod
    def decide(self, *, delay_minutes: float, late_reason: Optional[str]) -> TimingDecision:
        raise NotImplementedError
