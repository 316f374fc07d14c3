from __future__ import annotations

from typing import Optional

from .base import CheckInTimingStrategy, TimingDecision


class OnTimeStrategy(CheckInTimingStrategy):
    """Within the grace window around the target time."""

    def decide(self, *, delay_minutes: float, late_reason: Optional[str]) -> TimingDecision:
        return TimingDecision(is_late=False)
