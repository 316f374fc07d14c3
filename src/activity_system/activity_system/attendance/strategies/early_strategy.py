from __future__ import annotations

from typing import Optional

from ...core.exceptions import ValidationError
from .base import CheckInTimingStrategy, TimingDecision


class EarlyStrategy(CheckInTimingStrategy):
    def decide(self, *, delay_minutes: float, late_reason: Optional[str]) -> TimingDecision:
        raise ValidationError(f"Too early: {int(-delay_minutes)} minutes before the slot time")
