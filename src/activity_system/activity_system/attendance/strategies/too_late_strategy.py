from __future__ import annotations

from typing import Optional

from ...core.exceptions import ValidationError
from .base import CheckInTimingStrategy, TimingDecision


class TooLateStrategy(CheckInTimingStrategy):
    def decide(self, *, delay_minutes: float, late_reason: Optional[str]) -> TimingDecision:
        raise ValidationError(f"Check-in window closed ({int(delay_minutes)} minutes past the slot time)")
