from __future__ import annotations

from typing import Optional

from ...core.exceptions import ValidationError
from .base import CheckInTimingStrategy, TimingDecision


class LateStrategy(CheckInTimingStrategy):
    """Past the grace window but still accepted, with an explanation."""

    def decide(self, *, delay_minutes: float, late_reason: Optional[str]) -> TimingDecision:
        if not late_reason:
            raise ValidationError(f"You are {int(delay_minutes)} minutes late; please give a reason")
        return TimingDecision(is_late=True, late_reason=late_reason)
