from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time

from ..core.constants import DEFAULT_CHECKIN_GRACE_MINUTES, DEFAULT_CHECKIN_LATE_MINUTES
from .strategies.base import CheckInTimingStrategy
from .strategies.early_strategy import EarlyStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy
from .strategies.too_late_strategy import TooLateStrategy


@dataclass
class CheckInTimingFactory:
    """Factory Pattern: choose the timing strategy from how far ``now`` is from the target."""

    grace_minutes: int = DEFAULT_CHECKIN_GRACE_MINUTES
    late_minutes: int = DEFAULT_CHECKIN_LATE_MINUTES

    @staticmethod
    def delay_minutes(*, now: datetime, day: date, target: time) -> float:
        return (now - datetime.combine(day, target)).total_seconds() / 60

    def for_delay(self, delay_minutes: float) -> CheckInTimingStrategy:
        if delay_minutes < -self.grace_minutes:
            return EarlyStrategy()
        if delay_minutes <= self.grace_minutes:
            return OnTimeStrategy()
        if delay_minutes <= self.late_minutes:
            return LateStrategy()
        return TooLateStrategy()
