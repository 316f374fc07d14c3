from __future__ import annotations

from dataclasses import dataclass

from ..activities.model import Activity, MultiDay, SingleDay
from .strategies.base import OverlapStrategy
from .strategies.multi_day_strategy import MultiDayOverlapStrategy
from .strategies.single_day_strategy import SingleDayOverlapStrategy


@dataclass
class OverlapStrategyFactory:
    """Factory Pattern: pick the comparison for the other activity's shape."""

    def for_activity(self, other: Activity) -> OverlapStrategy:
        shape = other.shape
        if isinstance(shape, MultiDay):
            return MultiDayOverlapStrategy()
        if isinstance(shape, SingleDay):
            return SingleDayOverlapStrategy()
        raise TypeError(f"Unsupported activity shape: {type(shape).__name__}")
