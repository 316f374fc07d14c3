from __future__ import annotations

from typing import Optional

from ...activities.model import Activity, Registration, SingleDay
from ...common.datetime_utils import normalize_day
from ..model import Candidate, OverlapHit
from .base import OverlapStrategy, windows_overlap


class MultiDayOverlapStrategy(OverlapStrategy):
    """Other activity is multi-day: match the user's day-slots by slot name and date."""

    def find(self, *, candidate: Candidate, other: Activity, registration: Registration) -> Optional[OverlapHit]:
        target = normalize_day(candidate.date)
        if target is None:
            return None

        for ds in registration.day_slots:
            if ds.slot != candidate.slot:
                continue
            if normalize_day(other.resolve_date(ds.day_number)) != target:
                continue
            # Multi-day vs multi-day: same slot name on the same day is enough.
            if isinstance(candidate.activity.shape, SingleDay):
                if not windows_overlap(candidate.slot_def, other.slot(candidate.slot)):
                    continue
            # First conflicting day only.
            return self._hit(other, ds.day_number, candidate)
        return None
