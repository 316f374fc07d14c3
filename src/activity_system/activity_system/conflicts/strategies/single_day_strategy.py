from __future__ import annotations

from typing import Optional

from ...activities.model import Activity, Registration
from ...common.datetime_utils import normalize_day
from ...core.enums import ActivityKind
from ..model import Candidate, OverlapHit
from .base import OverlapStrategy, windows_overlap


class SingleDayOverlapStrategy(OverlapStrategy):
    """Other activity is single-day: same date, slot booked, then the interval test."""

    def find(self, *, candidate: Candidate, other: Activity, registration: Registration) -> Optional[OverlapHit]:
        target = normalize_day(candidate.date)
        if target is None or normalize_day(other.resolve_date(None)) != target:
            return None
        if not registration.covers(None, candidate.slot, kind=ActivityKind.SINGLE_DAY):
            return None
        other_slot = other.slot(candidate.slot)
        # A whole-day booking only holds the slots the activity actually runs.
        if other_slot is None and not registration.day_slots:
            return None
        if not windows_overlap(candidate.slot_def, other_slot):
            return None
        return self._hit(other, None, candidate)
