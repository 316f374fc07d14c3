from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ...activities.model import Activity, Registration, TimeSlot
from ...common.datetime_utils import intervals_overlap, normalize_day
from ...core.exceptions import ValidationError
from ..model import Candidate, OverlapHit


def windows_overlap(a: Optional[TimeSlot], b: Optional[TimeSlot]) -> bool:
    """Minute-interval test; missing or malformed definitions count as overlapping."""
    if a is None or b is None:
        return True
    try:
        a_start, a_end = a.window()
        b_start, b_end = b.window()
    except ValidationError:
        return True
    return intervals_overlap(a_start, a_end, b_start, b_end)


class OverlapStrategy(ABC):
    """Strategy Pattern: how to compare a candidate against one other activity.

    The branch is chosen by the shape of the *other* activity.
    """

    @abstractmethod
    def find(self, *, candidate: Candidate, other: Activity, registration: Registration) -> Optional[OverlapHit]:
        raise NotImplementedError

    @staticmethod
    def _hit(other: Activity, day_number: Optional[int], candidate: Candidate) -> OverlapHit:
        other_slot = other.slot(candidate.slot)
        return OverlapHit(
            activity_id=other.activity_id,
            activity_name=other.name,
            day_number=day_number,
            slot=candidate.slot,
            date=normalize_day(candidate.date),
            start_time=other_slot.start_time if other_slot else None,
            end_time=other_slot.end_time if other_slot else None,
        )
