from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional, Tuple

from ..activities.model import Activity, TimeSlot
from ..core.enums import SlotName


@dataclass(frozen=True)
class Candidate:
    """The (activity, day, slot) a user wants to book, with its date resolved once."""

    activity: Activity
    day_number: Optional[int]
    slot: SlotName
    date: Optional[date]
    slot_def: Optional[TimeSlot]

    @classmethod
    def resolve(cls, activity: Activity, day_number: Optional[int], slot: SlotName) -> "Candidate":
        return cls(
            activity=activity,
            day_number=day_number,
            slot=slot,
            date=activity.resolve_date(day_number),
            slot_def=activity.slot(slot),
        )


@dataclass(frozen=True)
class OverlapHit:
    activity_id: int
    activity_name: str
    day_number: Optional[int]
    slot: SlotName
    date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    def key(self) -> Tuple[int, Optional[int], SlotName]:
        return self.activity_id, self.day_number, self.slot

    def describe(self) -> str:
        where = f"day {self.day_number} " if self.day_number is not None else ""
        window = f" ({self.start_time}-{self.end_time})" if self.start_time and self.end_time else ""
        return f'"{self.activity_name}" {where}{self.slot.label} on {self.date.isoformat()}{window}'

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activityId": self.activity_id,
            "activityName": self.activity_name,
            "dayNumber": self.day_number,
            "slot": self.slot.value,
            "date": self.date.isoformat(),
            "startTime": self.start_time,
            "endTime": self.end_time,
        }


@dataclass(frozen=True)
class OverlapReport:
    overlaps: Tuple[OverlapHit, ...] = ()

    @property
    def has_overlap(self) -> bool:
        return len(self.overlaps) > 0

    @classmethod
    def combine(cls, reports: Iterable["OverlapReport"]) -> "OverlapReport":
        """Merge reports, dropping hits already seen for the same activity/day/slot."""
        seen = set()
        hits = []
        for report in reports:
            for hit in report.overlaps:
                if hit.key() in seen:
                    continue
                seen.add(hit.key())
                hits.append(hit)
        return cls(overlaps=tuple(hits))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasOverlap": self.has_overlap,
            "overlaps": [h.to_dict() for h in self.overlaps],
        }
