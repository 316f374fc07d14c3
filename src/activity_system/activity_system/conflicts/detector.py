from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..activities.model import Activity, DaySlot
from ..activities.repository import ActivityRepository
from ..core.enums import OPEN_FOR_REGISTRATION, SlotName
from ..core.exceptions import NotFoundError
from .factory import OverlapStrategyFactory
from .model import Candidate, OverlapHit, OverlapReport

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Finds other live registrations of a user that collide with a day/slot.

    Overlap is a normal result, never an exception: callers decide whether a
    non-empty report blocks them.
    """

    def __init__(self, activities: ActivityRepository, strategy_factory: Optional[OverlapStrategyFactory] = None):
        self._activities = activities
        self._factory = strategy_factory or OverlapStrategyFactory()

    def check_overlap(self, user_id: int, activity_id: int, day_number: Optional[int], slot: SlotName) -> OverlapReport:
        activity = self._activities.get_by_id(int(activity_id))
        if not activity:
            raise NotFoundError("Activity not found")
        return self.check_against(activity, user_id=user_id, day_number=day_number, slot=slot)

    def check_against(self, activity: Activity, *, user_id: int, day_number: Optional[int], slot: SlotName) -> OverlapReport:
        others = self._other_activities(activity, user_id)
        return OverlapReport(overlaps=tuple(self._scan(activity, others, user_id, day_number, slot)))

    def check_many(self, activity: Activity, *, user_id: int, day_slots: Iterable[DaySlot]) -> OverlapReport:
        """One report over several requested day-slots, hits de-duplicated."""
        others = self._other_activities(activity, user_id)
        reports = [
            OverlapReport(overlaps=tuple(self._scan(activity, others, user_id, ds.day_number, ds.slot)))
            for ds in day_slots
        ]
        report = OverlapReport.combine(reports)
        if report.has_overlap:
            logger.info(
                "User %s: %d overlapping registration(s) for activity %s",
                user_id,
                len(report.overlaps),
                activity.activity_id,
            )
        return report

    def _other_activities(self, activity: Activity, user_id: int) -> list[Activity]:
        others = self._activities.list_with_live_registration(user_id=int(user_id), exclude_activity_id=activity.activity_id)
        return [a for a in others if a.activity_id != activity.activity_id and a.status in OPEN_FOR_REGISTRATION]

    def _scan(
        self,
        activity: Activity,
        others: list[Activity],
        user_id: int,
        day_number: Optional[int],
        slot: SlotName,
    ) -> list[OverlapHit]:
        candidate = Candidate.resolve(activity, day_number, slot)
        if candidate.date is None:
            logger.debug("Activity %s day %s has no resolvable date; skipping", activity.activity_id, day_number)
            return []

        hits: list[OverlapHit] = []
        for other in others:
            registration = other.live_registration_for(int(user_id))
            if registration is None:
                continue
            strategy = self._factory.for_activity(other)
            hit = strategy.find(candidate=candidate, other=other, registration=registration)
            if hit is not None:
                hits.append(hit)
        return hits
