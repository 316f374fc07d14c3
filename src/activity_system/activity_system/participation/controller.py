from __future__ import annotations

from typing import Any

from flask import Flask, request

from ..activities.model import DaySlot
from ..common.web import current_role, current_user_id, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import OFFICER_ROLES, Decision, SlotName
from ..core.exceptions import ValidationError

# Older clients send "undo_reject" for moving a rejection back to pending.
_ACTION_ALIASES = {"undo_reject": Decision.RESET}


def _day_number(value: Any):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("dayNumber must be an integer")


def _parse_day_slots(items: Any) -> list[DaySlot]:
    if items in (None, ""):
        return []
    if not isinstance(items, list):
        raise ValidationError("daySlots must be a list")
    out = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(f"Invalid day-slot: {item!r}")
        day = _day_number(item.get("day"))
        out.extend(DaySlot.expand(day, [item.get("slot", "")]))
    return out


def _parse_slots(items: Any) -> list[str]:
    if items in (None, ""):
        return []
    if isinstance(items, str):
        return [items]
    if not isinstance(items, list):
        raise ValidationError("slots must be a list")
    return [str(s) for s in items]


def _decision(value: Any) -> Decision:
    action = str(value or "").strip().lower()
    if action in _ACTION_ALIASES:
        return _ACTION_ALIASES[action]
    try:
        return Decision(action)
    except ValueError:
        raise ValidationError(f"Unknown action: {value!r}")


def _target_user_id(data: dict) -> int:
    try:
        return int(data.get("userId") or request.args.get("userId"))
    except (TypeError, ValueError):
        raise ValidationError("userId is required")


def register(app: Flask, container: Container) -> None:
    participation = container.participation_service
    detector = container.conflict_detector

    @app.route("/api/activities/check-slot-overlap", methods=["POST"], endpoint="api_check_slot_overlap")
    @login_required
    def check_slot_overlap():
        data = json_body()
        user_id = current_user_id()
        # Officers may check on behalf of a student.
        if data.get("userId") and current_role() in OFFICER_ROLES:
            user_id = _target_user_id(data)
        try:
            activity_id = int(data.get("activityId"))
            slot = SlotName.parse(data.get("slotName"))
        except (TypeError, ValueError):
            raise ValidationError("activityId and a valid slotName are required")

        report = detector.check_overlap(user_id, activity_id, _day_number(data.get("dayNumber")), slot)
        return ok(report.to_dict(), **report.to_dict())

    @app.route("/api/activities/<int:activity_id>/register", methods=["POST"], endpoint="api_register")
    @login_required
    def register_for_activity(activity_id: int):
        data = request.get_json(silent=True) or {}
        registration = participation.register(
            activity_id=activity_id,
            user_id=current_user_id(),
            day_number=_day_number(data.get("dayNumber")),
            slots=_parse_slots(data.get("slots")),
            day_slots=_parse_day_slots(data.get("daySlots")),
        )
        return ok(registration.to_dict(), 201)

    @app.route("/api/activities/<int:activity_id>/register", methods=["DELETE"], endpoint="api_withdraw")
    @login_required
    def withdraw(activity_id: int):
        registration = participation.withdraw(activity_id=activity_id, user_id=current_user_id())
        return ok(registration.to_dict())

    @app.route("/api/activities/<int:activity_id>/register", methods=["PATCH"], endpoint="api_update_day_slots")
    @login_required
    def update_day_slots(activity_id: int):
        data = json_body()
        registration = participation.update_day_slots(
            activity_id=activity_id,
            user_id=current_user_id(),
            day_slots=_parse_day_slots(data.get("daySlots")),
        )
        return ok(registration.to_dict())

    @app.route("/api/activities/<int:activity_id>/participants", methods=["PATCH"], endpoint="api_decide_participant")
    @roles_required(OFFICER_ROLES)
    def decide(activity_id: int):
        data = json_body()
        registration = participation.decide(
            activity_id=activity_id,
            user_id=_target_user_id(data),
            decision=_decision(data.get("action")),
            officer_id=current_user_id(),
            reason=data.get("rejectionReason") or data.get("reason"),
        )
        return ok(registration.to_dict())

    @app.route("/api/activities/<int:activity_id>/participants", methods=["DELETE"], endpoint="api_remove_participant")
    @roles_required(OFFICER_ROLES)
    def remove(activity_id: int):
        data = request.get_json(silent=True) or {}
        registration = participation.remove(
            activity_id=activity_id,
            user_id=_target_user_id(data),
            officer_id=current_user_id(),
            reason=data.get("removalReason") or data.get("reason"),
        )
        return ok(registration.to_dict())
