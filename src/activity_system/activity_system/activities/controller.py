from __future__ import annotations

from typing import Any, Optional

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.web import current_user_id, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import OFFICER_ROLES, ActivityKind, ActivityStatus, SlotName
from ..core.exceptions import ValidationError
from .model import ScheduleDay, TimeSlot


def _enum(enum_cls, value: Any, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}")


def _optional_int(value: Any, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def _optional_date(value: Any):
    return parse_iso_date(str(value)[:10]) if value else None


def _parse_time_slots(items: Any) -> list[TimeSlot]:
    if not isinstance(items, list):
        raise ValidationError("timeSlots must be a list")
    slots = []
    for item in items:
        try:
            name = SlotName.parse(item.get("name"))
        except (AttributeError, ValueError):
            raise ValidationError(f"Invalid time slot: {item!r}")
        slots.append(
            TimeSlot(
                name=name,
                start_time=str(item.get("startTime", "")),
                end_time=str(item.get("endTime", "")),
                active=bool(item.get("isActive", True)),
            )
        )
    return slots


def _parse_schedule(items: Any) -> list[ScheduleDay]:
    if items in (None, ""):
        return []
    if not isinstance(items, list):
        raise ValidationError("schedule must be a list")
    days = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(f"Invalid schedule day: {item!r}")
        day_number = _optional_int(item.get("day"), "day")
        if day_number is None:
            raise ValidationError("Every schedule day needs a day number")
        days.append(ScheduleDay(day_number=day_number, date=parse_iso_date(str(item.get("date", ""))[:10]), note=item.get("note")))
    return days


def register(app: Flask, container: Container) -> None:
    catalog = container.activity_catalog_service

    @app.route("/api/activities", methods=["POST"], endpoint="api_create_activity")
    @roles_required(OFFICER_ROLES)
    def create_activity():
        data = json_body()
        activity = catalog.create_activity(
            name=str(data.get("name", "")),
            kind=_enum(ActivityKind, data.get("type"), "activity type"),
            time_slots=_parse_time_slots(data.get("timeSlots", [])),
            activity_date=_optional_date(data.get("date")),
            start_date=_optional_date(data.get("startDate")),
            end_date=_optional_date(data.get("endDate")),
            schedule=_parse_schedule(data.get("schedule")),
            status=_enum(ActivityStatus, data.get("status", ActivityStatus.DRAFT.value), "status"),
            max_participants=_optional_int(data.get("maxParticipants"), "maxParticipants"),
            responsible_person_id=_optional_int(data.get("responsiblePerson"), "responsiblePerson") or current_user_id(),
            created_by=current_user_id(),
        )
        return ok(activity.to_dict(), 201)

    @app.route("/api/activities/<int:activity_id>", methods=["GET"], endpoint="api_get_activity")
    @login_required
    def get_activity(activity_id: int):
        return ok(catalog.get_activity(activity_id).to_dict())

    @app.route("/api/activities/<int:activity_id>/status", methods=["PATCH"], endpoint="api_activity_status")
    @roles_required(OFFICER_ROLES)
    def change_status(activity_id: int):
        data = json_body()
        activity = catalog.change_status(
            activity_id=activity_id,
            status=_enum(ActivityStatus, data.get("status"), "status"),
            changed_by=current_user_id(),
        )
        return ok(activity.to_dict())
