from __future__ import annotations

from typing import Any

from flask import Flask

from ..common.web import current_user_id, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import OFFICER_ROLES, CheckInType, Decision
from ..core.exceptions import ValidationError
from .model import Location


def _location(value: Any) -> Location:
    if not isinstance(value, dict):
        raise ValidationError("location with lat/lng is required")
    return Location(lat=value.get("lat"), lng=value.get("lng"), address=value.get("address"))


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service

    @app.route("/api/activities/<int:activity_id>/attendance", methods=["POST"], endpoint="api_check_in")
    @login_required
    def check_in(activity_id: int):
        data = json_body()
        try:
            check_in_type = CheckInType(str(data.get("checkInType", "")).lower())
        except ValueError:
            raise ValidationError("checkInType must be 'start' or 'end'")
        day = data.get("dayNumber")
        try:
            day_number = int(day) if day not in (None, "") else None
        except (TypeError, ValueError):
            raise ValidationError("dayNumber must be an integer")

        record = attendance.check_in(
            activity_id=activity_id,
            user_id=current_user_id(),
            slot=str(data.get("timeSlot", "")),
            check_in_type=check_in_type,
            location=_location(data.get("location")),
            day_number=day_number,
            photo_url=data.get("photoUrl"),
            late_reason=data.get("lateReason"),
        )
        return ok(record.to_dict(), 201)

    @app.route("/api/activities/<int:activity_id>/attendance/me", methods=["GET"], endpoint="api_my_attendance")
    @login_required
    def my_attendance(activity_id: int):
        ledger = attendance.get_ledger(activity_id=activity_id, user_id=current_user_id())
        return ok(ledger.to_dict())

    @app.route("/api/attendance/<int:record_id>/verify", methods=["PATCH"], endpoint="api_verify_attendance")
    @roles_required(OFFICER_ROLES)
    def verify(record_id: int):
        data = json_body()
        action = str(data.get("status") or data.get("action") or "").lower()
        # Accept both the decision verbs and the resulting status names.
        decision = {"approved": Decision.APPROVE, "rejected": Decision.REJECT}.get(action)
        if decision is None:
            try:
                decision = Decision(action)
            except ValueError:
                raise ValidationError("status must be 'approved' or 'rejected'")
        if decision == Decision.RESET:
            raise ValidationError("status must be 'approved' or 'rejected'")

        record = attendance.verify(
            record_id=record_id,
            decision=decision,
            verifier_id=current_user_id(),
            note=data.get("verificationNote") or data.get("note"),
        )
        return ok(record.to_dict())
