from __future__ import annotations

import re
from typing import Optional

from ..core.constants import MAX_NOTE_LENGTH
from ..core.exceptions import ValidationError

_HTTP_URL = re.compile(r"^https?://.+")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def optional_note(value: Optional[str], field_name: str = "Note") -> Optional[str]:
    """Trim a free-text note; blank becomes None."""
    v = (value or "").strip()
    if not v:
        return None
    return require_max_length(v, field_name, MAX_NOTE_LENGTH)


def require_coordinates(lat: float, lng: float) -> None:
    try:
        lat_f, lng_f = float(lat), float(lng)
    except (TypeError, ValueError):
        raise ValidationError("Location must carry numeric lat/lng")
    if lat_f != lat_f or lng_f != lng_f:
        raise ValidationError("Location must carry numeric lat/lng")
    if not -90 <= lat_f <= 90:
        raise ValidationError("Latitude must be between -90 and 90")
    if not -180 <= lng_f <= 180:
        raise ValidationError("Longitude must be between -180 and 180")


def optional_http_url(value: Optional[str], field_name: str = "Photo URL") -> Optional[str]:
    v = (value or "").strip()
    if not v:
        return None
    if not _HTTP_URL.match(v):
        raise ValidationError(f"{field_name} must start with http:// or https://")
    return v
