from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.enums import NotificationKind


@dataclass(frozen=True)
class NotificationEvent:
    kind: NotificationKind
    recipient_ids: Tuple[int, ...]
    title: str
    message: str
    activity_id: Optional[int] = None
    created_by: Optional[int] = None
