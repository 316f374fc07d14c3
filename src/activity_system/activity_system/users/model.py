from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Thực thể miền (domain): User.

    Only the profile fields snapshotted into registrations, ledgers and
    verification stamps; identity and sessions live elsewhere.
    """

    user_id: int
    name: str
    email: str
    role: Role
    student_id: Optional[str] = None
