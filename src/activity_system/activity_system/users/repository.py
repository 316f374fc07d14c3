from __future__ import annotations

from typing import Optional, Protocol

from .model import User


class UserRepository(Protocol):
    """Giao diện repository cho User (read-only lookups)."""

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError
