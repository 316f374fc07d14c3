from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..conflicts.model import OverlapReport


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when an activity, registration, ledger or record is absent."""


class InvalidStateError(DomainError):
    """Raised when the current state of an entity does not admit the operation."""


class AlreadyRegisteredError(DomainError):
    """Raised when the user already holds a live registration for the activity."""


class ConcurrencyError(DomainError):
    """Raised when an optimistic version check lost against a concurrent writer."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class ScheduleConflictError(DomainError):
    """Raised by admission when the requested day-slots overlap live registrations.

    The full report is kept so callers can explain which activity/day/slot
    blocked the request.
    """

    def __init__(self, report: "OverlapReport"):
        self.report = report
        described = "; ".join(hit.describe() for hit in report.overlaps)
        super().__init__(f"Selected slots overlap other registrations: {described}")
