"""
Typed exception hierarchy for the club finance engine.

Every error has a typed class (catch by type, not by message), a ``code``
class attribute (machine-readable, API-safe) and structured attributes
(not just a message string).

    ClubFinanceError (base)
    |
    +-- ForbiddenError                     FORBIDDEN
    |
    +-- InvalidTransitionError             INVALID_TRANSITION
    |   +-- ActivityNotApprovedError       ACTIVITY_NOT_APPROVED
    |
    +-- ValidationError                    VALIDATION_ERROR
    |   +-- CurrencyMismatchError          CURRENCY_MISMATCH
    |
    +-- NotFoundError                      NOT_FOUND
    |   +-- ActivityNotFoundError          ACTIVITY_NOT_FOUND
    |   +-- ExpenseNotFoundError           EXPENSE_NOT_FOUND
    |   +-- PaymentConfirmationNotFoundError  PAYMENT_CONFIRMATION_NOT_FOUND
    |   +-- DuesCycleNotFoundError         DUES_CYCLE_NOT_FOUND
    |   +-- MemberNotFoundError            MEMBER_NOT_FOUND
    |
    +-- DuesCycleError
    |   +-- DuplicateDuesCycleError        DUPLICATE_DUES_CYCLE
    |   +-- NoActiveDuesCycleError         NO_ACTIVE_DUES_CYCLE
    |
    +-- ExternalIOError                    EXTERNAL_IO
        +-- NotificationError              NOTIFICATION_FAILED

Handling patterns
-----------------
Caller errors (Forbidden, NotFound, Validation, InvalidTransition) are raised
synchronously and never retried.  The HTTP layer maps categories to status
codes (403 / 404 / 400 / 409 / 502).  Automation phases catch per-member
failures, log them with ``exc_code`` and continue.
"""

from __future__ import annotations

from typing import Any


class ClubFinanceError(Exception):
    """
    Base exception for all club finance errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "CLUB_FINANCE_ERROR"


# Authorization


class ForbiddenError(ClubFinanceError):
    """The caller's role does not permit the requested action."""

    code: str = "FORBIDDEN"

    def __init__(self, action: str, role: str, workflow: str | None = None):
        self.action = action
        self.role = role
        self.workflow = workflow
        target = f"{workflow}.{action}" if workflow else action
        super().__init__(f"Role '{role}' may not perform '{target}'")


# State machine


class InvalidTransitionError(ClubFinanceError):
    """
    The entity is not in a state that allows the requested action.

    Also raised when a conditional update matched zero rows because a
    concurrent writer changed the status first.
    """

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        current_state: str | None,
        action: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} "
            f"from state '{current_state}'"
        )


class ActivityNotApprovedError(InvalidTransitionError):
    """Expenses may only be recorded against approved or completed activities."""

    code: str = "ACTIVITY_NOT_APPROVED"

    def __init__(self, activity_id: Any, current_state: str):
        super().__init__("activity", activity_id, current_state, "accept expense for")


# Input validation


class ValidationError(ClubFinanceError):
    """A request field is missing or malformed."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class CurrencyMismatchError(ValidationError):
    """Arithmetic between amounts in different currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right
        super().__init__(f"Currency mismatch: {left} vs {right}", field="currency")


# Lookup


class NotFoundError(ClubFinanceError):
    """Base for missing-entity errors."""

    code: str = "NOT_FOUND"
    entity_type: str = "entity"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type.capitalize()} not found: {entity_id}")


class ActivityNotFoundError(NotFoundError):
    code: str = "ACTIVITY_NOT_FOUND"
    entity_type = "activity"


class ExpenseNotFoundError(NotFoundError):
    code: str = "EXPENSE_NOT_FOUND"
    entity_type = "expense"


class PaymentConfirmationNotFoundError(NotFoundError):
    code: str = "PAYMENT_CONFIRMATION_NOT_FOUND"
    entity_type = "payment confirmation"


class DuesCycleNotFoundError(NotFoundError):
    code: str = "DUES_CYCLE_NOT_FOUND"
    entity_type = "dues cycle"


class MemberNotFoundError(NotFoundError):
    code: str = "MEMBER_NOT_FOUND"
    entity_type = "member"


# Dues cycles


class DuesCycleError(ClubFinanceError):
    """Base exception for dues cycle errors."""

    code: str = "DUES_CYCLE_ERROR"


class DuplicateDuesCycleError(DuesCycleError):
    """A cycle with this code already exists."""

    code: str = "DUPLICATE_DUES_CYCLE"

    def __init__(self, cycle_code: str):
        self.cycle_code = cycle_code
        super().__init__(f"Dues cycle already exists: {cycle_code}")


class NoActiveDuesCycleError(DuesCycleError):
    """An operation needed the active cycle but none is active."""

    code: str = "NO_ACTIVE_DUES_CYCLE"

    def __init__(self) -> None:
        super().__init__("No active dues cycle")


# External collaborators


class ExternalIOError(ClubFinanceError):
    """A collaborator outside the engine (database, mail provider) failed."""

    code: str = "EXTERNAL_IO"


class NotificationError(ExternalIOError):
    """The notification provider rejected or failed a send."""

    code: str = "NOTIFICATION_FAILED"

    def __init__(self, recipient: str, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Notification to {recipient} failed: {reason}")
