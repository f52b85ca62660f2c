"""
Shared helpers for status transitions (``club_modules._transition_helpers``).

Every state change in the engine is a single conditional UPDATE keyed by
id AND the status the caller observed.  If a concurrent writer moved the
row first, zero rows match and ``InvalidTransitionError`` is raised before
any side effect, so the loser of a race never applies its change.

Architecture: Modules layer.  Imports only from club_kernel.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from club_kernel.domain.roles import Actor
from club_kernel.domain.workflow import Transition, Workflow
from club_kernel.exceptions import InvalidTransitionError, ValidationError
from club_kernel.logging_config import get_logger

logger = get_logger("modules.transitions")

E = TypeVar("E", bound=Enum)


def parse_status(status_type: type[E], value: E | str) -> E:
    """Coerce a status filter, raising ValidationError for unknown values."""
    try:
        return status_type(value)
    except ValueError:
        raise ValidationError(f"Unknown status: {value!r}", field="status") from None


def compare_and_set_status(
    session: Session,
    model: type,
    entity_id: UUID,
    *,
    entity_type: str,
    action: str,
    expected_status: str,
    values: dict[str, Any],
) -> None:
    """UPDATE ``model`` SET ``values`` WHERE id = entity_id AND status = expected.

    Raises:
        InvalidTransitionError: zero rows matched (status changed underneath).
    """
    stmt = (
        update(model)
        .where(model.id == entity_id, model.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount != 1:
        logger.warning(
            "transition_conflict",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "expected_status": expected_status,
                "action": action,
            },
        )
        raise InvalidTransitionError(entity_type, entity_id, expected_status, action)


def apply_transition(
    session: Session,
    row: Any,
    workflow: Workflow,
    action: str,
    actor: Actor,
    *,
    entity_type: str,
    values: dict[str, Any] | None = None,
) -> Transition:
    """Resolve ``action`` against ``workflow`` and apply it with a conditional update.

    The row is refreshed afterwards so callers see the committed values.
    """
    current = row.status
    transition = workflow.find_transition(current, action)
    if transition is None:
        raise InvalidTransitionError(entity_type, row.id, current, action)

    compare_and_set_status(
        session,
        type(row),
        row.id,
        entity_type=entity_type,
        action=action,
        expected_status=current,
        values={
            "status": transition.to_state,
            "updated_by_id": actor.member_id,
            **(values or {}),
        },
    )
    session.refresh(row)
    return transition
