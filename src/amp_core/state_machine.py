"""Status/progress coupling for tasks.

A task carries both a status enum and a numeric completion_status (0-100).
The two are kept consistent by applying these rules as side effects of the
write that triggers them:

- status → completed forces completion_status = 100
- status → cancelled forces completion_status = 0
- completion_status → 100 forces status = completed
- completion_status → <100 on a completed task forces status = in-progress

When one update sets both fields, the completion rule runs first and the
explicit status wins.
"""
import logging
from enum import Enum
from typing import NamedTuple, Optional, Type, TypeVar

from .errors import ValidationError
from .models import TaskStatus

logger = logging.getLogger("amp-core.state_machine")

COMPLETE = 100.0
MIN_COMPLETION = 0.0

# Completion value forced by a status transition
FORCED_COMPLETION: dict[TaskStatus, float] = {
    TaskStatus.COMPLETED: COMPLETE,
    TaskStatus.CANCELLED: MIN_COMPLETION,
}

E = TypeVar("E", bound=Enum)


class ProgressState(NamedTuple):
    """Status and completion pair after reconciliation."""

    status: TaskStatus
    completion_status: float


def coerce_enum(enum_cls: Type[E], value, field: str) -> E:
    """
    Convert a raw value into a member of enum_cls.

    Raises:
        ValidationError: If value is not one of the enum values
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}")


def validate_completion(value) -> float:
    """
    Validate a completion percentage.

    Raises:
        ValidationError: If value is not a number between 0 and 100
    """
    if isinstance(value, bool):
        raise ValidationError("Completion status must be a number between 0 and 100")
    try:
        completion = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Completion status must be a number between 0 and 100")
    if completion != completion or completion < MIN_COMPLETION or completion > COMPLETE:
        raise ValidationError("Completion status must be a number between 0 and 100")
    return completion


def reconcile_progress(
    current_status: TaskStatus,
    current_completion: float,
    new_status: Optional[TaskStatus] = None,
    new_completion: Optional[float] = None,
) -> ProgressState:
    """
    Compute the status/completion pair that results from an update.

    Args:
        current_status: Status before the update
        current_completion: completion_status before the update
        new_status: Requested status (None if not being changed)
        new_completion: Requested completion_status (None if not being changed)

    Returns:
        ProgressState with both fields after coupling rules are applied
    """
    status = current_status
    completion = current_completion

    if new_completion is not None:
        completion = new_completion
        if completion >= COMPLETE:
            status = TaskStatus.COMPLETED
        elif status == TaskStatus.COMPLETED:
            status = TaskStatus.IN_PROGRESS

    if new_status is not None:
        status = new_status
        if new_status in FORCED_COMPLETION:
            completion = FORCED_COMPLETION[new_status]

    if (status, completion) != (current_status, current_completion):
        logger.debug(
            f"Task progress: {current_status.value}/{current_completion} → {status.value}/{completion}"
        )
    return ProgressState(status=status, completion_status=completion)
