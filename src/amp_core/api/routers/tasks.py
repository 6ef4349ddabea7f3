"""Task endpoints.

Static paths (/account/..., /manager) are declared before /{task_id} so they
are not parsed as task ids.
"""
import logging
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from amp_core import crud, schemas, permissions
from amp_core.database import get_db
from amp_core.errors import NotFoundError
from amp_core.models import TaskPriority, TaskStatus
from amp_core.permissions import Actor
from amp_core.realtime import RealtimeHub

from ..dependencies import get_current_actor, get_hub

logger = logging.getLogger("amp-core.tasks")

router = APIRouter(tags=["tasks"])

SortKey = Literal["due_date", "created_at", "updated_at", "priority"]
SortDirection = Literal["asc", "desc"]


def _load_task_and_account(
    db: Session, task_id: UUID
) -> tuple[schemas.TaskResponse, schemas.AccountSummary]:
    task = crud.get_task(db, task_id)
    if not task:
        raise NotFoundError("Task not found")
    account = crud.get_account_summary(db, task.account_id)
    if not account:
        raise NotFoundError("Account not found")
    return task, account


def _publish_task(hub: RealtimeHub, task: schemas.TaskResponse, action: str, actor: Actor) -> None:
    hub.publish(
        task.account_id,
        "task:updated",
        {
            "accountId": str(task.account_id),
            "action": action,
            "task": task.model_dump(mode="json"),
            "updatedBy": str(actor.id),
        },
    )


@router.get("/account/{account_id}", response_model=schemas.TaskListResponse)
def get_tasks_by_account(
    account_id: UUID,
    status: Optional[TaskStatus] = Query(None, description="Filter by status"),
    priority: Optional[TaskPriority] = Query(None, description="Filter by priority"),
    sort_by: SortKey = Query("due_date", description="Sort key"),
    sort_dir: SortDirection = Query("asc", description="Sort direction"),
    limit: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    List an account's tasks with per-status counts.

    Sorting by **priority** compares the stored strings, so ascending order
    is high, low, medium.
    """
    account = crud.get_account_summary(db, account_id)
    if not account:
        raise NotFoundError("Account not found")
    permissions.require(
        permissions.can_read_account(actor, account),
        "You are not authorized to view tasks for this account",
        actor,
    )

    tasks = crud.get_tasks_by_account(
        db,
        account_id,
        status=status,
        priority=priority,
        sort_by=sort_by,
        sort_dir=sort_dir,
        limit=limit,
        offset=offset,
    )
    counts = crud.count_tasks_by_account(db, account_id)
    return schemas.TaskListResponse(counts=counts, data=tasks)


def _manager_tasks(
    db: Session,
    actor: Actor,
    manager_id: UUID,
    status: Optional[TaskStatus],
    priority: Optional[TaskPriority],
    account_id: Optional[UUID],
    sort_by: str,
    sort_dir: str,
    limit: Optional[int],
    offset: Optional[int],
) -> schemas.TaskListResponse:
    permissions.require(
        permissions.can_list_manager_tasks(actor, manager_id),
        "You can only view your own tasks",
        actor,
    )
    tasks = crud.get_tasks_by_manager(
        db,
        manager_id,
        status=status,
        priority=priority,
        account_id=account_id,
        sort_by=sort_by,
        sort_dir=sort_dir,
        limit=limit,
        offset=offset,
    )
    counts = crud.count_tasks_by_manager(db, manager_id)
    return schemas.TaskListResponse(counts=counts, data=tasks)


@router.get("/manager", response_model=schemas.TaskListResponse)
def get_my_manager_tasks(
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    account_id: Optional[UUID] = Query(None, description="Only tasks on this account"),
    sort_by: SortKey = Query("due_date"),
    sort_dir: SortDirection = Query("asc"),
    limit: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """List tasks assigned to the current user, with each task's account type."""
    return _manager_tasks(db, actor, actor.id, status, priority, account_id, sort_by, sort_dir, limit, offset)


@router.get("/manager/{manager_id}", response_model=schemas.TaskListResponse)
def get_manager_tasks(
    manager_id: UUID,
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    account_id: Optional[UUID] = Query(None, description="Only tasks on this account"),
    sort_by: SortKey = Query("due_date"),
    sort_dir: SortDirection = Query("asc"),
    limit: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """List tasks assigned to a given manager (that manager or an admin)."""
    return _manager_tasks(db, actor, manager_id, status, priority, account_id, sort_by, sort_dir, limit, offset)


@router.post("/", response_model=schemas.DataResponse[schemas.TaskResponse], status_code=201)
def create_task(
    task_data: schemas.TaskCreate,
    actor: Actor = Depends(get_current_actor),
    hub: RealtimeHub = Depends(get_hub),
    db: Session = Depends(get_db),
):
    """
    Create a task on an account.

    - **account_id**: Account UUID (required)
    - **title**: Task title (required)
    - **priority**: low, medium (default) or high
    - **assigned_to**: Manager or admin UUID; defaults to the account's manager
    """
    account = crud.get_account_summary(db, task_data.account_id)
    if not account:
        raise NotFoundError("Account not found")
    permissions.require(
        permissions.can_create_task(actor, account),
        "You are not authorized to create tasks for this account",
        actor,
    )

    task = crud.create_task(db, task_data, created_by=actor.id)
    _publish_task(hub, task, "created", actor)
    return schemas.DataResponse(data=task)


@router.get("/{task_id}", response_model=schemas.DataResponse[schemas.TaskResponse])
def get_task(
    task_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Get a task by ID."""
    task, account = _load_task_and_account(db, task_id)
    permissions.require(
        permissions.can_read_task(actor, account, task),
        "You are not authorized to access this task",
        actor,
    )
    return schemas.DataResponse(data=task)


@router.put("/{task_id}", response_model=schemas.DataResponse[schemas.TaskResponse])
def update_task(
    task_id: UUID,
    task_update: schemas.TaskUpdate,
    actor: Actor = Depends(get_current_actor),
    hub: RealtimeHub = Depends(get_hub),
    db: Session = Depends(get_db),
):
    """
    Update a task.

    Status and completion_status stay coupled: completing forces 100%,
    cancelling forces 0%, reaching 100% completes. If both are sent, the
    status wins. Changing completion_status needs the same rights as
    PUT /{task_id}/progress.
    """
    task, account = _load_task_and_account(db, task_id)
    permissions.require(
        permissions.can_update_task(actor, account, task),
        "You are not authorized to update this task",
        actor,
    )
    if "completion_status" in task_update.model_fields_set:
        permissions.require(
            permissions.can_update_task_progress(actor, account, task),
            "Not authorized to update task progress",
            actor,
        )

    updated = crud.update_task(db, task_id, task_update)
    logger.info(f"Task {task_id} updated by user {actor.id}")
    _publish_task(hub, updated, "updated", actor)
    return schemas.DataResponse(data=updated)


@router.delete("/{task_id}", response_model=schemas.MessageResponse)
def delete_task(
    task_id: UUID,
    actor: Actor = Depends(get_current_actor),
    hub: RealtimeHub = Depends(get_hub),
    db: Session = Depends(get_db),
):
    """Delete a task (account owner, task creator or admin)."""
    task, account = _load_task_and_account(db, task_id)
    permissions.require(
        permissions.can_delete_task(actor, account, task),
        "You are not authorized to delete this task",
        actor,
    )

    crud.delete_task(db, task_id)
    logger.info(f"Task {task_id} deleted by user {actor.id}")
    _publish_task(hub, task, "deleted", actor)
    return schemas.MessageResponse(message="Task deleted successfully")


@router.put("/{task_id}/status", response_model=schemas.DataResponse[schemas.TaskResponse])
def update_task_status(
    task_id: UUID,
    status_update: schemas.TaskStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    hub: RealtimeHub = Depends(get_hub),
    db: Session = Depends(get_db),
):
    """Set a task's status. completed → 100%, cancelled → 0%."""
    task, account = _load_task_and_account(db, task_id)
    permissions.require(
        permissions.can_update_task(actor, account, task),
        "Not authorized to update task status",
        actor,
    )

    updated = crud.update_task_status(db, task_id, status_update.status)
    _publish_task(hub, updated, "status", actor)
    return schemas.DataResponse(data=updated)


@router.put("/{task_id}/progress", response_model=schemas.DataResponse[schemas.TaskResponse])
def update_task_progress(
    task_id: UUID,
    progress_update: schemas.TaskProgressUpdate,
    actor: Actor = Depends(get_current_actor),
    hub: RealtimeHub = Depends(get_hub),
    db: Session = Depends(get_db),
):
    """Set a task's completion percentage. 100 completes the task."""
    task, account = _load_task_and_account(db, task_id)
    permissions.require(
        permissions.can_update_task_progress(actor, account, task),
        "Not authorized to update task progress",
        actor,
    )

    updated = crud.update_task_progress(db, task_id, progress_update.progress)
    _publish_task(hub, updated, "progress", actor)
    return schemas.DataResponse(data=updated)


@router.post("/{task_id}/assign", response_model=schemas.DataResponse[schemas.TaskResponse])
def assign_task(
    task_id: UUID,
    assignment: schemas.TaskAssign,
    actor: Actor = Depends(get_current_actor),
    hub: RealtimeHub = Depends(get_hub),
    db: Session = Depends(get_db),
):
    """Assign a task to a manager or admin (account owner, account manager or admin)."""
    task, account = _load_task_and_account(db, task_id)
    permissions.require(
        permissions.can_assign_task(actor, account),
        "You are not authorized to assign this task",
        actor,
    )

    updated = crud.assign_task(db, task_id, assignment.manager_id)
    _publish_task(hub, updated, "assigned", actor)
    return schemas.DataResponse(data=updated)
