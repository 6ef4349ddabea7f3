"""CRUD operations for users, managed accounts and tasks.

Every function takes the request-scoped Session first and hands back pydantic
snapshots, never live ORM rows. The one exception is get_user_by_email, which
returns the row (password hash included) for the login path.

Lookups return None for a missing id. Mutations raise NotFoundError.
"""
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import String, cast, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .encryption import get_cipher
from .errors import (
    ConflictError,
    DecryptionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .models import AccountStatus, TaskPriority, TaskStatus, UserRole, UserStatus
from .permissions import is_assignable
from .security import check_password, hash_password
from .state_machine import coerce_enum, reconcile_progress, validate_completion

logger = logging.getLogger("amp-core.crud")

# Sort keys accepted by task listings. Priority sorts by its stored string
# value, so ascending order is high < low < medium.
TASK_SORT_COLUMNS = {
    "due_date": models.Task.due_date,
    "created_at": models.Task.created_at,
    "updated_at": models.Task.updated_at,
    "priority": cast(models.Task.priority, String),
}
SORT_DIRECTIONS = ("asc", "desc")


def _commit(db: Session, operation: str) -> None:
    """Commit the unit of work, rolling back and raising PersistenceError on failure."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error {operation}: {e}")
        raise PersistenceError(f"Database error while {operation}: {e}") from e


def _touch(row) -> None:
    row.updated_at = datetime.utcnow()


def _paginate(query, limit: Optional[int], offset: Optional[int]):
    if limit is not None:
        if limit < 0:
            raise ValidationError("limit must be a non-negative integer")
        query = query.limit(limit)
    if offset is not None:
        if offset < 0:
            raise ValidationError("offset must be a non-negative integer")
        query = query.offset(offset)
    return query


def _load_assignee(db: Session, user_id: UUID, not_found: str, wrong_role: str) -> models.User:
    """
    Load a user that is about to become an account manager or task assignee.

    Raises:
        NotFoundError: If the user does not exist
        ValidationError: If the user is not a manager or admin
    """
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise NotFoundError(not_found)
    if not is_assignable(user.role):
        raise ValidationError(wrong_role)
    return user


# ============================================================================
# User CRUD Operations
# ============================================================================

def _user_snapshot(user: models.User) -> schemas.UserResponse:
    return schemas.UserResponse.model_validate(user)


def _load_user(db: Session, user_id: UUID) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def create_user(
    db: Session,
    email: str,
    password: str,
    role: UserRole | str = UserRole.OWNER,
    status: UserStatus | str = UserStatus.PENDING,
) -> schemas.UserResponse:
    """
    Create a user with a bcrypt-hashed password.

    Args:
        db: Database session
        email: Unique email (stored as given)
        password: Plaintext password
        role: User role (default owner)
        status: Initial status (default pending)

    Returns:
        Snapshot of the created user

    Raises:
        ConflictError: If the email is already registered
        ValidationError: If role or status is not a known value
    """
    role = coerce_enum(UserRole, role, "role")
    status = coerce_enum(UserStatus, status, "status")

    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    user = models.User(
        email=email,
        password=hash_password(password),
        role=role,
        status=status,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User with this email already exists")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating user: {e}")
        raise PersistenceError(f"Database error while creating user: {e}") from e

    logger.info(f"Created user {user.email} ({role.value}, {status.value})")
    return _user_snapshot(user)


def get_user(db: Session, user_id: UUID) -> Optional[schemas.UserResponse]:
    """Get a user snapshot by ID, or None."""
    user = db.query(models.User).filter(models.User.id == user_id).first()
    return _user_snapshot(user) if user else None


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    """
    Get the user row for an email, password hash included.

    Only the login path should need the hash; everything else uses get_user.
    """
    return db.query(models.User).filter(models.User.email == email).first()


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Check a plaintext password against the stored hash."""
    return check_password(plain_password, password_hash)


def update_user(db: Session, user_id: UUID, user_update: schemas.UserSelfUpdate) -> schemas.UserResponse:
    """
    Update a user's email, password, role or status.

    Accepts either schema: UserSelfUpdate (own profile) or UserUpdate (admin).

    Raises:
        NotFoundError: If the user does not exist
        ValidationError: If nothing is being updated
        ConflictError: If the new email belongs to another user
    """
    user = _load_user(db, user_id)

    update_data = user_update.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No data to update")

    if "email" in update_data:
        existing = get_user_by_email(db, update_data["email"])
        if existing and existing.id != user.id:
            raise ConflictError("Email is already in use")

    if "password" in update_data:
        update_data["password"] = hash_password(update_data["password"])

    for field, value in update_data.items():
        setattr(user, field, value)
    _touch(user)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email is already in use")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating user {user_id}: {e}")
        raise PersistenceError(f"Database error while updating user: {e}") from e

    logger.info(f"Updated user {user.email}: {', '.join(sorted(update_data))}")
    return _user_snapshot(user)


def delete_user(db: Session, user_id: UUID) -> None:
    """
    Permanently delete a user.

    Owned accounts (and their tasks) cascade; manager and assignee
    references are set to NULL.

    Raises:
        NotFoundError: If the user does not exist
    """
    user = _load_user(db, user_id)
    email = user.email
    db.delete(user)
    _commit(db, f"deleting user {user_id}")
    logger.info(f"Deleted user {email}")


def list_users(
    db: Session,
    role: Optional[UserRole] = None,
    status: Optional[UserStatus] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[schemas.UserResponse]:
    """
    List users, optionally filtered by role and status.

    Args:
        db: Database session
        role: Filter by role
        status: Filter by status
        limit: Maximum number of users
        offset: Number of users to skip

    Returns:
        User snapshots, oldest first
    """
    query = db.query(models.User)
    if role:
        query = query.filter(models.User.role == coerce_enum(UserRole, role, "role"))
    if status:
        query = query.filter(models.User.status == coerce_enum(UserStatus, status, "status"))

    query = query.order_by(models.User.created_at.asc(), models.User.email)
    return [_user_snapshot(u) for u in _paginate(query, limit, offset).all()]


def ensure_admin(db: Session, email: str, password: str) -> schemas.UserResponse:
    """
    Make sure an active admin with this email exists.

    Creates the user if missing, otherwise promotes and activates it. The
    password of an existing user is left untouched.
    """
    user = get_user_by_email(db, email)
    if user is None:
        return create_user(db, email, password, role=UserRole.ADMIN, status=UserStatus.ACTIVE)

    if user.role != UserRole.ADMIN or user.status != UserStatus.ACTIVE:
        user.role = UserRole.ADMIN
        user.status = UserStatus.ACTIVE
        _touch(user)
        _commit(db, f"activating admin {email}")
        logger.info(f"Promoted {email} to active admin")
    return _user_snapshot(user)


# ============================================================================
# Managed Account CRUD Operations
# ============================================================================

def _encrypt_credentials(credentials: Any) -> Optional[str]:
    if credentials is None:
        return None
    return get_cipher().encrypt(credentials)


def _account_summary(account: models.ManagedAccount) -> schemas.AccountSummary:
    return schemas.AccountSummary.model_validate(account)


def _account_detail(account: models.ManagedAccount) -> schemas.AccountDetail:
    """Snapshot with decrypted credentials. Unreadable ciphertext becomes None."""
    credentials = None
    if account.credentials:
        try:
            credentials = get_cipher().decrypt(account.credentials)
        except DecryptionError:
            logger.error(f"Could not decrypt credentials for account {account.id}")
    summary = _account_summary(account)
    return schemas.AccountDetail(**summary.model_dump(), credentials=credentials)


def _load_account(db: Session, account_id: UUID) -> models.ManagedAccount:
    account = db.query(models.ManagedAccount).filter(models.ManagedAccount.id == account_id).first()
    if not account:
        raise NotFoundError("Account not found")
    return account


def create_account(
    db: Session,
    owner_id: UUID,
    account_type: str,
    credentials: Any = None,
    management_instructions: Optional[str] = None,
) -> schemas.AccountDetail:
    """
    Submit an account for management.

    Status always starts as pending regardless of caller input.

    Args:
        db: Database session
        owner_id: Submitting user's UUID
        account_type: Free-form platform name
        credentials: Structured credentials, encrypted before storage
        management_instructions: Free text for the manager

    Returns:
        Snapshot of the created account
    """
    if not account_type or not account_type.strip():
        raise ValidationError("Please provide account type")
    if not db.query(models.User.id).filter(models.User.id == owner_id).first():
        raise NotFoundError("Owner not found")

    account = models.ManagedAccount(
        owner_id=owner_id,
        account_type=account_type,
        credentials=_encrypt_credentials(credentials),
        status=AccountStatus.PENDING,
        management_instructions=management_instructions or "",
    )
    db.add(account)
    _commit(db, "creating account")

    logger.info(f"New account submitted by user {owner_id}: {account.id} ({account_type})")
    return _account_detail(account)


def get_account(db: Session, account_id: UUID) -> Optional[schemas.AccountDetail]:
    """Get an account with decrypted credentials, or None."""
    account = db.query(models.ManagedAccount).filter(models.ManagedAccount.id == account_id).first()
    return _account_detail(account) if account else None


def get_account_summary(db: Session, account_id: UUID) -> Optional[schemas.AccountSummary]:
    """Get an account without touching its credentials, or None."""
    account = db.query(models.ManagedAccount).filter(models.ManagedAccount.id == account_id).first()
    return _account_summary(account) if account else None


def update_account(
    db: Session,
    account_id: UUID,
    account_update: schemas.AccountUpdate,
) -> schemas.AccountDetail:
    """
    Apply a partial update to an account.

    Credentials are re-encrypted. A new manager_id must reference a manager
    or admin.

    Raises:
        NotFoundError: If the account (or the new manager) does not exist
        ValidationError: If nothing is being updated or the manager role is wrong
    """
    account = _load_account(db, account_id)

    update_data = account_update.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No data to update")

    if update_data.get("manager_id") is not None:
        _load_assignee(
            db,
            update_data["manager_id"],
            "Manager not found",
            "The user you are trying to assign is not a manager",
        )
    if "credentials" in update_data:
        update_data["credentials"] = _encrypt_credentials(update_data["credentials"])
    if "status" in update_data:
        update_data["status"] = coerce_enum(AccountStatus, update_data["status"], "status")
    if "management_instructions" in update_data and update_data["management_instructions"] is None:
        update_data["management_instructions"] = ""

    for field, value in update_data.items():
        setattr(account, field, value)
    _touch(account)
    _commit(db, f"updating account {account_id}")

    logger.info(f"Updated account {account_id}: {', '.join(sorted(update_data))}")
    return _account_detail(account)


def delete_account(db: Session, account_id: UUID) -> None:
    """Delete an account and, through the foreign key cascade, its tasks."""
    account = _load_account(db, account_id)
    db.delete(account)
    _commit(db, f"deleting account {account_id}")
    logger.info(f"Deleted account {account_id}")


def get_accounts_by_owner(db: Session, owner_id: UUID) -> list[schemas.AccountSummary]:
    """List an owner's accounts, newest first, without credentials."""
    accounts = (
        db.query(models.ManagedAccount)
        .filter(models.ManagedAccount.owner_id == owner_id)
        .order_by(models.ManagedAccount.created_at.desc())
        .all()
    )
    return [_account_summary(a) for a in accounts]


def get_accounts_by_manager(db: Session, manager_id: UUID) -> list[schemas.AccountSummary]:
    """List accounts assigned to a manager, newest first, without credentials."""
    accounts = (
        db.query(models.ManagedAccount)
        .filter(models.ManagedAccount.manager_id == manager_id)
        .order_by(models.ManagedAccount.created_at.desc())
        .all()
    )
    return [_account_summary(a) for a in accounts]


def update_account_status(db: Session, account_id: UUID, status: AccountStatus | str) -> schemas.AccountDetail:
    """
    Set an account's status.

    Who may activate is the policy layer's concern; this only validates the value.

    Raises:
        ValidationError: If status is not pending, active, suspended or completed
        NotFoundError: If the account does not exist
    """
    status = coerce_enum(AccountStatus, status, "status")
    account = _load_account(db, account_id)

    account.status = status
    _touch(account)
    _commit(db, f"updating status of account {account_id}")

    logger.info(f"Account {account_id} status set to {status.value}")
    return _account_detail(account)


def assign_account_manager(db: Session, account_id: UUID, manager_id: UUID) -> schemas.AccountDetail:
    """
    Assign a manager to an account.

    Raises:
        NotFoundError: If the account or the manager does not exist
        ValidationError: If the user is not a manager or admin
    """
    account = _load_account(db, account_id)
    _load_assignee(db, manager_id, "Manager not found", "The user you are trying to assign is not a manager")

    account.manager_id = manager_id
    _touch(account)
    _commit(db, f"assigning manager to account {account_id}")

    logger.info(f"Manager {manager_id} assigned to account {account_id}")
    return _account_detail(account)


def unassign_account_manager(db: Session, account_id: UUID) -> schemas.AccountDetail:
    """Clear an account's manager."""
    account = _load_account(db, account_id)

    account.manager_id = None
    _touch(account)
    _commit(db, f"unassigning manager from account {account_id}")

    logger.info(f"Manager unassigned from account {account_id}")
    return _account_detail(account)


def update_account_instructions(db: Session, account_id: UUID, instructions: str) -> schemas.AccountDetail:
    """Replace an account's management instructions."""
    if instructions is None or not instructions.strip():
        raise ValidationError("Please provide valid instructions")
    account = _load_account(db, account_id)

    account.management_instructions = instructions
    _touch(account)
    _commit(db, f"updating instructions of account {account_id}")

    logger.info(f"Instructions updated for account {account_id}")
    return _account_detail(account)


def list_accounts(
    db: Session,
    status: Optional[AccountStatus] = None,
    account_type: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[schemas.AccountSummary]:
    """List accounts, newest first, without credentials."""
    query = db.query(models.ManagedAccount)
    if status:
        query = query.filter(models.ManagedAccount.status == coerce_enum(AccountStatus, status, "status"))
    if account_type:
        query = query.filter(models.ManagedAccount.account_type == account_type)

    query = query.order_by(models.ManagedAccount.created_at.desc())
    return [_account_summary(a) for a in _paginate(query, limit, offset).all()]


# ============================================================================
# Task CRUD Operations
# ============================================================================

def _task_snapshot(task: models.Task, account_type: Optional[str] = None) -> schemas.TaskResponse:
    snapshot = schemas.TaskResponse.model_validate(task)
    if account_type is not None:
        snapshot.account_type = account_type
    return snapshot


def _load_task(db: Session, task_id: UUID) -> models.Task:
    task = db.query(models.Task).filter(models.Task.id == task_id).first()
    if not task:
        raise NotFoundError("Task not found")
    return task


def _apply_progress(
    task: models.Task,
    status: Optional[TaskStatus] = None,
    completion: Optional[float] = None,
) -> None:
    state = reconcile_progress(
        TaskStatus(task.status),
        float(task.completion_status or 0),
        new_status=status,
        new_completion=completion,
    )
    task.status = state.status
    task.completion_status = state.completion_status


def create_task(
    db: Session,
    task_data: schemas.TaskCreate,
    created_by: Optional[UUID],
) -> schemas.TaskResponse:
    """
    Create a task on an account.

    assigned_to defaults to the account's current manager. Status and
    completion_status, when given, are reconciled before the insert.

    Args:
        db: Database session
        task_data: Task creation data
        created_by: UUID of the creating user (required)

    Returns:
        Snapshot of the created task

    Raises:
        ValidationError: On missing creator, blank title or a non-manager assignee
        NotFoundError: If the account or the assignee does not exist
    """
    if created_by is None:
        raise ValidationError("Task creator is required")
    if not task_data.title or not task_data.title.strip():
        raise ValidationError("Task title is required")

    account = _load_account(db, task_data.account_id)

    assigned_to = task_data.assigned_to
    if assigned_to is not None:
        _load_assignee(
            db,
            assigned_to,
            "Assigned manager not found",
            "Tasks can only be assigned to managers or admins",
        )
    else:
        assigned_to = account.manager_id

    explicit = task_data.model_fields_set
    state = reconcile_progress(
        TaskStatus.PENDING,
        0.0,
        new_status=coerce_enum(TaskStatus, task_data.status, "status") if "status" in explicit else None,
        new_completion=validate_completion(task_data.completion_status) if "completion_status" in explicit else None,
    )

    task = models.Task(
        account_id=account.id,
        title=task_data.title,
        description=task_data.description,
        priority=coerce_enum(TaskPriority, task_data.priority, "priority"),
        status=state.status,
        due_date=task_data.due_date,
        completion_status=state.completion_status,
        created_by=created_by,
        assigned_to=assigned_to,
    )
    db.add(task)
    _commit(db, "creating task")

    logger.info(f"Task created: {task.id} for account {account.id} by user {created_by}")
    return _task_snapshot(task)


def get_task(db: Session, task_id: UUID) -> Optional[schemas.TaskResponse]:
    """Get a task snapshot by ID, or None."""
    task = db.query(models.Task).filter(models.Task.id == task_id).first()
    return _task_snapshot(task) if task else None


def update_task(
    db: Session,
    task_id: UUID,
    task_update: schemas.TaskUpdate,
) -> schemas.TaskResponse:
    """
    Apply a partial update to a task.

    Status and completion_status go through the coupling rules. When both
    are present the explicit status wins.

    Raises:
        NotFoundError: If the task or a new assignee does not exist
        ValidationError: If nothing is being updated or the assignee role is wrong
    """
    task = _load_task(db, task_id)

    update_data = task_update.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No data to update")

    new_assignee = update_data.get("assigned_to")
    if new_assignee is not None and new_assignee != task.assigned_to:
        _load_assignee(
            db,
            new_assignee,
            "Assigned manager not found",
            "Tasks can only be assigned to managers or admins",
        )

    new_status = update_data.pop("status", None)
    new_completion = update_data.pop("completion_status", None)
    if "priority" in update_data:
        update_data["priority"] = coerce_enum(TaskPriority, update_data["priority"], "priority")

    for field, value in update_data.items():
        setattr(task, field, value)
    if new_status is not None or new_completion is not None:
        _apply_progress(
            task,
            status=coerce_enum(TaskStatus, new_status, "status") if new_status is not None else None,
            completion=validate_completion(new_completion) if new_completion is not None else None,
        )
    _touch(task)
    _commit(db, f"updating task {task_id}")

    logger.info(f"Updated task {task_id}")
    return _task_snapshot(task)


def delete_task(db: Session, task_id: UUID) -> None:
    """Delete a task permanently."""
    task = _load_task(db, task_id)
    db.delete(task)
    _commit(db, f"deleting task {task_id}")
    logger.info(f"Deleted task {task_id}")


def update_task_status(db: Session, task_id: UUID, status: TaskStatus | str) -> schemas.TaskResponse:
    """
    Set a task's status.

    completed forces completion_status to 100, cancelled forces it to 0.
    Both fields are written in one commit.
    """
    status = coerce_enum(TaskStatus, status, "status")
    task = _load_task(db, task_id)

    _apply_progress(task, status=status)
    _touch(task)
    _commit(db, f"updating status of task {task_id}")

    logger.info(f"Task {task_id} status set to {task.status.value} ({task.completion_status}%)")
    return _task_snapshot(task)


def update_task_progress(db: Session, task_id: UUID, progress: float) -> schemas.TaskResponse:
    """
    Set a task's completion percentage.

    100 completes the task. Anything lower on a completed task reopens it as
    in-progress. Both fields are written in one commit.
    """
    progress = validate_completion(progress)
    task = _load_task(db, task_id)

    _apply_progress(task, completion=progress)
    _touch(task)
    _commit(db, f"updating progress of task {task_id}")

    logger.info(f"Task {task_id} progress set to {progress}% ({task.status.value})")
    return _task_snapshot(task)


def assign_task(db: Session, task_id: UUID, manager_id: UUID) -> schemas.TaskResponse:
    """
    Assign a task to a manager or admin.

    Raises:
        NotFoundError: If the task or the manager does not exist
        ValidationError: If the user is not a manager or admin
    """
    task = _load_task(db, task_id)
    _load_assignee(db, manager_id, "Manager not found", "Tasks can only be assigned to managers or admins")

    task.assigned_to = manager_id
    _touch(task)
    _commit(db, f"assigning task {task_id}")

    logger.info(f"Task {task_id} assigned to manager {manager_id}")
    return _task_snapshot(task)


def _filter_and_sort_tasks(
    query,
    status: Optional[TaskStatus],
    priority: Optional[TaskPriority],
    sort_by: str,
    sort_dir: str,
    limit: Optional[int],
    offset: Optional[int],
):
    if status:
        query = query.filter(models.Task.status == coerce_enum(TaskStatus, status, "status"))
    if priority:
        query = query.filter(models.Task.priority == coerce_enum(TaskPriority, priority, "priority"))

    if sort_by not in TASK_SORT_COLUMNS:
        raise ValidationError(f"sort_by must be one of: {', '.join(TASK_SORT_COLUMNS)}")
    if sort_dir not in SORT_DIRECTIONS:
        raise ValidationError("sort_dir must be asc or desc")

    column = TASK_SORT_COLUMNS[sort_by]
    query = query.order_by(
        column.desc() if sort_dir == "desc" else column.asc(),
        models.Task.created_at.asc(),
    )
    return _paginate(query, limit, offset)


def get_tasks_by_account(
    db: Session,
    account_id: UUID,
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    sort_by: str = "due_date",
    sort_dir: str = "asc",
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[schemas.TaskResponse]:
    """
    List tasks on an account.

    Args:
        db: Database session
        account_id: Account UUID
        status: Filter by status
        priority: Filter by priority
        sort_by: One of due_date, created_at, updated_at, priority
        sort_dir: asc or desc
        limit: Maximum number of tasks
        offset: Number of tasks to skip

    Returns:
        Task snapshots
    """
    query = db.query(models.Task).filter(models.Task.account_id == account_id)
    query = _filter_and_sort_tasks(query, status, priority, sort_by, sort_dir, limit, offset)
    return [_task_snapshot(t) for t in query.all()]


def get_tasks_by_manager(
    db: Session,
    manager_id: UUID,
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    account_id: Optional[UUID] = None,
    sort_by: str = "due_date",
    sort_dir: str = "asc",
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[schemas.TaskResponse]:
    """
    List tasks assigned to a manager, each carrying its account's type.

    Same filter and sort options as get_tasks_by_account, plus account_id.
    """
    query = (
        db.query(models.Task, models.ManagedAccount.account_type)
        .join(models.ManagedAccount, models.Task.account_id == models.ManagedAccount.id)
        .filter(models.Task.assigned_to == manager_id)
    )
    if account_id:
        query = query.filter(models.Task.account_id == account_id)
    query = _filter_and_sort_tasks(query, status, priority, sort_by, sort_dir, limit, offset)
    return [_task_snapshot(task, account_type) for task, account_type in query.all()]


def _count_by_status(rows) -> schemas.TaskCounts:
    counts = {s.value: 0 for s in TaskStatus}
    for status, count in rows:
        counts[TaskStatus(status).value] = count
    return schemas.TaskCounts(total=sum(counts.values()), **counts)


def count_tasks_by_account(db: Session, account_id: UUID) -> schemas.TaskCounts:
    """Count an account's tasks per status, zero-filled, plus total."""
    rows = (
        db.query(models.Task.status, func.count(models.Task.id))
        .filter(models.Task.account_id == account_id)
        .group_by(models.Task.status)
        .all()
    )
    return _count_by_status(rows)


def count_tasks_by_manager(db: Session, manager_id: UUID) -> schemas.TaskCounts:
    """Count a manager's assigned tasks per status, zero-filled, plus total."""
    rows = (
        db.query(models.Task.status, func.count(models.Task.id))
        .filter(models.Task.assigned_to == manager_id)
        .group_by(models.Task.status)
        .all()
    )
    return _count_by_status(rows)
