"""
Authorization policy for accounts, tasks and users.

Each rule is a pure decision function over the acting identity and the
ownership fields of the target resource. No database access and no FastAPI
imports: callers load the resource first (a missing resource is a 404 before
any of these run) and then pass it in.

    admin    → everything
    owner    → own accounts and their tasks
    manager  → assigned accounts and their tasks
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID

from .errors import AuthorizationError
from .models import AccountStatus, UserRole

logger = logging.getLogger("amp-core.permissions")

# Roles a manager_id / assigned_to may point at
ASSIGNABLE_ROLES = frozenset({UserRole.MANAGER, UserRole.ADMIN})

# Roles allowed to submit new accounts
SUBMITTER_ROLES = frozenset({UserRole.OWNER, UserRole.ADMIN})


@dataclass(frozen=True)
class Actor:
    """Identity taken from a verified token."""

    id: UUID
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class AccountLike(Protocol):
    owner_id: UUID
    manager_id: Optional[UUID]


class TaskLike(Protocol):
    created_by: Optional[UUID]
    assigned_to: Optional[UUID]


def _is_owner(actor: Actor, account: AccountLike) -> bool:
    return account.owner_id == actor.id


def _is_manager(actor: Actor, account: AccountLike) -> bool:
    return account.manager_id is not None and account.manager_id == actor.id


def is_assignable(role: UserRole | str) -> bool:
    """Return True if a user with this role may be an account manager or task assignee."""
    try:
        return UserRole(role) in ASSIGNABLE_ROLES
    except ValueError:
        return False


# ============================================================================
# Account rules
# ============================================================================

def can_read_account(actor: Actor, account: AccountLike) -> bool:
    return actor.is_admin or _is_owner(actor, account) or _is_manager(actor, account)


def can_write_account(actor: Actor, account: AccountLike) -> bool:
    """Fields and management instructions: admin or owner only."""
    return actor.is_admin or _is_owner(actor, account)


def can_set_account_status(actor: Actor, account: AccountLike, status: AccountStatus | str) -> bool:
    """
    Check a status transition.

    Activation is reserved to admins. Any other status may be set by the
    admin, the owner or the assigned manager.
    """
    if AccountStatus(status) == AccountStatus.ACTIVE:
        return actor.is_admin
    return can_read_account(actor, account)


def can_assign_account_manager(actor: Actor, account: AccountLike) -> bool:
    return actor.is_admin or _is_owner(actor, account)


def can_submit_account(actor: Actor) -> bool:
    return actor.role in SUBMITTER_ROLES


def can_list_manager_accounts(actor: Actor) -> bool:
    return actor.role in ASSIGNABLE_ROLES


# ============================================================================
# Task rules
# ============================================================================

def can_read_task(actor: Actor, account: AccountLike, task: TaskLike) -> bool:
    return (
        actor.is_admin
        or _is_owner(actor, account)
        or _is_manager(actor, account)
        or task.created_by == actor.id
        or task.assigned_to == actor.id
    )


def can_update_task(actor: Actor, account: AccountLike, task: TaskLike) -> bool:
    return can_read_task(actor, account, task)


def can_delete_task(actor: Actor, account: AccountLike, task: TaskLike) -> bool:
    return actor.is_admin or _is_owner(actor, account) or task.created_by == actor.id


def can_update_task_progress(actor: Actor, account: AccountLike, task: TaskLike) -> bool:
    # The creator alone is not enough to report progress
    return (
        actor.is_admin
        or _is_owner(actor, account)
        or _is_manager(actor, account)
        or task.assigned_to == actor.id
    )


def can_create_task(actor: Actor, account: AccountLike) -> bool:
    return can_read_account(actor, account)


def can_assign_task(actor: Actor, account: AccountLike) -> bool:
    return can_read_account(actor, account)


def can_list_manager_tasks(actor: Actor, manager_id: UUID) -> bool:
    return actor.is_admin or actor.id == manager_id


# ============================================================================
# User administration
# ============================================================================

def can_manage_users(actor: Actor) -> bool:
    return actor.is_admin


def require(allowed: bool, message: str, actor: Optional[Actor] = None) -> None:
    """
    Raise AuthorizationError unless allowed.

    Args:
        allowed: Result of one of the can_* rules
        message: Client-facing denial message
        actor: Identity to name in the denial log line

    Raises:
        AuthorizationError: If allowed is False
    """
    if allowed:
        return
    if actor is not None:
        logger.warning(f"Denied {actor.email} ({actor.role.value}): {message}")
    else:
        logger.warning(f"Denied: {message}")
    raise AuthorizationError(message)
