"""Managed account endpoints.

Every single-account route loads the account first (404), then asks the
policy layer (403), then writes and notifies the account's real-time room.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from amp_core import crud, schemas, permissions
from amp_core.database import get_db
from amp_core.errors import NotFoundError
from amp_core.models import AccountStatus
from amp_core.permissions import Actor
from amp_core.realtime import RealtimeHub

from ..dependencies import get_current_actor, get_hub, require_admin

logger = logging.getLogger("amp-core.accounts")

router = APIRouter(tags=["accounts"])


def _load_account(db: Session, account_id: UUID) -> schemas.AccountSummary:
    account = crud.get_account_summary(db, account_id)
    if not account:
        raise NotFoundError("Account not found")
    return account


def _publish_status(hub: RealtimeHub, account: schemas.AccountDetail, actor: Actor) -> None:
    hub.publish(
        account.id,
        "account:statusChange",
        {
            "accountId": str(account.id),
            "status": account.status.value,
            "updatedBy": str(actor.id),
        },
    )


@router.post("/submit", response_model=schemas.DataResponse[schemas.AccountDetail], status_code=201)
def submit_account(
    account_data: schemas.AccountCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Submit an account to be managed.

    New accounts always start as **pending**; an admin activates them.
    Credentials are encrypted before they are stored.
    """
    permissions.require(
        permissions.can_submit_account(actor),
        "Access denied. Not authorized.",
        actor,
    )
    account = crud.create_account(
        db,
        owner_id=actor.id,
        account_type=account_data.account_type,
        credentials=account_data.credentials,
        management_instructions=account_data.management_instructions,
    )
    return schemas.DataResponse(data=account)


@router.get("/", response_model=schemas.ListResponse[schemas.AccountSummary])
def list_accounts(
    status: Optional[AccountStatus] = Query(None, description="Filter by status"),
    account_type: Optional[str] = Query(None, description="Filter by account type"),
    limit: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """List every account, newest first (admin only). Credentials are never included."""
    accounts = crud.list_accounts(db, status=status, account_type=account_type, limit=limit, offset=offset)
    return schemas.ListResponse(count=len(accounts), data=accounts)


@router.get("/owner", response_model=schemas.ListResponse[schemas.AccountSummary])
def get_owner_accounts(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """List accounts owned by the current user."""
    accounts = crud.get_accounts_by_owner(db, actor.id)
    return schemas.ListResponse(count=len(accounts), data=accounts)


@router.get("/manager", response_model=schemas.ListResponse[schemas.AccountSummary])
def get_manager_accounts(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """List accounts managed by the current user (managers and admins)."""
    permissions.require(
        permissions.can_list_manager_accounts(actor),
        "You are not authorized to access this resource",
        actor,
    )
    accounts = crud.get_accounts_by_manager(db, actor.id)
    return schemas.ListResponse(count=len(accounts), data=accounts)


@router.get("/{account_id}", response_model=schemas.DataResponse[schemas.AccountDetail])
def get_account(
    account_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Get an account with its decrypted credentials."""
    account = crud.get_account(db, account_id)
    if not account:
        raise NotFoundError("Account not found")

    permissions.require(
        permissions.can_read_account(actor, account),
        "You are not authorized to access this account",
        actor,
    )
    return schemas.DataResponse(data=account)


@router.put("/{account_id}", response_model=schemas.DataResponse[schemas.AccountDetail])
def update_account(
    account_id: UUID,
    account_update: schemas.AccountUpdate,
    actor: Actor = Depends(get_current_actor),
    hub: RealtimeHub = Depends(get_hub),
    db: Session = Depends(get_db),
):
    """
    Update account fields (owner or admin).

    Setting status here follows the same rule as the status endpoint:
    only admins may activate.
    """
    account = _load_account(db, account_id)
    permissions.require(
        permissions.can_write_account(actor, account),
        "You are not authorized to update this account",
        actor,
    )
    if account_update.status is not None:
        permissions.require(
            permissions.can_set_account_status(actor, account, account_update.status),
            "Only administrators can activate accounts",
            actor,
        )

    updated = crud.update_account(db, account_id, account_update)
    logger.info(f"Account {account_id} updated by user {actor.id}")

    if updated.status != account.status:
        _publish_status(hub, updated, actor)
    return schemas.DataResponse(data=updated)


@router.delete("/{account_id}", response_model=schemas.MessageResponse)
def delete_account(
    account_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Delete an account and all of its tasks (owner or admin)."""
    account = _load_account(db, account_id)
    permissions.require(
        permissions.can_write_account(actor, account),
        "You are not authorized to delete this account",
        actor,
    )
    crud.delete_account(db, account_id)
    logger.info(f"Account {account_id} deleted by user {actor.id}")
    return schemas.MessageResponse(message="Account deleted successfully")


@router.put("/{account_id}/status", response_model=schemas.DataResponse[schemas.AccountDetail])
def update_account_status(
    account_id: UUID,
    status_update: schemas.AccountStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    hub: RealtimeHub = Depends(get_hub),
    db: Session = Depends(get_db),
):
    """
    Change an account's status.

    Owner, assigned manager or admin may change it; only an admin may set
    **active**.
    """
    account = _load_account(db, account_id)
    permissions.require(
        permissions.can_read_account(actor, account),
        "You are not authorized to update this account status",
        actor,
    )
    permissions.require(
        permissions.can_set_account_status(actor, account, status_update.status),
        "Only administrators can activate accounts",
        actor,
    )

    updated = crud.update_account_status(db, account_id, status_update.status)
    logger.info(f"Account {account_id} status updated to {updated.status.value} by user {actor.id}")

    _publish_status(hub, updated, actor)
    return schemas.DataResponse(data=updated)


@router.post("/{account_id}/manager", response_model=schemas.DataResponse[schemas.AccountDetail])
def assign_manager(
    account_id: UUID,
    assignment: schemas.AccountManagerAssign,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Assign a manager (a user with role manager or admin) to an account."""
    account = _load_account(db, account_id)
    permissions.require(
        permissions.can_assign_account_manager(actor, account),
        "You are not authorized to assign a manager to this account",
        actor,
    )
    updated = crud.assign_account_manager(db, account_id, assignment.manager_id)
    logger.info(f"Manager {assignment.manager_id} assigned to account {account_id} by user {actor.id}")
    return schemas.DataResponse(data=updated)


@router.delete("/{account_id}/manager", response_model=schemas.DataResponse[schemas.AccountDetail])
def unassign_manager(
    account_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Remove the account's manager."""
    account = _load_account(db, account_id)
    permissions.require(
        permissions.can_assign_account_manager(actor, account),
        "You are not authorized to change the manager of this account",
        actor,
    )
    updated = crud.unassign_account_manager(db, account_id)
    logger.info(f"Manager unassigned from account {account_id} by user {actor.id}")
    return schemas.DataResponse(data=updated)


@router.put("/{account_id}/instructions", response_model=schemas.DataResponse[schemas.AccountDetail])
def update_instructions(
    account_id: UUID,
    instructions: schemas.AccountInstructionsUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Replace the account's management instructions (owner or admin)."""
    account = _load_account(db, account_id)
    permissions.require(
        permissions.can_write_account(actor, account),
        "You are not authorized to update instructions for this account",
        actor,
    )
    updated = crud.update_account_instructions(db, account_id, instructions.instructions)
    return schemas.DataResponse(data=updated)
