"""Registration, login, profile and user administration endpoints."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from amp_core import crud, schemas
from amp_core.errors import AuthenticationError, NotFoundError, ValidationError
from amp_core.models import UserRole, UserStatus
from amp_core.permissions import Actor
from amp_core.database import get_db
from amp_core.security import get_token_issuer

from ..dependencies import get_current_actor, require_admin

logger = logging.getLogger("amp-core.auth")

router = APIRouter(tags=["auth"])


def _issue_token(user: schemas.UserResponse) -> str:
    return get_token_issuer().issue(user.id, user.email, user.role)


@router.post("/register", response_model=schemas.DataResponse[schemas.AuthResult], status_code=201)
def register(
    user_data: schemas.UserCreate,
    db: Session = Depends(get_db),
):
    """
    Register a new user.

    The user always starts as **pending** and cannot log in until an admin
    activates them. Role is owner (default) or manager; admins
    are only created by bootstrap or by another admin.
    """
    user = crud.create_user(
        db,
        email=user_data.email,
        password=user_data.password,
        role=user_data.role or UserRole.OWNER,
        status=UserStatus.PENDING,
    )
    logger.info(f"New user registered: {user.email} with role {user.role.value}")
    return schemas.DataResponse(data=schemas.AuthResult(user=user, token=_issue_token(user)))


@router.post("/login", response_model=schemas.DataResponse[schemas.AuthResult])
def login(
    credentials: schemas.LoginRequest,
    db: Session = Depends(get_db),
):
    """Exchange email and password for a bearer token. Only active users may log in."""
    user = crud.get_user_by_email(db, credentials.email)
    if not user or not crud.verify_password(credentials.password, user.password):
        logger.warning(f"Failed login attempt for user: {credentials.email}")
        raise AuthenticationError("Invalid email or password")

    if user.status != UserStatus.ACTIVE:
        logger.warning(f"Inactive user attempted to login: {credentials.email}")
        raise AuthenticationError("Your account is not active. Please contact an administrator.")

    snapshot = schemas.UserResponse.model_validate(user)
    logger.info(f"User logged in: {snapshot.email}")
    return schemas.DataResponse(data=schemas.AuthResult(user=snapshot, token=_issue_token(snapshot)))


@router.get("/me", response_model=schemas.DataResponse[schemas.UserResponse])
def get_me(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Get the current user's profile."""
    user = crud.get_user(db, actor.id)
    if not user:
        raise NotFoundError("User not found")
    return schemas.DataResponse(data=user)


@router.put("/me", response_model=schemas.DataResponse[schemas.UserResponse])
def update_me(
    user_update: schemas.UserSelfUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Update the current user's email or password. Role and status are admin-only."""
    user = crud.update_user(db, actor.id, user_update)
    logger.info(f"User updated their profile: {user.email}")
    return schemas.DataResponse(data=user)


# Admin endpoints

@router.get("/users", response_model=schemas.ListResponse[schemas.UserResponse])
def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    status: Optional[UserStatus] = Query(None, description="Filter by status"),
    limit: Optional[int] = Query(None, ge=0, description="Maximum number of users"),
    offset: Optional[int] = Query(None, ge=0, description="Number of users to skip"),
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """List all users (admin only)."""
    users = crud.list_users(db, role=role, status=status, limit=limit, offset=offset)
    return schemas.ListResponse(count=len(users), data=users)


@router.get("/users/{user_id}", response_model=schemas.DataResponse[schemas.UserResponse])
def get_user(
    user_id: UUID,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Get a user by ID (admin only)."""
    user = crud.get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return schemas.DataResponse(data=user)


@router.put("/users/{user_id}", response_model=schemas.DataResponse[schemas.UserResponse])
def update_user(
    user_id: UUID,
    user_update: schemas.UserUpdate,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Update any user (admin only).

    This is how pending users get activated: `{"status": "active"}`.
    """
    user = crud.update_user(db, user_id, user_update)
    logger.info(f"Admin {admin.email} updated user: {user.email}")
    return schemas.DataResponse(data=user)


@router.delete("/users/{user_id}", response_model=schemas.MessageResponse)
def delete_user(
    user_id: UUID,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete a user permanently (admin only). Admins cannot delete themselves."""
    if not crud.get_user(db, user_id):
        raise NotFoundError("User not found")
    if user_id == admin.id:
        raise ValidationError("You cannot delete your own account")

    crud.delete_user(db, user_id)
    logger.info(f"Admin {admin.email} deleted user {user_id}")
    return schemas.MessageResponse(message="User deleted successfully")
