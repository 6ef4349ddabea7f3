"""FastAPI dependencies: bearer authentication and shared resources."""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .. import crud
from ..database import get_db
from ..errors import AuthenticationError
from ..models import UserRole, UserStatus
from ..permissions import Actor, can_manage_users, require
from ..realtime import RealtimeHub
from ..security import get_token_issuer

logger = logging.getLogger("amp-core.auth")

# auto_error=False so a missing header maps to our own 401 envelope
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    """
    Resolve the acting identity from the Authorization header.

    Raises:
        AuthenticationError: If no bearer token was sent (401)
        InvalidTokenError: If the token is expired or tampered with (403)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access denied. No token provided.")

    claims = get_token_issuer().verify(credentials.credentials)
    return Actor(id=claims.id, email=claims.email, role=claims.role)


def require_admin(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Allow only admins through.

    The token's role is checked first, then the stored user, so a demoted or
    suspended admin loses access before their token expires.
    """
    require(can_manage_users(actor), "Access denied. Not authorized.", actor)
    user = crud.get_user(db, actor.id)
    require(
        user is not None and user.role == UserRole.ADMIN and user.status == UserStatus.ACTIVE,
        "Access denied. Not authorized.",
        actor,
    )
    return actor


def get_hub(request: Request) -> RealtimeHub:
    """Return the process-wide real-time hub created in the lifespan."""
    return request.app.state.hub
