"""Password hashing and bearer token issuance.

Tokens are stateless HS256 JWTs carrying the user's id, email and role.
There is no revocation list: expiry is the only invalidation mechanism and
logout is the client discarding its token.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from uuid import UUID

import bcrypt
import jwt

from .config import get_settings
from .errors import InvalidTokenError
from .models import UserRole

logger = logging.getLogger("amp-core.security")

BCRYPT_ROUNDS = 10

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity claims."""

    id: UUID
    email: str
    role: UserRole
    expires_at: datetime


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of password."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    """Compare a plaintext password with a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.error("Stored password hash is malformed")
        return False


class TokenIssuer:
    """Sign and verify identity tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expires_in: timedelta = timedelta(hours=24)):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_in = expires_in

    def issue(self, user_id: UUID, email: str, role: UserRole | str) -> str:
        """
        Issue a signed token for an identity.

        Args:
            user_id: User UUID
            email: User email
            role: User role

        Returns:
            Encoded JWT
        """
        now = datetime.now(timezone.utc)
        payload = {
            "id": str(user_id),
            "email": email,
            "role": UserRole(role).value,
            "iat": now,
            "exp": now + self.expires_in,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify a token's signature and expiry.

        Raises:
            InvalidTokenError: If the token is expired, tampered with or
                missing required claims
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
            return TokenClaims(
                id=UUID(payload["id"]),
                email=payload["email"],
                role=UserRole(payload["role"]),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            raise InvalidTokenError("Invalid token.")
        except (jwt.InvalidTokenError, KeyError, ValueError, TypeError) as e:
            logger.error(f"Authentication error: {e}")
            raise InvalidTokenError("Invalid token.")


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Return the process-wide issuer built from settings."""
    settings = get_settings()
    return TokenIssuer(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_in=timedelta(hours=settings.jwt_expires_hours),
    )
