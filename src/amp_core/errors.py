"""Error taxonomy shared by the stores, the policy layer and the API boundary.

Each error carries the HTTP status it maps to, so the exception handlers in
``api.main`` can translate any of them into the response envelope without a
lookup table.
"""


class AppError(Exception):
    """Base class for operational errors raised by the platform."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Malformed, missing or out-of-range input. Never reaches persistence."""

    status_code = 400


class ConflictError(ValidationError):
    """Uniqueness violation, e.g. an email that is already registered."""

    status_code = 400


class AuthenticationError(AppError):
    """Missing token or bad login credentials."""

    status_code = 401


class AuthorizationError(AppError):
    """The acting identity lacks permission for the operation."""

    status_code = 403


class InvalidTokenError(AppError):
    """Bearer token failed signature or expiry verification."""

    status_code = 403


class NotFoundError(AppError):
    """The addressed resource id does not resolve."""

    status_code = 404


class PersistenceError(AppError):
    """The underlying store failed. Message is hidden from clients outside development."""

    status_code = 500


class DecryptionError(AppError):
    """Stored ciphertext could not be decrypted. Recovered internally."""

    status_code = 500
