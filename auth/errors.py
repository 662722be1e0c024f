"""
auth/errors.py -- Typed failures raised by the credential and token services.

Every domain error carries a stable machine-readable ``code``, the HTTP status
the API layer maps it to, and a ``public_message`` that is safe to show to the
caller. The exception's own str() may carry internal detail for logs and is
never sent over the wire.

Two families deliberately share a public message:
  UserNotFound / InvalidCredentials -- the caller must not learn whether an
  email is registered.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every failure raised by the auth services."""

    code: str = "auth_error"
    status_code: int = 400
    public_message: str = "Request could not be processed."


# ---------------------------------------------------------------------------
# Input and conflict
# ---------------------------------------------------------------------------


class ValidationError(AuthError):
    code = "validation_error"
    status_code = 422
    public_message = "Request validation failed."

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.public_message = message


class DuplicateEmail(AuthError):
    code = "duplicate_email"
    status_code = 409
    public_message = "User with this email already exists."


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthenticationFailed(AuthError):
    code = "bad_credentials"
    status_code = 401
    public_message = "Invalid email or password."


class UserNotFound(AuthenticationFailed):
    pass


class InvalidCredentials(AuthenticationFailed):
    pass


class NotAuthenticated(AuthError):
    """No usable access token on a request that requires one."""

    code = "unauthorized"
    status_code = 401
    public_message = "Authentication required."


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class RefreshError(AuthError):
    """Any refresh failure. Clients must re-authenticate, never retry."""


class MissingToken(RefreshError):
    code = "missing_token"
    status_code = 401
    public_message = "Refresh token required."


class InvalidOrExpired(RefreshError):
    code = "invalid_token"
    status_code = 403
    public_message = "Invalid or expired refresh token."


class RevokedOrReplayed(RefreshError):
    code = "revoked_token"
    status_code = 403
    public_message = "Invalid refresh token."


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class InfrastructureError(AuthError):
    code = "internal_error"
    status_code = 500
    public_message = "An unexpected error occurred."


class StoreError(InfrastructureError):
    pass


class HashingError(InfrastructureError):
    pass


class DuplicateKey(Exception):
    """Raised by the user store when a uniqueness constraint rejects a write."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


# ---------------------------------------------------------------------------
# Token codec / password hasher internals
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Base for token verification failures. Mapped by callers, never surfaced."""


class MalformedToken(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


class ExpiredToken(TokenError):
    pass


class TokenKindMismatch(TokenError):
    pass


class MalformedDigestError(Exception):
    """The stored password digest is not a bcrypt hash."""
