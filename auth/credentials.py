"""
auth/credentials.py -- Password registration and login.

Security design decisions:
  [C1] Timing equalization: login always runs one bcrypt verification, also
       for unknown emails and social-only accounts, so response time does not
       reveal whether an email is registered.

  Enumeration: UserNotFound and InvalidCredentials are distinct types for
       logging, but share the public message "Invalid email or password."

  Duplicate registration: the existence check before create() only gives a
       friendly fast path. The store's UNIQUE(email) is the real guard; a
       DuplicateKey from create() means a concurrent request won and is
       reported as DuplicateEmail all the same.

  Role: self-registration always creates DEFAULT_ROLE accounts. Any role in
       the request profile is ignored.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import (
    DuplicateEmail,
    DuplicateKey,
    InvalidCredentials,
    MalformedDigestError,
    UserNotFound,
    ValidationError,
)
from auth.lifecycle import TokenLifecycleManager
from auth.models import DEFAULT_ROLE, TokenPair, User, normalize_email
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.store import UserRepository

logger = logging.getLogger("tokenward.auth.credentials")

MIN_PASSWORD_LENGTH = 8


def validate_email(email: str) -> str:
    """Normalize email and reject values that cannot be an address."""
    normalized = normalize_email(email)
    local, sep, domain = normalized.partition("@")
    if not sep or not local or not domain or " " in normalized or len(normalized) > 255:
        raise ValidationError("A valid email address is required.")
    return normalized


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")


class CredentialVerifier:
    """Registers password accounts and exchanges valid credentials for tokens."""

    def __init__(self, store: UserRepository, hasher: PasswordHasher, lifecycle: TokenLifecycleManager) -> None:
        self._store = store
        self._hasher = hasher
        self._lifecycle = lifecycle

    def register(self, email: str, password: str, name: str = "") -> User:
        """Create a password account and return it without credential fields.

        Raises ValidationError, DuplicateEmail, StoreError, HashingError.
        """
        email = validate_email(email)
        validate_password(password)

        if self._store.find_by_email(email) is not None:
            raise DuplicateEmail(f"email already registered: {email}")

        user = User(
            email=email,
            name=name.strip(),
            role=DEFAULT_ROLE.value,
            hashed_password=self._hasher.hash(password),
        )
        try:
            created = self._store.create(user)
        except DuplicateKey as exc:
            logger.info("Concurrent registration for %s lost the race", email)
            raise DuplicateEmail(f"email already registered: {email}") from exc

        logger.info("Registered user %s", created.id)
        created.hashed_password = None
        return created

    def login(self, email: str, password: str) -> TokenPair:
        """Verify credentials and start a new session.

        Raises UserNotFound or InvalidCredentials (same public message) and
        StoreError on infrastructure failure.
        """
        email = normalize_email(email)
        user = self._store.find_by_email(email)
        if user is None:
            self._hasher.verify_dummy(password)
            raise UserNotFound(f"no account for {email}")
        if user.hashed_password is None:
            # Social-only account: no local password to match.
            self._hasher.verify_dummy(password)
            raise InvalidCredentials(f"user {user.id} has no password set")

        try:
            matched = self._hasher.verify(password, user.hashed_password)
        except MalformedDigestError:
            logger.error("Stored password digest for user %s is malformed", user.id)
            matched = False
        if not matched:
            raise InvalidCredentials(f"password mismatch for user {user.id}")

        pair = self._lifecycle.start_session(user)
        self._store.update_last_login(user.id)
        return pair
