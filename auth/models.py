"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, minimal logic). Stores and services
do the work; these types only own the domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    user = "user"
    admin = "admin"


DEFAULT_ROLE = Role.user


def normalize_email(email: str) -> str:
    """Trim and lower-case an email. Applied before every lookup or write."""
    return email.strip().lower()


@dataclass
class User:
    """A principal known to the service.

    hashed_password is None for social-only identities (they never set a
    local password). refresh_token_hash is the SHA-256 fingerprint of the one
    live refresh token; None means no active session.
    """

    email: str
    name: str = ""
    role: str = DEFAULT_ROLE.value
    id: str | None = None
    hashed_password: str | None = None
    refresh_token_hash: str | None = None
    created_at: str | None = None
    last_login: str | None = None

    def claims(self) -> TokenClaims:
        """Return the token claim set derived from this record's current state."""
        return TokenClaims(id=self.id or "", name=self.name, email=self.email, role=self.role)

    def public(self) -> dict:
        """Return the record without credential material (hash, refresh fingerprint)."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class TokenClaims:
    """Identity claims embedded in both halves of a token pair."""

    id: str
    name: str
    email: str
    role: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
