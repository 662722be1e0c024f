"""
auth/passwords.py -- bcrypt password hashing with timing equalization.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x+
rejects with an explicit error.

bcrypt only looks at the first 72 bytes of input and recent releases refuse
longer input outright. Registration rejects such passwords up front
(MAX_PASSWORD_BYTES); verify() reports them as a plain mismatch since no
stored hash can have been made from one, but only after a full bcrypt round
on the truncated input so the rejection costs the same as any other [C1].

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.errors import HashingError, MalformedDigestError

logger = logging.getLogger("tokenward.auth.passwords")

DEFAULT_ROUNDS = 10
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted, adaptive one-way hashing for stored credentials.

    The work factor is fixed per instance. Hashes made with a different
    factor still verify, since bcrypt encodes the cost in the digest.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Computed once so the first unknown-email login is not measurably
        # faster or slower than later ones [C1].
        self._dummy_hash = self.hash("tokenward_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain. Raises HashingError if bcrypt fails."""
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")
        except (ValueError, OSError) as exc:
            raise HashingError(f"bcrypt hashing failed: {exc}") from exc

    def verify(self, plain: str, hashed: str) -> bool:
        """Constant-time check of plain against a stored digest.

        Returns False on mismatch. Raises MalformedDigestError when hashed is
        not a usable bcrypt digest; callers treat that as a failed check.
        """
        candidate = plain.encode("utf-8")
        overlong = len(candidate) > MAX_PASSWORD_BYTES
        try:
            matched = bcrypt.checkpw(candidate[:MAX_PASSWORD_BYTES], hashed.encode("utf-8"))
        except ValueError as exc:
            raise MalformedDigestError(str(exc)) from exc
        return matched and not overlong

    def verify_dummy(self, plain: str) -> None:
        """Burn one verify's worth of CPU for a login against an unknown account."""
        self.verify(plain, self._dummy_hash)
