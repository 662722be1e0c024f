"""
auth/social.py -- Passwordless ("social") identity resolution.

The identity provider has already vouched for the email by the time a
request gets here; this module only maps that email onto exactly one user
record and starts a session for it.

First-time logins for the same email may arrive concurrently. The store's
find_or_create_by_email() is a single conditional insert, so both requests
end up with the same record and neither sees a constraint violation.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.credentials import validate_email
from auth.lifecycle import TokenLifecycleManager
from auth.models import DEFAULT_ROLE, TokenPair, User
from auth.store import UserRepository

logger = logging.getLogger("tokenward.auth.social")


class SocialIdentityResolver:
    def __init__(self, store: UserRepository, lifecycle: TokenLifecycleManager) -> None:
        self._store = store
        self._lifecycle = lifecycle

    def resolve(self, email: str, name: str = "") -> tuple[User, bool]:
        """Return (user, created) for email, creating a password-less record if absent.

        An existing record is returned unchanged; name only seeds new records.
        """
        email = validate_email(email)
        user, created = self._store.find_or_create_by_email(
            email,
            {"name": name.strip(), "role": DEFAULT_ROLE.value, "hashed_password": None},
        )
        if created:
            logger.info("Created social identity %s", user.id)
        return user, created

    def login(self, email: str, name: str = "") -> TokenPair:
        user, _ = self.resolve(email, name)
        pair = self._lifecycle.start_session(user)
        self._store.update_last_login(user.id)
        return pair
