"""
auth/lifecycle.py -- Token pair issuance and single-use refresh rotation.

Session model: one live refresh token per user. The store holds its
fingerprint in users.refresh_token_hash; that column is the only source of
truth for whether a refresh token is still usable. Every new pair supersedes
the previous one, so a fresh login signs out all earlier sessions.

Rotation is made atomic by the store, not by locks here: the new fingerprint
is written with a compare-and-swap against the presented token's fingerprint.
Of two concurrent refreshes with the same token exactly one swap matches; the
other sees a zero-row update and fails as a replay.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import (
    InvalidOrExpired,
    MissingToken,
    NotAuthenticated,
    RevokedOrReplayed,
    TokenError,
)
from auth.models import TokenClaims, TokenPair, User
from auth.store import UserRepository
from auth.tokens import TokenCodec, TokenKind, fingerprint

logger = logging.getLogger("tokenward.auth.lifecycle")


class TokenLifecycleManager:
    def __init__(self, store: UserRepository, codec: TokenCodec) -> None:
        self._store = store
        self._codec = codec

    def issue(self, claims: TokenClaims) -> TokenPair:
        """Sign an access and a refresh token over identical claims.

        Does not persist anything; use start_session() for that.
        """
        return TokenPair(
            access_token=self._codec.sign(claims, TokenKind.access),
            refresh_token=self._codec.sign(claims, TokenKind.refresh),
        )

    def start_session(self, user: User) -> TokenPair:
        """Issue a pair for user and make its refresh half the only live one."""
        pair = self.issue(user.claims())
        self._store.set_refresh_token(user.id, fingerprint(pair.refresh_token))
        logger.info("Session started for user %s", user.id)
        return pair

    def refresh(self, presented: str | None) -> TokenPair:
        """Exchange a live refresh token for a new pair, killing the presented one.

        Raises:
            MissingToken:      nothing was presented.
            InvalidOrExpired:  bad signature, expired, wrong kind or malformed.
            RevokedOrReplayed: token verifies but is not the user's live token,
                               or another request rotated it first.
        """
        if not presented:
            raise MissingToken("no refresh token presented")

        user = self._live_session_owner(presented)

        # Claims come from the live record so role/name changes are honoured.
        pair = self.issue(user.claims())
        if not self._store.rotate_refresh_token(user.id, fingerprint(presented), fingerprint(pair.refresh_token)):
            logger.warning("Concurrent refresh lost the rotation race for user %s", user.id)
            raise RevokedOrReplayed("refresh token was rotated by a concurrent request")
        logger.info("Refresh token rotated for user %s", user.id)
        return pair

    def end_session(self, presented: str | None) -> None:
        """Invalidate the live refresh token (logout).

        A token that is already dead fails with RevokedOrReplayed, so a second
        logout with the same token raises and leaves the stored state as is.
        Against a concurrent refresh, whichever write lands first wins and the
        other caller gets RevokedOrReplayed.
        """
        if not presented:
            raise MissingToken("no refresh token presented")
        user = self._live_session_owner(presented)
        if not self._store.rotate_refresh_token(user.id, fingerprint(presented), None):
            raise RevokedOrReplayed("refresh token was rotated by a concurrent request")
        logger.info("Session ended for user %s", user.id)

    def authenticate(self, access_token: str | None) -> User:
        """Resolve an access token to the current user record."""
        if not access_token:
            raise NotAuthenticated("no access token presented")
        try:
            claims = self._codec.verify(access_token, TokenKind.access)
        except TokenError as exc:
            raise NotAuthenticated(f"access token rejected: {exc.__class__.__name__}") from exc
        user = self._store.find_by_id(claims.id)
        if user is None:
            raise NotAuthenticated("access token refers to a deleted user")
        return user

    def _live_session_owner(self, presented: str) -> User:
        try:
            claims = self._codec.verify(presented, TokenKind.refresh)
        except TokenError as exc:
            raise InvalidOrExpired(f"refresh token rejected: {exc.__class__.__name__}") from exc

        # Only the id claim is trusted, and only as a lookup key.
        user = self._store.find_by_id(claims.id)
        if user is None or user.refresh_token_hash is None or user.refresh_token_hash != fingerprint(presented):
            logger.warning("Rejected stale or replayed refresh token for user %s", claims.id)
            raise RevokedOrReplayed("refresh token is not the user's live token")
        return user
