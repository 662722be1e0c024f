"""
auth/tokens.py -- Signed, expiring access and refresh tokens.

Security design decisions:
  JWT: python-jose with HS256. Each kind of token has its own secret, so an
       access token never verifies as a refresh token even though both carry
       the same claim set. The "kind" claim is checked as well, as a second
       line of defence should the two secrets ever be configured equal.

  jti: every token carries 128 random bits. Two pairs issued for the same user
       in the same second are therefore still distinct strings, which the
       single-use rotation in auth/lifecycle.py depends on.

  Fingerprints: refresh tokens are persisted as SHA-256 hex digests, never in
       plaintext. A database leak does not hand out live sessions. The digest
       is deterministic, so the store can compare and look up by it directly.

  Configuration is injected (TokenConfig) at construction; nothing here reads
  settings or environment during a request.

Layer rule: no imports from api/. core.config is allowed for TokenConfig.
"""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import ExpiredToken, InvalidSignature, MalformedToken, TokenKindMismatch
from auth.models import TokenClaims
from core.config import TokenConfig

_ALGORITHM = "HS256"
_CLAIM_KEYS = ("id", "name", "email", "role")


class TokenKind(str, Enum):
    access = "access"
    refresh = "refresh"


def fingerprint(token: str) -> str:
    """Return the SHA-256 hex digest under which a refresh token is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Encodes TokenClaims into JWTs and verifies them back.

    Usage:
        codec = TokenCodec(settings.token_config())
        token = codec.sign(user.claims(), TokenKind.access)
        claims = codec.verify(token, TokenKind.access)

    clock is injectable so tests can mint tokens that are already expired.
    """

    def __init__(self, config: TokenConfig, clock: Callable[[], datetime] = _utcnow) -> None:
        self._config = config
        self._clock = clock

    def _secret(self, kind: TokenKind) -> str:
        return self._config.access_secret if kind is TokenKind.access else self._config.refresh_secret

    def _ttl(self, kind: TokenKind) -> int:
        return self._config.access_ttl if kind is TokenKind.access else self._config.refresh_ttl

    def sign(self, claims: TokenClaims, kind: TokenKind) -> str:
        """Encode claims with issued-at, kind-specific expiry and a random jti."""
        issued_at = self._clock()
        payload = {
            "sub": claims.id,
            "id": claims.id,
            "name": claims.name,
            "email": claims.email,
            "role": claims.role,
            "kind": kind.value,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self._ttl(kind)),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secret(kind), algorithm=_ALGORITHM)

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        """Verify signature, expiry and kind; return the embedded claims.

        Raises:
            MalformedToken:    not a decodable JWT, or required claims missing.
            InvalidSignature:  signature does not match this kind's secret.
            ExpiredToken:      signature valid but exp is in the past.
            TokenKindMismatch: signature valid but the token was minted as the other kind.
        """
        try:
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedToken(str(exc)) from exc

        try:
            payload = jwt.decode(token, self._secret(kind), algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise ExpiredToken(str(exc)) from exc
        except JWTClaimsError as exc:
            raise MalformedToken(str(exc)) from exc
        except JWTError as exc:
            raise InvalidSignature(str(exc)) from exc

        if payload.get("kind") != kind.value:
            raise TokenKindMismatch(f"expected {kind.value} token, got {payload.get('kind')!r}")
        missing = [key for key in _CLAIM_KEYS if not isinstance(payload.get(key), str)]
        if missing:
            raise MalformedToken(f"token is missing claims: {', '.join(missing)}")
        return TokenClaims(id=payload["id"], name=payload["name"], email=payload["email"], role=payload["role"])
