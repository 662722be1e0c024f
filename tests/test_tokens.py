"""Unit tests for auth/tokens.py -- TokenCodec sign / verify."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import ExpiredToken, InvalidSignature, MalformedToken, TokenKindMismatch
from auth.models import TokenClaims
from auth.tokens import TokenCodec, TokenKind, fingerprint
from core.config import TokenConfig

ACCESS_SECRET = "a" * 32 + "-access-signing-secret"
REFRESH_SECRET = "r" * 32 + "-refresh-signing-secret"
CLAIMS = TokenClaims(id="u1", name="Ada", email="ada@example.com", role="user")


@pytest.fixture
def config() -> TokenConfig:
    return TokenConfig(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET, access_ttl=900, refresh_ttl=86400)


@pytest.fixture
def codec(config: TokenConfig) -> TokenCodec:
    return TokenCodec(config)


class TestSignVerify:
    def test_roundtrip_returns_claims(self, codec: TokenCodec) -> None:
        for kind in TokenKind:
            assert codec.verify(codec.sign(CLAIMS, kind), kind) == CLAIMS

    def test_expiry_follows_kind(self, codec: TokenCodec) -> None:
        access = jwt.get_unverified_claims(codec.sign(CLAIMS, TokenKind.access))
        refresh = jwt.get_unverified_claims(codec.sign(CLAIMS, TokenKind.refresh))
        assert access["exp"] - access["iat"] == 900
        assert refresh["exp"] - refresh["iat"] == 86400
        assert access["kind"] == "access"
        assert refresh["kind"] == "refresh"

    def test_tokens_issued_back_to_back_differ(self, codec: TokenCodec) -> None:
        assert codec.sign(CLAIMS, TokenKind.refresh) != codec.sign(CLAIMS, TokenKind.refresh)


class TestVerifyFailures:
    def test_access_token_is_not_a_refresh_token(self, codec: TokenCodec) -> None:
        with pytest.raises(InvalidSignature):
            codec.verify(codec.sign(CLAIMS, TokenKind.access), TokenKind.refresh)

    def test_refresh_token_is_not_an_access_token(self, codec: TokenCodec) -> None:
        with pytest.raises(InvalidSignature):
            codec.verify(codec.sign(CLAIMS, TokenKind.refresh), TokenKind.access)

    def test_foreign_secret_rejected(self, codec: TokenCodec) -> None:
        other = TokenCodec(
            TokenConfig(access_secret="x" * 40, refresh_secret="y" * 40, access_ttl=900, refresh_ttl=86400)
        )
        with pytest.raises(InvalidSignature):
            codec.verify(other.sign(CLAIMS, TokenKind.access), TokenKind.access)

    def test_expired_token(self, config: TokenConfig, codec: TokenCodec) -> None:
        past = TokenCodec(config, clock=lambda: datetime.now(timezone.utc) - timedelta(days=30))
        with pytest.raises(ExpiredToken):
            codec.verify(past.sign(CLAIMS, TokenKind.refresh), TokenKind.refresh)

    def test_kind_claim_checked(self, codec: TokenCodec) -> None:
        forged = jwt.encode(
            {"id": "u1", "name": "", "email": "a@b.com", "role": "user", "kind": "refresh"},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenKindMismatch):
            codec.verify(forged, TokenKind.access)

    def test_missing_claims(self, codec: TokenCodec) -> None:
        token = jwt.encode({"kind": "access", "id": "u1"}, ACCESS_SECRET, algorithm="HS256")
        with pytest.raises(MalformedToken):
            codec.verify(token, TokenKind.access)

    @pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
    def test_garbage(self, codec: TokenCodec, garbage: str) -> None:
        with pytest.raises(MalformedToken):
            codec.verify(garbage, TokenKind.access)


def test_fingerprint_is_stable_sha256() -> None:
    assert fingerprint("abc") == fingerprint("abc")
    assert fingerprint("abc") != fingerprint("abd")
    assert len(fingerprint("abc")) == 64


def test_config_rejects_shared_secret() -> None:
    with pytest.raises(ValueError):
        TokenConfig(access_secret="s" * 32, refresh_secret="s" * 32, access_ttl=1, refresh_ttl=1)


def test_config_rejects_non_positive_ttl() -> None:
    with pytest.raises(ValueError):
        TokenConfig(access_secret="a" * 32, refresh_secret="b" * 32, access_ttl=0, refresh_ttl=1)
