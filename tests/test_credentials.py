"""Unit tests for auth/credentials.py -- register and login.

Covers:
- Email normalization on register and login (" A@B.com " -> "a@b.com")
- Duplicate registration across casing/whitespace variants -> DuplicateEmail
- DuplicateKey from the store (lost race) is reported as DuplicateEmail
- Returned records never carry a password hash
- Unknown email / wrong password / social-only account / corrupt digest
  all fail with the same public message
- Over-long passwords cost one bcrypt check for known and unknown emails
"""

from __future__ import annotations

import bcrypt
import pytest

from auth.errors import DuplicateEmail, InvalidCredentials, UserNotFound, ValidationError
from auth.models import User
from auth.services import AuthServices
from auth.tokens import TokenKind, fingerprint


class TestRegister:
    def test_email_is_normalized(self, services: AuthServices) -> None:
        user = services.credentials.register(" A@B.com ", "secret123", "Ada")
        assert user.email == "a@b.com"
        assert services.store.find_by_email("a@b.com").id == user.id

    def test_returned_user_has_no_password(self, services: AuthServices) -> None:
        user = services.credentials.register("nopw@example.com", "secret123")
        assert user.hashed_password is None
        assert "hashed_password" not in user.public()
        # ...while the stored record does hold a hash.
        assert services.store.find_by_email("nopw@example.com").hashed_password.startswith("$2b$")

    def test_default_role(self, services: AuthServices) -> None:
        assert services.credentials.register("role@example.com", "secret123").role == "user"

    @pytest.mark.parametrize("variant", ["dup@example.com", "DUP@example.com", "  Dup@Example.COM "])
    def test_duplicate_email_variants(self, services: AuthServices, variant: str) -> None:
        services.credentials.register("dup@example.com", "secret123")
        with pytest.raises(DuplicateEmail):
            services.credentials.register(variant, "secret123")

    def test_store_uniqueness_is_final_guard(self, services: AuthServices, monkeypatch) -> None:
        """A concurrent insert between the pre-check and create() still yields DuplicateEmail."""
        services.store.create(User(email="race@example.com"))
        monkeypatch.setattr(services.store, "find_by_email", lambda email: None)
        with pytest.raises(DuplicateEmail):
            services.credentials.register("race@example.com", "secret123")

    @pytest.mark.parametrize("email", ["", "no-at-sign", "@example.com", "ada@", "a b@example.com"])
    def test_invalid_email(self, services: AuthServices, email: str) -> None:
        with pytest.raises(ValidationError):
            services.credentials.register(email, "secret123")

    @pytest.mark.parametrize("password", ["short", "x" * 73])
    def test_invalid_password(self, services: AuthServices, password: str) -> None:
        with pytest.raises(ValidationError):
            services.credentials.register("pw@example.com", password)


class TestLogin:
    def test_success_returns_usable_pair(self, services: AuthServices) -> None:
        user = services.credentials.register(" A@B.com ", "secret123", "Ada")
        pair = services.credentials.login("a@b.com", "secret123")

        claims = services.codec.verify(pair.access_token, TokenKind.access)
        assert claims.id == user.id
        assert claims.email == "a@b.com"
        assert claims.name == "Ada"
        assert claims.role == "user"

        stored = services.store.find_by_id(user.id)
        assert stored.refresh_token_hash == fingerprint(pair.refresh_token)
        assert stored.last_login

        services.lifecycle.refresh(pair.refresh_token)

    def test_login_normalizes_email(self, services: AuthServices) -> None:
        services.credentials.register("case@example.com", "secret123")
        services.credentials.login("  CASE@example.com", "secret123")

    def test_wrong_password(self, services: AuthServices) -> None:
        services.credentials.register("wrong@example.com", "secret123")
        with pytest.raises(InvalidCredentials):
            services.credentials.login("wrong@example.com", "secret124")

    def test_unknown_email(self, services: AuthServices) -> None:
        with pytest.raises(UserNotFound):
            services.credentials.login("ghost@example.com", "secret123")

    def test_failures_share_public_message(self) -> None:
        assert UserNotFound.public_message == InvalidCredentials.public_message
        assert UserNotFound.code == InvalidCredentials.code
        assert UserNotFound.status_code == InvalidCredentials.status_code

    def test_social_only_account_cannot_password_login(self, services: AuthServices) -> None:
        services.social.resolve("social@example.com", "Soc")
        with pytest.raises(InvalidCredentials):
            services.credentials.login("social@example.com", "anything1")

    def test_malformed_digest_is_a_failed_login(self, services: AuthServices) -> None:
        services.store.create(User(email="corrupt@example.com", hashed_password="garbage"))
        with pytest.raises(InvalidCredentials):
            services.credentials.login("corrupt@example.com", "secret123")

    def test_overlong_password_costs_the_same_for_any_email(self, services: AuthServices, monkeypatch) -> None:
        services.credentials.register("exists@example.com", "secret123")
        calls: list[str] = []
        real_checkpw = bcrypt.checkpw

        def counting_checkpw(password: bytes, hashed: bytes) -> bool:
            calls.append("checkpw")
            return real_checkpw(password, hashed)

        monkeypatch.setattr(bcrypt, "checkpw", counting_checkpw)
        counts = {}
        for email in ("exists@example.com", "ghost@example.com"):
            calls.clear()
            with pytest.raises((InvalidCredentials, UserNotFound)):
                services.credentials.login(email, "x" * 100)
            counts[email] = len(calls)
        assert counts == {"exists@example.com": 1, "ghost@example.com": 1}

    def test_new_login_supersedes_previous_session(self, services: AuthServices) -> None:
        services.credentials.register("two@example.com", "secret123")
        first = services.credentials.login("two@example.com", "secret123")
        second = services.credentials.login("two@example.com", "secret123")
        stored = services.store.find_by_email("two@example.com")
        assert stored.refresh_token_hash == fingerprint(second.refresh_token)
        assert stored.refresh_token_hash != fingerprint(first.refresh_token)
