"""
auth/services.py -- Composition of the auth services around one store.

The API lifespan and the admin CLI both build their services here, so the
codec always receives the frozen TokenConfig and the hasher the configured
work factor. Nothing below reads settings on its own.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.credentials import CredentialVerifier
from auth.lifecycle import TokenLifecycleManager
from auth.passwords import PasswordHasher
from auth.social import SocialIdentityResolver
from auth.store import UserRepository
from auth.tokens import TokenCodec
from core.config import Settings


@dataclass
class AuthServices:
    store: UserRepository
    hasher: PasswordHasher
    codec: TokenCodec
    lifecycle: TokenLifecycleManager
    credentials: CredentialVerifier
    social: SocialIdentityResolver


def build_auth_services(settings: Settings, store: UserRepository) -> AuthServices:
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    codec = TokenCodec(settings.token_config())
    lifecycle = TokenLifecycleManager(store, codec)
    return AuthServices(
        store=store,
        hasher=hasher,
        codec=codec,
        lifecycle=lifecycle,
        credentials=CredentialVerifier(store, hasher, lifecycle),
        social=SocialIdentityResolver(store, lifecycle),
    )
