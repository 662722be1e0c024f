"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for tokenward happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  @model_validator(mode="after"): Cross-field validation of the two signing
      secrets. Dev mode generates missing secrets with a warning, production
      mode refuses to start without them.

  Injection, not ambient state: the token codec never reads Settings. The
  application builds a frozen TokenConfig via Settings.token_config() once at
  startup and passes it to TokenCodec's constructor.

Security notes:
  [M6] Secrets shorter than 32 chars are rejected outright.
  [M7] Access and refresh secrets must differ, otherwise an access token would
       verify as a refresh token.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("tokenward.config")

_MIN_SECRET_LENGTH = 32
_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'tokenward_auth.db'}"


@dataclass(frozen=True)
class TokenConfig:
    """Immutable signing configuration for the token codec.

    access_ttl / refresh_ttl are lifetimes in seconds.
    """

    access_secret: str
    refresh_secret: str
    access_ttl: int
    refresh_ttl: int

    def __post_init__(self) -> None:
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Both access and refresh signing secrets are required.")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens must use different signing secrets.")
        if self.access_ttl <= 0 or self.refresh_ttl <= 0:
            raise ValueError("Token lifetimes must be positive.")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments with DEBUG=true and no .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the "not configured" sentinel; the validator below
    # either fills it (dev) or raises (production).
    access_token_secret: str = ""
    refresh_token_secret: str = ""
    access_token_ttl_seconds: int = Field(default=15 * 60, gt=0)
    refresh_token_ttl_seconds: int = Field(default=7 * 24 * 3600, gt=0)

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    # bcrypt accepts 4..31; 10 matches the cost the stored hashes were made with.
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the signing-secret policy [M6] [M7].

        Dev mode (DEBUG=true): generate any missing secret with a warning.
            Tokens will not survive a restart.

        Production mode: a missing secret is a fatal startup condition.
        """
        for field_name in ("access_token_secret", "refresh_token_secret"):
            value = getattr(self, field_name)
            env_name = field_name.upper()
            if not value:
                if not self.debug:
                    raise ValueError(
                        f"{env_name} is required in production mode. "
                        "Set it in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
                setattr(self, field_name, secrets.token_hex(32))
                logger.warning("Using auto-generated %s. Tokens will not persist across restarts.", env_name)
            elif len(value) < _MIN_SECRET_LENGTH:
                raise ValueError(f"{env_name} must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")
        return self

    def token_config(self) -> TokenConfig:
        """Return the frozen signing configuration consumed by TokenCodec."""
        return TokenConfig(
            access_secret=self.access_token_secret,
            refresh_secret=self.refresh_token_secret,
            access_ttl=self.access_token_ttl_seconds,
            refresh_ttl=self.refresh_token_ttl_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
