"""
API request and response models for tokenward REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

JSON field names are camelCase on the wire (accessToken, refreshToken) via
the alias generator; Python code keeps snake_case. Request models accept
either spelling.

Schema validation runs before any domain logic: a missing field or wrong
type is a 422 here, never a crash further down.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RegisterRequest(_Request):
    """Request body for POST /api/v1/auth/register.

    Unknown fields (including any attempt to set "role") are ignored.
    """

    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=255)
    name: str = Field(default="", max_length=255)


class LoginRequest(_Request):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=255)


class RefreshRequest(_Request):
    """Request body for POST /refresh-token and /logout.

    refresh_token is optional at the schema level on purpose: an absent token
    is a MissingToken (401) from the lifecycle manager, not a 422.
    """

    refresh_token: Optional[str] = Field(default=None, max_length=4096)


class SocialLoginRequest(_Request):
    email: str = Field(min_length=3, max_length=320)
    name: str = Field(default="", max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class UserResponse(_Response):
    """Public view of a user. Never carries password or session material."""

    id: str
    email: str
    name: str
    role: str
    created_at: Optional[str] = None


class RegisterResponse(_Response):
    message: str
    user: UserResponse


class TokenResponse(_Response):
    message: str
    access_token: str
    refresh_token: str


class MessageResponse(_Response):
    message: str


class ErrorDetail(BaseModel):
    """Structured error payload used in all non-2xx responses."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
