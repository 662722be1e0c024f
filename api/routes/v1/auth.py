"""
api/routes/v1/auth.py -- Credential and token REST endpoints.

Routes:
  POST /api/v1/auth/register       -- create a password account; 201 {message, user}
  POST /api/v1/auth/login          -- password login; {message, accessToken, refreshToken}
  POST /api/v1/auth/refresh-token  -- rotate a refresh token; new pair
  POST /api/v1/auth/social-login   -- find-or-create a passwordless account; new pair
  POST /api/v1/auth/logout         -- kill the live refresh token
  GET  /api/v1/auth/me             -- current user (Bearer access token)

Handlers are plain def, not async def: bcrypt and the SQL store block, and
FastAPI runs sync handlers in its threadpool, off the event loop.

Domain failures are raised as AuthError subclasses and rendered by the
AuthError handler in api/main.py. Handlers never build error responses.

Security:
  [H2] login and social-login are rate-limited per IP (LOGIN_RATE_LIMIT).
  [M5] Cache-Control: no-store on every response that carries tokens.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter, login_rate_limit
from api.models import (
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    SocialLoginRequest,
    TokenResponse,
    UserResponse,
)
from auth.dependencies import get_current_user, get_services
from auth.models import TokenPair, User

router = APIRouter()


def _token_response(response: Response, message: str, pair: TokenPair) -> TokenResponse:
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return TokenResponse(message=message, access_token=pair.access_token, refresh_token=pair.refresh_token)


def _user_response(user: User) -> UserResponse:
    return UserResponse(**user.public())


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    user = get_services(request).credentials.register(body.email, body.password, body.name)
    return RegisterResponse(message="User created successfully", user=_user_response(user))


@limiter.limit(login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=TokenResponse)
def login(request: Request, response: Response, body: LoginRequest) -> TokenResponse:
    """Exchange email and password for a token pair.

    Unknown email and wrong password produce the same 401 body so the
    endpoint cannot be used to probe which emails are registered.
    """
    pair = get_services(request).credentials.login(body.email, body.password)
    return _token_response(response, "Login successful", pair)


@router.post("/auth/refresh-token", response_model=TokenResponse)
def refresh_token(request: Request, response: Response, body: Optional[RefreshRequest] = None) -> TokenResponse:
    """Rotate a refresh token. The presented token is dead after this call.

    The body is optional so that an empty request reaches the lifecycle
    manager and fails as MissingToken (401) rather than a schema error.
    """
    pair = get_services(request).lifecycle.refresh(body.refresh_token if body else None)
    return _token_response(response, "Token refreshed", pair)


@limiter.limit(login_rate_limit)  # [H2]
@router.post("/auth/social-login", response_model=TokenResponse)
def social_login(request: Request, response: Response, body: SocialLoginRequest) -> TokenResponse:
    pair = get_services(request).social.login(body.email, body.name)
    return _token_response(response, "Login successful", pair)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, body: Optional[RefreshRequest] = None) -> MessageResponse:
    get_services(request).lifecycle.end_session(body.refresh_token if body else None)
    return MessageResponse(message="Logged out")


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return _user_response(current_user)
