"""
auth/dependencies.py -- FastAPI Depends() helpers for the auth services.

get_services() returns the AuthServices built in the API lifespan.
get_current_user() authenticates "Authorization: Bearer <access token>".
Failures raise NotAuthenticated, which the API's AuthError handler turns into
a 401 with the standard error envelope.

Layer rule: no imports from api/. This module may import fastapi because it
is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import User
from auth.services import AuthServices


def get_services(request: Request) -> AuthServices:
    return request.app.state.auth


def bearer_token(request: Request) -> str | None:
    """Return the token from an Authorization: Bearer header, or None."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user(request: Request) -> User:
    """Require a valid access token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    return get_services(request).lifecycle.authenticate(bearer_token(request))
