"""FastAPI dependencies for authentication and per-user sessions."""

from typing import Optional

from fastapi import Depends, Header, Request

from ..services.session import SessionRegistry, UserSession
from .exceptions import AuthError


def get_session_registry(request: Request) -> SessionRegistry:
    """Registry created by ``create_app`` and stored on the application state."""
    return request.app.state.session_registry


async def get_bearer_token(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> str:
    """
    Extract the bearer token from the Authorization header.

    The token is passed through to the remote store, which is the
    authority on its validity.

    Raises:
        AuthError: If the header is missing or malformed
    """
    if not authorization:
        raise AuthError(detail="Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthError(detail="Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthError(detail="Invalid authentication scheme")

    return token


async def get_current_session(
    token: str = Depends(get_bearer_token),
    registry: SessionRegistry = Depends(get_session_registry),
) -> UserSession:
    """Coordination session for the calling user."""
    return registry.get_or_create(token)


RequiredSession = Depends(get_current_session)
