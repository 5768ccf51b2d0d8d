"""Bearer API key check shared by every ``/api/v1`` face endpoint."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

if TYPE_CHECKING:
    from faceentry.config import Settings

_bearer_scheme = HTTPBearer(auto_error=False)


async def verify_api_key(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> None:
    """Guard enrollment, recognition, count, clear and health behind FACEENTRY_API_KEY.

    Enrolling and clearing change the face database and recognizing reveals
    who is registered, so when a key is configured every route on the
    router requires ``Authorization: Bearer <key>``. With no key configured
    the service is open, which suits a single-host deployment.
    """
    settings: Settings = request.app.state.settings
    if settings.api_key is None:
        return

    if credentials is None or not secrets.compare_digest(credentials.credentials.encode(), settings.api_key.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key for the face database",
            headers={"WWW-Authenticate": "Bearer"},
        )
