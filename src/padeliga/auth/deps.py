"""FastAPI dependencies for authentication: extracting the caller from the session cookie.

Authentication proper (sign-up, login, invitations) lives outside this
service; all the league core needs is who the caller is and whether they
are an admin.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from itsdangerous import BadSignature, URLSafeTimedSerializer
from pydantic import ValidationError

from padeliga.config import Settings
from padeliga.models.user import SessionUser

logger = logging.getLogger(__name__)

# Session cookie lives for 7 days (seconds).
SESSION_MAX_AGE = 7 * 24 * 60 * 60
SESSION_COOKIE_NAME = "padeliga_session"


def _get_serializer(settings: Settings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.session_secret_key, salt="padeliga-session")


def create_session_token(settings: Settings, user: SessionUser) -> str:
    """Sign a session payload for the ``padeliga_session`` cookie."""
    return _get_serializer(settings).dumps(user.model_dump())


async def get_current_user(request: Request) -> SessionUser | None:
    """Extract the current user from the signed session cookie.

    Returns None if there is no cookie or it is invalid/expired.  Users
    listed in ``padeliga_admin_user_ids`` are promoted to admin.
    """
    raw = request.cookies.get(SESSION_COOKIE_NAME)
    if not raw:
        return None

    settings: Settings = request.app.state.settings
    try:
        data = _get_serializer(settings).loads(raw, max_age=SESSION_MAX_AGE)
        user = SessionUser(**data)
    except BadSignature:
        logger.debug("Invalid or expired session cookie, ignoring")
        return None
    except (TypeError, ValidationError):
        logger.debug("Malformed session payload, ignoring", exc_info=True)
        return None

    if user.user_id in settings.admin_user_ids:
        user = user.model_copy(update={"role": "admin"})
    return user


OptionalUser = Annotated[SessionUser | None, Depends(get_current_user)]


async def require_user(current_user: OptionalUser) -> SessionUser:
    if current_user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return current_user


CurrentUser = Annotated[SessionUser, Depends(require_user)]


async def require_admin(current_user: CurrentUser) -> SessionUser:
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return current_user


AdminUser = Annotated[SessionUser, Depends(require_admin)]
