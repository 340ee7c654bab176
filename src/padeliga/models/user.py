"""Caller identity passed from the auth layer into the core."""

from __future__ import annotations

from pydantic import BaseModel


class SessionUser(BaseModel):
    """Minimal user info stored in the signed session cookie."""

    user_id: str
    username: str
    role: str = "player"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
