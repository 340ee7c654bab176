"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

import secrets

from pydantic import model_validator
from pydantic_settings import BaseSettings

VALID_ENVIRONMENTS = frozenset({"development", "staging", "production"})


class Settings(BaseSettings):
    """Padeliga application configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///padeliga.db"

    # Environment
    padeliga_env: str = "development"

    # Sessions
    session_secret_key: str = ""
    padeliga_admin_user_ids: str = ""  # Comma-separated user IDs with admin rights

    # League defaults
    padeliga_default_points_per_win: int = 3
    padeliga_default_points_per_loss: int = 0

    # Logging
    padeliga_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_environment(self) -> Settings:
        if self.padeliga_env not in VALID_ENVIRONMENTS:
            msg = (
                f"PADELIGA_ENV must be one of {sorted(VALID_ENVIRONMENTS)}, "
                f"got {self.padeliga_env!r}"
            )
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def _ensure_session_secret(self) -> Settings:
        """Auto-generate session secret in dev; reject missing secret in production."""
        if not self.session_secret_key:
            if self.padeliga_env == "production":
                msg = (
                    "SESSION_SECRET_KEY must be set in production. "
                    "Generate one with: python -c "
                    '"import secrets; print(secrets.token_urlsafe(32))"'
                )
                raise ValueError(msg)
            self.session_secret_key = secrets.token_urlsafe(32)
        return self

    @property
    def admin_user_ids(self) -> frozenset[str]:
        """Parsed set of configured admin user IDs."""
        return frozenset(
            uid.strip() for uid in self.padeliga_admin_user_ids.split(",") if uid.strip()
        )
