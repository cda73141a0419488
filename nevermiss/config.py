"""Application configuration using pydantic-settings pattern."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "NeverMiss"
    app_version: str = "0.1.0"
    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8765)

    # Database (local libSQL/SQLite file)
    database_url: str = Field(default="file:nevermiss.db")

    # Google OAuth client
    google_client_id: str = Field(default="")
    google_client_secret: str | None = Field(default=None)
    google_redirect_uri: str = Field(default="http://127.0.0.1:8765/auth/callback")
    google_scopes: list[str] = Field(
        default=[
            "https://www.googleapis.com/auth/calendar.readonly",
            "https://www.googleapis.com/auth/calendar.events.readonly",
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ]
    )

    # Google endpoints
    google_auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_userinfo_url: str = "https://www.googleapis.com/oauth2/v2/userinfo"

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for OAuth and user-info requests",
    )

    # Allow disabling background timers for tests
    disable_scheduler: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def effective_client_secret(self) -> str | None:
        """Client secret, or None when unset or still a template placeholder."""
        secret = self.google_client_secret
        if not secret or "YOUR_CLIENT_SECRET" in secret:
            return None
        return secret


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
