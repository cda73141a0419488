"""Google account model with OAuth credential state."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Tokens are treated as expired this long before their actual expiry
TOKEN_EXPIRY_BUFFER = timedelta(seconds=60)


class Account(BaseModel):
    """A connected Google account.

    Tokens live on the model in memory but are persisted separately
    from the metadata (see DatabaseTokenStore).
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Stable account identifier",
    )
    email: str = Field(description="Account email address")
    display_name: str = Field(default="", description="Name shown in the UI")
    is_enabled: bool = Field(default=True, description="Whether to sync this account")
    access_token: str | None = Field(default=None, repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    token_expiry: datetime | None = Field(default=None)

    @model_validator(mode="after")
    def _default_display_name(self) -> "Account":
        if not self.display_name:
            self.display_name = self.email
        return self

    @property
    def needs_reauthentication(self) -> bool:
        """True when no refresh token is held; a fetch requires sign-in first."""
        return not self.refresh_token

    def is_token_expired(self, now: datetime | None = None) -> bool:
        """Check access-token expiry with a 60 second safety buffer.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            True if no expiry is known or the buffered expiry has passed
        """
        if self.token_expiry is None:
            return True
        now = now or datetime.now(UTC)
        return now >= self.token_expiry - TOKEN_EXPIRY_BUFFER

    def public_dict(self) -> dict:
        """Account metadata without any credential material."""
        return self.model_dump(
            exclude={"access_token", "refresh_token", "token_expiry"}
        )
