"""External calendar connection schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class CalendarConnectResponse(BaseModel):
    """Consent URL the browser should be sent to."""

    authorization_url: str


class CalendarTokenRequest(BaseModel):
    """
    Token handed back after the OAuth redirect.

    Either the raw redirect fragment or the explicit fields may be sent.
    """

    fragment: str | None = None
    access_token: str | None = None
    expires_in: int = Field(default=3600, ge=1)

    @model_validator(mode="after")
    def validate_source(self) -> "CalendarTokenRequest":
        if not self.fragment and not self.access_token:
            raise ValueError("Provide either the redirect fragment or an access token")
        return self


class CalendarStatusResponse(BaseModel):
    """Whether calendar sync is currently possible for the clinician."""

    connected: bool
    expires_at: datetime | None = None
