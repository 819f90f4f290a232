"""
Pydantic schemas for OAuth credentials.

``TokenResponse`` is what the token endpoint returns; ``CredentialRecord``
is the decrypted view of the single active credential row.
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TokenResponse(BaseModel):
    """Token endpoint response for both the code and refresh grants."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    access_token: str = Field(..., min_length=1, description="OAuth access token")
    refresh_token: str = Field(..., min_length=1, description="OAuth refresh token (rotated)")
    expires_in: int = Field(..., ge=0, description="Access token lifetime in seconds")
    token_type: str = Field(default="Bearer", description="Token type")
    scope: Optional[str] = Field(None, description="Granted scope")

    @field_validator("token_type")
    @classmethod
    def validate_token_type(cls, v):
        """Only bearer tokens can authorize resource calls."""
        if v.lower() != "bearer":
            raise ValueError(f"Unsupported token type: {v}")
        return "Bearer"

    def expires_at(self, issued_at: datetime) -> datetime:
        return issued_at + timedelta(seconds=self.expires_in)


class CredentialRecord(BaseModel):
    """Decrypted active credential. Never logged or returned over HTTP."""

    model_config = ConfigDict(frozen=True)

    id: str
    integration: str
    access_token: str = Field(..., repr=False)
    refresh_token: str = Field(..., repr=False)
    expires_at: datetime
    token_type: str = "Bearer"
    scope: Optional[str] = None
    is_active: bool = True

    def is_fresh(self, now: datetime, safety_margin: timedelta) -> bool:
        """True while the access token stays valid for at least the margin."""
        return now < self.expires_at - safety_margin


class CredentialSnapshot(BaseModel):
    """Non-secret view of the credential for the status surface."""

    integration: str
    is_active: bool
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
