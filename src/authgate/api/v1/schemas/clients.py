# Client administration schemas.
# Created: 2026-09-14

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from authgate.oauth2.models import GrantType


class CreateClientRequest(BaseModel):
    """Register a new OAuth2 client."""

    name: str = Field(..., min_length=3, max_length=255)
    redirect_uris: list[str] = Field(..., min_length=1)
    grant_types: list[GrantType] = Field(..., min_length=1)
    confidential: bool = True
    allowed_scopes: list[str] = Field(default_factory=list)
    description: str | None = None

    @field_validator("redirect_uris")
    @classmethod
    def _absolute_uris(cls, value: list[str]) -> list[str]:
        for uri in value:
            parsed = urlparse(uri)
            if not parsed.scheme or not (parsed.netloc or parsed.path):
                raise ValueError(f"Invalid redirect URI: {uri}")
            if parsed.fragment:
                raise ValueError(f"Redirect URI must not contain a fragment: {uri}")
        return value


class ClientInfo(BaseModel):
    """Client details (no secrets)."""

    client_id: str
    name: str
    description: str | None = None
    redirect_uris: list[str]
    grant_types: list[str]
    allowed_scopes: list[str]
    confidential: bool
    active: bool
    created_at: str
    updated_at: str


class ClientCreatedResponse(BaseModel):
    """Response when a client is registered. The secret is shown once."""

    client_id: str
    client_secret: str  # Plaintext, only returned here
    name: str
