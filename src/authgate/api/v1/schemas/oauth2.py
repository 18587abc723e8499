# OAuth2 schemas.
# Created: 2026-09-14

from __future__ import annotations

from pydantic import BaseModel, Field


class TokenRequestBody(BaseModel):
    """Token endpoint parameters (form-encoded or JSON)."""

    grant_type: str = Field(..., min_length=1)
    code: str | None = None
    redirect_uri: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    refresh_token: str | None = None
    scope: str | None = None
    code_verifier: str | None = None


class AuthorizeRequest(BaseModel):
    """Authorization request submitted on behalf of the signed-in resource owner."""

    response_type: str = Field(..., pattern="^code$")
    client_id: str = Field(..., min_length=1)
    redirect_uri: str = Field(..., min_length=1)
    scope: str | None = None
    state: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = Field(None, pattern="^(plain|S256)$")


class AuthorizeResponse(BaseModel):
    code: str
    state: str | None = None


class RevokeRequest(BaseModel):
    """Token revocation request (RFC 7009)."""

    token: str = Field(..., min_length=1)
    token_type_hint: str | None = Field(None, pattern="^(access_token|refresh_token)$")


class IntrospectRequest(BaseModel):
    """Token introspection request (RFC 7662)."""

    token: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: str
    email: str
    username: str
    roles: list[str]
    created_at: str
