# Shared FastAPI dependencies for the API layer.
# Created: 2026-09-14
#
# Bearer authentication resolves the caller explicitly: routes receive the
# BearerPrincipal as an argument instead of reading request state.

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from authgate.oauth2.errors import ErrorKind, OAuth2Error
from authgate.oauth2.models import AccessToken, User

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class BearerPrincipal:
    """The access token presented by the caller and its resource owner."""

    token: AccessToken
    user: User


class InsufficientScopeError(Exception):
    """Raised when the bearer token lacks scopes a route requires (HTTP 403)."""

    def __init__(self, required: list[str], provided: list[str]):
        super().__init__("Insufficient scope")
        self.required = required
        self.provided = provided

    def to_dict(self) -> dict:
        return {
            "error": "insufficient_scope",
            "error_description": "Insufficient scope",
            "required_scopes": self.required,
            "provided_scopes": self.provided,
        }


async def authenticate_bearer(request: Request) -> BearerPrincipal:
    """Resolve ``Authorization: Bearer <token>`` to a user-bound access token."""
    from authgate.oauth2.server import get_oauth_server

    header = request.headers.get("Authorization")
    if header is None or not header.startswith(_BEARER_PREFIX):
        raise OAuth2Error(ErrorKind.INVALID_TOKEN, "No bearer token provided")

    raw = header[len(_BEARER_PREFIX) :].strip()
    if not raw:
        raise OAuth2Error(ErrorKind.INVALID_TOKEN, "Invalid Authorization header format")

    token, user = get_oauth_server().authenticate_bearer(raw)
    return BearerPrincipal(token=token, user=user)


def require_scope(*scopes: str):
    """FastAPI dependency requiring ALL of *scopes* on the bearer token.

    Usage::

        @router.get("/users/me")
        async def me(principal: BearerPrincipal = Depends(require_scope("profile"))): ...
    """
    required = list(scopes)

    async def _check(principal: BearerPrincipal = Depends(authenticate_bearer)) -> BearerPrincipal:
        provided = principal.token.scopes
        if not all(s in provided for s in required):
            logger.warning(
                "Insufficient scope for client %s: required=%s provided=%s",
                principal.token.client_id,
                required,
                provided,
            )
            raise InsufficientScopeError(required, list(provided))
        return principal

    return _check


def require_role(role: str):
    """FastAPI dependency requiring the bearer token's user to hold *role*."""

    async def _check(principal: BearerPrincipal = Depends(authenticate_bearer)) -> BearerPrincipal:
        if role not in principal.user.get_roles():
            raise HTTPException(status_code=403, detail=f"Missing required role: {role}")
        return principal

    return _check
