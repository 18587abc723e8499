# OAuth2 router — authorize, token, revoke, introspect.
# Created: 2026-09-14

from __future__ import annotations

import logging
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool

from authgate.api.deps import BearerPrincipal, authenticate_bearer, require_scope
from authgate.api.errors import NO_STORE_HEADERS, oauth2_error_response
from authgate.api.v1.schemas.oauth2 import (
    AuthorizeRequest,
    AuthorizeResponse,
    IntrospectRequest,
    RevokeRequest,
    TokenRequestBody,
    UserResponse,
)
from authgate.oauth2.errors import ErrorKind, OAuth2Error
from authgate.oauth2.grants import TokenRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth2"])

M = TypeVar("M", bound=BaseModel)


async def _read_params(request: Request) -> dict[str, Any]:
    """Read endpoint parameters from a form-encoded or JSON body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise OAuth2Error(ErrorKind.INVALID_REQUEST, "Malformed JSON body") from None
        if not isinstance(body, dict):
            raise OAuth2Error(ErrorKind.INVALID_REQUEST, "Request body must be an object")
        return {k: v for k, v in body.items() if v is not None}

    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def _parse(model: type[M], params: dict[str, Any]) -> M:
    try:
        return model.model_validate(params)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "body"
        raise OAuth2Error(
            ErrorKind.INVALID_REQUEST, f"Invalid parameter '{field}': {first['msg']}"
        ) from None


@router.post("/oauth2/authorize", response_model=AuthorizeResponse)
async def authorize(request: Request, principal: BearerPrincipal = Depends(authenticate_bearer)):
    """Issue an authorization code to the signed-in resource owner."""
    from authgate.oauth2.server import get_oauth_server

    body = _parse(AuthorizeRequest, await _read_params(request))

    server = get_oauth_server()
    auth_code, error = server.authorize(
        client_id=body.client_id,
        user=principal.user,
        redirect_uri=body.redirect_uri,
        scope=body.scope,
        code_challenge=body.code_challenge,
        code_challenge_method=body.code_challenge_method,
        response_type=body.response_type,
    )
    if error:
        return oauth2_error_response(error)

    return AuthorizeResponse(code=auth_code.code, state=body.state).model_dump(exclude_none=True)


@router.post("/oauth2/token")
async def token_exchange(request: Request):
    """Exchange a grant (authorization code, client credentials, refresh token) for tokens."""
    from authgate.oauth2.server import get_oauth_server

    body = _parse(TokenRequestBody, await _read_params(request))
    token_request = TokenRequest(
        grant_type=body.grant_type,
        code=body.code,
        redirect_uri=body.redirect_uri,
        client_id=body.client_id,
        client_secret=body.client_secret,
        refresh_token=body.refresh_token,
        scope=body.scope,
        code_verifier=body.code_verifier,
        authorization_header=request.headers.get("Authorization"),
    )

    server = get_oauth_server()
    # Runs in a worker thread: bcrypt verification blocks
    result, error = await run_in_threadpool(server.issue_token, token_request)
    if error:
        return oauth2_error_response(error)

    return JSONResponse(content=result.to_dict(), headers=NO_STORE_HEADERS)


@router.post("/oauth2/revoke")
async def revoke_token(request: Request):
    """Revoke an access or refresh token. Always 200 for a well-formed request (RFC 7009)."""
    from authgate.oauth2.server import get_oauth_server

    body = _parse(RevokeRequest, await _read_params(request))
    found = get_oauth_server().revoke(body.token, body.token_type_hint)
    logger.debug("Revocation request handled (token found=%s)", found)
    return {}


@router.post("/oauth2/introspect")
async def introspect_token(request: Request):
    """Report whether a token is active and its metadata (RFC 7662)."""
    from authgate.oauth2.server import get_oauth_server

    body = _parse(IntrospectRequest, await _read_params(request))
    return JSONResponse(
        content=get_oauth_server().introspect(body.token), headers=NO_STORE_HEADERS
    )


@router.get("/users/me", response_model=UserResponse)
async def current_user(principal: BearerPrincipal = Depends(require_scope("profile"))):
    """Profile of the resource owner behind the bearer token."""
    user = principal.user
    return UserResponse(
        id=user.id,
        email=user.email,
        username=user.username,
        roles=user.get_roles(),
        created_at=user.created_at.isoformat(),
    )
