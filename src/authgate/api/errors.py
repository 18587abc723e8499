# Exception handlers mapping engine errors to RFC 6749 / RFC 6750 responses.
# Created: 2026-09-14

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from authgate.api.deps import InsufficientScopeError
from authgate.oauth2.errors import EntityNotFoundError, ErrorKind, OAuth2Error

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def oauth2_error_response(err: OAuth2Error) -> JSONResponse:
    headers = dict(NO_STORE_HEADERS)
    if err.kind is ErrorKind.INVALID_TOKEN:
        headers["WWW-Authenticate"] = f'Bearer error="{err.error}"'
    elif err.kind is ErrorKind.INVALID_CLIENT:
        headers["WWW-Authenticate"] = 'Basic realm="oauth2"'
    return JSONResponse(status_code=err.status_code, content=err.to_dict(), headers=headers)


async def _handle_oauth2_error(request: Request, exc: OAuth2Error) -> JSONResponse:
    return oauth2_error_response(exc)


async def _handle_insufficient_scope(request: Request, exc: InsufficientScopeError) -> JSONResponse:
    return JSONResponse(status_code=403, content=exc.to_dict())


async def _handle_not_found(request: Request, exc: EntityNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OAuth2Error, _handle_oauth2_error)
    app.add_exception_handler(InsufficientScopeError, _handle_insufficient_scope)
    app.add_exception_handler(EntityNotFoundError, _handle_not_found)
