# Clients router — administration of registered OAuth2 clients.
# Created: 2026-09-14

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from starlette.concurrency import run_in_threadpool

from authgate.api.deps import require_role
from authgate.api.v1.schemas.clients import (
    ClientCreatedResponse,
    ClientInfo,
    CreateClientRequest,
)
from authgate.oauth2.models import OAuthClient

logger = logging.getLogger(__name__)

ADMIN_ROLE = "ROLE_ADMIN"

router = APIRouter(tags=["Clients"], dependencies=[Depends(require_role(ADMIN_ROLE))])


def _info(client: OAuthClient) -> ClientInfo:
    return ClientInfo(
        client_id=client.client_id,
        name=client.name,
        description=client.description,
        redirect_uris=client.redirect_uris,
        grant_types=client.grant_types,
        allowed_scopes=client.allowed_scopes,
        confidential=client.confidential,
        active=client.active,
        created_at=client.created_at.isoformat(),
        updated_at=client.updated_at.isoformat(),
    )


@router.post("/clients", response_model=ClientCreatedResponse, status_code=201)
async def create_client(body: CreateClientRequest):
    """Register a client. The plaintext secret is returned only once."""
    from authgate.oauth2.server import get_oauth_server

    server = get_oauth_server()
    unknown = [
        s for s in body.allowed_scopes if server.storage.scopes.find_by_identifier(s) is None
    ]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown scopes: {', '.join(unknown)}")

    created = await run_in_threadpool(
        server.clients.create_client,
        name=body.name,
        redirect_uris=body.redirect_uris,
        grant_types=body.grant_types,
        confidential=body.confidential,
        allowed_scopes=body.allowed_scopes,
        description=body.description,
    )
    return ClientCreatedResponse(**created)


@router.get("/clients", response_model=list[ClientInfo])
async def list_clients(active_only: bool = False):
    """List registered clients (no secrets exposed)."""
    from authgate.oauth2.server import get_oauth_server

    manager = get_oauth_server().clients
    clients = manager.list_active_clients() if active_only else manager.list_clients()
    return [_info(c) for c in clients]


@router.delete("/clients/{client_id}", status_code=204)
async def delete_client(client_id: str):
    """Delete a client with its tokens and codes. 404 if unknown."""
    from authgate.oauth2.server import get_oauth_server

    get_oauth_server().clients.delete_client(client_id)
    return Response(status_code=204)


@router.post("/clients/{client_id}/deactivate")
async def deactivate_client(client_id: str):
    """Disable a client and revoke its outstanding tokens."""
    from authgate.oauth2.server import get_oauth_server

    revoked = get_oauth_server().clients.deactivate_client(client_id)
    return {"status": "ok", "tokens_revoked": revoked}
