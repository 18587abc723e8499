# Shared fixtures for the authorization server tests.
# Created: 2026-09-14

import base64
import hashlib
import secrets

import pytest

from authgate.oauth2.models import GrantType
from authgate.oauth2.passwords import PasswordHasher
from authgate.oauth2.server import AuthorizationServer
from authgate.oauth2.storage import OAuthStorage

WEB_REDIRECT = "https://app.example/callback"
SPA_REDIRECT = "https://spa.example/callback"


def make_pkce_pair():
    """Generate a PKCE code_verifier and S256 code_challenge pair."""
    verifier = secrets.token_urlsafe(32)
    challenge = (
        base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
        .rstrip(b"=")
        .decode()
    )
    return verifier, challenge


def basic_auth(client_id: str, client_secret: str) -> str:
    raw = f"{client_id}:{client_secret}".encode()
    return "Basic " + base64.b64encode(raw).decode()


@pytest.fixture
def hasher():
    # Minimum cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def storage():
    return OAuthStorage()


@pytest.fixture
def server(storage, hasher):
    return AuthorizationServer(storage, hasher)


@pytest.fixture
def user(server):
    return server.create_user("alice@example.com", "alice", "correct-horse")


@pytest.fixture
def admin(server):
    return server.create_user("root@example.com", "root", "battery-staple", roles=["ROLE_ADMIN"])


@pytest.fixture
def web_client(server):
    """Confidential client for authorization_code + refresh_token. Returns the creation dict."""
    return server.clients.create_client(
        name="Web App",
        redirect_uris=[WEB_REDIRECT],
        grant_types=[GrantType.AUTHORIZATION_CODE, GrantType.REFRESH_TOKEN],
        allowed_scopes=["openid", "profile", "email", "offline_access"],
    )


@pytest.fixture
def spa_client(server):
    """Public client that must use PKCE."""
    return server.clients.create_client(
        name="Single Page App",
        redirect_uris=[SPA_REDIRECT],
        grant_types=[GrantType.AUTHORIZATION_CODE],
        confidential=False,
        allowed_scopes=["openid", "profile"],
    )


@pytest.fixture
def service_client(server):
    """Confidential machine-to-machine client."""
    return server.clients.create_client(
        name="Billing Service",
        redirect_uris=["https://billing.example/unused"],
        grant_types=[GrantType.CLIENT_CREDENTIALS],
        allowed_scopes=["openid"],
    )
