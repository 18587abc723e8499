# Client authentication (RFC 6749 section 2.3.1).
# Created: 2026-09-14
#
# Credentials come from an HTTP Basic Authorization header or from the
# request body; the header wins when it decodes cleanly.

from __future__ import annotations

import base64
import binascii
import logging

from authgate.oauth2.errors import ErrorKind, OAuth2Error
from authgate.oauth2.models import OAuthClient
from authgate.oauth2.passwords import PasswordHasher
from authgate.oauth2.repositories import ClientRepository

logger = logging.getLogger(__name__)

_BASIC_PREFIX = "Basic "


def parse_basic_credentials(auth_header: str) -> tuple[str, str] | None:
    """Decode ``Basic base64(id:secret)``; None when malformed."""
    encoded = auth_header[len(_BASIC_PREFIX) :]
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    client_id, sep, client_secret = decoded.strip().partition(":")
    if not sep:
        return None
    return client_id, client_secret


class ClientAuthenticator:
    """Resolves and authenticates the calling client."""

    def __init__(self, clients: ClientRepository, hasher: PasswordHasher | None = None):
        self._clients = clients
        self._hasher = hasher or PasswordHasher()

    def authenticate(
        self,
        auth_header: str | None,
        client_id: str | None,
        client_secret: str | None,
    ) -> OAuthClient:
        if auth_header is not None and auth_header.startswith(_BASIC_PREFIX):
            credentials = parse_basic_credentials(auth_header)
            if credentials is not None:
                client_id, client_secret = credentials

        if client_id is None or client_secret is None:
            raise OAuth2Error(
                ErrorKind.INVALID_CLIENT, "Client authentication failed: missing credentials"
            )

        client = self._clients.find_by_client_id(client_id)
        if client is None:
            logger.warning("Client authentication failed: unknown client %s", client_id)
            raise OAuth2Error(
                ErrorKind.INVALID_CLIENT, "Client authentication failed: invalid client"
            )

        if not client.active:
            logger.warning("Client authentication failed: client %s is inactive", client_id)
            raise OAuth2Error(
                ErrorKind.INVALID_CLIENT, "Client authentication failed: client is inactive"
            )

        # Public clients cannot keep a secret, so none is checked
        if client.confidential and not self._hasher.verify(
            client.client_secret_hash, client_secret
        ):
            logger.warning("Client authentication failed: bad secret for %s", client_id)
            raise OAuth2Error(
                ErrorKind.INVALID_CLIENT, "Client authentication failed: invalid credentials"
            )

        return client
