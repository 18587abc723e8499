# Client registration and administration.
# Created: 2026-09-14
#
# The client secret is returned once at creation; only its bcrypt hash is
# stored (like GitHub PATs).

from __future__ import annotations

import logging

from authgate.oauth2.errors import EntityNotFoundError
from authgate.oauth2.models import GrantType, OAuthClient
from authgate.oauth2.passwords import PasswordHasher
from authgate.oauth2.repositories import (
    AccessTokenRepository,
    ClientRepository,
    RefreshTokenRepository,
    TransactionManager,
)
from authgate.oauth2.tokens import TokenGenerator

logger = logging.getLogger(__name__)


class ClientManagementService:
    def __init__(
        self,
        clients: ClientRepository,
        access_tokens: AccessTokenRepository,
        refresh_tokens: RefreshTokenRepository,
        transactions: TransactionManager,
        generator: TokenGenerator | None = None,
        hasher: PasswordHasher | None = None,
    ):
        self._clients = clients
        self._access_tokens = access_tokens
        self._refresh_tokens = refresh_tokens
        self._transactions = transactions
        self._generator = generator or TokenGenerator()
        self._hasher = hasher or PasswordHasher()

    def create_client(
        self,
        name: str,
        redirect_uris: list[str],
        grant_types: list[GrantType],
        confidential: bool = True,
        allowed_scopes: list[str] | None = None,
        description: str | None = None,
    ) -> dict[str, str]:
        """Register a client. Returns ``{client_id, client_secret, name}``."""
        client_id = self._generator.generate_client_id()
        client_secret = self._generator.generate_client_secret()

        client = OAuthClient(
            client_id=client_id,
            client_secret_hash=self._hasher.hash(client_secret),
            name=name,
            description=description,
            redirect_uris=list(redirect_uris),
            grant_types=GrantType.to_strings(grant_types),
            allowed_scopes=list(allowed_scopes or []),
            confidential=confidential,
        )
        self._clients.save(client)

        logger.info(
            "OAuth2 client created: %s (%s, confidential=%s, grants=%s)",
            client_id,
            name,
            confidential,
            client.grant_types,
        )
        return {"client_id": client_id, "client_secret": client_secret, "name": name}

    def list_clients(self) -> list[OAuthClient]:
        return self._clients.find_all()

    def list_active_clients(self) -> list[OAuthClient]:
        return self._clients.find_active()

    def delete_client(self, client_id: str) -> None:
        """Delete a client and everything issued to it.

        Raises EntityNotFoundError if the client does not exist.
        """
        try:
            client = self._clients.get_by_client_id(client_id)
        except EntityNotFoundError:
            logger.warning("Attempted to delete non-existent OAuth2 client %s", client_id)
            raise

        self._clients.delete(client)
        logger.info("OAuth2 client deleted: %s (%s)", client_id, client.name)

    def deactivate_client(self, client_id: str) -> int:
        """Disable a client and revoke its live tokens. Returns tokens revoked."""
        with self._transactions.transaction():
            client = self._clients.get_by_client_id(client_id, lock=True)
            client.active = False
            self._clients.save(client)
            revoked = self._access_tokens.revoke_all_for_client(client_id)
            revoked += self._refresh_tokens.revoke_all_for_client(client_id)

        logger.info("OAuth2 client deactivated: %s (%d tokens revoked)", client_id, revoked)
        return revoked
