# Grant handlers — one per grant_type (RFC 6749 sections 4.1, 4.4, 6).
# Created: 2026-09-14
#
# Each handler authenticates the client, checks it may use the grant, and
# performs its mutations inside a single store transaction.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from authgate.oauth2.client_auth import ClientAuthenticator
from authgate.oauth2.errors import ErrorKind, OAuth2Error
from authgate.oauth2.models import AccessToken, GrantType, OAuthClient
from authgate.oauth2.repositories import TransactionManager
from authgate.oauth2.scopes import ScopeValidator, format_scope, parse_scope
from authgate.oauth2.services import (
    AccessTokenService,
    AuthorizationCodeService,
    RefreshTokenService,
)

logger = logging.getLogger(__name__)

OFFLINE_ACCESS = "offline_access"


@dataclass(frozen=True)
class TokenRequest:
    """Parameters of a token endpoint request."""

    grant_type: str
    code: str | None = None
    redirect_uri: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    refresh_token: str | None = None
    scope: str | None = None
    code_verifier: str | None = None
    authorization_header: str | None = None


@dataclass(frozen=True)
class TokenResponse:
    """Successful token endpoint response (RFC 6749 section 5.1)."""

    access_token: str
    expires_in: int
    token_type: str = "Bearer"
    refresh_token: str | None = None
    scope: str | None = None

    @classmethod
    def for_token(cls, access_token: AccessToken, refresh_token: str | None = None):
        return cls(
            access_token=access_token.token,
            expires_in=access_token.expires_in(),
            refresh_token=refresh_token,
            scope=format_scope(access_token.scopes),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }
        if self.refresh_token is not None:
            data["refresh_token"] = self.refresh_token
        if self.scope is not None:
            data["scope"] = self.scope
        return data


class GrantHandler(Protocol):
    def supports(self, grant_type: str) -> bool: ...

    def handle(self, request: TokenRequest) -> TokenResponse: ...


class _BaseGrantHandler:
    grant_type: GrantType

    def __init__(self, authenticator: ClientAuthenticator, transactions: TransactionManager):
        self._authenticator = authenticator
        self._transactions = transactions

    def supports(self, grant_type: str) -> bool:
        return grant_type == self.grant_type.value

    def _authenticate(self, request: TokenRequest) -> OAuthClient:
        client = self._authenticator.authenticate(
            request.authorization_header, request.client_id, request.client_secret
        )
        if not client.allows_grant(self.grant_type):
            raise OAuth2Error(
                ErrorKind.UNAUTHORIZED_CLIENT,
                f"Client is not authorized to use {self.grant_type.value} grant type",
            )
        return client


class AuthorizationCodeGrantHandler(_BaseGrantHandler):
    grant_type = GrantType.AUTHORIZATION_CODE

    def __init__(
        self,
        authenticator: ClientAuthenticator,
        transactions: TransactionManager,
        codes: AuthorizationCodeService,
        access_tokens: AccessTokenService,
        refresh_tokens: RefreshTokenService,
    ):
        super().__init__(authenticator, transactions)
        self._codes = codes
        self._access_tokens = access_tokens
        self._refresh_tokens = refresh_tokens

    def handle(self, request: TokenRequest) -> TokenResponse:
        client = self._authenticate(request)

        if request.code is None:
            raise OAuth2Error(ErrorKind.INVALID_REQUEST, "Authorization code is required")
        if request.redirect_uri is None:
            raise OAuth2Error(ErrorKind.INVALID_REQUEST, "Redirect URI is required")

        with self._transactions.transaction():
            auth_code = self._codes.validate_and_consume(
                request.code, client, request.redirect_uri, request.code_verifier
            )
            access_token = self._access_tokens.create(client, auth_code.scopes, auth_code.user_id)

            refresh_token = None
            if OFFLINE_ACCESS in auth_code.scopes:
                refresh_token = self._refresh_tokens.create(
                    client, auth_code.user_id, auth_code.scopes
                ).token

        logger.info(
            "Issued token via authorization_code to client %s (scope=%r)",
            client.client_id,
            format_scope(auth_code.scopes),
        )
        return TokenResponse.for_token(access_token, refresh_token)


class ClientCredentialsGrantHandler(_BaseGrantHandler):
    grant_type = GrantType.CLIENT_CREDENTIALS

    def __init__(
        self,
        authenticator: ClientAuthenticator,
        transactions: TransactionManager,
        scopes: ScopeValidator,
        access_tokens: AccessTokenService,
    ):
        super().__init__(authenticator, transactions)
        self._scopes = scopes
        self._access_tokens = access_tokens

    def handle(self, request: TokenRequest) -> TokenResponse:
        client = self._authenticate(request)

        # No default scopes for this grant
        requested = parse_scope(request.scope)
        if not requested:
            raise OAuth2Error(
                ErrorKind.INVALID_REQUEST,
                "Scope parameter is required for client_credentials grant",
            )

        granted = self._scopes.validate(requested, client.allowed_scopes)

        with self._transactions.transaction():
            access_token = self._access_tokens.create(client, granted, None)

        logger.info(
            "Issued token via client_credentials to client %s (scope=%r)",
            client.client_id,
            format_scope(granted),
        )
        # No refresh token for this grant
        return TokenResponse.for_token(access_token)


class RefreshTokenGrantHandler(_BaseGrantHandler):
    grant_type = GrantType.REFRESH_TOKEN

    def __init__(
        self,
        authenticator: ClientAuthenticator,
        transactions: TransactionManager,
        refresh_tokens: RefreshTokenService,
        access_tokens: AccessTokenService,
    ):
        super().__init__(authenticator, transactions)
        self._refresh_tokens = refresh_tokens
        self._access_tokens = access_tokens

    def handle(self, request: TokenRequest) -> TokenResponse:
        client = self._authenticate(request)

        if request.refresh_token is None:
            raise OAuth2Error(ErrorKind.INVALID_REQUEST, "Refresh token is required")

        with self._transactions.transaction():
            old_token = self._refresh_tokens.validate_and_consume(request.refresh_token, client)

            scopes = list(old_token.scopes)
            requested = parse_scope(request.scope)
            if requested:
                # Narrowing only; widening is refused even if the client could
                # otherwise be granted the extra scopes
                excess = [s for s in requested if s not in scopes]
                if excess:
                    raise OAuth2Error(
                        ErrorKind.INVALID_SCOPE,
                        f"Requested scopes cannot exceed original grant: {', '.join(excess)}",
                    )
                scopes = requested

            access_token = self._access_tokens.create(client, scopes, old_token.user_id)
            new_refresh = self._refresh_tokens.create(client, old_token.user_id, scopes)

        logger.info(
            "Rotated refresh token for client %s (scope=%r)", client.client_id, format_scope(scopes)
        )
        return TokenResponse.for_token(access_token, new_refresh.token)
