# OAuth2 Authorization Server.
# Created: 2026-09-14
#
# Wires the lifecycle services and grant handlers over one store and exposes
# the operations the HTTP layer needs: authorize, token, revoke, introspect.

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from authgate.oauth2.client_auth import ClientAuthenticator
from authgate.oauth2.clients import ClientManagementService
from authgate.oauth2.errors import ErrorKind, OAuth2Error
from authgate.oauth2.grants import (
    AuthorizationCodeGrantHandler,
    ClientCredentialsGrantHandler,
    GrantHandler,
    RefreshTokenGrantHandler,
    TokenRequest,
    TokenResponse,
)
from authgate.oauth2.models import AccessToken, AuthorizationCode, GrantType, User
from authgate.oauth2.passwords import PasswordHasher
from authgate.oauth2.pkce import SUPPORTED_METHODS, PkceValidator
from authgate.oauth2.scopes import ScopeValidator, format_scope, parse_scope
from authgate.oauth2.services import (
    ACCESS_TOKEN_TTL,
    CODE_TTL,
    REFRESH_TOKEN_TTL,
    AccessTokenService,
    AuthorizationCodeService,
    RefreshTokenService,
)
from authgate.oauth2.storage import OAuthStorage
from authgate.oauth2.tokens import TokenGenerator

if TYPE_CHECKING:
    from authgate.config import Settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_HINT = "access_token"
REFRESH_TOKEN_HINT = "refresh_token"


class OAuth2Service:
    """Dispatches a token request to the first handler supporting its grant type."""

    def __init__(self, handlers: list[GrantHandler]):
        # Order is fixed at construction and decides ties
        self._handlers = list(handlers)

    def issue_token(self, request: TokenRequest) -> TokenResponse:
        for handler in self._handlers:
            if handler.supports(request.grant_type):
                return handler.handle(request)

        raise OAuth2Error(
            ErrorKind.UNSUPPORTED_GRANT_TYPE,
            f'Grant type "{request.grant_type}" is not supported',
        )


class AuthorizationServer:
    """OAuth2 authorization server (authorization_code + PKCE, client_credentials, refresh)."""

    def __init__(
        self,
        storage: OAuthStorage | None = None,
        hasher: PasswordHasher | None = None,
        access_token_ttl: timedelta | None = None,
        refresh_token_ttl: timedelta | None = None,
        code_ttl: timedelta | None = None,
    ):
        self.storage = storage or OAuthStorage()
        self.hasher = hasher or PasswordHasher()
        generator = TokenGenerator()

        self.access_tokens = AccessTokenService(
            self.storage.access_tokens, generator, access_token_ttl or ACCESS_TOKEN_TTL
        )
        self.refresh_tokens = RefreshTokenService(
            self.storage.refresh_tokens,
            self.storage,
            generator,
            refresh_token_ttl or REFRESH_TOKEN_TTL,
        )
        self.codes = AuthorizationCodeService(
            self.storage.codes, self.storage, generator, PkceValidator(), code_ttl or CODE_TTL
        )
        self.scope_validator = ScopeValidator(self.storage.scopes)
        self.authenticator = ClientAuthenticator(self.storage.clients, self.hasher)
        self.clients = ClientManagementService(
            self.storage.clients,
            self.storage.access_tokens,
            self.storage.refresh_tokens,
            self.storage,
            generator,
            self.hasher,
        )
        self.dispatcher = OAuth2Service(
            [
                AuthorizationCodeGrantHandler(
                    self.authenticator,
                    self.storage,
                    self.codes,
                    self.access_tokens,
                    self.refresh_tokens,
                ),
                ClientCredentialsGrantHandler(
                    self.authenticator, self.storage, self.scope_validator, self.access_tokens
                ),
                RefreshTokenGrantHandler(
                    self.authenticator, self.storage, self.refresh_tokens, self.access_tokens
                ),
            ]
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthorizationServer:
        storage = OAuthStorage(settings.store_path if settings.persist_tokens else None)
        return cls(
            storage=storage,
            hasher=PasswordHasher(settings.bcrypt_rounds),
            access_token_ttl=timedelta(seconds=settings.access_token_ttl),
            refresh_token_ttl=timedelta(seconds=settings.refresh_token_ttl),
            code_ttl=timedelta(seconds=settings.authorization_code_ttl),
        )

    # -- authorization endpoint -------------------------------------------

    def authorize(
        self,
        client_id: str,
        user: User,
        redirect_uri: str,
        scope: str | None = None,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
        response_type: str = "code",
    ) -> tuple[AuthorizationCode | None, OAuth2Error | None]:
        """Issue an authorization code for *user*.

        Returns (code, error). If error is not None, code is None.
        """
        try:
            if response_type != "code":
                raise OAuth2Error(
                    ErrorKind.INVALID_REQUEST, f"Unsupported response_type: {response_type}"
                )

            client = self.storage.clients.find_by_client_id(client_id)
            if client is None or not client.active:
                raise OAuth2Error(ErrorKind.INVALID_CLIENT, "Unknown or inactive client")

            if not client.allows_grant(GrantType.AUTHORIZATION_CODE):
                raise OAuth2Error(
                    ErrorKind.UNAUTHORIZED_CLIENT,
                    "Client is not authorized to use authorization_code grant type",
                )

            if redirect_uri not in client.redirect_uris:
                raise OAuth2Error(ErrorKind.INVALID_REQUEST, "Invalid redirect_uri")

            if code_challenge_method is not None and code_challenge_method not in SUPPORTED_METHODS:
                raise OAuth2Error(
                    ErrorKind.INVALID_REQUEST,
                    f"Unsupported code challenge method: {code_challenge_method}",
                )

            scopes = self.scope_validator.validate(parse_scope(scope), client.allowed_scopes)
        except OAuth2Error as err:
            return None, err

        auth_code = self.codes.create(
            client, user.id, redirect_uri, scopes, code_challenge, code_challenge_method
        )
        return auth_code, None

    # -- token endpoint ----------------------------------------------------

    def issue_token(
        self, request: TokenRequest
    ) -> tuple[TokenResponse | None, OAuth2Error | None]:
        """Run the grant flow for *request*.

        Returns (token_response, error).
        """
        try:
            return self.dispatcher.issue_token(request), None
        except OAuth2Error as err:
            logger.info(
                "Token request rejected (grant_type=%s): %s %s",
                request.grant_type,
                err.error,
                err.description,
            )
            return None, err

    # -- revocation / introspection ---------------------------------------

    def revoke(self, token: str, token_type_hint: str | None = None) -> bool:
        """Revoke an access or refresh token (RFC 7009).

        The hinted type is tried first; when the token is not found there the
        other type is searched. Returns whether a token was found; callers
        must answer 200 either way.
        """
        if token_type_hint == REFRESH_TOKEN_HINT:
            order = (self.refresh_tokens, self.access_tokens)
        else:
            order = (self.access_tokens, self.refresh_tokens)

        for service in order:
            if service.revoke(token):
                return True
        return False

    def introspect(self, token: str) -> dict[str, Any]:
        """RFC 7662 introspection; inactive tokens yield ``{"active": False}``."""
        try:
            access_token = self.access_tokens.validate(token)
        except OAuth2Error:
            return {"active": False}

        response: dict[str, Any] = {
            "active": True,
            "scope": format_scope(access_token.scopes),
            "client_id": access_token.client_id,
            "token_type": "Bearer",
            "exp": int(access_token.expires_at.timestamp()),
            "iat": int(access_token.created_at.timestamp()),
        }
        if access_token.user_id is not None:
            user = self.storage.users.find_by_id(access_token.user_id)
            if user is not None:
                response["username"] = user.username
            response["sub"] = access_token.user_id
        return response

    def verify_access_token(self, access_token: str) -> AccessToken | None:
        """Verify an access token and return the token record if valid."""
        try:
            return self.access_tokens.validate(access_token)
        except OAuth2Error:
            return None

    def authenticate_bearer(self, access_token: str) -> tuple[AccessToken, User]:
        """Resolve a bearer token to (token, user); raises INVALID_TOKEN."""
        token = self.access_tokens.validate(access_token)
        if token.user_id is None:
            raise OAuth2Error(ErrorKind.INVALID_TOKEN, "Access token has no associated user")

        user = self.storage.users.find_by_id(token.user_id)
        if user is None or not user.enabled:
            raise OAuth2Error(ErrorKind.INVALID_TOKEN, "Access token user is unavailable")
        return token, user

    # -- maintenance -------------------------------------------------------

    def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every live access and refresh token of a user."""
        with self.storage.transaction():
            count = self.storage.access_tokens.revoke_all_for_user(user_id)
            count += self.storage.refresh_tokens.revoke_all_for_user(user_id)
        logger.info("Revoked %d tokens for user %s", count, user_id)
        return count

    def cleanup_expired(self) -> dict[str, int]:
        """Remove expired access tokens, refresh tokens and authorization codes."""
        result = {
            "access_tokens": self.storage.access_tokens.delete_expired(),
            "refresh_tokens": self.storage.refresh_tokens.delete_expired(),
            "authorization_codes": self.storage.codes.delete_expired(),
        }
        logger.info("Expired credential cleanup: %s", result)
        return result

    def create_user(
        self, email: str, username: str, password: str, roles: list[str] | None = None
    ) -> User:
        """Store a resource owner with a bcrypt password hash."""
        if self.storage.users.find_by_username(username) is not None:
            raise ValueError(f"Username '{username}' is already taken")
        if self.storage.users.find_by_email(email) is not None:
            raise ValueError(f"Email '{email}' is already taken")

        user = User(
            email=email,
            username=username,
            password_hash=self.hasher.hash(password),
            roles=list(roles or []),
        )
        self.storage.users.save(user)
        return user


# Singleton
_server: AuthorizationServer | None = None


def get_oauth_server() -> AuthorizationServer:
    global _server
    if _server is None:
        from authgate.config import get_settings

        _server = AuthorizationServer.from_settings(get_settings())
    return _server


def reset_oauth_server() -> None:
    global _server
    _server = None
