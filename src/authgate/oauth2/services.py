# Credential lifecycle services — create, validate, consume, revoke.
# Created: 2026-09-14
#
# Consumption of authorization codes and refresh tokens reads the record
# with lock=True inside a store transaction, so the check and the
# used/revoked flip happen atomically.

from __future__ import annotations

import logging
from datetime import timedelta

from authgate.oauth2.errors import EntityNotFoundError, ErrorKind, OAuth2Error
from authgate.oauth2.models import (
    AccessToken,
    AuthorizationCode,
    OAuthClient,
    RefreshToken,
    utcnow,
)
from authgate.oauth2.pkce import PLAIN, PkceValidator
from authgate.oauth2.repositories import (
    AccessTokenRepository,
    AuthorizationCodeRepository,
    RefreshTokenRepository,
    TransactionManager,
)
from authgate.oauth2.tokens import TokenGenerator

logger = logging.getLogger(__name__)

# Token lifetimes
ACCESS_TOKEN_TTL = timedelta(hours=1)
REFRESH_TOKEN_TTL = timedelta(days=30)
CODE_TTL = timedelta(minutes=10)


class AccessTokenService:
    def __init__(
        self,
        tokens: AccessTokenRepository,
        generator: TokenGenerator | None = None,
        ttl: timedelta = ACCESS_TOKEN_TTL,
    ):
        self._tokens = tokens
        self._generator = generator or TokenGenerator()
        self.ttl = ttl

    def create(
        self, client: OAuthClient, scopes: list[str], user_id: str | None = None
    ) -> AccessToken:
        now = utcnow()
        token = AccessToken(
            token=self._generator.generate_access_token(),
            client_id=client.client_id,
            user_id=user_id,
            scopes=list(scopes),
            expires_at=now + self.ttl,
            created_at=now,
        )
        self._tokens.save(token)
        return token

    def validate(self, token: str) -> AccessToken:
        """Return the live token or raise INVALID_TOKEN.

        Missing, expired and revoked tokens raise the identical error, so
        the response cannot be used as an existence oracle.
        """
        access_token = self._tokens.find_by_token(token)
        if access_token is None or not access_token.is_valid():
            raise OAuth2Error(ErrorKind.INVALID_TOKEN, "Invalid access token")
        return access_token

    def revoke(self, token: str) -> bool:
        """Revoke idempotently (RFC 7009). Returns False if no such token exists."""
        access_token = self._tokens.find_by_token(token)
        if access_token is None:
            return False
        if access_token.revoke():
            self._tokens.save(access_token)
        return True


class RefreshTokenService:
    def __init__(
        self,
        tokens: RefreshTokenRepository,
        transactions: TransactionManager,
        generator: TokenGenerator | None = None,
        ttl: timedelta = REFRESH_TOKEN_TTL,
    ):
        self._tokens = tokens
        self._transactions = transactions
        self._generator = generator or TokenGenerator()
        self.ttl = ttl

    def create(self, client: OAuthClient, user_id: str, scopes: list[str]) -> RefreshToken:
        now = utcnow()
        token = RefreshToken(
            token=self._generator.generate_refresh_token(),
            client_id=client.client_id,
            user_id=user_id,
            scopes=list(scopes),
            expires_at=now + self.ttl,
            created_at=now,
        )
        self._tokens.save(token)
        return token

    def validate_and_consume(self, token: str, client: OAuthClient) -> RefreshToken:
        """Check the token and revoke it in the same step (rotation).

        The returned record is already revoked; its scopes and user_id are
        what the caller carries over to the replacement tokens.
        """
        with self._transactions.transaction():
            try:
                refresh_token = self._tokens.get_by_token(token, lock=True)
            except EntityNotFoundError:
                raise OAuth2Error(ErrorKind.INVALID_GRANT, "Invalid refresh token") from None

            if not refresh_token.is_valid():
                if refresh_token.revoked:
                    logger.warning(
                        "Replay of revoked refresh token %s... by client %s",
                        token[:8],
                        client.client_id,
                    )
                raise OAuth2Error(ErrorKind.INVALID_GRANT, "Refresh token is expired or revoked")

            if refresh_token.client_id != client.client_id:
                raise OAuth2Error(
                    ErrorKind.INVALID_GRANT, "Refresh token does not belong to this client"
                )

            refresh_token.revoke()
            self._tokens.save(refresh_token)

        return refresh_token

    def revoke(self, token: str) -> bool:
        """Revoke idempotently (RFC 7009). Returns False if no such token exists."""
        refresh_token = self._tokens.find_by_token(token)
        if refresh_token is None:
            return False
        if refresh_token.revoke():
            self._tokens.save(refresh_token)
        return True


class AuthorizationCodeService:
    def __init__(
        self,
        codes: AuthorizationCodeRepository,
        transactions: TransactionManager,
        generator: TokenGenerator | None = None,
        pkce: PkceValidator | None = None,
        ttl: timedelta = CODE_TTL,
    ):
        self._codes = codes
        self._transactions = transactions
        self._generator = generator or TokenGenerator()
        self._pkce = pkce or PkceValidator()
        self.ttl = ttl

    def create(
        self,
        client: OAuthClient,
        user_id: str,
        redirect_uri: str,
        scopes: list[str],
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
    ) -> AuthorizationCode:
        now = utcnow()
        code = AuthorizationCode(
            code=self._generator.generate_authorization_code(),
            client_id=client.client_id,
            user_id=user_id,
            redirect_uri=redirect_uri,
            scopes=list(scopes),
            expires_at=now + self.ttl,
            created_at=now,
        )
        if code_challenge is not None:
            code.code_challenge = code_challenge
            code.code_challenge_method = code_challenge_method or PLAIN

        self._codes.save(code)
        return code

    def validate_and_consume(
        self,
        code: str,
        client: OAuthClient,
        redirect_uri: str,
        code_verifier: str | None = None,
    ) -> AuthorizationCode:
        with self._transactions.transaction():
            try:
                auth_code = self._codes.get_by_code(code, lock=True)
            except EntityNotFoundError:
                raise OAuth2Error(ErrorKind.INVALID_GRANT, "Invalid authorization code") from None

            if not auth_code.is_valid():
                if auth_code.used:
                    logger.warning(
                        "Replay of used authorization code %s... by client %s",
                        code[:8],
                        client.client_id,
                    )
                raise OAuth2Error(
                    ErrorKind.INVALID_GRANT, "Authorization code is expired or has been used"
                )

            if auth_code.client_id != client.client_id:
                raise OAuth2Error(
                    ErrorKind.INVALID_GRANT, "Authorization code does not belong to this client"
                )

            if auth_code.redirect_uri != redirect_uri:
                raise OAuth2Error(ErrorKind.INVALID_GRANT, "Redirect URI mismatch")

            if auth_code.code_challenge is not None:
                if code_verifier is None:
                    raise OAuth2Error(
                        ErrorKind.INVALID_REQUEST, "Code verifier required for PKCE"
                    )
                method = auth_code.code_challenge_method or PLAIN
                if not self._pkce.validate(code_verifier, auth_code.code_challenge, method):
                    raise OAuth2Error(ErrorKind.INVALID_GRANT, "PKCE validation failed")

            auth_code.mark_used()
            self._codes.save(auth_code)

        return auth_code
