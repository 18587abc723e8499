# Repository protocols — the persistence contracts the engine depends on.
# Created: 2026-09-14
#
# Implement these to back the engine with another store (SQL, Redis, ...).
# ``get_*`` lookups raise EntityNotFoundError; ``find_*`` lookups return None.
# ``lock=True`` means the record is read for update inside an open
# transaction, so two concurrent consumers cannot both observe it unused.

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from authgate.oauth2.models import (
    AccessToken,
    AuthorizationCode,
    OAuthClient,
    RefreshToken,
    Scope,
    User,
)


class TransactionManager(Protocol):
    """Unit-of-work boundary for multi-entity mutations."""

    def transaction(self) -> AbstractContextManager[None]:
        """Commit on normal exit, roll back if the block raises."""
        ...


class AccessTokenRepository(Protocol):
    def find_by_token(self, token: str) -> AccessToken | None: ...

    def get_by_token(self, token: str, lock: bool = False) -> AccessToken: ...

    def find_by_user(self, user_id: str) -> list[AccessToken]: ...

    def find_by_client(self, client_id: str) -> list[AccessToken]: ...

    def save(self, token: AccessToken) -> None: ...

    def delete(self, token: AccessToken) -> None: ...

    def delete_expired(self) -> int:
        """Remove expired tokens; return how many were removed."""
        ...

    def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every unrevoked token of the user; return the count."""
        ...

    def revoke_all_for_client(self, client_id: str) -> int: ...


class RefreshTokenRepository(Protocol):
    def find_by_token(self, token: str) -> RefreshToken | None: ...

    def get_by_token(self, token: str, lock: bool = False) -> RefreshToken: ...

    def find_by_user(self, user_id: str) -> list[RefreshToken]: ...

    def save(self, token: RefreshToken) -> None: ...

    def delete(self, token: RefreshToken) -> None: ...

    def delete_expired(self) -> int: ...

    def revoke_all_for_user(self, user_id: str) -> int: ...

    def revoke_all_for_client(self, client_id: str) -> int: ...


class AuthorizationCodeRepository(Protocol):
    def find_by_code(self, code: str) -> AuthorizationCode | None: ...

    def get_by_code(self, code: str, lock: bool = False) -> AuthorizationCode: ...

    def save(self, code: AuthorizationCode) -> None: ...

    def delete(self, code: AuthorizationCode) -> None: ...

    def delete_expired(self) -> int: ...


class ClientRepository(Protocol):
    def find_by_client_id(self, client_id: str) -> OAuthClient | None: ...

    def get_by_client_id(self, client_id: str, lock: bool = False) -> OAuthClient: ...

    def find_all(self) -> list[OAuthClient]: ...

    def find_active(self) -> list[OAuthClient]: ...

    def save(self, client: OAuthClient) -> None: ...

    def delete(self, client: OAuthClient) -> None:
        """Delete the client together with its tokens and codes."""
        ...


class ScopeRepository(Protocol):
    def find_by_identifier(self, identifier: str) -> Scope | None: ...

    def find_all(self) -> list[Scope]: ...

    def find_defaults(self) -> list[Scope]: ...

    def find_by_identifiers(self, identifiers: list[str]) -> list[Scope]: ...

    def save(self, scope: Scope) -> None: ...


class UserRepository(Protocol):
    def find_by_id(self, user_id: str) -> User | None: ...

    def find_by_username(self, username: str) -> User | None: ...

    def find_by_email(self, email: str) -> User | None: ...

    def save(self, user: User) -> None: ...
