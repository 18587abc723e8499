# OAuth2 storage — reference implementation of the repository protocols.
# Created: 2026-09-14
#
# In-memory state guarded by one re-entrant lock, optionally mirrored to a
# JSON file so clients, users and tokens survive restarts. Authorization
# codes stay in memory (short-lived, 10 min TTL).

from __future__ import annotations

import copy
import json
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from authgate.oauth2.errors import EntityNotFoundError
from authgate.oauth2.models import (
    AccessToken,
    AuthorizationCode,
    OAuthClient,
    RefreshToken,
    Scope,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)

# Journal marker for a record that did not exist before the transaction
_ABSENT = object()

# Seeded on first start when missing
DEFAULT_SCOPES = (
    Scope("openid", "OpenID Connect scope for user authentication", is_default=True),
    Scope("profile", "Access to user profile information", is_default=True),
    Scope("email", "Access to user email address", is_default=True),
    Scope("offline_access", "Access to refresh tokens for offline access"),
)


class OAuthStorage:
    """Thread-safe OAuth2 store with optional JSON persistence.

    ``transaction()`` holds the store lock for the whole block and writes to
    disk on a clean exit. Each record the block touches (a ``lock=True``
    read, a save, a delete or a bulk revoke) is copied into a journal the
    first time; if the block raises, only those records are put back.
    Mutate records in place only after reading them with ``lock=True``.
    Reads with ``lock=True`` are only legal inside a transaction.
    """

    def __init__(self, persist_path: Path | None = None, seed_scopes: bool = True):
        self._lock = threading.RLock()
        self._local = threading.local()
        self._persist_path = persist_path

        self._clients: dict[str, OAuthClient] = {}
        self._scopes: dict[str, Scope] = {}
        self._users: dict[str, User] = {}
        self._access_tokens: dict[str, AccessToken] = {}
        self._refresh_tokens: dict[str, RefreshToken] = {}
        self._codes: dict[str, AuthorizationCode] = {}

        self._load()
        if seed_scopes:
            for scope in DEFAULT_SCOPES:
                self._scopes.setdefault(scope.identifier, copy.copy(scope))

        self.access_tokens = AccessTokenStore(self)
        self.refresh_tokens = RefreshTokenStore(self)
        self.codes = AuthorizationCodeStore(self)
        self.clients = ClientStore(self)
        self.scopes = ScopeStore(self)
        self.users = UserStore(self)

    # -- transactions ------------------------------------------------------

    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)

    def in_transaction(self) -> bool:
        return self._depth() > 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth() == 0
            if outermost:
                self._local.journal = {}
            self._local.depth = self._depth() + 1
            try:
                yield
            except BaseException:
                if outermost:
                    self._rollback()
                    logger.debug("OAuth store transaction rolled back")
                raise
            finally:
                self._local.depth -= 1
                if outermost:
                    self._local.journal = None
            if outermost:
                self._save()

    def _require_transaction(self, lock: bool) -> None:
        if lock and not self.in_transaction():
            raise RuntimeError("Locked reads require an open transaction")

    def _changed(self) -> None:
        # Inside a transaction the write happens at commit
        if not self.in_transaction():
            self._save()

    def _touch(self, table: str, key: str) -> None:
        """Journal the pre-transaction state of one record (first touch only)."""
        journal = getattr(self._local, "journal", None)
        if journal is None or (table, key) in journal:
            return
        current = getattr(self, table).get(key, _ABSENT)
        journal[(table, key)] = current if current is _ABSENT else copy.deepcopy(current)

    def journal_size(self) -> int:
        """Number of records journaled by the current thread's transaction."""
        return len(getattr(self._local, "journal", None) or {})

    def _rollback(self) -> None:
        for (table, key), original in self._local.journal.items():
            records = getattr(self, table)
            if original is _ABSENT:
                records.pop(key, None)
            else:
                records[key] = original

    # -- persistence -------------------------------------------------------

    def _load(self) -> None:
        """Load persisted records from disk on startup."""
        path = self._persist_path
        if path is None or not path.exists():
            return
        try:
            data = json.loads(path.read_text())
            for entry in data.get("clients", []):
                client = OAuthClient.from_dict(entry)
                self._clients[client.client_id] = client
            for entry in data.get("scopes", []):
                scope = Scope.from_dict(entry)
                self._scopes[scope.identifier] = scope
            for entry in data.get("users", []):
                user = User.from_dict(entry)
                self._users[user.id] = user
            for entry in data.get("access_tokens", []):
                token = AccessToken.from_dict(entry)
                self._access_tokens[token.token] = token
            for entry in data.get("refresh_tokens", []):
                token = RefreshToken.from_dict(entry)
                self._refresh_tokens[token.token] = token
            logger.debug(
                "Loaded %d clients, %d access and %d refresh tokens from %s",
                len(self._clients),
                len(self._access_tokens),
                len(self._refresh_tokens),
                path,
            )
        except (json.JSONDecodeError, OSError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Failed to load OAuth store from %s: %s", path, exc)

    def _save(self) -> None:
        """Persist records to disk."""
        path = self._persist_path
        if path is None:
            return
        with self._lock:
            data = {
                "clients": [c.to_dict() for c in self._clients.values()],
                "scopes": [s.to_dict() for s in self._scopes.values()],
                "users": [u.to_dict() for u in self._users.values()],
                "access_tokens": [t.to_dict() for t in self._access_tokens.values()],
                "refresh_tokens": [t.to_dict() for t in self._refresh_tokens.values()],
            }
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2))
            try:
                path.chmod(0o600)
            except OSError:
                pass
        logger.debug("Saved OAuth store to %s", path)


class _StoreView:
    def __init__(self, storage: OAuthStorage):
        self._storage = storage

    @property
    def _lock(self) -> threading.RLock:
        return self._storage._lock


class _BearerTokenStore(_StoreView):
    _entity = "Token"
    _table_name = ""

    def _table(self) -> dict:
        return getattr(self._storage, self._table_name)

    def find_by_token(self, token: str):
        with self._lock:
            return self._table().get(token)

    def get_by_token(self, token: str, lock: bool = False):
        self._storage._require_transaction(lock)
        with self._lock:
            if lock:
                self._storage._touch(self._table_name, token)
            record = self._table().get(token)
        if record is None:
            raise EntityNotFoundError(self._entity, token[:8])
        return record

    def find_by_user(self, user_id: str) -> list:
        with self._lock:
            return [t for t in self._table().values() if t.user_id == user_id]

    def find_by_client(self, client_id: str) -> list:
        with self._lock:
            return [t for t in self._table().values() if t.client_id == client_id]

    def save(self, token) -> None:
        with self._lock:
            self._storage._touch(self._table_name, token.token)
            self._table()[token.token] = token
            self._storage._changed()

    def delete(self, token) -> None:
        with self._lock:
            self._storage._touch(self._table_name, token.token)
            self._table().pop(token.token, None)
            self._storage._changed()

    def delete_expired(self) -> int:
        now = utcnow()
        with self._lock:
            table = self._table()
            expired = [k for k, t in table.items() if t.is_expired(now)]
            for k in expired:
                self._storage._touch(self._table_name, k)
                del table[k]
            if expired:
                self._storage._changed()
        return len(expired)

    def _revoke_where(self, predicate) -> int:
        count = 0
        with self._lock:
            for key, t in self._table().items():
                if predicate(t) and not t.revoked:
                    self._storage._touch(self._table_name, key)
                    t.revoke()
                    count += 1
            if count:
                self._storage._changed()
        return count

    def revoke_all_for_user(self, user_id: str) -> int:
        return self._revoke_where(lambda t: t.user_id == user_id)

    def revoke_all_for_client(self, client_id: str) -> int:
        return self._revoke_where(lambda t: t.client_id == client_id)


class AccessTokenStore(_BearerTokenStore):
    _entity = "AccessToken"
    _table_name = "_access_tokens"


class RefreshTokenStore(_BearerTokenStore):
    _entity = "RefreshToken"
    _table_name = "_refresh_tokens"


class AuthorizationCodeStore(_StoreView):
    def find_by_code(self, code: str) -> AuthorizationCode | None:
        with self._lock:
            return self._storage._codes.get(code)

    def get_by_code(self, code: str, lock: bool = False) -> AuthorizationCode:
        self._storage._require_transaction(lock)
        with self._lock:
            if lock:
                self._storage._touch("_codes", code)
            record = self._storage._codes.get(code)
        if record is None:
            raise EntityNotFoundError("AuthorizationCode", code[:8])
        return record

    def save(self, code: AuthorizationCode) -> None:
        with self._lock:
            self._storage._touch("_codes", code.code)
            self._storage._codes[code.code] = code

    def delete(self, code: AuthorizationCode) -> None:
        with self._lock:
            self._storage._touch("_codes", code.code)
            self._storage._codes.pop(code.code, None)

    def delete_expired(self) -> int:
        now = utcnow()
        with self._lock:
            codes = self._storage._codes
            expired = [k for k, c in codes.items() if c.is_expired(now)]
            for k in expired:
                self._storage._touch("_codes", k)
                del codes[k]
        return len(expired)


class ClientStore(_StoreView):
    def find_by_client_id(self, client_id: str) -> OAuthClient | None:
        with self._lock:
            return self._storage._clients.get(client_id)

    def get_by_client_id(self, client_id: str, lock: bool = False) -> OAuthClient:
        self._storage._require_transaction(lock)
        with self._lock:
            if lock:
                self._storage._touch("_clients", client_id)
            client = self._storage._clients.get(client_id)
        if client is None:
            raise EntityNotFoundError("OAuthClient", client_id)
        return client

    def find_all(self) -> list[OAuthClient]:
        with self._lock:
            return list(self._storage._clients.values())

    def find_active(self) -> list[OAuthClient]:
        return [c for c in self.find_all() if c.active]

    def save(self, client: OAuthClient) -> None:
        with self._lock:
            self._storage._touch("_clients", client.client_id)
            client.updated_at = utcnow()
            self._storage._clients[client.client_id] = client
            self._storage._changed()

    def delete(self, client: OAuthClient) -> None:
        s = self._storage
        with self._lock:
            s._touch("_clients", client.client_id)
            s._clients.pop(client.client_id, None)
            # Tokens and codes go with their client
            for name in ("_access_tokens", "_refresh_tokens", "_codes"):
                table = getattr(s, name)
                owned = [k for k, v in table.items() if v.client_id == client.client_id]
                for k in owned:
                    s._touch(name, k)
                    del table[k]
            s._changed()


class ScopeStore(_StoreView):
    def find_by_identifier(self, identifier: str) -> Scope | None:
        with self._lock:
            return self._storage._scopes.get(identifier)

    def find_all(self) -> list[Scope]:
        with self._lock:
            return list(self._storage._scopes.values())

    def find_defaults(self) -> list[Scope]:
        return [s for s in self.find_all() if s.is_default]

    def find_by_identifiers(self, identifiers: list[str]) -> list[Scope]:
        if not identifiers:
            return []
        with self._lock:
            return [s for i, s in self._storage._scopes.items() if i in identifiers]

    def save(self, scope: Scope) -> None:
        with self._lock:
            self._storage._touch("_scopes", scope.identifier)
            self._storage._scopes[scope.identifier] = scope
            self._storage._changed()


class UserStore(_StoreView):
    def find_by_id(self, user_id: str) -> User | None:
        with self._lock:
            return self._storage._users.get(user_id)

    def find_by_username(self, username: str) -> User | None:
        with self._lock:
            return next((u for u in self._storage._users.values() if u.username == username), None)

    def find_by_email(self, email: str) -> User | None:
        with self._lock:
            return next((u for u in self._storage._users.values() if u.email == email), None)

    def save(self, user: User) -> None:
        with self._lock:
            self._storage._touch("_users", user.id)
            self._storage._users[user.id] = user
            self._storage._changed()
