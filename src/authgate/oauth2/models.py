# OAuth2 data models.
# Created: 2026-09-14
#
# Plain dataclasses; tokens and codes reference their client by client_id
# and their resource owner by user_id. Serialization helpers back the
# file-backed store.

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar


def utcnow() -> datetime:
    return datetime.now(UTC)


class GrantType(str, Enum):
    AUTHORIZATION_CODE = "authorization_code"
    CLIENT_CREDENTIALS = "client_credentials"
    REFRESH_TOKEN = "refresh_token"

    @classmethod
    def from_strings(cls, values: list[str]) -> list[GrantType]:
        """Parse grant type strings; raises ValueError on an unknown value."""
        return [cls(v) for v in values]

    @staticmethod
    def to_strings(values: list[GrantType]) -> list[str]:
        return [v.value for v in values]


class _Record:
    """Dict round-tripping for dataclass records with datetime fields."""

    _DATETIME_FIELDS: ClassVar[tuple[str, ...]] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, list):
                value = list(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        kwargs = {k: v for k, v in data.items() if k in known}
        for name in cls._DATETIME_FIELDS:
            if kwargs.get(name):
                kwargs[name] = datetime.fromisoformat(kwargs[name])
        return cls(**kwargs)


@dataclass
class User(_Record):
    """Resource owner. Registration and login live outside this package."""

    email: str
    username: str
    password_hash: str
    roles: list[str] = field(default_factory=list)
    enabled: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=utcnow)

    _DATETIME_FIELDS: ClassVar[tuple[str, ...]] = ("created_at",)

    def get_roles(self) -> list[str]:
        # Every user has at least ROLE_USER
        roles = list(self.roles)
        if "ROLE_USER" not in roles:
            roles.append("ROLE_USER")
        return roles


@dataclass
class OAuthClient(_Record):
    """Registered OAuth2 client."""

    client_id: str
    client_secret_hash: str
    name: str
    description: str | None = None
    redirect_uris: list[str] = field(default_factory=list)
    grant_types: list[str] = field(default_factory=list)
    allowed_scopes: list[str] = field(default_factory=list)
    confidential: bool = True
    active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    _DATETIME_FIELDS: ClassVar[tuple[str, ...]] = ("created_at", "updated_at")

    def allows_grant(self, grant_type: GrantType | str) -> bool:
        value = grant_type.value if isinstance(grant_type, GrantType) else grant_type
        return value in self.grant_types


@dataclass
class Scope(_Record):
    """A named permission unit."""

    identifier: str
    description: str | None = None
    is_default: bool = False
    created_at: datetime = field(default_factory=utcnow)

    _DATETIME_FIELDS: ClassVar[tuple[str, ...]] = ("created_at",)


@dataclass
class AuthorizationCode(_Record):
    """Short-lived, single-use authorization code."""

    code: str
    client_id: str
    user_id: str
    redirect_uri: str
    expires_at: datetime
    scopes: list[str] = field(default_factory=list)
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    used: bool = False
    used_at: datetime | None = None

    _DATETIME_FIELDS: ClassVar[tuple[str, ...]] = ("expires_at", "created_at", "used_at")

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def is_valid(self, now: datetime | None = None) -> bool:
        return not self.is_expired(now) and not self.used

    def mark_used(self) -> None:
        if not self.used:
            self.used = True
            self.used_at = utcnow()


@dataclass
class _BearerCredential(_Record):
    token: str
    client_id: str
    expires_at: datetime
    scopes: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    revoked: bool = False
    revoked_at: datetime | None = None

    _DATETIME_FIELDS: ClassVar[tuple[str, ...]] = ("expires_at", "created_at", "revoked_at")

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def is_valid(self, now: datetime | None = None) -> bool:
        return not self.is_expired(now) and not self.revoked

    def revoke(self) -> bool:
        """Revoke once. Returns False if already revoked (revoked_at kept)."""
        if self.revoked:
            return False
        self.revoked = True
        self.revoked_at = utcnow()
        return True

    def expires_in(self, now: datetime | None = None) -> int:
        return max(0, math.ceil((self.expires_at - (now or utcnow())).total_seconds()))


@dataclass
class AccessToken(_BearerCredential):
    """Bearer access token. user_id is None for client_credentials grants."""

    user_id: str | None = None


@dataclass
class RefreshToken(_BearerCredential):
    """Refresh token; always bound to a resource owner."""

    user_id: str = ""
