# OAuth2 error taxonomy (RFC 6749 section 5.2, RFC 6750, RFC 7009).
# Created: 2026-09-14

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Engine error kinds; each value is (rfc_code, http_status)."""

    INVALID_CLIENT = ("invalid_client", 401)
    INVALID_GRANT = ("invalid_grant", 400)
    INVALID_REQUEST = ("invalid_request", 400)
    INVALID_SCOPE = ("invalid_scope", 400)
    INVALID_TOKEN = ("invalid_token", 401)
    UNAUTHORIZED_CLIENT = ("unauthorized_client", 400)
    UNSUPPORTED_GRANT_TYPE = ("unsupported_grant_type", 400)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def status_code(self) -> int:
        return self.value[1]


class OAuth2Error(Exception):
    """A protocol error carrying its RFC code, description and HTTP status.

    Callers match on ``err.kind``::

        try:
            ...
        except OAuth2Error as err:
            if err.kind is ErrorKind.INVALID_GRANT:
                ...
    """

    def __init__(self, kind: ErrorKind, description: str):
        super().__init__(description)
        self.kind = kind
        self.description = description

    @property
    def error(self) -> str:
        return self.kind.code

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "error_description": self.description}

    def __repr__(self) -> str:
        return f"OAuth2Error({self.kind.name}, {self.description!r})"


class EntityNotFoundError(LookupError):
    """Raised by repository ``get_*`` lookups when nothing matches."""

    def __init__(self, entity: str, identifier: str):
        super().__init__(f"{entity} not found: {identifier}")
        self.entity = entity
        self.identifier = identifier
