# Scope validation.
# Created: 2026-09-14

from __future__ import annotations

from collections.abc import Iterable

from authgate.oauth2.errors import ErrorKind, OAuth2Error
from authgate.oauth2.repositories import ScopeRepository


def parse_scope(scope: str | None) -> list[str]:
    """Split a space-delimited scope parameter, dropping empty items."""
    if not scope:
        return []
    return [s for s in scope.split(" ") if s]


def format_scope(scopes: Iterable[str]) -> str:
    return " ".join(scopes)


class ScopeValidator:
    """Checks requested scopes exist and are permitted for a client."""

    def __init__(self, scopes: ScopeRepository):
        self._scopes = scopes

    def validate(self, requested: list[str], allowed: list[str]) -> list[str]:
        """Return *requested* unchanged (order preserved) or raise INVALID_SCOPE."""
        if not requested:
            return []

        existing = {s.identifier for s in self._scopes.find_by_identifiers(requested)}
        unknown = [s for s in requested if s not in existing]
        if unknown:
            raise OAuth2Error(
                ErrorKind.INVALID_SCOPE,
                f"Invalid scopes requested: {', '.join(unknown)}",
            )

        allowed_set = set(allowed)
        disallowed = [s for s in requested if s not in allowed_set]
        if disallowed:
            raise OAuth2Error(
                ErrorKind.INVALID_SCOPE,
                f"Scopes not allowed for this client: {', '.join(disallowed)}",
            )

        return list(requested)
