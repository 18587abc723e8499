# Opaque credential generation.
# Created: 2026-09-14
#
# All values come from the secrets module (OS CSPRNG), hex-encoded.

from __future__ import annotations

import secrets

_LONG_BYTES = 32  # 64 hex chars
_SHORT_BYTES = 16  # 32 hex chars


class TokenGenerator:
    """Generates access/refresh tokens, authorization codes and client credentials."""

    def generate_access_token(self) -> str:
        return secrets.token_hex(_LONG_BYTES)

    def generate_refresh_token(self) -> str:
        return secrets.token_hex(_LONG_BYTES)

    def generate_authorization_code(self) -> str:
        return secrets.token_hex(_SHORT_BYTES)

    def generate_client_id(self) -> str:
        return secrets.token_hex(_SHORT_BYTES)

    def generate_client_secret(self) -> str:
        return secrets.token_hex(_LONG_BYTES)
