# PKCE verification (RFC 7636).
# Created: 2026-09-14

from __future__ import annotations

import base64
import hashlib
import hmac

from authgate.oauth2.errors import ErrorKind, OAuth2Error

PLAIN = "plain"
S256 = "S256"
SUPPORTED_METHODS = frozenset({PLAIN, S256})


def s256_challenge(code_verifier: str) -> str:
    """BASE64URL(SHA256(code_verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


class PkceValidator:
    """Checks a code_verifier against the challenge stored with an authorization code."""

    def validate(self, code_verifier: str, code_challenge: str, method: str) -> bool:
        """Return True when the verifier matches.

        Raises ``OAuth2Error(INVALID_REQUEST)`` for an unsupported method.
        Comparisons are constant-time.
        """
        if method == PLAIN:
            return hmac.compare_digest(code_challenge.encode(), code_verifier.encode())

        if method == S256:
            try:
                computed = s256_challenge(code_verifier)
            except UnicodeEncodeError:
                # RFC 7636 verifiers are ASCII; anything else cannot match
                return False
            return hmac.compare_digest(code_challenge.encode(), computed.encode())

        raise OAuth2Error(
            ErrorKind.INVALID_REQUEST, f"Unsupported code challenge method: {method}"
        )
