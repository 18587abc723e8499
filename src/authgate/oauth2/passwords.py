# Secret hashing for client secrets and user passwords (bcrypt).
# Created: 2026-09-14

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes of its input
MAX_SECRET_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing with a configurable cost."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self.rounds = rounds

    def hash(self, secret: str) -> str:
        raw = secret.encode("utf-8")
        if len(raw) > MAX_SECRET_BYTES:
            raise ValueError(f"Secret exceeds {MAX_SECRET_BYTES} bytes")
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, hashed: str, secret: str) -> bool:
        raw = secret.encode("utf-8")
        if not hashed or len(raw) > MAX_SECRET_BYTES:
            return False
        try:
            return bcrypt.checkpw(raw, hashed.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False
