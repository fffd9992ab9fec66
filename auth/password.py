"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and configurable work factor.
"""

from __future__ import annotations

from functools import cached_property

import bcrypt

# bcrypt only looks at the first 72 bytes; newer releases reject longer input.
MAX_PASSWORD_BYTES = 72
MIN_ROUNDS = 10


class PasswordHasher:
    """bcrypt hasher bound to a fixed work factor."""

    def __init__(self, rounds: int) -> None:
        if rounds < MIN_ROUNDS:
            raise ValueError(f"bcrypt rounds must be at least {MIN_ROUNDS}")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password (auto-salted, so every call returns a new digest)."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time comparison against a bcrypt hash."""
        try:
            return bcrypt.checkpw(password.encode(), password_hash.encode())
        except (ValueError, TypeError, AttributeError):
            return False

    @cached_property
    def _dummy_hash(self) -> str:
        return self.hash("dummy-password-for-unknown-users")

    def verify_dummy(self, password: str) -> bool:
        """Spend one bcrypt check at this work factor; always ``False``."""
        self.verify(password, self._dummy_hash)
        return False
