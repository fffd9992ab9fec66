"""Plain records shared by the hasher, token service, store and Auth Core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass
class Account:
    id: str
    username: str
    password_hash: str
    access: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, attached to the request by the access gate."""

    user_id: str
    username: str
    access: Dict[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def from_account(cls, account: Account) -> "Identity":
        return cls(
            user_id=account.id,
            username=account.username,
            access=dict(account.access),
        )


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    username: str
    access: Dict[str, Any]
    issued_at: int
    expires_at: int

    @property
    def identity(self) -> Identity:
        return Identity(user_id=self.user_id, username=self.username, access=dict(self.access))
