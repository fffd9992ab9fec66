"""
JWT-style token creation and verification.

Tokens are base64url-encoded JSON payloads signed with HMAC-SHA256::

    <base64url(payload)>.<hex signature>

``main.create_app`` passes in the secret and TTL from ``JWT_SECRET`` and
``JWT_EXPIRY_SECONDS``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from base64 import b64decode, urlsafe_b64encode
from typing import Any, Callable, Dict, Optional

from auth.models import Identity, TokenClaims

logger = logging.getLogger(__name__)


class TokenService:
    """Issues and verifies signed session tokens."""

    def __init__(
        self,
        secret: str,
        expiry_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret.encode()
        self.expiry_seconds = expiry_seconds
        self._clock = clock

    def _sign(self, segment: bytes) -> str:
        return hmac.new(self._secret, segment, hashlib.sha256).hexdigest()

    def issue(self, identity: Identity) -> str:
        """Create a signed token carrying ``identity`` plus issue and expiry times."""
        now = int(self._clock())
        payload: Dict[str, Any] = {
            "userId": identity.user_id,
            "username": identity.username,
            "access": identity.access,
            "iat": now,
            "exp": now + self.expiry_seconds,
        }
        segment = urlsafe_b64encode(
            json.dumps(payload, separators=(",", ":"), sort_keys=True).encode()
        )
        return segment.decode() + "." + self._sign(segment)

    def verify(self, token: str) -> Optional[TokenClaims]:
        """
        Verify ``token`` and return its claims.

        Returns ``None`` for a malformed, tampered or expired token.
        """
        try:
            parts = token.split(".")
            if len(parts) != 2:
                raise ValueError("bad format")
            segment = parts[0].encode("ascii")
            if not hmac.compare_digest(parts[1], self._sign(segment)):
                raise ValueError("bad signature")
            payload = json.loads(b64decode(segment, altchars=b"-_", validate=True))
            claims = _claims_from_payload(payload)
            if claims.expires_at <= self._clock():
                raise ValueError("token expired")
            return claims
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.debug("Rejected token: %s", exc)
            return None


def _claims_from_payload(payload: Any) -> TokenClaims:
    if not isinstance(payload, dict):
        raise ValueError("payload is not an object")
    user_id, username = payload["userId"], payload["username"]
    access = payload.get("access") or {}
    iat, exp = payload["iat"], payload["exp"]
    if not isinstance(user_id, str) or not isinstance(username, str):
        raise ValueError("bad identity claims")
    if not isinstance(access, dict):
        raise ValueError("bad access claim")
    if not isinstance(iat, int) or not isinstance(exp, int):
        raise ValueError("bad timestamps")
    return TokenClaims(
        user_id=user_id,
        username=username,
        access=access,
        issued_at=iat,
        expires_at=exp,
    )
