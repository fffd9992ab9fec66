"""
FastAPI dependencies for authentication.

``AccessGate`` turns the ``Authorization`` header of a request into an
``Identity`` or rejects it with ``Unauthorized``.  ``get_current_identity``
runs the gate in front of protected routes and attaches the identity to
``request.state``.
"""

from __future__ import annotations

from typing import Sequence

from fastapi import Request

from auth.errors import Unauthorized
from auth.jwt import TokenService
from auth.models import Identity
from auth.service import AuthService


class AccessGate:
    """Bearer-token check performed once per protected request."""

    scheme = "bearer"

    def __init__(self, tokens: TokenService) -> None:
        self.tokens = tokens

    def authenticate(self, header_values: Sequence[str]) -> Identity:
        if len(header_values) != 1:
            raise Unauthorized()
        parts = header_values[0].split(" ")
        if len(parts) != 2 or parts[0].lower() != self.scheme or not parts[1]:
            raise Unauthorized()

        claims = self.tokens.verify(parts[1])
        if claims is None:
            raise Unauthorized("Invalid or expired token")
        return claims.identity


def get_auth_service(request: Request) -> AuthService:
    """Return the ``AuthService`` composed in ``main.create_app``."""
    return request.app.state.auth_service


async def get_current_identity(request: Request) -> Identity:
    """
    Verify the Bearer token and return the authenticated ``Identity``.
    """
    gate: AccessGate = request.app.state.access_gate
    identity = gate.authenticate(request.headers.getlist("authorization"))
    request.state.identity = identity
    return identity
