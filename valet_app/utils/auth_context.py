# valet_app/utils/auth_context.py
"""
Bearer-token authentication.
get_auth_context is a FastAPI dependency producing the verified caller identity
every lifecycle operation takes as its `actor`.
"""

from dataclasses import dataclass
from typing import Optional
from fastapi import Header
from valet_app.errors import InvalidCredential, Forbidden
from valet_app.services.token_service import read_token


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    role: str                    # customer | valet
    phone: Optional[str] = None


def get_auth_context(authorization: Optional[str] = Header(default=None)) -> AuthContext:
    """Reads `Authorization: Bearer <token>`. Raises InvalidCredential if missing or bad."""
    if not authorization:
        raise InvalidCredential("Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise InvalidCredential("Invalid authorization header format")

    claims = read_token(token.strip())
    return AuthContext(user_id=claims["user_id"], role=claims["role"], phone=claims.get("phone"))


def require_role(actor: AuthContext, role) -> None:
    """Raises Forbidden unless the caller holds `role` (a models.user.Role)."""
    if actor.role != role.value:
        raise Forbidden(f"Only a {role.value} can do this")
