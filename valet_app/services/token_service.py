# valet_app/services/token_service.py
"""
Signer for identity assertions — HS256 JWTs valid for TOKEN_TTL_DAYS.
Claims: user_id, phone, role, iat, exp.
"""

import jwt
from datetime import timedelta
from valet_app.config import settings
from valet_app.errors import InvalidCredential, CredentialExpired
from valet_app.models.user import User
from valet_app.utils.clock import Clock, utcnow


def mint_token(user: User, clock: Clock = utcnow) -> str:
    now = clock()
    payload = {
        "user_id": user.id,
        "phone": user.phone,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(days=settings.TOKEN_TTL_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def read_token(token: str) -> dict:
    """Verify signature and expiry. Returns the claims."""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise CredentialExpired("Token expired")
    except jwt.InvalidTokenError:
        raise InvalidCredential("Invalid token")

    if not all(claims.get(k) for k in ("user_id", "role")):
        raise InvalidCredential("Invalid token claims")
    return claims
