# valet_app/services/auth_service.py
"""
Login flow: phone + role → OTP → verified user + signed token.

request_login   — issue a challenge, log it, hand it to the notifier, return it.
complete_login  — consume the challenge, resolve/create the user, mint a 30-day token.
"""

from typing import Optional
from sqlalchemy.orm import Session
from valet_app.errors import (
    InvalidArgument, InvalidCredential, CredentialExpired,
    ChallengeNotFound, ChallengeExpired,
)
from valet_app.models.user import Role, User
from valet_app.services import notifier
from valet_app.services.identity_service import resolve_or_create
from valet_app.services.otp_service import issue_challenge, verify_challenge
from valet_app.services.token_service import mint_token
from valet_app.utils.clock import Clock, utcnow
from valet_app.utils.logger import get_logger

logger = get_logger(__name__)

VALID_ROLES = {r.value for r in Role}


async def request_login(db: Session, phone: str, role: str, clock: Clock = utcnow) -> str:
    if role not in VALID_ROLES:
        raise InvalidArgument("Invalid role. Must be 'customer' or 'valet'")

    code = issue_challenge(db, phone, role, clock=clock)

    # No real SMS channel is required: the code stays visible in the logs
    logger.info("========================================")
    logger.info(f"[AUTH] OTP for {phone} ({role}): {code}")
    logger.info("========================================")

    await notifier.send_code(phone, code, "login")
    return code


def complete_login(db: Session, phone: str, code: str, name: str = "",
                   venue_name: Optional[str] = None, clock: Clock = utcnow) -> tuple[User, str]:
    try:
        role = verify_challenge(db, phone, code, clock=clock)
    except ChallengeNotFound:
        logger.warning(f"[AUTH] Invalid OTP for {phone}")
        raise InvalidCredential("Invalid OTP")
    except ChallengeExpired:
        logger.warning(f"[AUTH] Expired OTP for {phone}")
        raise CredentialExpired("OTP expired")

    user = resolve_or_create(db, phone, role, name=name, venue_name=venue_name, clock=clock)
    token = mint_token(user, clock=clock)
    logger.info(f"[AUTH] {role} {user.id} logged in")
    return user, token
