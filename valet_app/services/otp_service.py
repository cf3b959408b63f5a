# valet_app/services/otp_service.py
"""
Login OTP challenge store.

issue_challenge  — replaces any challenge for the phone with a fresh 6-digit code (5 min).
verify_challenge — single use: the matching challenge is deleted on success or on expiry.
                   The delete is conditional; of two racing verifications only one matches.

The unique index on otp_challenges.phone keeps at most one live challenge per phone,
so two concurrent issues for the same phone cannot both insert.
"""

import secrets
from datetime import timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from valet_app.config import settings
from valet_app.database import storage_errors
from valet_app.errors import ChallengeNotFound, ChallengeExpired, Conflict
from valet_app.models.otp_challenge import OTPChallenge
from valet_app.utils.clock import Clock, utcnow
from valet_app.utils.identifiers import new_id
from valet_app.utils.logger import get_logger

logger = get_logger(__name__)

CODE_DIGITS = 6


def generate_code() -> str:
    """Uniformly random numeric code, leading zeros kept."""
    return f"{secrets.randbelow(10 ** CODE_DIGITS):0{CODE_DIGITS}d}"


def issue_challenge(db: Session, phone: str, role: str, clock: Clock = utcnow) -> str:
    code = generate_code()
    now = clock()
    with storage_errors(db, "generate OTP"):
        db.query(OTPChallenge).filter(OTPChallenge.phone == phone).delete(synchronize_session=False)
        db.add(OTPChallenge(
            id=new_id(),
            phone=phone,
            code=code,
            role=role,
            expires_at=now + timedelta(minutes=settings.LOGIN_OTP_TTL_MINUTES),
            created_at=now,
        ))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"[OTP] Concurrent challenge issued for {phone}")
            raise Conflict("Another OTP was just issued for this phone, try again")
    return code


def verify_challenge(db: Session, phone: str, code: str, clock: Clock = utcnow) -> str:
    """Consume the challenge matching phone and code. Returns the role it was issued for."""
    with storage_errors(db, "verify OTP"):
        challenge = (
            db.query(OTPChallenge)
            .filter(OTPChallenge.phone == phone, OTPChallenge.code == code)
            .first()
        )
        if not challenge:
            raise ChallengeNotFound("Invalid OTP")

        role = challenge.role
        expired = clock() > challenge.expires_at
        # Only the caller whose delete matched the row gets to use the code
        consumed = (
            db.query(OTPChallenge)
            .filter(OTPChallenge.id == challenge.id, OTPChallenge.code == code)
            .delete(synchronize_session=False)
        )
        db.commit()

    if consumed == 0:
        logger.warning(f"[OTP] Challenge for {phone} already consumed")
        raise ChallengeNotFound("Invalid OTP")
    if expired:
        logger.info(f"[OTP] Expired challenge for {phone} discarded")
        raise ChallengeExpired("OTP expired")
    return role
