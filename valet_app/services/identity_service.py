# valet_app/services/identity_service.py
"""
Identity directory — resolves (phone, role) to a stable user record.
Login never edits an existing profile; only update_profile does.
"""

from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from valet_app.database import storage_errors
from valet_app.errors import NotFound
from valet_app.models.user import User, Role
from valet_app.utils.clock import Clock, utcnow
from valet_app.utils.identifiers import new_id, parse_id
from valet_app.utils.logger import get_logger

logger = get_logger(__name__)


def lookup_user(db: Session, user_id: str) -> Optional[User]:
    """Find a user by id. Returns None if not found."""
    with storage_errors(db, "fetch user"):
        return db.query(User).filter(User.id == user_id).first()


def get_user(db: Session, user_id: str) -> User:
    user = lookup_user(db, parse_id(user_id, "user ID"))
    if not user:
        raise NotFound("User not found")
    return user


def resolve_or_create(db: Session, phone: str, role: str, name: str = "",
                      venue_name: Optional[str] = None, clock: Clock = utcnow) -> User:
    with storage_errors(db, "create user"):
        user = db.query(User).filter(User.phone == phone, User.role == role).first()
        if user:
            return user

        user = User(
            id=new_id(),
            phone=phone,
            name=name or "",
            role=role,
            venue_name=venue_name if role == Role.VALET.value else None,
            created_at=clock(),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Another login for the same phone+role created it first
            db.rollback()
            return db.query(User).filter(User.phone == phone, User.role == role).one()

    logger.info(f"[AUTH] New {role} registered: {phone}")
    return user


def update_profile(db: Session, user_id: str, name: str, venue_name: Optional[str] = None) -> User:
    """Explicit profile edit. Venue is only overwritten when supplied."""
    user = get_user(db, user_id)
    with storage_errors(db, "update profile"):
        user.name = name
        if venue_name:
            user.venue_name = venue_name
        db.commit()
        db.refresh(user)
    logger.info(f"[AUTH] Profile updated for {user.id}")
    return user
