# valet_app/services/session_service.py
"""
Parking session lifecycle engine.

Every transition is one conditional write:
    UPDATE parking_sessions SET ... WHERE id = ? AND status IN (...) [AND customer_id = ?]
The row count is the only concurrency guard. Zero rows matched means another caller
moved the session first (Conflict), the session does not exist (NotFound), or it
belongs to another customer (Forbidden). Nothing is retried here.

Creation is guarded by the unique active_vehicle_id column, so two valets checking in
the same vehicle cannot both get a live session.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from valet_app.config import settings
from valet_app.database import storage_errors
from valet_app.errors import (
    InvalidArgument, NotFound, Conflict, Forbidden,
    InvalidCredential, CredentialExpired, NoChallengeIssued,
)
from valet_app.models.parking_session import ParkingSession, SessionStatus, TERMINAL_STATUSES
from valet_app.models.user import Role, User
from valet_app.models.vehicle import Vehicle
from valet_app.services import notifier
from valet_app.services.enrichment_service import enrich_session, enrich_sessions
from valet_app.services.otp_service import generate_code
from valet_app.services.session_states import (
    TRANSITIONS, PENDING_PICKUP_STATUSES, VALET_STATUS_OPERATIONS, is_terminal,
)
from valet_app.schemas.session import SessionDetailOut
from valet_app.utils.auth_context import AuthContext, require_role
from valet_app.utils.clock import Clock, utcnow
from valet_app.utils.identifiers import new_id, parse_id
from valet_app.utils.logger import get_logger

logger = get_logger(__name__)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _generate_ticket_number(now: datetime) -> str:
    """Date plus random suffix. Not unique, only human-facing."""
    return f"{now:%Y%m%d}-{secrets.randbelow(100000)}"


def _load(db: Session, session_id: str) -> ParkingSession:
    with storage_errors(db, "fetch session"):
        session = db.query(ParkingSession).filter(ParkingSession.id == session_id).first()
    if not session:
        raise NotFound("Session not found")
    return session


def _explain_unmatched(db: Session, operation: str, session_id: str, actor: AuthContext):
    """Classify a conditional write that matched nothing. Always raises."""
    rule = TRANSITIONS[operation]
    current = _load(db, session_id)
    if rule.actor is Role.CUSTOMER and current.customer_id != actor.user_id:
        raise Forbidden("Session belongs to another customer")
    logger.warning(
        f"[SESSION] {operation} rejected for {session_id}: status is '{current.status.value}'"
    )
    raise Conflict(f"Cannot {rule.verb} - session status is '{current.status.value}'")


def _apply(db: Session, operation: str, session_id: str, actor: AuthContext,
           extra_criteria=(), **changes) -> Optional[ParkingSession]:
    """Run one row of the transition table as a conditional update."""
    rule = TRANSITIONS[operation]
    require_role(actor, rule.actor)
    sid = parse_id(session_id, "session ID")

    criteria = [ParkingSession.id == sid, ParkingSession.status.in_(list(rule.sources)), *extra_criteria]
    if rule.actor is Role.CUSTOMER:
        criteria.append(ParkingSession.customer_id == actor.user_id)

    with storage_errors(db, rule.verb):
        query = db.query(ParkingSession).filter(*criteria)
        if rule.target is None:
            matched = query.delete(synchronize_session=False)
        else:
            values = {ParkingSession.status: rule.target, **{
                getattr(ParkingSession, k): v for k, v in changes.items()
            }}
            if is_terminal(rule.target):
                values[ParkingSession.active_vehicle_id] = None
            matched = query.update(values, synchronize_session=False)
        db.commit()

    if matched == 0:
        _explain_unmatched(db, operation, sid, actor)

    logger.info(f"[SESSION] {sid} {operation} by {actor.role} {actor.user_id}"
                + (f" → {rule.target.value}" if rule.target else " → deleted"))
    if rule.target is None:
        return None
    return _load(db, sid)


# ── Creation ─────────────────────────────────────────────────────────────────

def create_session(db: Session, actor: AuthContext, vehicle_id: str,
                   customer_id: Optional[str] = None, clock: Clock = utcnow) -> ParkingSession:
    """Valet checks in a vehicle. The session waits for the customer to accept."""
    require_role(actor, Role.VALET)
    vid = parse_id(vehicle_id, "vehicle ID")
    cid = parse_id(customer_id, "customer ID") if customer_id else None

    with storage_errors(db, "create session"):
        vehicle = db.query(Vehicle).filter(Vehicle.id == vid).first()
        existing = db.query(ParkingSession.id).filter(
            ParkingSession.vehicle_id == vid,
            ParkingSession.status.notin_(list(TERMINAL_STATUSES)),
        ).first()
        valet = db.query(User).filter(User.id == actor.user_id).first()

    if not vehicle:
        raise NotFound("Vehicle not found")
    if cid and cid != vehicle.owner_id:
        raise InvalidArgument("Customer does not own this vehicle")
    if existing:
        logger.warning(f"[SESSION] Vehicle {vid} already has live session {existing.id}")
        raise Conflict("Vehicle already has an active parking session")

    # Venue is copied once from the valet's profile and never revalidated
    venue_name = (valet.venue_name if valet else None) or ""

    now = clock()
    session = ParkingSession(
        id=new_id(),
        ticket_number=_generate_ticket_number(now),
        vehicle_id=vid,
        customer_id=vehicle.owner_id,
        valet_id=actor.user_id,
        venue_name=venue_name,
        status=SessionStatus.PENDING,
        active_vehicle_id=vid,
        parked_at=now,
    )
    with storage_errors(db, "create session"):
        db.add(session)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"[SESSION] Lost creation race for vehicle {vid}")
            raise Conflict("Vehicle already has an active parking session")

    logger.info(f"[SESSION] Ticket {session.ticket_number} opened for vehicle {vid} at '{venue_name}'")
    return session


# ── Customer transitions ─────────────────────────────────────────────────────

def accept_parking(db: Session, actor: AuthContext, session_id: str) -> ParkingSession:
    return _apply(db, "accept_parking", session_id, actor)


def reject_parking(db: Session, actor: AuthContext, session_id: str) -> None:
    """Hard delete of a still-pending session."""
    _apply(db, "reject_parking", session_id, actor)


def cancel_session(db: Session, actor: AuthContext, session_id: str) -> ParkingSession:
    return _apply(db, "cancel_session", session_id, actor)


async def request_pickup(db: Session, actor: AuthContext, session_id: str,
                         clock: Clock = utcnow) -> ParkingSession:
    """
    Customer asks for the car back. A fresh pickup OTP is stored on the session
    (30 min) and sent to the customer's phone; the valet needs it to deliver.
    """
    now = clock()
    session = _apply(
        db, "request_pickup", session_id, actor,
        requested_at=now,
        pickup_otp=generate_code(),
        otp_expires_at=now + timedelta(minutes=settings.PICKUP_OTP_TTL_MINUTES),
    )
    if actor.phone:
        await notifier.send_code(actor.phone, session.pickup_otp, "pickup")
    return session


def cancel_pickup(db: Session, actor: AuthContext, session_id: str) -> ParkingSession:
    return _apply(
        db, "cancel_pickup", session_id, actor,
        requested_at=None, pickup_otp=None, otp_expires_at=None,
    )


# ── Valet transitions ────────────────────────────────────────────────────────

def advance_parking_moving(db: Session, actor: AuthContext, session_id: str) -> ParkingSession:
    return _apply(db, "advance_parking_moving", session_id, actor)


def mark_parked(db: Session, actor: AuthContext, session_id: str,
                parking_spot: Optional[str] = None) -> ParkingSession:
    changes = {"parking_spot": parking_spot} if parking_spot else {}
    return _apply(db, "mark_parked", session_id, actor, **changes)


def advance_moving(db: Session, actor: AuthContext, session_id: str) -> ParkingSession:
    return _apply(db, "advance_moving", session_id, actor)


def mark_available(db: Session, actor: AuthContext, session_id: str) -> ParkingSession:
    return _apply(db, "mark_available", session_id, actor)


def update_status(db: Session, actor: AuthContext, session_id: str, status: str,
                  parking_spot: Optional[str] = None) -> ParkingSession:
    """Generic valet progression: dispatches to the matching transition."""
    try:
        target = SessionStatus(status)
    except ValueError:
        target = None
    if target not in VALET_STATUS_OPERATIONS:
        allowed = ", ".join(s.value for s in VALET_STATUS_OPERATIONS)
        raise InvalidArgument(f"Invalid status. Must be one of: {allowed}")

    operation = VALET_STATUS_OPERATIONS[target]
    if parking_spot and operation != "mark_parked":
        raise InvalidArgument("parking_spot can only be set when marking a session as parked")
    if operation == "mark_parked":
        return mark_parked(db, actor, session_id, parking_spot)
    return _apply(db, operation, session_id, actor)


def verify_delivery(db: Session, actor: AuthContext, session_id: str, code: str,
                    clock: Clock = utcnow) -> ParkingSession:
    """
    Hand the car back. Guards run in order: an OTP must be on the session, it must
    match, and it must not be expired. Only then is the status transition attempted.
    """
    require_role(actor, Role.VALET)
    sid = parse_id(session_id, "session ID")
    session = _load(db, sid)

    if not session.pickup_otp:
        raise NoChallengeIssued("No OTP found for this session. Customer must request pickup first.")
    if session.pickup_otp != code:
        logger.warning(f"[SESSION] Wrong delivery OTP for {sid}")
        raise InvalidCredential("Invalid OTP")
    now = clock()
    if session.otp_expires_at is not None and now > session.otp_expires_at:
        raise CredentialExpired("OTP has expired. Customer needs to request pickup again.")

    # Matching on the code too: a pickup cancelled in between clears it and loses the race
    return _apply(
        db, "verify_delivery", sid, actor,
        extra_criteria=(ParkingSession.pickup_otp == code,),
        delivered_at=now, pickup_otp=None, otp_expires_at=None,
    )


# ── Reads ────────────────────────────────────────────────────────────────────

def get_session(db: Session, actor: AuthContext, session_id: str) -> SessionDetailOut:
    session = _load(db, parse_id(session_id, "session ID"))
    return enrich_session(db, session, actor.user_id)


def _party_filter(actor: AuthContext):
    if actor.role == Role.CUSTOMER.value:
        return ParkingSession.customer_id == actor.user_id
    return ParkingSession.valet_id == actor.user_id


def get_active_session(db: Session, actor: AuthContext) -> SessionDetailOut:
    """Most recent live session the caller is party to."""
    with storage_errors(db, "fetch active session"):
        session = (
            db.query(ParkingSession)
            .filter(_party_filter(actor), ParkingSession.status.notin_(list(TERMINAL_STATUSES)))
            .order_by(ParkingSession.parked_at.desc())
            .first()
        )
    if not session:
        raise NotFound("No active session found")
    return enrich_session(db, session, actor.user_id)


def get_pending_pickups(db: Session, actor: AuthContext) -> list[SessionDetailOut]:
    """Every session waiting on a valet to bring the car back, oldest request first."""
    require_role(actor, Role.VALET)
    with storage_errors(db, "fetch pickups"):
        sessions = (
            db.query(ParkingSession)
            .filter(ParkingSession.status.in_(list(PENDING_PICKUP_STATUSES)))
            .order_by(ParkingSession.requested_at.asc())
            .all()
        )
    return enrich_sessions(db, sessions, actor.user_id)


def get_all_active(db: Session, actor: AuthContext) -> list[SessionDetailOut]:
    require_role(actor, Role.VALET)
    with storage_errors(db, "fetch sessions"):
        sessions = (
            db.query(ParkingSession)
            .filter(ParkingSession.status.notin_(list(TERMINAL_STATUSES)))
            .order_by(ParkingSession.parked_at.desc())
            .all()
        )
    return enrich_sessions(db, sessions, actor.user_id)


def get_history(db: Session, actor: AuthContext) -> list[SessionDetailOut]:
    """Delivered and cancelled sessions for the caller, newest first."""
    with storage_errors(db, "fetch history"):
        sessions = (
            db.query(ParkingSession)
            .filter(_party_filter(actor), ParkingSession.status.in_(list(TERMINAL_STATUSES)))
            .order_by(ParkingSession.parked_at.desc())
            .limit(settings.HISTORY_LIMIT)
            .all()
        )
    return enrich_sessions(db, sessions, actor.user_id)
