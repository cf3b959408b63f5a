# valet_app/services/enrichment_service.py
"""
Joins the referenced vehicle, customer and valet onto session reads.
Best effort: a missing record becomes an empty sub-record instead of failing the read.
"""

from typing import Optional
from sqlalchemy.orm import Session
from valet_app.database import storage_errors
from valet_app.models.parking_session import ParkingSession
from valet_app.models.user import User
from valet_app.models.vehicle import Vehicle
from valet_app.schemas.auth import UserSummary
from valet_app.schemas.session import SessionOut, SessionDetailOut
from valet_app.schemas.vehicle import VehicleSummary
from valet_app.utils.logger import get_logger

logger = get_logger(__name__)


def session_view(session: ParkingSession, viewer_id: Optional[str] = None) -> SessionOut:
    """Serialise a session. The pickup OTP is only shown to the session's own customer."""
    out = SessionOut.model_validate(session)
    if viewer_id != session.customer_id:
        out = out.model_copy(update={"pickup_otp": None})
    return out


def enrich_sessions(db: Session, sessions: list[ParkingSession],
                    viewer_id: Optional[str] = None) -> list[SessionDetailOut]:
    if not sessions:
        return []

    vehicle_ids = {s.vehicle_id for s in sessions}
    user_ids = {s.customer_id for s in sessions} | {s.valet_id for s in sessions}
    with storage_errors(db, "fetch session details"):
        vehicles = {v.id: v for v in db.query(Vehicle).filter(Vehicle.id.in_(list(vehicle_ids))).all()}
        users = {u.id: u for u in db.query(User).filter(User.id.in_(list(user_ids))).all()}

    results = []
    for s in sessions:
        vehicle = vehicles.get(s.vehicle_id)
        customer = users.get(s.customer_id)
        valet = users.get(s.valet_id)
        if vehicle is None:
            logger.debug(f"[SESSION] {s.id}: vehicle {s.vehicle_id} missing, returning empty record")
        results.append(SessionDetailOut(
            session=session_view(s, viewer_id),
            vehicle=VehicleSummary.model_validate(vehicle) if vehicle else VehicleSummary(),
            customer=UserSummary.model_validate(customer) if customer else UserSummary(),
            valet=UserSummary.model_validate(valet) if valet else UserSummary(),
        ))
    return results


def enrich_session(db: Session, session: ParkingSession,
                   viewer_id: Optional[str] = None) -> SessionDetailOut:
    return enrich_sessions(db, [session], viewer_id)[0]
