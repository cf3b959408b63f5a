# valet_app/routers/sessions.py
"""
Parking session endpoints. Each route maps 1:1 onto a lifecycle operation;
the guards live in session_service.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from valet_app.config import settings
from valet_app.database import get_db
from valet_app.schemas.session import (
    SessionCreate, SessionDetailOut, ParkedUpdate, StatusUpdate,
    VerifyDeliveryRequest, PickupRequestedOut, DeliveredOut, MessageOut,
)
from valet_app.services import session_service
from valet_app.services.enrichment_service import enrich_session, session_view
from valet_app.utils.auth_context import AuthContext, get_auth_context

router = APIRouter()


# ── Reads (static paths before /sessions/{session_id}) ──────────────────────

@router.get("/sessions/active", response_model=SessionDetailOut, summary="My current session")
def get_active(actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return session_service.get_active_session(db, actor)


@router.get("/sessions/active-all", response_model=list[SessionDetailOut],
            summary="All live sessions (valet)")
def get_all_active(actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return session_service.get_all_active(db, actor)


@router.get("/sessions/pending-pickups", response_model=list[SessionDetailOut],
            summary="Sessions waiting for the car to be brought back (valet)")
def get_pending_pickups(actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return session_service.get_pending_pickups(db, actor)


@router.get("/sessions/history", response_model=list[SessionDetailOut], summary="Delivered / cancelled sessions")
def get_history(actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return session_service.get_history(db, actor)


@router.get("/sessions/{session_id}", response_model=SessionDetailOut, summary="Session by id")
def get_session(session_id: str, actor: AuthContext = Depends(get_auth_context),
                db: Session = Depends(get_db)):
    return session_service.get_session(db, actor, session_id)


# ── Creation ─────────────────────────────────────────────────────────────────

@router.post("/sessions", response_model=SessionDetailOut, status_code=status.HTTP_201_CREATED,
             summary="Check in a vehicle (valet)")
def create_session(body: SessionCreate, actor: AuthContext = Depends(get_auth_context),
                   db: Session = Depends(get_db)):
    session = session_service.create_session(db, actor, body.vehicle_id, body.customer_id)
    return enrich_session(db, session, actor.user_id)


# ── Customer transitions ─────────────────────────────────────────────────────

@router.post("/sessions/{session_id}/accept", response_model=SessionDetailOut, summary="Accept parking (customer)")
def accept(session_id: str, actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session = session_service.accept_parking(db, actor, session_id)
    return enrich_session(db, session, actor.user_id)


@router.post("/sessions/{session_id}/reject", response_model=MessageOut, summary="Reject parking (customer)")
def reject(session_id: str, actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session_service.reject_parking(db, actor, session_id)
    return {"message": "Parking rejected"}


@router.post("/sessions/{session_id}/cancel", response_model=SessionDetailOut, summary="Cancel session (customer)")
def cancel(session_id: str, actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session = session_service.cancel_session(db, actor, session_id)
    return enrich_session(db, session, actor.user_id)


@router.post("/sessions/{session_id}/request-pickup", response_model=PickupRequestedOut,
             summary="Request the car back (customer)")
async def request_pickup(session_id: str, actor: AuthContext = Depends(get_auth_context),
                         db: Session = Depends(get_db)):
    session = await session_service.request_pickup(db, actor, session_id)
    return PickupRequestedOut(
        message="Pickup requested successfully",
        session=session_view(session, actor.user_id),
        pickup_otp=session.pickup_otp if settings.EXPOSE_OTP_IN_RESPONSE else None,
        expires_at=session.otp_expires_at,
    )


@router.post("/sessions/{session_id}/cancel-pickup", response_model=SessionDetailOut,
             summary="Cancel a pickup request (customer)")
def cancel_pickup(session_id: str, actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session = session_service.cancel_pickup(db, actor, session_id)
    return enrich_session(db, session, actor.user_id)


# ── Valet transitions ────────────────────────────────────────────────────────

@router.post("/sessions/{session_id}/parking-moving", response_model=SessionDetailOut,
             summary="Driving to the spot (valet)")
def parking_moving(session_id: str, actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session = session_service.advance_parking_moving(db, actor, session_id)
    return enrich_session(db, session, actor.user_id)


@router.post("/sessions/{session_id}/parked", response_model=SessionDetailOut, summary="Car parked (valet)")
def parked(session_id: str, body: Optional[ParkedUpdate] = None,
           actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session = session_service.mark_parked(db, actor, session_id, body.parking_spot if body else None)
    return enrich_session(db, session, actor.user_id)


@router.post("/sessions/{session_id}/moving", response_model=SessionDetailOut,
             summary="Fetching the car (valet)")
def moving(session_id: str, actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session = session_service.advance_moving(db, actor, session_id)
    return enrich_session(db, session, actor.user_id)


@router.post("/sessions/{session_id}/available", response_model=SessionDetailOut,
             summary="Car ready at the pickup point (valet)")
def available(session_id: str, actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session = session_service.mark_available(db, actor, session_id)
    return enrich_session(db, session, actor.user_id)


@router.put("/sessions/{session_id}/status", response_model=SessionDetailOut, summary="Update status (valet)")
def update_status(session_id: str, body: StatusUpdate, actor: AuthContext = Depends(get_auth_context),
                  db: Session = Depends(get_db)):
    """Accepts parking_moving, parked, moving or available."""
    session = session_service.update_status(db, actor, session_id, body.status, body.parking_spot)
    return enrich_session(db, session, actor.user_id)


@router.post("/sessions/{session_id}/verify-delivery", response_model=DeliveredOut,
             summary="Hand the car back after checking the pickup OTP (valet)")
def verify_delivery(session_id: str, body: VerifyDeliveryRequest,
                    actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    session = session_service.verify_delivery(db, actor, session_id, body.otp)
    return DeliveredOut(
        message="Vehicle delivered successfully",
        session=session_view(session, actor.user_id),
        delivered_at=session.delivered_at,
    )
