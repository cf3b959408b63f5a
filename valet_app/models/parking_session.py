# valet_app/models/parking_session.py
"""
Parking sessions table — one vehicle's check-in to check-out lifecycle.
Mutated only through the guarded transitions in services/session_service.py.

active_vehicle_id mirrors vehicle_id while the session is live and is NULL once
it reaches a terminal status. Its unique index keeps one live session per vehicle.
"""

import enum
from sqlalchemy import Column, String, DateTime, Enum
from valet_app.database import Base


class SessionStatus(str, enum.Enum):
    PENDING = "pending"                 # Waiting for customer acceptance
    PICKED = "picked"                   # Customer accepted, valet has the keys
    PARKING_MOVING = "parking_moving"   # Valet driving to the spot
    PARKED = "parked"
    REQUESTED = "requested"             # Customer requested pickup
    MOVING = "moving"                   # Valet is getting the car
    AVAILABLE = "available"             # Car is ready for pickup
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    IN_TRANSIT = "in_transit"           # Accepted for delivery, never produced


TERMINAL_STATUSES = frozenset({SessionStatus.DELIVERED, SessionStatus.CANCELLED})


class ParkingSession(Base):
    __tablename__ = "parking_sessions"

    id = Column(String(36), primary_key=True)
    ticket_number = Column(String(32), nullable=False, index=True)
    vehicle_id = Column(String(36), nullable=False, index=True)    # vehicles.id
    customer_id = Column(String(36), nullable=False, index=True)   # users.id
    valet_id = Column(String(36), nullable=False, index=True)      # users.id
    venue_name = Column(String(200), nullable=False, default="")
    status = Column(
        Enum(SessionStatus, name="session_status", native_enum=False, length=20,
             values_callable=lambda e: [m.value for m in e]),
        nullable=False, index=True,
    )
    active_vehicle_id = Column(String(36), unique=True)
    parked_at = Column(DateTime, nullable=False, index=True)
    requested_at = Column(DateTime)
    delivered_at = Column(DateTime)
    parking_spot = Column(String(50))
    pickup_otp = Column(String(6))
    otp_expires_at = Column(DateTime)

    def __repr__(self):
        return f"<ParkingSession {self.ticket_number} vehicle={self.vehicle_id} status={self.status}>"
