# valet_app/schemas/session.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from valet_app.models.parking_session import SessionStatus
from valet_app.schemas.auth import UserSummary
from valet_app.schemas.vehicle import VehicleSummary


class SessionCreate(BaseModel):
    vehicle_id: str
    customer_id: Optional[str] = None   # Defaults to the vehicle owner


class ParkedUpdate(BaseModel):
    parking_spot: Optional[str] = Field(default=None, max_length=50)


class StatusUpdate(BaseModel):
    status: str      # parking_moving | parked | moving | available
    parking_spot: Optional[str] = Field(default=None, max_length=50)


class VerifyDeliveryRequest(BaseModel):
    otp: str = Field(min_length=1, max_length=6)


class SessionOut(BaseModel):
    id: str
    ticket_number: str
    vehicle_id: str
    customer_id: str
    valet_id: str
    venue_name: str
    status: SessionStatus
    parked_at: datetime
    requested_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    parking_spot: Optional[str] = None
    pickup_otp: Optional[str] = None     # Only filled in for the session's own customer
    otp_expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SessionDetailOut(BaseModel):
    session: SessionOut
    vehicle: VehicleSummary = VehicleSummary()
    customer: UserSummary = UserSummary()
    valet: UserSummary = UserSummary()


class PickupRequestedOut(BaseModel):
    message: str
    session: SessionOut
    pickup_otp: Optional[str] = None
    expires_at: datetime


class DeliveredOut(BaseModel):
    message: str
    session: SessionOut
    delivered_at: datetime


class MessageOut(BaseModel):
    message: str
