# valet_app/schemas/vehicle.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from valet_app.models.vehicle import VehicleType
from valet_app.schemas.auth import UserSummary


class VehicleCreate(BaseModel):
    registration_number: str = Field(min_length=1, max_length=50)
    make: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    color: str = Field(min_length=1, max_length=50)
    vehicle_type: VehicleType = VehicleType.CAR
    photos: list[str] = []


class VehicleOut(BaseModel):
    id: str
    owner_id: str
    registration_number: str
    make: str
    model: str
    color: str
    vehicle_type: VehicleType
    photos: Optional[list[str]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class VehicleSummary(BaseModel):
    """Vehicle sub-record on session reads. Empty when the vehicle record is missing."""
    id: Optional[str] = None
    owner_id: Optional[str] = None
    registration_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None
    vehicle_type: Optional[VehicleType] = None

    class Config:
        from_attributes = True


class VehicleLookupOut(BaseModel):
    vehicle: VehicleOut
    owner: UserSummary
