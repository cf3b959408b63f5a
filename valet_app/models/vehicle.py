# valet_app/models/vehicle.py
"""
Registered vehicles table.
Each vehicle belongs to exactly one customer; registration numbers are unique per owner.
Never deleted in-band.
"""

import enum
from sqlalchemy import Column, String, DateTime, JSON, UniqueConstraint
from valet_app.database import Base


class VehicleType(str, enum.Enum):
    CAR = "car"
    BIKE = "bike"
    THREE_WHEELER = "three_wheeler"


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("owner_id", "registration_number", name="uq_vehicles_owner_registration"),
    )

    id = Column(String(36), primary_key=True)
    owner_id = Column(String(36), nullable=False, index=True)   # users.id (customer)
    registration_number = Column(String(50), nullable=False, index=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    color = Column(String(50), nullable=False)
    vehicle_type = Column(String(20), nullable=False, default=VehicleType.CAR.value)
    photos = Column(JSON, default=list)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Vehicle {self.registration_number} owner={self.owner_id} type={self.vehicle_type}>"
