# valet_app/services/vehicle_service.py
"""
Vehicle registry: customers register and list their vehicles,
valets look a vehicle up by registration number at check-in.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from valet_app.database import storage_errors
from valet_app.errors import Conflict, InvalidArgument, NotFound
from valet_app.models.user import Role, User
from valet_app.models.vehicle import Vehicle
from valet_app.schemas.auth import UserSummary
from valet_app.schemas.vehicle import VehicleCreate, VehicleOut, VehicleLookupOut
from valet_app.utils.auth_context import AuthContext, require_role
from valet_app.utils.clock import Clock, utcnow
from valet_app.utils.identifiers import new_id
from valet_app.utils.logger import get_logger

logger = get_logger(__name__)


def add_vehicle(db: Session, actor: AuthContext, body: VehicleCreate, clock: Clock = utcnow) -> Vehicle:
    require_role(actor, Role.CUSTOMER)
    registration = body.registration_number.strip().upper()

    with storage_errors(db, "add vehicle"):
        existing = db.query(Vehicle).filter(
            Vehicle.owner_id == actor.user_id,
            Vehicle.registration_number == registration,
        ).first()
        if existing:
            raise Conflict("Vehicle already registered")

        vehicle = Vehicle(
            id=new_id(),
            owner_id=actor.user_id,
            registration_number=registration,
            make=body.make,
            model=body.model,
            color=body.color,
            vehicle_type=body.vehicle_type.value,
            photos=list(body.photos),
            created_at=clock(),
        )
        db.add(vehicle)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise Conflict("Vehicle already registered")

    logger.info(f"[VEHICLE] {registration} registered by {actor.user_id}")
    return vehicle


def list_vehicles(db: Session, actor: AuthContext) -> list[Vehicle]:
    require_role(actor, Role.CUSTOMER)
    with storage_errors(db, "fetch vehicles"):
        return (
            db.query(Vehicle)
            .filter(Vehicle.owner_id == actor.user_id)
            .order_by(Vehicle.created_at.desc())
            .all()
        )


def find_by_registration(db: Session, actor: AuthContext, registration_number: str) -> VehicleLookupOut:
    """Valet lookup at check-in. The owner sub-record is empty if the owner is gone."""
    require_role(actor, Role.VALET)
    registration = (registration_number or "").strip().upper()
    if not registration:
        raise InvalidArgument("Registration number required")

    with storage_errors(db, "find vehicle"):
        vehicle = db.query(Vehicle).filter(Vehicle.registration_number == registration).first()
        if not vehicle:
            raise NotFound("Vehicle not found")
        owner = db.query(User).filter(User.id == vehicle.owner_id).first()

    return VehicleLookupOut(
        vehicle=VehicleOut.model_validate(vehicle),
        owner=UserSummary.model_validate(owner) if owner else UserSummary(),
    )
