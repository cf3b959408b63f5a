# valet_app/routers/vehicles.py
"""Vehicle registry — customers manage their cars, valets search by plate."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from valet_app.database import get_db
from valet_app.schemas.vehicle import VehicleCreate, VehicleOut, VehicleLookupOut
from valet_app.services import vehicle_service
from valet_app.utils.auth_context import AuthContext, get_auth_context

router = APIRouter()


@router.post("/vehicles", response_model=VehicleOut, status_code=status.HTTP_201_CREATED,
             summary="Register a vehicle (customer)")
def add_vehicle(body: VehicleCreate, actor: AuthContext = Depends(get_auth_context),
                db: Session = Depends(get_db)):
    return vehicle_service.add_vehicle(db, actor, body)


@router.get("/vehicles", response_model=list[VehicleOut], summary="List my vehicles (customer)")
def list_vehicles(actor: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return vehicle_service.list_vehicles(db, actor)


@router.get("/vehicles/search", response_model=VehicleLookupOut, summary="Find a vehicle by plate (valet)")
def search_vehicle(registration_number: str = "", actor: AuthContext = Depends(get_auth_context),
                   db: Session = Depends(get_db)):
    return vehicle_service.find_by_registration(db, actor, registration_number)
