from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from trip_booking.database import get_db
from trip_booking.auth.schemas import AuthContext
from trip_booking.auth.permissions import PermissionFlag
from trip_booking.auth.dependencies import get_auth_context, require_permissions
from trip_booking.buses.schemas import Bus, BusCreate, BusUpdate
from trip_booking.buses.service import BusService

router = APIRouter()

@router.get("/", response_model=List[Bus])
def list_buses(
    auth: AuthContext = Depends(require_permissions(PermissionFlag.TRIP_GUIDE | PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Get all buses"""
    return BusService.list_buses(db)

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_bus(
    bus: BusCreate,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.TRIP_GUIDE | PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Register a bus"""
    db_bus = BusService.create_bus(db, bus)
    return {"_id": db_bus.id}

@router.get("/{bus_id}", response_model=Bus)
def get_bus(bus_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Get bus details by ID"""
    return BusService.get_bus_by_id(db, bus_id)

@router.patch("/{bus_id}", response_model=Bus)
def update_bus(
    bus_id: int,
    bus_update: BusUpdate,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.TRIP_GUIDE | PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Update a bus"""
    return BusService.update_bus(db, bus_id, bus_update)

@router.delete("/{bus_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bus(
    bus_id: int,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Delete a bus (admin only)"""
    BusService.delete_bus(db, bus_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
