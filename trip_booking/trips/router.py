from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from trip_booking.database import get_db
from trip_booking.auth.schemas import AuthContext
from trip_booking.auth.permissions import PermissionFlag
from trip_booking.auth.dependencies import get_auth_context, require_permissions
from trip_booking.trips.schemas import Trip, TripCreate, TripUpdate, TripStatus, TripSearchFilters
from trip_booking.trips.service import TripService
from trip_booking.trips.lifecycle import TripLifecycleCoordinator
from trip_booking.trips.dependencies import get_coordinator

router = APIRouter()

TRIP_MANAGERS = PermissionFlag.TRIP_GUIDE | PermissionFlag.ADMIN

@router.get("/", response_model=List[Trip])
def list_trips(
    limit: int = Query(25, ge=1, le=100, description="Trips per page"),
    page: int = Query(0, ge=0, description="Zero-based page number"),
    status: Optional[TripStatus] = Query(None, description="Filter by status"),
    departure_city_id: Optional[int] = Query(None),
    arrival_city_id: Optional[int] = Query(None),
    departs_after: Optional[datetime] = Query(None),
    departs_before: Optional[datetime] = Query(None),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db)
):
    """List trips with optional filters"""
    filters = TripSearchFilters(
        status=status,
        departure_city_id=departure_city_id,
        arrival_city_id=arrival_city_id,
        departs_after=departs_after,
        departs_before=departs_before
    )
    return TripService.list_trips(db, limit=limit, page=page, filters=filters)

@router.post("/", status_code=201)
def create_trip(
    trip: TripCreate,
    auth: AuthContext = Depends(require_permissions(TRIP_MANAGERS)),
    coordinator: TripLifecycleCoordinator = Depends(get_coordinator)
):
    """Schedule a new trip"""
    db_trip = coordinator.create_trip(trip)
    return {"_id": db_trip.id}

@router.delete("/", status_code=204)
def delete_all_trips(
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    coordinator: TripLifecycleCoordinator = Depends(get_coordinator)
):
    """Delete every trip with its tickets (admin only)"""
    coordinator.delete_all_trips()
    return Response(status_code=204)

@router.get("/{trip_id}", response_model=Trip)
def get_trip(trip_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Get trip details by ID"""
    return TripService.get_trip_by_id(db, trip_id)

@router.patch("/{trip_id}", response_model=Trip)
def update_trip(
    trip_id: int,
    trip_update: TripUpdate,
    auth: AuthContext = Depends(require_permissions(TRIP_MANAGERS)),
    coordinator: TripLifecycleCoordinator = Depends(get_coordinator)
):
    """Update an active trip"""
    return coordinator.update_trip(trip_id, trip_update)

@router.delete("/{trip_id}", status_code=204)
def delete_trip(
    trip_id: int,
    auth: AuthContext = Depends(require_permissions(TRIP_MANAGERS)),
    coordinator: TripLifecycleCoordinator = Depends(get_coordinator)
):
    """Delete a trip, its tickets and its scheduled jobs"""
    coordinator.delete_trip(trip_id)
    return Response(status_code=204)

@router.post("/{trip_id}/cancel", response_model=Trip)
def cancel_trip(
    trip_id: int,
    auth: AuthContext = Depends(require_permissions(TRIP_MANAGERS)),
    coordinator: TripLifecycleCoordinator = Depends(get_coordinator)
):
    """Cancel an active trip and its tickets"""
    return coordinator.cancel_trip(trip_id)

@router.post("/{trip_id}/tickets/{seat_number}", status_code=201)
def book_seat(
    trip_id: int,
    seat_number: int,
    auth: AuthContext = Depends(get_auth_context),
    coordinator: TripLifecycleCoordinator = Depends(get_coordinator)
):
    """Book a seat for the current user"""
    ticket = coordinator.book_seat(trip_id, seat_number, auth.user_id)
    return {"_id": ticket.id}
