from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from trip_booking.database import get_db
from trip_booking.auth.schemas import AuthContext
from trip_booking.auth.permissions import PermissionFlag
from trip_booking.auth.dependencies import get_auth_context, require_permissions
from trip_booking.cities.schemas import City, CityCreate, CityUpdate
from trip_booking.cities.service import CityService

router = APIRouter()

@router.get("/", response_model=List[City])
def list_cities(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Get all cities"""
    return CityService.list_cities(db)

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_city(
    city: CityCreate,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.TRIP_GUIDE | PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Create a city"""
    db_city = CityService.create_city(db, city)
    return {"_id": db_city.id}

@router.get("/{city_id}", response_model=City)
def get_city(city_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Get city details by ID"""
    return CityService.get_city_by_id(db, city_id)

@router.patch("/{city_id}", response_model=City)
def update_city(
    city_id: int,
    city_update: CityUpdate,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.TRIP_GUIDE | PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Update a city"""
    return CityService.update_city(db, city_id, city_update)

@router.delete("/{city_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_city(
    city_id: int,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Delete a city (admin only)"""
    CityService.delete_city(db, city_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
