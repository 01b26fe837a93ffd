from pydantic import BaseModel, Field
from typing import List, Optional, Any
from datetime import datetime
from decimal import Decimal
from enum import Enum

class TripStatus(str, Enum):
    """Trip status enumeration; active is the only non-terminal state"""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELED = "canceled"

# Fields the server derives; clients may never set them
PROTECTED_TRIP_FIELDS = ("duration", "ratings", "booked_seats")

class TripCreate(BaseModel):
    """Request to schedule a new trip"""
    departure_city_id: int
    arrival_city_id: int
    departure_time: datetime
    arrival_time: datetime
    price: Decimal = Field(..., gt=0)
    bus_id: int

class TripUpdate(BaseModel):
    """Partial trip edit"""
    departure_city_id: Optional[int] = None
    arrival_city_id: Optional[int] = None
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    price: Optional[Decimal] = Field(None, gt=0)
    bus_id: Optional[int] = None
    
    # Accepted only so that a request carrying them is rejected by name
    duration: Optional[Any] = None
    ratings: Optional[Any] = None
    booked_seats: Optional[Any] = None

class Trip(BaseModel):
    id: int
    departure_city_id: int
    arrival_city_id: int
    departure_time: datetime
    arrival_time: datetime
    duration: str
    price: Decimal
    ratings: float
    status: TripStatus
    booked_seats: List[int] = []
    bus_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class TripSearchFilters(BaseModel):
    """Filters for listing trips"""
    status: Optional[TripStatus] = None
    departure_city_id: Optional[int] = None
    arrival_city_id: Optional[int] = None
    departs_after: Optional[datetime] = None
    departs_before: Optional[datetime] = None
