from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from trip_booking.config import settings
from trip_booking.models import Trip
from trip_booking.timeutils import utcnow, to_naive_utc
from trip_booking.exceptions import ValidationError

def compute_duration(departure_time: datetime, arrival_time: datetime) -> str:
    """Render the trip length as ``"{hours}h {minutes}min"`` using floor minutes"""
    total_minutes = (to_naive_utc(arrival_time) - to_naive_utc(departure_time)) // timedelta(minutes=1)
    return f"{total_minutes // 60}h {total_minutes % 60}min"

def validate_trip_timings(
    arrival_time: Optional[datetime],
    departure_time: Optional[datetime],
    now: Optional[datetime] = None,
    max_duration: Optional[timedelta] = None
) -> None:
    """Raise ValidationError unless the pair describes a schedulable trip"""
    if arrival_time is None or departure_time is None:
        raise ValidationError("Both departure_time and arrival_time are required")
    
    arrival_time = to_naive_utc(arrival_time)
    departure_time = to_naive_utc(departure_time)
    now = to_naive_utc(now) or utcnow()
    if max_duration is None:
        max_duration = timedelta(hours=settings.MAX_TRIP_DURATION_HOURS)
    
    errors: List[str] = []
    
    if departure_time < now:
        errors.append("departure_time cannot be in the past")
    if arrival_time < now:
        errors.append("arrival_time cannot be in the past")
    
    if arrival_time <= departure_time:
        errors.append("arrival_time must be after departure_time")
    elif arrival_time - departure_time > max_duration:
        hours = int(max_duration.total_seconds() // 3600)
        errors.append(f"Trip cannot last longer than {hours} hours")
    
    if errors:
        raise ValidationError("; ".join(errors))

class AvailabilityValidator:
    """Checks schedule conflicts against trips already stored"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def validate_bus_availability(
        self,
        bus_id: int,
        departure_time: datetime,
        arrival_time: datetime,
        exclude_trip_id: Optional[int] = None
    ) -> bool:
        """Return False when an active trip on the bus overlaps [departure, arrival)"""
        query = self.db.query(Trip.id).filter(
            Trip.bus_id == bus_id,
            Trip.status == "active",
            Trip.departure_time < to_naive_utc(arrival_time),
            Trip.arrival_time > to_naive_utc(departure_time)
        )
        if exclude_trip_id is not None:
            query = query.filter(Trip.id != exclude_trip_id)
        
        return query.first() is None
