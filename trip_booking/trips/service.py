import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from trip_booking.models import Trip, BookedSeat
from trip_booking.trips.schemas import TripStatus, TripSearchFilters
from trip_booking.trips.validation import compute_duration
from trip_booking.timeutils import to_naive_utc
from trip_booking.exceptions import RessourceNotFoundError

logger = logging.getLogger(__name__)

class TripService:
    """Trip persistence.

    Mutating methods only flush; the caller owns the transaction.
    """
    
    @staticmethod
    def get_trip_by_id(db: Session, trip_id: int) -> Trip:
        """Get trip by ID with its booked seats"""
        trip = db.query(Trip).options(selectinload(Trip.seats)).filter(Trip.id == trip_id).first()
        if not trip:
            raise RessourceNotFoundError("Trip not found")
        return trip
    
    @staticmethod
    def list_trips(
        db: Session,
        limit: int = 25,
        page: int = 0,
        filters: Optional[TripSearchFilters] = None
    ) -> List[Trip]:
        """List trips ordered by departure, one page at a time"""
        query = db.query(Trip).options(selectinload(Trip.seats))
        
        # Apply filters
        if filters:
            if filters.status:
                query = query.filter(Trip.status == filters.status.value)
            if filters.departure_city_id:
                query = query.filter(Trip.departure_city_id == filters.departure_city_id)
            if filters.arrival_city_id:
                query = query.filter(Trip.arrival_city_id == filters.arrival_city_id)
            if filters.departs_after:
                query = query.filter(Trip.departure_time >= to_naive_utc(filters.departs_after))
            if filters.departs_before:
                query = query.filter(Trip.departure_time <= to_naive_utc(filters.departs_before))
        
        return query.order_by(Trip.departure_time, Trip.id).offset(limit * page).limit(limit).all()
    
    @staticmethod
    def add_trip(db: Session, fields: dict) -> Trip:
        """Stage a new active trip; the duration is derived from its times"""
        trip = Trip(**fields)
        trip.departure_time = to_naive_utc(trip.departure_time)
        trip.arrival_time = to_naive_utc(trip.arrival_time)
        trip.duration = compute_duration(trip.departure_time, trip.arrival_time)
        trip.status = TripStatus.ACTIVE.value
        trip.ratings = 0
        db.add(trip)
        db.flush()
        return trip
    
    @staticmethod
    def apply_fields(db: Session, trip: Trip, fields: dict) -> Trip:
        """Stage edits on a trip, recomputing the duration"""
        for field, value in fields.items():
            if field in ("departure_time", "arrival_time"):
                value = to_naive_utc(value)
            setattr(trip, field, value)
        trip.duration = compute_duration(trip.departure_time, trip.arrival_time)
        db.flush()
        return trip
    
    @staticmethod
    def remove_trip(db: Session, trip_id: int) -> int:
        """Delete the trip row and its seat rows; returns the number of trips removed"""
        db.query(BookedSeat).filter(BookedSeat.trip_id == trip_id).delete(synchronize_session=False)
        return db.query(Trip).filter(Trip.id == trip_id).delete(synchronize_session=False)
    
    @staticmethod
    def remove_all_trips(db: Session) -> int:
        db.query(BookedSeat).delete(synchronize_session=False)
        return db.query(Trip).delete(synchronize_session=False)
    
    @staticmethod
    def update_trip_status(db: Session, trip_id: int) -> bool:
        """Complete an active trip; canceled and completed trips are left alone"""
        updated = db.query(Trip).filter(
            Trip.id == trip_id,
            Trip.status == TripStatus.ACTIVE.value
        ).update({Trip.status: TripStatus.COMPLETED.value}, synchronize_session=False)
        
        if updated:
            logger.info("Trip %s completed", trip_id)
        else:
            logger.info("Trip %s not active or gone; status left unchanged", trip_id)
        return bool(updated)
    
    @staticmethod
    def highest_booked_seat(db: Session, trip_id: int) -> int:
        seats = [seat for (seat,) in db.query(BookedSeat.seat_number).filter(BookedSeat.trip_id == trip_id)]
        return max(seats, default=0)
