import logging
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from trip_booking.models import Trip, Ticket, Review, BookedSeat, City, Bus, User
from trip_booking.auth.schemas import AuthContext
from trip_booking.scheduler import StatusScheduler, TRIP_STATUS_JOB, TICKET_STATUS_JOB
from trip_booking.trips.schemas import TripCreate, TripUpdate, TripStatus, PROTECTED_TRIP_FIELDS
from trip_booking.trips.service import TripService
from trip_booking.trips.validation import validate_trip_timings, AvailabilityValidator
from trip_booking.tickets.service import TicketService
from trip_booking.timeutils import utcnow, to_naive_utc
from trip_booking.exceptions import (
    ValidationError,
    RessourceNotFoundError,
    TripCompletedError,
    BusUnavailableError,
    SeatTakenError,
    reject_null_fields,
)

logger = logging.getLogger(__name__)

# ================================
# Scheduled job handlers
# ================================
def complete_trip_job(db: Session, data: dict) -> None:
    """tripStatusJob: move the trip to completed unless it was canceled"""
    TripService.update_trip_status(db, data["trip_id"])

def expire_tickets_job(db: Session, data: dict) -> None:
    """ticketStatusJob: expire the trip's active tickets"""
    TicketService.expire_tickets_for_trip(db, data["trip_id"])

def register_status_jobs(scheduler: StatusScheduler) -> None:
    scheduler.define(TRIP_STATUS_JOB, complete_trip_job)
    scheduler.define(TICKET_STATUS_JOB, expire_tickets_job)

# ================================
# Coordinator
# ================================
class TripLifecycleCoordinator:
    """Keeps trips, tickets and scheduled jobs consistent with each other.

    Built per request with the request's session and the process scheduler.
    Every operation persists first and touches the scheduler only after the
    commit succeeded. ``auth`` is used for attribution only.
    """
    
    def __init__(self, db: Session, scheduler: StatusScheduler, auth: Optional[AuthContext] = None):
        self.db = db
        self.scheduler = scheduler
        self.auth = auth
        self.availability = AvailabilityValidator(db)
    
    @property
    def _actor(self):
        return self.auth.user_id if self.auth else None
    
    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
    
    def _check_cities(self, departure_city_id: int, arrival_city_id: int) -> None:
        if departure_city_id == arrival_city_id:
            raise ValidationError("departure_city_id and arrival_city_id must be different")
        for city_id in (departure_city_id, arrival_city_id):
            if not self.db.query(City.id).filter(City.id == city_id).first():
                raise RessourceNotFoundError(f"City {city_id} not found")
    
    def _get_bus(self, bus_id: int) -> Bus:
        bus = self.db.query(Bus).filter(Bus.id == bus_id).first()
        if not bus:
            raise RessourceNotFoundError(f"Bus {bus_id} not found")
        return bus
    
    def _check_availability(self, bus_id, departure_time, arrival_time, exclude_trip_id=None) -> None:
        if not self.availability.validate_bus_availability(
            bus_id, departure_time, arrival_time, exclude_trip_id=exclude_trip_id
        ):
            raise BusUnavailableError(f"Bus {bus_id} is already assigned to a trip in this time window")
    
    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------
    
    def create_trip(self, trip_in: TripCreate) -> Trip:
        """Validate, persist, then schedule the status jobs at arrival"""
        validate_trip_timings(trip_in.arrival_time, trip_in.departure_time)
        self._check_cities(trip_in.departure_city_id, trip_in.arrival_city_id)
        self._get_bus(trip_in.bus_id)
        self._check_availability(trip_in.bus_id, trip_in.departure_time, trip_in.arrival_time)
        
        try:
            trip = TripService.add_trip(self.db, trip_in.dict())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        self.db.refresh(trip)
        self.scheduler.schedule_status_update(trip.id, trip.arrival_time)
        logger.info("Trip %s created by user %s", trip.id, self._actor)
        return trip
    
    def update_trip(self, trip_id: int, trip_update: TripUpdate) -> Trip:
        """Apply a partial edit; reschedules the jobs when the arrival moved"""
        trip = TripService.get_trip_by_id(self.db, trip_id)
        if trip.status != TripStatus.ACTIVE.value:
            raise TripCompletedError(f"Trip is {trip.status} and can no longer be modified")
        
        fields = trip_update.dict(exclude_unset=True)
        protected = [field for field in PROTECTED_TRIP_FIELDS if field in fields]
        if protected:
            raise ValidationError(
                f"you're not allowed to change the following fields: {', '.join(protected)}"
            )
        
        reject_null_fields(fields, fields.keys())
        
        departure_time = to_naive_utc(fields.get("departure_time", trip.departure_time))
        arrival_time = to_naive_utc(fields.get("arrival_time", trip.arrival_time))
        times_changed = "departure_time" in fields or "arrival_time" in fields
        
        if times_changed:
            validate_trip_timings(arrival_time, departure_time)
        
        if "departure_city_id" in fields or "arrival_city_id" in fields:
            self._check_cities(
                fields.get("departure_city_id", trip.departure_city_id),
                fields.get("arrival_city_id", trip.arrival_city_id)
            )
        
        bus_id = fields.get("bus_id", trip.bus_id)
        if "bus_id" in fields and bus_id != trip.bus_id:
            bus = self._get_bus(bus_id)
            highest = TripService.highest_booked_seat(self.db, trip_id)
            if highest > bus.seats:
                raise ValidationError(
                    f"Bus {bus_id} has {bus.seats} seats but seat {highest} is already booked"
                )
        if times_changed or "bus_id" in fields:
            self._check_availability(bus_id, departure_time, arrival_time, exclude_trip_id=trip_id)
        
        arrival_changed = arrival_time != trip.arrival_time
        try:
            TripService.apply_fields(self.db, trip, fields)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        self.db.refresh(trip)
        if arrival_changed:
            self.scheduler.update_scheduled_time(trip.id, trip.arrival_time)
        logger.info("Trip %s updated by user %s (%s)", trip_id, self._actor, ", ".join(sorted(fields)))
        return trip
    
    # ------------------------------------------------------------------
    # Delete / cancel
    # ------------------------------------------------------------------
    
    def delete_trip(self, trip_id: int) -> None:
        """Delete the trip with its tickets, then cancel its jobs.

        Leftover tickets and jobs of an already deleted trip are cleaned up
        before the not-found error is raised, so a retry after a partial
        failure converges.
        """
        try:
            tickets = TicketService.delete_tickets_for_trip(self.db, trip_id)
            self.db.query(Review).filter(Review.trip_id == trip_id).delete(synchronize_session=False)
            removed = TripService.remove_trip(self.db, trip_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        self.scheduler.cancel_scheduled_time(trip_id)
        if not removed:
            raise RessourceNotFoundError("Trip not found")
        logger.info("Trip %s deleted by user %s with %s tickets", trip_id, self._actor, tickets)
    
    def delete_all_trips(self) -> int:
        try:
            self.db.query(BookedSeat).delete(synchronize_session=False)
            self.db.query(Ticket).delete(synchronize_session=False)
            self.db.query(Review).delete(synchronize_session=False)
            removed = TripService.remove_all_trips(self.db)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        self.scheduler.cancel_all()
        logger.info("All %s trips deleted by user %s", removed, self._actor)
        return removed
    
    def cancel_trip(self, trip_id: int) -> Trip:
        """Cancel an active trip, its active tickets and its pending jobs"""
        trip = TripService.get_trip_by_id(self.db, trip_id)
        if trip.status != TripStatus.ACTIVE.value:
            raise TripCompletedError(f"Trip is already {trip.status}")
        
        try:
            trip.status = TripStatus.CANCELED.value
            canceled = TicketService.cancel_tickets_for_trip(self.db, trip_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        self.scheduler.cancel_scheduled_time(trip_id)
        self.db.refresh(trip)
        logger.info("Trip %s canceled by user %s; %s tickets canceled", trip_id, self._actor, canceled)
        return trip
    
    def complete_trip(self, trip_id: int) -> bool:
        """Status transition fired at arrival; canceled trips stay canceled"""
        completed = TripService.update_trip_status(self.db, trip_id)
        self._commit()
        return completed
    
    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------
    
    def book_seat(self, trip_id: int, seat_number: int, user_id: Optional[int] = None) -> Ticket:
        """Reserve one seat and issue the ticket.

        The seat check-and-set happens in the store (see
        ``TicketService.create_ticket``); nothing here reads the booked
        seats to decide whether the seat is free.
        """
        user_id = user_id if user_id is not None else self._actor
        
        trip = TripService.get_trip_by_id(self.db, trip_id)
        if trip.status != TripStatus.ACTIVE.value:
            raise TripCompletedError(f"Cannot book a seat on a {trip.status} trip")
        if trip.departure_time <= utcnow():
            raise ValidationError("Trip has already departed")
        
        bus = self._get_bus(trip.bus_id)
        if not 1 <= seat_number <= bus.seats:
            raise ValidationError(f"Seat number must be between 1 and {bus.seats}")
        
        if user_id is None or not self.db.query(User.id).filter(User.id == user_id).first():
            raise RessourceNotFoundError("User not found")
        
        ticket = TicketService.create_ticket(self.db, trip, seat_number, user_id)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Seat %s on trip %s is already taken", seat_number, trip_id)
            raise SeatTakenError(f"Seat {seat_number} is already booked")
        except Exception:
            self.db.rollback()
            raise
        
        self.db.refresh(ticket)
        logger.info("User %s booked seat %s on trip %s (ticket %s)", user_id, seat_number, trip_id, ticket.id)
        return ticket
