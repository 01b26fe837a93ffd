import logging
from typing import List

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from trip_booking.models import Ticket, Trip, BookedSeat
from trip_booking.tickets.schemas import TicketStatus
from trip_booking.exceptions import RessourceNotFoundError, SeatTakenError, ValidationError

logger = logging.getLogger(__name__)

# Allowed admin status changes; canceled and expired are terminal
_TRANSITIONS = {
    TicketStatus.ACTIVE: {TicketStatus.CANCELED, TicketStatus.EXPIRED},
    TicketStatus.CANCELED: set(),
    TicketStatus.EXPIRED: set(),
}

class TicketService:
    """Ticket persistence and seat inventory.

    ``create_ticket``, ``release_seat``, ``expire_tickets_for_trip``,
    ``cancel_tickets_for_trip`` and ``delete_tickets_for_trip`` only flush and
    are composed by the trip lifecycle; the remaining mutators are complete
    operations and commit.
    """
    
    @staticmethod
    def create_ticket(db: Session, trip: Trip, seat_number: int, user_id: int) -> Ticket:
        """Reserve ``seat_number`` on ``trip`` and issue an active ticket.

        The seat row insert is the atomic add-to-set: the unique
        (trip_id, seat_number) constraint lets exactly one concurrent booking
        through, and the loser gets SeatTakenError.
        """
        trip_id = trip.id
        ticket = Ticket(
            user_id=user_id,
            trip_id=trip_id,
            seat_number=seat_number,
            status=TicketStatus.ACTIVE.value,
            price=trip.price
        )
        
        try:
            db.add(ticket)
            db.flush()
            db.add(BookedSeat(trip_id=trip_id, seat_number=seat_number, ticket_id=ticket.id))
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.info("Seat %s on trip %s is already taken", seat_number, trip_id)
            raise SeatTakenError(f"Seat {seat_number} is already booked")
        
        return ticket
    
    @staticmethod
    def release_seat(db: Session, ticket: Ticket) -> int:
        """Free the seat held by this ticket only"""
        return db.query(BookedSeat).filter(BookedSeat.ticket_id == ticket.id).delete(synchronize_session=False)
    
    @staticmethod
    def expire_tickets_for_trip(db: Session, trip_id: int) -> int:
        """Flip every active ticket of the trip to expired"""
        expired = db.query(Ticket).filter(
            Ticket.trip_id == trip_id,
            Ticket.status == TicketStatus.ACTIVE.value
        ).update({Ticket.status: TicketStatus.EXPIRED.value}, synchronize_session=False)
        logger.info("Expired %s tickets of trip %s", expired, trip_id)
        return expired
    
    @staticmethod
    def cancel_tickets_for_trip(db: Session, trip_id: int) -> int:
        """Cancel every active ticket of the trip and free their seats"""
        ticket_ids = [ticket_id for (ticket_id,) in db.query(Ticket.id).filter(
            Ticket.trip_id == trip_id,
            Ticket.status == TicketStatus.ACTIVE.value
        )]
        if not ticket_ids:
            return 0
        
        db.query(BookedSeat).filter(BookedSeat.ticket_id.in_(ticket_ids)).delete(synchronize_session=False)
        return db.query(Ticket).filter(Ticket.id.in_(ticket_ids)).update(
            {Ticket.status: TicketStatus.CANCELED.value}, synchronize_session=False
        )
    
    @staticmethod
    def delete_tickets_for_trip(db: Session, trip_id: int) -> int:
        db.query(BookedSeat).filter(BookedSeat.trip_id == trip_id).delete(synchronize_session=False)
        return db.query(Ticket).filter(Ticket.trip_id == trip_id).delete(synchronize_session=False)
    
    @staticmethod
    def get_ticket_by_id(db: Session, ticket_id: int) -> Ticket:
        """Get ticket by ID"""
        ticket = db.query(Ticket).filter(Ticket.id == ticket_id).first()
        if not ticket:
            raise RessourceNotFoundError("Ticket not found")
        return ticket
    
    @staticmethod
    def list_tickets(db: Session, limit: int = 25, page: int = 0) -> List[Ticket]:
        return db.query(Ticket).order_by(Ticket.id).offset(limit * page).limit(limit).all()
    
    @staticmethod
    def list_user_tickets(db: Session, user_id: int) -> List[Ticket]:
        """All tickets of one user, newest first"""
        return db.query(Ticket).filter(Ticket.user_id == user_id).order_by(Ticket.id.desc()).all()
    
    @staticmethod
    def cancel_ticket(db: Session, ticket_id: int) -> Ticket:
        """Cancel an active ticket and release its seat, whatever the trip status"""
        return TicketService.update_ticket_status(db, ticket_id, TicketStatus.CANCELED)
    
    @staticmethod
    def update_ticket_status(db: Session, ticket_id: int, new_status: TicketStatus) -> Ticket:
        """Apply an allowed status transition"""
        ticket = TicketService.get_ticket_by_id(db, ticket_id)
        current = TicketStatus(ticket.status)
        
        if new_status == current:
            return ticket
        if new_status not in _TRANSITIONS[current]:
            raise ValidationError(f"Cannot change ticket status from {current.value} to {new_status.value}")
        
        try:
            if new_status == TicketStatus.CANCELED:
                TicketService.release_seat(db, ticket)
            ticket.status = new_status.value
            db.commit()
        except Exception:
            db.rollback()
            raise
        
        db.refresh(ticket)
        logger.info("Ticket %s is now %s", ticket_id, new_status.value)
        return ticket
    
    @staticmethod
    def delete_ticket(db: Session, ticket_id: int) -> None:
        """Delete a ticket, releasing its seat if it still holds one"""
        ticket = TicketService.get_ticket_by_id(db, ticket_id)
        try:
            TicketService.release_seat(db, ticket)
            db.delete(ticket)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Deleted ticket %s", ticket_id)
    
    @staticmethod
    def delete_all_tickets(db: Session) -> int:
        """Delete every ticket and empty every trip's seat inventory"""
        try:
            db.query(BookedSeat).delete(synchronize_session=False)
            deleted = db.query(Ticket).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Deleted all %s tickets", deleted)
        return deleted
