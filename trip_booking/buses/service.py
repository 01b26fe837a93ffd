import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from trip_booking.models import Bus, Trip, BookedSeat
from trip_booking.buses.schemas import BusCreate, BusUpdate
from trip_booking.exceptions import RessourceNotFoundError, ValidationError, reject_null_fields

logger = logging.getLogger(__name__)

class BusService:
    @staticmethod
    def get_bus_by_id(db: Session, bus_id: int) -> Bus:
        """Get bus by ID"""
        bus = db.query(Bus).filter(Bus.id == bus_id).first()
        if not bus:
            raise RessourceNotFoundError("Bus not found")
        return bus
    
    @staticmethod
    def list_buses(db: Session) -> List[Bus]:
        """Get all buses"""
        return db.query(Bus).order_by(Bus.id).all()
    
    @staticmethod
    def create_bus(db: Session, bus: BusCreate) -> Bus:
        """Register a new bus"""
        db_bus = Bus(**bus.dict())
        db.add(db_bus)
        db.commit()
        db.refresh(db_bus)
        logger.info("Created bus %s (%s, %s seats)", db_bus.id, db_bus.bus_model, db_bus.seats)
        return db_bus
    
    @staticmethod
    def update_bus(db: Session, bus_id: int, bus_update: BusUpdate) -> Bus:
        """Update bus fields; seats may not drop below a seat already booked"""
        db_bus = BusService.get_bus_by_id(db, bus_id)
        update_data = bus_update.dict(exclude_unset=True)
        reject_null_fields(update_data, ("bus_model", "seats"))
        
        if "seats" in update_data:
            highest_booked = db.query(func.max(BookedSeat.seat_number)).join(Trip).filter(
                Trip.bus_id == bus_id,
                Trip.status == "active"
            ).scalar()
            if highest_booked and update_data["seats"] < highest_booked:
                raise ValidationError(f"Seat {highest_booked} is booked on an active trip using this bus")
        
        for field, value in update_data.items():
            setattr(db_bus, field, value)
        
        db.commit()
        db.refresh(db_bus)
        return db_bus
    
    @staticmethod
    def delete_bus(db: Session, bus_id: int) -> None:
        """Delete a bus that no trip uses"""
        db_bus = BusService.get_bus_by_id(db, bus_id)
        
        in_use = db.query(Trip.id).filter(Trip.bus_id == bus_id).first()
        if in_use:
            raise ValidationError("Bus is assigned to trips")
        
        db.delete(db_bus)
        db.commit()
        logger.info("Deleted bus %s", bus_id)
