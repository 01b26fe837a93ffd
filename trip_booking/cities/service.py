import logging
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from trip_booking.models import City, Trip
from trip_booking.cities.schemas import CityCreate, CityUpdate
from trip_booking.exceptions import RessourceNotFoundError, ValidationError, reject_null_fields

logger = logging.getLogger(__name__)

class CityService:
    @staticmethod
    def get_city_by_id(db: Session, city_id: int) -> City:
        """Get city by ID"""
        city = db.query(City).filter(City.id == city_id).first()
        if not city:
            raise RessourceNotFoundError("City not found")
        return city
    
    @staticmethod
    def list_cities(db: Session) -> List[City]:
        """Get all cities ordered by name"""
        return db.query(City).order_by(City.city_name).all()
    
    @staticmethod
    def create_city(db: Session, city: CityCreate) -> City:
        """Create a new city"""
        db_city = City(**city.dict())
        try:
            db.add(db_city)
            db.commit()
            db.refresh(db_city)
        except IntegrityError:
            db.rollback()
            raise ValidationError(f"City '{city.city_name}' already exists")
        
        logger.info("Created city %s (%s)", db_city.id, db_city.city_name)
        return db_city
    
    @staticmethod
    def update_city(db: Session, city_id: int, city_update: CityUpdate) -> City:
        """Update city fields"""
        db_city = CityService.get_city_by_id(db, city_id)
        update_data = city_update.dict(exclude_unset=True)
        reject_null_fields(update_data, ("city_name",))
        
        for field, value in update_data.items():
            setattr(db_city, field, value)
        
        try:
            db.commit()
            db.refresh(db_city)
        except IntegrityError:
            db.rollback()
            raise ValidationError("City name already exists")
        return db_city
    
    @staticmethod
    def delete_city(db: Session, city_id: int) -> None:
        """Delete a city that no trip references"""
        db_city = CityService.get_city_by_id(db, city_id)
        
        in_use = db.query(Trip.id).filter(
            or_(Trip.departure_city_id == city_id, Trip.arrival_city_id == city_id)
        ).first()
        if in_use:
            raise ValidationError("City is referenced by trips")
        
        db.delete(db_city)
        db.commit()
        logger.info("Deleted city %s", city_id)
