import logging
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from trip_booking.models import User, Review, Ticket, BookedSeat
from trip_booking.auth.schemas import UserCreate, UserUpdate
from trip_booking.auth.permissions import PermissionFlag, ALL_PERMISSIONS
from trip_booking.auth.utils import get_password_hash, verify_password
from trip_booking.exceptions import RessourceNotFoundError, ValidationError, reject_null_fields

logger = logging.getLogger(__name__)

class UserService:
    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email).first()
    
    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()
    
    @staticmethod
    def get_user_or_404(db: Session, user_id: int) -> User:
        user = UserService.get_user_by_id(db, user_id)
        if not user:
            raise RessourceNotFoundError("User not found")
        return user
    
    @staticmethod
    def list_users(db: Session, limit: int = 25, page: int = 0) -> List[User]:
        """List users, one page at a time"""
        return db.query(User).order_by(User.id).offset(limit * page).limit(limit).all()
    
    @staticmethod
    def create_user(db: Session, user: UserCreate, permission_flags: int = PermissionFlag.USER) -> User:
        """Create a new user"""
        db_user = User(
            name=user.name,
            email=user.email,
            password=get_password_hash(user.password),
            permission_flags=int(permission_flags)
        )
        
        try:
            db.add(db_user)
            db.commit()
            db.refresh(db_user)
        except IntegrityError:
            db.rollback()
            raise ValidationError("Email already registered")
        
        logger.info("Registered user %s", db_user.id)
        return db_user
    
    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = UserService.get_user_by_email(db, email)
        if not user:
            return None
        if not verify_password(password, user.password):
            return None
        return user
    
    @staticmethod
    def update_user(db: Session, user_id: int, user_update: UserUpdate) -> User:
        """Update user information"""
        db_user = UserService.get_user_or_404(db, user_id)
        
        update_data = user_update.dict(exclude_unset=True)
        reject_null_fields(update_data, ("name", "email", "password"))
        
        # Hash password if it's being updated
        if "password" in update_data:
            update_data["password"] = get_password_hash(update_data["password"])
        
        for field, value in update_data.items():
            setattr(db_user, field, value)
        
        try:
            db.commit()
            db.refresh(db_user)
            return db_user
        except IntegrityError:
            db.rollback()
            raise ValidationError("Email already exists")
    
    @staticmethod
    def set_permission_flags(db: Session, user_id: int, permission_flags: int) -> User:
        """Replace a user's permission flags"""
        if permission_flags < 0 or permission_flags & ~int(ALL_PERMISSIONS):
            raise ValidationError(f"Invalid permission flags: {permission_flags}")
        
        db_user = UserService.get_user_or_404(db, user_id)
        db_user.permission_flags = permission_flags
        db.commit()
        db.refresh(db_user)
        logger.info("Set permission flags of user %s to %s", user_id, permission_flags)
        return db_user
    
    @staticmethod
    def delete_user(db: Session, user_id: int) -> None:
        """Delete a user together with their reviews and tickets"""
        from trip_booking.reviews.service import ReviewService
        
        db_user = UserService.get_user_or_404(db, user_id)
        
        try:
            trip_ids = {trip_id for (trip_id,) in db.query(Review.trip_id).filter(Review.user_id == user_id)}
            ticket_ids = [ticket_id for (ticket_id,) in db.query(Ticket.id).filter(Ticket.user_id == user_id)]
            
            db.query(Review).filter(Review.user_id == user_id).delete(synchronize_session=False)
            if ticket_ids:
                db.query(BookedSeat).filter(BookedSeat.ticket_id.in_(ticket_ids)).delete(synchronize_session=False)
                db.query(Ticket).filter(Ticket.id.in_(ticket_ids)).delete(synchronize_session=False)
            db.delete(db_user)
            
            for trip_id in trip_ids:
                ReviewService.update_trip_rating(db, trip_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        
        logger.info("Deleted user %s", user_id)
