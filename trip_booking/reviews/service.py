import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from sqlalchemy.orm import Session

from trip_booking.models import Review, Trip
from trip_booking.reviews.schemas import ReviewCreate, ReviewUpdate
from trip_booking.exceptions import RessourceNotFoundError, reject_null_fields

logger = logging.getLogger(__name__)

def average_rating(ratings: List[float]) -> float:
    """Arithmetic mean rounded half-up to one decimal; 0 when there are none"""
    if not ratings:
        return 0.0
    mean = Decimal(str(sum(ratings))) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

class ReviewService:
    @staticmethod
    def update_trip_rating(db: Session, trip_id: int) -> float:
        """Recompute the trip's ratings from its reviews"""
        ratings = [value for (value,) in db.query(Review.ratings).filter(Review.trip_id == trip_id)]
        rating = average_rating(ratings)
        db.query(Trip).filter(Trip.id == trip_id).update({Trip.ratings: rating}, synchronize_session=False)
        logger.debug("Trip %s rating is now %s over %s reviews", trip_id, rating, len(ratings))
        return rating
    
    @staticmethod
    def get_review_by_id(db: Session, review_id: int) -> Review:
        review = db.query(Review).filter(Review.id == review_id).first()
        if not review:
            raise RessourceNotFoundError("Review not found")
        return review
    
    @staticmethod
    def list_reviews_by_trip(db: Session, trip_id: int) -> List[Review]:
        """Reviews of one trip"""
        return db.query(Review).filter(Review.trip_id == trip_id).order_by(Review.id).all()
    
    @staticmethod
    def list_reviews_by_user(db: Session, user_id: int) -> List[Review]:
        """Reviews written by one user"""
        return db.query(Review).filter(Review.user_id == user_id).order_by(Review.id).all()
    
    @staticmethod
    def create_review(db: Session, trip_id: int, user_id: int, review: ReviewCreate) -> Review:
        """Add a review and refresh the trip's ratings"""
        if not db.query(Trip.id).filter(Trip.id == trip_id).first():
            raise RessourceNotFoundError("Trip not found")
        
        db_review = Review(trip_id=trip_id, user_id=user_id, **review.dict())
        try:
            db.add(db_review)
            db.flush()
            ReviewService.update_trip_rating(db, trip_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        
        db.refresh(db_review)
        return db_review
    
    @staticmethod
    def update_review(db: Session, review_id: int, review_update: ReviewUpdate) -> Review:
        db_review = ReviewService.get_review_by_id(db, review_id)
        update_data = review_update.dict(exclude_unset=True)
        reject_null_fields(update_data, ("review_text", "ratings"))
        
        try:
            for field, value in update_data.items():
                setattr(db_review, field, value)
            db.flush()
            ReviewService.update_trip_rating(db, db_review.trip_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        
        db.refresh(db_review)
        return db_review
    
    @staticmethod
    def delete_review(db: Session, review_id: int) -> None:
        db_review = ReviewService.get_review_by_id(db, review_id)
        trip_id = db_review.trip_id
        try:
            db.delete(db_review)
            db.flush()
            ReviewService.update_trip_rating(db, trip_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
    
    @staticmethod
    def delete_reviews_by_trip(db: Session, trip_id: int) -> int:
        """Remove all reviews of a trip; its ratings drop back to 0"""
        try:
            deleted = db.query(Review).filter(Review.trip_id == trip_id).delete(synchronize_session=False)
            if not deleted:
                raise RessourceNotFoundError("No reviews found for this trip")
            ReviewService.update_trip_rating(db, trip_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return deleted
