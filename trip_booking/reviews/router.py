from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from trip_booking.database import get_db
from trip_booking.auth.schemas import AuthContext
from trip_booking.auth.permissions import PermissionFlag
from trip_booking.auth.dependencies import get_auth_context, require_permissions, require_same_user_or_admin
from trip_booking.reviews.schemas import Review, ReviewCreate, ReviewUpdate
from trip_booking.reviews.service import ReviewService

router = APIRouter()

# ================================
# Per-trip reviews
# ================================
@router.get("/trips/{trip_id}/reviews", response_model=List[Review])
def list_trip_reviews(trip_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return ReviewService.list_reviews_by_trip(db, trip_id)

@router.post("/trips/{trip_id}/reviews", status_code=status.HTTP_201_CREATED)
def create_review(
    trip_id: int,
    review: ReviewCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db)
):
    """Review a trip as the current user"""
    db_review = ReviewService.create_review(db, trip_id, auth.user_id, review)
    return {"_id": db_review.id}

@router.delete("/trips/{trip_id}/reviews", status_code=status.HTTP_204_NO_CONTENT)
def delete_trip_reviews(
    trip_id: int,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Delete all reviews of a trip (admin only)"""
    ReviewService.delete_reviews_by_trip(db, trip_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/users/{user_id}/reviews", response_model=List[Review])
def list_user_reviews(user_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return ReviewService.list_reviews_by_user(db, user_id)

# ================================
# Single review
# ================================
@router.get("/reviews/{review_id}", response_model=Review)
def get_review(review_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return ReviewService.get_review_by_id(db, review_id)

@router.patch("/reviews/{review_id}", response_model=Review)
def update_review(
    review_id: int,
    review_update: ReviewUpdate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db)
):
    """Edit a review; author or admin"""
    review = ReviewService.get_review_by_id(db, review_id)
    require_same_user_or_admin(auth, review.user_id)
    return ReviewService.update_review(db, review_id, review_update)

@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(review_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Delete a review; author or admin"""
    review = ReviewService.get_review_by_id(db, review_id)
    require_same_user_or_admin(auth, review.user_id)
    ReviewService.delete_review(db, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
