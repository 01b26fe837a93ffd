"""Tests for reviews and trip rating aggregation."""

from __future__ import annotations

import pytest

from trip_booking.exceptions import RessourceNotFoundError
from trip_booking.reviews.schemas import ReviewCreate, ReviewUpdate
from trip_booking.reviews.service import ReviewService, average_rating
from trip_booking.trips.lifecycle import TripLifecycleCoordinator
from trip_booking.trips.schemas import TripCreate
from trip_booking.trips.service import TripService


@pytest.fixture
def trip(db, scheduler, trip_payload):
    return TripLifecycleCoordinator(db, scheduler).create_trip(TripCreate(**trip_payload))


def _rating(db, trip_id):
    db.expire_all()
    return TripService.get_trip_by_id(db, trip_id).ratings


class TestAverageRating:
    def test_no_reviews_is_zero(self):
        assert average_rating([]) == 0

    def test_mean_is_rounded_to_one_decimal(self):
        assert average_rating([4, 5, 5]) == 4.7

    def test_half_rounds_up(self):
        assert average_rating([4.25]) == 4.3
        assert average_rating([1, 2, 2, 2]) == 1.8

    def test_single_review(self):
        assert average_rating([3]) == 3.0


class TestReviewService:
    def test_create_updates_rating(self, db, trip, traveller, other_traveller):
        ReviewService.create_review(db, trip.id, traveller.id, ReviewCreate(review_text="Great", ratings=4))
        assert _rating(db, trip.id) == 4.0
        ReviewService.create_review(db, trip.id, other_traveller.id, ReviewCreate(review_text="Ok", ratings=3))
        assert _rating(db, trip.id) == 3.5

    def test_update_recomputes(self, db, trip, traveller):
        review = ReviewService.create_review(db, trip.id, traveller.id, ReviewCreate(review_text="Meh", ratings=2))
        ReviewService.update_review(db, review.id, ReviewUpdate(ratings=5))
        assert _rating(db, trip.id) == 5.0

    def test_delete_last_review_resets_to_zero(self, db, trip, traveller):
        review = ReviewService.create_review(db, trip.id, traveller.id, ReviewCreate(review_text="Fine", ratings=4))
        ReviewService.delete_review(db, review.id)
        assert _rating(db, trip.id) == 0

    def test_delete_by_trip(self, db, trip, traveller, other_traveller):
        ReviewService.create_review(db, trip.id, traveller.id, ReviewCreate(review_text="A", ratings=1))
        ReviewService.create_review(db, trip.id, other_traveller.id, ReviewCreate(review_text="B", ratings=2))
        assert ReviewService.delete_reviews_by_trip(db, trip.id) == 2
        assert ReviewService.list_reviews_by_trip(db, trip.id) == []
        assert _rating(db, trip.id) == 0

    def test_review_for_unknown_trip(self, db, traveller):
        with pytest.raises(RessourceNotFoundError):
            ReviewService.create_review(db, 9999, traveller.id, ReviewCreate(review_text="?", ratings=1))

    def test_list_by_user(self, db, trip, traveller, other_traveller):
        ReviewService.create_review(db, trip.id, traveller.id, ReviewCreate(review_text="Mine", ratings=5))
        ReviewService.create_review(db, trip.id, other_traveller.id, ReviewCreate(review_text="Theirs", ratings=1))
        assert [r.review_text for r in ReviewService.list_reviews_by_user(db, traveller.id)] == ["Mine"]

    def test_rating_out_of_range_is_rejected(self):
        with pytest.raises(ValueError):
            ReviewCreate(review_text="Too good", ratings=6)
