from fastapi import Depends
from sqlalchemy.orm import Session

from trip_booking.database import get_db
from trip_booking.auth.schemas import AuthContext
from trip_booking.auth.dependencies import get_auth_context
from trip_booking.scheduler.service import StatusScheduler
from trip_booking.scheduler.dependencies import get_scheduler
from trip_booking.trips.lifecycle import TripLifecycleCoordinator

def get_coordinator(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    scheduler: StatusScheduler = Depends(get_scheduler)
) -> TripLifecycleCoordinator:
    """Per-request coordinator over the request session"""
    return TripLifecycleCoordinator(db, scheduler, auth)
