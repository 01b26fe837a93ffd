from fastapi import Request

from trip_booking.scheduler.service import StatusScheduler

def get_scheduler(request: Request) -> StatusScheduler:
    """The process-wide scheduler built by ``create_app``"""
    return request.app.state.scheduler
