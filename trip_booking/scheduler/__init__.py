"""
Status Scheduler

Durable deferred jobs that flip trip and ticket status at a trip's arrival
time. Jobs are rows in ``scheduled_jobs``; ``StatusScheduler.run_forever`` is
started from the application lifespan and polls for due jobs.
"""

from .service import (
    StatusScheduler, JobStatus, TRIP_STATUS_JOB, TICKET_STATUS_JOB, STATUS_JOBS
)

__all__ = [
    "StatusScheduler",
    "JobStatus",
    "TRIP_STATUS_JOB",
    "TICKET_STATUS_JOB",
    "STATUS_JOBS",
]
