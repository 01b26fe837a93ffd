"""Durable scheduler for deferred trip/ticket status transitions.

Jobs live in the ``scheduled_jobs`` table, keyed by ``(name, trip_id)``, so
pending transitions survive a restart. A job instance moves
``pending -> fired`` when a runner claims it, is deleted once its handler
succeeds, and is left as ``failed`` (with ``last_error``) when the handler
raises. Failed jobs are not retried here; a later schedule call for the same
trip creates a fresh pending job.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from trip_booking.models import ScheduledJob
from trip_booking.timeutils import utcnow, to_naive_utc

logger = logging.getLogger(__name__)

TRIP_STATUS_JOB = "tripStatusJob"
TICKET_STATUS_JOB = "ticketStatusJob"
STATUS_JOBS = (TRIP_STATUS_JOB, TICKET_STATUS_JOB)

JobHandler = Callable[[Session, dict], None]
FailureCallback = Callable[[dict, Exception], None]


class JobStatus(str, Enum):
    """Stored states of a job instance; deletion is the terminal success state"""
    PENDING = "pending"
    FIRED = "fired"
    FAILED = "failed"


class StatusScheduler:
    """Owns every scheduled status-transition job"""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self._handlers: Dict[str, JobHandler] = {}
        self._failure_callbacks: List[FailureCallback] = []
        self._running = False

    def define(self, name: str, handler: JobHandler) -> None:
        """Register the handler run when a job called ``name`` fires"""
        self._handlers[name] = handler

    def on_failure(self, callback: FailureCallback) -> None:
        """Subscribe to handler failures; called with the job snapshot and the error"""
        self._failure_callbacks.append(callback)

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule(self, db: Session, name: str, trip_id: int, fire_at: datetime) -> None:
        job = db.query(ScheduledJob).filter(
            ScheduledJob.name == name,
            ScheduledJob.trip_id == trip_id,
            ScheduledJob.status == JobStatus.PENDING.value
        ).first()
        
        # A repeated call moves the outstanding job instead of adding a second one
        if job:
            job.fire_at = fire_at
            return
        
        db.add(ScheduledJob(
            name=name,
            trip_id=trip_id,
            fire_at=fire_at,
            status=JobStatus.PENDING.value,
            data={"trip_id": trip_id},
            attempts=0
        ))

    def _cancel(self, db: Session, trip_id: int, names: Sequence[str] = STATUS_JOBS) -> int:
        return db.query(ScheduledJob).filter(
            ScheduledJob.trip_id == trip_id,
            ScheduledJob.name.in_(list(names))
        ).delete(synchronize_session=False)

    def schedule_status_update(self, trip_id: int, arrival_time: datetime) -> None:
        """Schedule both status jobs for ``trip_id`` at ``arrival_time``"""
        fire_at = to_naive_utc(arrival_time)
        with self._session() as db:
            for name in STATUS_JOBS:
                self._schedule(db, name, trip_id, fire_at)
        logger.info("Scheduled status jobs for trip %s at %s", trip_id, fire_at.isoformat())

    def update_scheduled_time(self, trip_id: int, arrival_time: datetime) -> None:
        """Cancel the trip's jobs, then schedule them again at the new arrival time.

        Both steps share one transaction, so a runner never observes the
        cancelled state without the replacement jobs.
        """
        fire_at = to_naive_utc(arrival_time)
        with self._session() as db:
            removed = self._cancel(db, trip_id)
            db.flush()
            for name in STATUS_JOBS:
                self._schedule(db, name, trip_id, fire_at)
        logger.info(
            "Rescheduled status jobs for trip %s to %s (replaced %s)",
            trip_id, fire_at.isoformat(), removed
        )

    def cancel_scheduled_time(self, trip_id: int) -> int:
        """Remove every status job of ``trip_id``; returns how many were removed"""
        with self._session() as db:
            removed = self._cancel(db, trip_id)
        if removed:
            logger.info("Cancelled %s status jobs for trip %s", removed, trip_id)
        return removed

    def cancel_all(self) -> int:
        """Remove every status job"""
        with self._session() as db:
            removed = db.query(ScheduledJob).filter(
                ScheduledJob.name.in_(list(STATUS_JOBS))
            ).delete(synchronize_session=False)
        logger.info("Cancelled all %s status jobs", removed)
        return removed

    def get_jobs(self, trip_id: Optional[int] = None) -> List[ScheduledJob]:
        """Snapshot of stored jobs, optionally for one trip"""
        db = self._session_factory()
        try:
            query = db.query(ScheduledJob)
            if trip_id is not None:
                query = query.filter(ScheduledJob.trip_id == trip_id)
            jobs = query.order_by(ScheduledJob.fire_at, ScheduledJob.id).all()
            db.expunge_all()
            return jobs
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _claim(self, job_id: int, now: datetime) -> Optional[dict]:
        with self._session() as db:
            claimed = db.query(ScheduledJob).filter(
                ScheduledJob.id == job_id,
                ScheduledJob.status == JobStatus.PENDING.value
            ).update({
                ScheduledJob.status: JobStatus.FIRED.value,
                ScheduledJob.fired_at: now,
                ScheduledJob.attempts: ScheduledJob.attempts + 1,
            }, synchronize_session=False)
            if not claimed:
                return None
            
            job = db.query(ScheduledJob).filter(ScheduledJob.id == job_id).one()
            return {
                "id": job.id,
                "name": job.name,
                "trip_id": job.trip_id,
                "data": dict(job.data or {}),
            }

    def _mark_failed(self, job_id: int, error: Exception) -> None:
        with self._session() as db:
            db.query(ScheduledJob).filter(
                ScheduledJob.id == job_id,
                ScheduledJob.status == JobStatus.FIRED.value
            ).update({
                ScheduledJob.status: JobStatus.FAILED.value,
                ScheduledJob.last_error: f"{type(error).__name__}: {error}",
            }, synchronize_session=False)

    def _remove(self, job_id: int) -> None:
        with self._session() as db:
            db.query(ScheduledJob).filter(
                ScheduledJob.id == job_id,
                ScheduledJob.status == JobStatus.FIRED.value
            ).delete(synchronize_session=False)

    def _notify_failure(self, job: dict, error: Exception) -> None:
        for callback in self._failure_callbacks:
            try:
                callback(job, error)
            except Exception:
                logger.exception("Failure callback raised for job %s", job["id"])

    def run_job(self, job_id: int, now: Optional[datetime] = None) -> bool:
        """Claim and execute one pending job; returns True when it succeeded"""
        job = self._claim(job_id, now or utcnow())
        if job is None:
            return False
        
        try:
            handler = self._handlers.get(job["name"])
            if handler is None:
                raise LookupError(f"No handler defined for job '{job['name']}'")
            with self._session() as db:
                handler(db, job["data"])
        except Exception as exc:
            logger.exception("Scheduled job %s for trip %s failed", job["name"], job["trip_id"])
            self._mark_failed(job_id, exc)
            self._notify_failure(job, exc)
            return False
        
        self._remove(job_id)
        logger.info("Ran scheduled job %s for trip %s", job["name"], job["trip_id"])
        return True

    def run_pending(self, now: Optional[datetime] = None) -> int:
        """Run every pending job whose fire time has passed; returns the success count"""
        now = to_naive_utc(now) or utcnow()
        with self._session() as db:
            due_ids = [job_id for (job_id,) in db.query(ScheduledJob.id).filter(
                ScheduledJob.status == JobStatus.PENDING.value,
                ScheduledJob.fire_at <= now
            ).order_by(ScheduledJob.fire_at, ScheduledJob.id)]
        
        succeeded = 0
        for job_id in due_ids:
            if self.run_job(job_id, now):
                succeeded += 1
        return succeeded

    def requeue_interrupted(self) -> int:
        """Return jobs left ``fired`` by a crashed runner to ``pending``"""
        with self._session() as db:
            requeued = db.query(ScheduledJob).filter(
                ScheduledJob.status == JobStatus.FIRED.value
            ).update({ScheduledJob.status: JobStatus.PENDING.value}, synchronize_session=False)
        if requeued:
            logger.warning("Requeued %s interrupted scheduled jobs", requeued)
        return requeued

    async def run_forever(self, poll_interval: float) -> None:
        """Poll for due jobs until ``stop()`` is called"""
        self._running = True
        await asyncio.to_thread(self.requeue_interrupted)
        logger.info("Status scheduler started (poll every %ss)", poll_interval)
        
        while self._running:
            try:
                await asyncio.to_thread(self.run_pending)
            except Exception:
                logger.exception("Scheduler polling pass failed")
            await asyncio.sleep(poll_interval)

    def stop(self) -> None:
        self._running = False
        logger.info("Status scheduler stopped")
