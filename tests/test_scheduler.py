"""Tests for the durable status scheduler."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from trip_booking import models
from trip_booking.scheduler import (
    JobStatus,
    StatusScheduler,
    STATUS_JOBS,
    TICKET_STATUS_JOB,
    TRIP_STATUS_JOB,
)

T1 = datetime(2030, 1, 1, 12, 0)
T2 = datetime(2030, 1, 1, 18, 0)


@pytest.fixture
def bare_scheduler(session_factory):
    """Scheduler with recording handlers instead of the trip/ticket ones"""
    scheduler = StatusScheduler(session_factory)
    calls = []
    scheduler.define(TRIP_STATUS_JOB, lambda db, data: calls.append((TRIP_STATUS_JOB, data["trip_id"])))
    scheduler.define(TICKET_STATUS_JOB, lambda db, data: calls.append((TICKET_STATUS_JOB, data["trip_id"])))
    scheduler.calls = calls
    return scheduler


class TestScheduling:
    def test_schedule_creates_both_jobs(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        jobs = bare_scheduler.get_jobs(1)
        assert sorted(job.name for job in jobs) == sorted(STATUS_JOBS)
        assert all(job.fire_at == T1 for job in jobs)
        assert all(job.status == JobStatus.PENDING.value for job in jobs)

    def test_repeated_schedule_moves_instead_of_duplicating(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        bare_scheduler.schedule_status_update(1, T2)
        jobs = bare_scheduler.get_jobs(1)
        assert len(jobs) == 2
        assert all(job.fire_at == T2 for job in jobs)

    def test_update_scheduled_time_replaces_fire_time(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        bare_scheduler.update_scheduled_time(1, T2)
        jobs = bare_scheduler.get_jobs(1)
        assert len(jobs) == 2
        assert {job.fire_at for job in jobs} == {T2}

    def test_update_without_existing_jobs_schedules_them(self, bare_scheduler):
        bare_scheduler.update_scheduled_time(7, T2)
        assert len(bare_scheduler.get_jobs(7)) == 2

    def test_cancel_is_idempotent(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        assert bare_scheduler.cancel_scheduled_time(1) == 2
        assert bare_scheduler.cancel_scheduled_time(1) == 0
        assert bare_scheduler.get_jobs(1) == []

    def test_cancel_only_touches_one_trip(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        bare_scheduler.schedule_status_update(2, T1)
        bare_scheduler.cancel_scheduled_time(1)
        assert bare_scheduler.get_jobs(1) == []
        assert len(bare_scheduler.get_jobs(2)) == 2

    def test_cancel_all(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        bare_scheduler.schedule_status_update(2, T2)
        assert bare_scheduler.cancel_all() == 4
        assert bare_scheduler.get_jobs() == []


class TestExecution:
    def test_nothing_runs_before_fire_time(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        assert bare_scheduler.run_pending(now=T1 - timedelta(seconds=1)) == 0
        assert bare_scheduler.calls == []

    def test_due_jobs_run_and_are_removed(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        assert bare_scheduler.run_pending(now=T1) == 2
        assert sorted(bare_scheduler.calls) == sorted([(TRIP_STATUS_JOB, 1), (TICKET_STATUS_JOB, 1)])
        assert bare_scheduler.get_jobs(1) == []

    def test_jobs_do_not_fire_twice(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        bare_scheduler.run_pending(now=T1)
        assert bare_scheduler.run_pending(now=T1 + timedelta(hours=1)) == 0
        assert len(bare_scheduler.calls) == 2

    def test_rescheduled_jobs_fire_at_the_new_time(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        bare_scheduler.update_scheduled_time(1, T2)
        assert bare_scheduler.run_pending(now=T1) == 0
        assert bare_scheduler.run_pending(now=T2) == 2

    def test_claimed_job_is_not_run_again(self, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        job = bare_scheduler.get_jobs(1)[0]
        assert bare_scheduler.run_job(job.id, now=T1) is True
        assert bare_scheduler.run_job(job.id, now=T1) is False


class TestFailures:
    def test_failing_handler_marks_job_failed_and_notifies(self, session_factory):
        scheduler = StatusScheduler(session_factory)
        failures = []
        scheduler.on_failure(lambda job, error: failures.append((job["name"], str(error))))

        def explode(db, data):
            raise RuntimeError("store unavailable")

        scheduler.define(TRIP_STATUS_JOB, explode)
        scheduler.define(TICKET_STATUS_JOB, lambda db, data: None)
        scheduler.schedule_status_update(1, T1)

        assert scheduler.run_pending(now=T1) == 1
        assert failures == [(TRIP_STATUS_JOB, "store unavailable")]

        jobs = scheduler.get_jobs(1)
        assert len(jobs) == 1
        assert jobs[0].name == TRIP_STATUS_JOB
        assert jobs[0].status == JobStatus.FAILED.value
        assert jobs[0].attempts == 1
        assert "RuntimeError: store unavailable" in jobs[0].last_error

    def test_failed_jobs_are_not_retried(self, session_factory):
        scheduler = StatusScheduler(session_factory)
        attempts = []

        def explode(db, data):
            attempts.append(data["trip_id"])
            raise RuntimeError("boom")

        scheduler.define(TRIP_STATUS_JOB, explode)
        scheduler.define(TICKET_STATUS_JOB, lambda db, data: None)
        scheduler.schedule_status_update(1, T1)
        scheduler.run_pending(now=T1)
        scheduler.run_pending(now=T2)
        assert attempts == [1]

    def test_failed_job_does_not_block_a_new_schedule(self, session_factory):
        scheduler = StatusScheduler(session_factory)

        def explode(db, data):
            raise RuntimeError("boom")

        scheduler.define(TRIP_STATUS_JOB, explode)
        scheduler.define(TICKET_STATUS_JOB, lambda db, data: None)
        scheduler.schedule_status_update(1, T1)
        scheduler.run_pending(now=T1)

        scheduler.schedule_status_update(1, T2)
        pending = [job for job in scheduler.get_jobs(1) if job.status == JobStatus.PENDING.value]
        assert sorted(job.name for job in pending) == sorted(STATUS_JOBS)

    def test_missing_handler_is_a_failure(self, session_factory):
        scheduler = StatusScheduler(session_factory)
        failures = []
        scheduler.on_failure(lambda job, error: failures.append(type(error)))
        scheduler.schedule_status_update(1, T1)
        assert scheduler.run_pending(now=T1) == 0
        assert failures == [LookupError, LookupError]

    def test_failing_callback_does_not_escape(self, session_factory):
        scheduler = StatusScheduler(session_factory)

        def bad_callback(job, error):
            raise ValueError("callback bug")

        scheduler.on_failure(bad_callback)
        scheduler.schedule_status_update(1, T1)
        assert scheduler.run_pending(now=T1) == 0


class TestRecovery:
    def test_interrupted_jobs_are_requeued(self, bare_scheduler, db):
        bare_scheduler.schedule_status_update(1, T1)
        db.query(models.ScheduledJob).update({models.ScheduledJob.status: JobStatus.FIRED.value})
        db.commit()

        assert bare_scheduler.run_pending(now=T1) == 0
        assert bare_scheduler.requeue_interrupted() == 2
        assert bare_scheduler.run_pending(now=T1) == 2

    def test_jobs_survive_a_new_scheduler_instance(self, session_factory, bare_scheduler):
        bare_scheduler.schedule_status_update(1, T1)
        restarted = StatusScheduler(session_factory)
        seen = []
        restarted.define(TRIP_STATUS_JOB, lambda db, data: seen.append(data["trip_id"]))
        restarted.define(TICKET_STATUS_JOB, lambda db, data: seen.append(data["trip_id"]))
        assert restarted.run_pending(now=T1) == 2
        assert seen == [1, 1]
