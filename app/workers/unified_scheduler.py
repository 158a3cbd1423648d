"""
Background interval scheduler.

The gateway has one periodic task, the weather refresh. Jobs run on a small
thread pool so a slow upstream call never delays the scheduler loop itself.

Runs are fixed-rate: the next run is computed from the slot that was due,
not from when the job finished, and slots missed while the process was busy
are skipped instead of replayed.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from app.utils.time import iso_or_none, utc_now

logger = logging.getLogger(__name__)


@dataclass
class IntervalJob:
    """A function to call every ``interval_seconds``, plus its run record."""

    job_id: str
    func: Callable[[], Any]
    interval_seconds: int
    next_run: datetime
    last_run: datetime | None = None
    run_count: int = 0
    failure_count: int = 0
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "interval_seconds": self.interval_seconds,
            "next_run": iso_or_none(self.next_run),
            "last_run": iso_or_none(self.last_run),
            "run_count": self.run_count,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
        }


class UnifiedScheduler:
    """Polls its jobs every ``check_interval_seconds`` and submits the due ones."""

    def __init__(self, check_interval_seconds: float = 1.0, max_workers: int = 1):
        self._check_interval = float(check_interval_seconds)
        self._max_workers = int(max_workers)
        self._jobs: dict[str, IntervalJob] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None

    def schedule_interval(
        self,
        job_id: str,
        func: Callable[[], Any],
        interval_seconds: int,
        *,
        start_immediately: bool = False,
    ) -> IntervalJob:
        """Register ``func`` under ``job_id``; an existing job with that id is replaced."""
        if interval_seconds < 1:
            raise ValueError(f"interval_seconds must be >= 1, got {interval_seconds}")

        interval = int(interval_seconds)
        now = utc_now()
        job = IntervalJob(
            job_id=job_id,
            func=func,
            interval_seconds=interval,
            next_run=now if start_immediately else now + timedelta(seconds=interval),
        )
        with self._lock:
            self._jobs[job_id] = job
        logger.info("Scheduled %s every %ss", job_id, interval)
        return job

    def get_job(self, job_id: str) -> IntervalJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    # ==================== Lifecycle ====================

    def start(self) -> None:
        if self.is_running():
            logger.warning("Scheduler already running")
            return
        self._stop_event.clear()
        self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="scheduler-job")
        self._thread = threading.Thread(target=self._run_loop, name="scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started with %s job(s)", len(self._jobs))

    def stop(self, timeout: float = 5.0) -> None:
        if not self.is_running():
            return
        self._stop_event.set()
        self._thread.join(timeout=timeout)
        self._thread = None
        self._executor.shutdown(wait=True)
        self._executor = None
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self._check_interval):
            try:
                self._process_due_jobs()
            except Exception as e:
                logger.error("Scheduler loop error: %s", e, exc_info=True)

    # ==================== Execution ====================

    def _process_due_jobs(self) -> None:
        """Advance every due job to its next slot and hand it to the pool."""
        now = utc_now()
        with self._lock:
            due = [job for job in self._jobs.values() if job.next_run <= now]
            for job in due:
                job.next_run = self._next_slot(job, now)

        for job in due:
            if self._executor is None:
                self._run_job(job)
                continue
            try:
                self._executor.submit(self._run_job, job)
            except RuntimeError as e:
                logger.error("Could not submit %s: %s", job.job_id, e)

    @staticmethod
    def _next_slot(job: IntervalJob, now: datetime) -> datetime:
        interval = timedelta(seconds=job.interval_seconds)
        next_run = job.next_run + interval
        if next_run <= now:
            missed = (now - next_run) // interval + 1
            next_run += missed * interval
        return next_run

    def _run_job(self, job: IntervalJob) -> None:
        """Call the job once; failures are recorded and never propagate."""
        started = utc_now()
        try:
            job.func()
        except Exception as e:
            with self._lock:
                job.last_run = started
                job.run_count += 1
                job.failure_count += 1
                job.last_error = str(e)
            logger.error("Job %s failed: %s", job.job_id, e, exc_info=True)
            return

        with self._lock:
            job.last_run = started
            job.run_count += 1
            job.last_error = None
        logger.debug("Job %s finished", job.job_id)

    def get_status(self) -> dict[str, Any]:
        with self._lock:
            return {
                "running": self.is_running(),
                "jobs": [job.to_dict() for job in self._jobs.values()],
            }
