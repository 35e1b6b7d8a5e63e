# Overview: Fixed-interval job runner for the periodic sweeps.

"""
Job Scheduler

Runs the timer-driven jobs at fixed intervals inside one long-lived process
(`flask jobs run-scheduler`). Jobs take no arguments, each run gets its own
app context, and a failing run is logged and retried at the next interval.

The same jobs can be run once from cron through their own CLI commands.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from .extensions import db
from .triggers import get_trigger_runner
from thintava.time_utils import utcnow


EXTENSION_KEY = "thintava.scheduler"


@dataclass
class Job:
    name: str
    interval: timedelta
    func: Callable[[], Any]
    next_run: Optional[datetime] = None
    last_result: Any = None


class Scheduler:
    def __init__(self, app, *, clock: Callable[[], datetime] = utcnow):
        self.app = app
        self.clock = clock
        self.jobs: dict[str, Job] = {}

    def add_job(self, name: str, interval_seconds: float, func: Callable[[], Any]) -> Job:
        job = Job(name=name, interval=timedelta(seconds=interval_seconds), func=func)
        self.jobs[name] = job
        return job

    def due_jobs(self, now: datetime) -> list[Job]:
        return [job for job in self.jobs.values() if job.next_run is None or job.next_run <= now]

    def run_due(self, now: Optional[datetime] = None) -> list[str]:
        """
        Run every job whose interval has elapsed. Jobs never run before are due.

        Returns the names of the jobs that ran.
        """
        now = now or self.clock()
        ran = []
        for job in self.due_jobs(now):
            self.run_job(job)
            job.next_run = now + job.interval
            ran.append(job.name)
        return ran

    def run_job(self, job: Job) -> Any:
        with self.app.app_context():
            try:
                job.last_result = job.func()
            except Exception:
                db.session.rollback()
                self.app.logger.exception("Scheduled job %s failed", job.name)
                job.last_result = None

            runner = get_trigger_runner()
            if runner is not None and not runner.run_async:
                runner.run_pending()
        return job.last_result

    def seconds_until_next(self, now: Optional[datetime] = None) -> float:
        now = now or self.clock()
        pending = [job.next_run for job in self.jobs.values() if job.next_run is not None]
        if len(pending) < len(self.jobs) or not pending:
            return 0.0
        return max(0.0, (min(pending) - now).total_seconds())

    def run_forever(self, stop_event: Optional[threading.Event] = None, max_sleep: float = 60.0) -> None:
        stop_event = stop_event or threading.Event()
        self.app.logger.info("Scheduler started with jobs: %s", ", ".join(self.jobs))
        while not stop_event.is_set():
            self.run_due()
            stop_event.wait(min(self.seconds_until_next(), max_sleep))
        self.app.logger.info("Scheduler stopped")


def init_scheduler(app) -> Scheduler:
    """Register the periodic sweeps on a Scheduler stored on the app."""
    from .services import maintenance_service, pickup_service

    scheduler = Scheduler(app)
    scheduler.add_job(
        "terminate-stale-pickups",
        app.config["PICKUP_SWEEP_INTERVAL_SECONDS"],
        pickup_service.terminate_stale_pickups,
    )
    scheduler.add_job(
        "cleanup-session-history",
        app.config["SESSION_CLEANUP_INTERVAL_SECONDS"],
        maintenance_service.cleanup_session_history,
    )
    app.extensions[EXTENSION_KEY] = scheduler
    return scheduler
