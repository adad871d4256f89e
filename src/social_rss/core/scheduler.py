"""
Task scheduler for periodic aggregation passes.

Uses APScheduler to run one repeating job plus a one-shot warm-up job.
Both share a single worker and ``max_instances=1``, so the scheduler never
starts a second pass while one is running.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MAX_INSTANCES, JobEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from social_rss.logger import get_logger

logger = get_logger(__name__)

INTERVAL_JOB_ID = "process_all"
WARMUP_JOB_ID = "initial_pass"


@dataclass
class JobStatus:
    """Status of a scheduled job."""

    job_id: str
    name: str
    next_run_time: Optional[datetime]
    trigger: str


@dataclass
class SchedulerStats:
    """Statistics for scheduler operations."""

    total_executions: int = 0
    failed_executions: int = 0
    skipped_executions: int = 0
    last_execution_time: Optional[datetime] = None
    last_error: Optional[str] = None


class FeedScheduler:
    """Runs a task on a fixed interval with an initial delayed run."""

    def __init__(
        self,
        task: Callable[[], Any],
        interval_minutes: int,
        warmup_seconds: float = 5.0,
    ):
        """Initialize feed scheduler.

        Args:
            task: Callable run on each tick (one full pass)
            interval_minutes: Minutes between ticks
            warmup_seconds: Delay before the initial run
        """
        self.task = task
        self.interval_minutes = interval_minutes
        self.warmup_seconds = warmup_seconds

        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults={"max_instances": 1, "coalesce": True},
            timezone=timezone.utc,
        )

        self.stats = SchedulerStats()
        self.start_time: Optional[datetime] = None

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._on_job_skipped, EVENT_JOB_MAX_INSTANCES)

    def start(self) -> None:
        """Start the scheduler with the interval and warm-up jobs."""
        if self.scheduler.running:
            logger.warning("Scheduler is already running")
            return

        now = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self._run_task,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=INTERVAL_JOB_ID,
            name="Scheduled RSS update",
            args=["Scheduled"],
            replace_existing=True,
        )
        self.scheduler.add_job(
            func=self._run_task,
            trigger=DateTrigger(run_date=now + timedelta(seconds=self.warmup_seconds)),
            id=WARMUP_JOB_ID,
            name="Initial RSS update",
            args=["Initial"],
            replace_existing=True,
        )

        self.scheduler.start()
        self.start_time = now
        logger.info(f"Starting RSS scheduler with {self.interval_minutes}-minute intervals")

    def stop(self, wait: bool = True) -> None:
        """Cancel both jobs and stop the scheduler.

        Args:
            wait: Whether to wait for a running pass to complete
        """
        if not self.scheduler.running:
            return

        self.scheduler.remove_all_jobs()
        self.scheduler.shutdown(wait=wait)
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_jobs(self) -> list[JobStatus]:
        return [
            JobStatus(
                job_id=job.id,
                name=job.name,
                next_run_time=job.next_run_time,
                trigger=str(job.trigger),
            )
            for job in self.scheduler.get_jobs()
        ]

    def next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(INTERVAL_JOB_ID)
        return job.next_run_time if job else None

    def _run_task(self, label: str) -> Any:
        logger.info(f"{label} RSS update starting...")
        result = self.task()
        # A None result means the task already logged its own failure
        if result is not None:
            logger.info(f"{label} update completed: {result}")
        return result

    def _on_job_executed(self, event: JobEvent) -> None:
        self.stats.total_executions += 1
        self.stats.last_execution_time = datetime.now(timezone.utc)
        self.stats.last_error = None

    def _on_job_error(self, event: JobEvent) -> None:
        self.stats.total_executions += 1
        self.stats.failed_executions += 1
        self.stats.last_execution_time = datetime.now(timezone.utc)
        exception = event.exception
        if exception:
            self.stats.last_error = f"{type(exception).__name__}: {exception}"
            logger.error(f"Job {event.job_id} failed: {self.stats.last_error}")

    def _on_job_skipped(self, event: JobEvent) -> None:
        self.stats.skipped_executions += 1
        logger.warning(f"Job {event.job_id} skipped: previous run still in progress")


def create_scheduler(
    task: Callable[[], Any],
    interval_minutes: int,
    warmup_seconds: float = 5.0,
) -> FeedScheduler:
    """Create a configured FeedScheduler instance."""
    return FeedScheduler(task, interval_minutes=interval_minutes, warmup_seconds=warmup_seconds)
