"""Named periodic tasks with cooperative cancellation.

Tasks are registered as APScheduler jobs on an ``AsyncIOScheduler``: a
cron expression becomes a ``CronTrigger`` in the scheduler's time zone and
a fixed delay becomes an ``IntervalTrigger``. Every job allows a single
running instance and coalesces missed runs. Stopping is observed between
ticks only: a running tick always finishes.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Awaitable, Callable, Dict, List, Optional, Set
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

TaskAction = Callable[[], Awaitable[object]]

UTC = ZoneInfo("UTC")


class CancellationToken:
    """Cooperative stop flag that can also be awaited."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep until cancelled or until ``timeout`` seconds pass.

        Returns:
            True if the token was cancelled.
        """
        if timeout is not None and timeout <= 0:
            return self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True


@dataclass
class PeriodicTask:
    """A named job and its schedule.

    Exactly one of ``cron`` and ``interval_seconds`` must be set.

    Attributes:
        name: Unique task name, also the APScheduler job id.
        action: Coroutine function run on every tick.
        cron: Five-field cron expression.
        interval_seconds: Fixed delay between tick start times.
        run_immediately: Run one tick as soon as the scheduler starts.
        active: False once the task has been cancelled.
    """

    name: str
    action: TaskAction
    cron: Optional[str] = None
    interval_seconds: Optional[float] = None
    run_immediately: bool = False
    active: bool = True
    runs: int = 0
    failures: int = 0
    last_run_at: Optional[datetime] = None

    def trigger(self, timezone: tzinfo = UTC) -> BaseTrigger:
        """Build the APScheduler trigger for this task's schedule.

        Raises:
            ConfigurationError: If the schedule is missing, doubled or invalid.
        """
        if (self.cron is None) == (self.interval_seconds is None):
            raise ConfigurationError(
                f"Task {self.name!r} needs exactly one of cron or interval_seconds"
            )
        if self.cron is not None:
            try:
                return CronTrigger.from_crontab(self.cron, timezone=timezone)
            except ValueError as e:
                raise ConfigurationError(
                    f"Task {self.name!r} has an invalid cron expression: {self.cron!r}"
                ) from e
        if self.interval_seconds <= 0:
            raise ConfigurationError(f"Task {self.name!r} interval must be positive")
        return IntervalTrigger(seconds=self.interval_seconds, timezone=timezone)

    def validate(self) -> None:
        self.trigger()


class TaskScheduler:
    """Runs named periodic tasks until they are cancelled.

    Example:
        >>> scheduler = TaskScheduler(timezone="UTC")
        >>> scheduler.add(PeriodicTask("email", service.run_email_job, cron="0 10 * * *"))
        >>> scheduler.start()
        >>> await scheduler.stop()
    """

    def __init__(self, timezone: str = "UTC") -> None:
        try:
            self.timezone = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown scheduler timezone: {timezone!r}") from e
        self._scheduler = AsyncIOScheduler(timezone=self.timezone)
        self._tasks: Dict[str, PeriodicTask] = {}
        self._running_ticks: Set[asyncio.Task] = set()

    @property
    def tasks(self) -> List[PeriodicTask]:
        return list(self._tasks.values())

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def add(self, task: PeriodicTask) -> PeriodicTask:
        """Register a task as a scheduler job.

        Raises:
            ValueError: If a task with the same name exists.
            ConfigurationError: If the schedule is invalid.
        """
        if task.name in self._tasks:
            raise ValueError(f"Task {task.name!r} is already registered")
        trigger = task.trigger(self.timezone)
        options = {}
        if task.run_immediately:
            options["next_run_time"] = self.now()
        self._scheduler.add_job(
            self._tick,
            trigger=trigger,
            args=[task],
            id=task.name,
            name=task.name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **options,
        )
        self._tasks[task.name] = task
        logger.info(
            "Task %s scheduled (%s)",
            task.name,
            f"cron {task.cron}" if task.cron else f"every {task.interval_seconds}s",
        )
        return task

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    def next_run(self, task: PeriodicTask, after: Optional[datetime] = None) -> datetime:
        """Time of the task's first tick strictly after ``after`` (default: now)."""
        after = after or self.now()
        return task.trigger(self.timezone).get_next_fire_time(after, after)

    def seconds_until_next_run(self, task: PeriodicTask) -> float:
        now = self.now()
        return max(0.0, (self.next_run(task, now) - now).total_seconds())

    async def _tick(self, task: PeriodicTask) -> None:
        current = asyncio.current_task()
        self._running_ticks.add(current)
        task.last_run_at = self.now()
        task.runs += 1
        try:
            await task.action()
        except Exception:
            task.failures += 1
            logger.exception("Task %s failed; keeping its schedule", task.name)
        finally:
            self._running_ticks.discard(current)

    def start(self) -> None:
        """Start the underlying scheduler; must be called inside a running loop."""
        if self._scheduler.running:
            self._scheduler.resume()
            return
        self._scheduler.start()

    def cancel(self, name: str) -> None:
        """Remove a task's job; a tick already running still finishes.

        Raises:
            KeyError: If no task with that name is registered.
        """
        task = self._tasks[name]
        if task.active:
            self._scheduler.remove_job(name)
            task.active = False
            logger.info("Task %s cancelled after %d runs", name, task.runs)

    async def stop(self) -> None:
        """Stop scheduling new ticks and wait for running ones to finish."""
        if not self._scheduler.running:
            return
        self._scheduler.pause()
        if self._running_ticks:
            await asyncio.gather(*self._running_ticks, return_exceptions=True)
        self._scheduler.shutdown(wait=True)
        for task in self._tasks.values():
            logger.info("Task %s stopped after %d runs", task.name, task.runs)

    async def run_forever(self, token: Optional[CancellationToken] = None) -> None:
        """Start all tasks and block until ``token`` is cancelled."""
        token = token or CancellationToken()
        self.start()
        try:
            await token.wait()
        finally:
            await self.stop()
