"""
Cron scheduler for hook extensions
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Set

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from croniter import croniter

logger = logging.getLogger(__name__)

# Cron numbers weekdays from Sunday (0, and 7 again); APScheduler from Monday
WEEKDAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


def _cron_weekday(value: str) -> int:
    value = value.strip().lower()
    if value in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(value)

    day = int(value)
    if not 0 <= day <= 7:
        raise ValueError(f"Day of week out of range: {value}")
    return day


def convert_day_of_week(field: str) -> str:
    """
    Translate a cron day-of-week field into APScheduler weekday names.

    Supports lists, ranges and steps ("1-5", "0,3", "*/2", "5-7"). Numbers
    follow cron: 0 and 7 are Sunday. Raises ValueError for anything else.
    """
    if field in ("*", "?"):
        return "*"

    days: Set[int] = set()
    for part in field.split(","):
        step = 1
        if "/" in part:
            part, step_value = part.split("/", 1)
            step = int(step_value)
            if step < 1:
                raise ValueError(f"Invalid step in day of week: {field}")

        if part in ("*", "?"):
            start, end = 0, 6
        elif "-" in part:
            first, last = part.split("-", 1)
            start, end = _cron_weekday(first), _cron_weekday(last)
        else:
            start = _cron_weekday(part)
            end = 6 if step > 1 else start

        if start > end:
            raise ValueError(f"Invalid day of week range: {part}")

        days.update(day % 7 for day in range(start, end + 1, step))

    if len(days) == 7:
        return "*"
    return ",".join(WEEKDAY_NAMES[day] for day in sorted(days))


def build_cron_trigger(expression: str, timezone: Any = None) -> Optional[CronTrigger]:
    """
    Parse a cron expression into a trigger.

    Accepts the standard five fields, or six fields with a leading seconds
    field. Returns None when the expression is invalid.
    """
    if not expression:
        return None

    fields = expression.split()
    if len(fields) == 5:
        second, (minute, hour, day, month, day_of_week) = "0", fields
    elif len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
    else:
        return None

    # croniter checks the calendar fields, the weekday is checked on conversion
    if not croniter.is_valid(f"{minute} {hour} {day} {month} *"):
        return None

    try:
        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=convert_day_of_week(day_of_week),
            timezone=timezone,
        )
    except ValueError:
        return None


def validate_cron(expression: str) -> bool:
    return build_cron_trigger(expression) is not None


@dataclass
class ScheduledTask:
    """Handle to one scheduled job; destroy() stops future firings"""
    job: Job
    expression: str

    @property
    def id(self) -> str:
        return self.job.id

    def destroy(self) -> None:
        try:
            self.job.remove()
        except LookupError:
            # Already removed (e.g. scheduler shut down)
            logger.debug(f"Scheduled task {self.job.id} was already removed")


class TaskScheduler:
    """APScheduler-based scheduler for extension cron jobs"""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self.scheduler = scheduler or AsyncIOScheduler()
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    def schedule(
        self,
        expression: str,
        func: Callable[[], Awaitable[Any]],
        name: Optional[str] = None,
    ) -> ScheduledTask:
        """
        Schedule an async callback on a cron expression.
        Raises ValueError if the expression is invalid.
        """
        trigger = build_cron_trigger(expression)
        if trigger is None:
            raise ValueError(f"Invalid cron expression: {expression}")

        job = self.scheduler.add_job(func, trigger, name=name or expression)
        logger.debug(f"Scheduled {job.name} ({expression})")
        return ScheduledTask(job=job, expression=expression)

    def get_tasks(self) -> List[Job]:
        return self.scheduler.get_jobs()

    def task_count(self) -> int:
        return len(self.scheduler.get_jobs())

    async def start(self):
        """Start firing scheduled jobs"""
        if self._is_running:
            return

        self.scheduler.start()
        self._is_running = True
        logger.info("Task scheduler started")

    async def stop(self):
        """Stop the scheduler"""
        if self._is_running:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("Task scheduler stopped")
