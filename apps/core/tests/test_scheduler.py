from datetime import datetime, timezone

import pytest
from apscheduler.triggers.cron import CronTrigger

from scheduler import TaskScheduler, build_cron_trigger, convert_day_of_week, validate_cron

# A Sunday
SUNDAY_NOON = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("expression", ["*/5 * * * *", "0 6 * * 1-5", "30 */2 * * * *", "0 0 * * 7", "0 0 * * sun"])
def test_valid_cron_expressions(expression):
    assert isinstance(build_cron_trigger(expression), CronTrigger)
    assert validate_cron(expression)


@pytest.mark.parametrize(
    "expression",
    ["", "not-a-schedule", "61 * * * *", "* * *", "99 * * * * *", "0 0 * * 8", "0 0 * * 5-2"],
)
def test_invalid_cron_expressions(expression):
    assert build_cron_trigger(expression) is None
    assert not validate_cron(expression)


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("0 9 * * 1", datetime(2026, 10, 19, 9, 0)),
        ("0 0 * * 0", datetime(2026, 10, 25, 0, 0)),
        ("0 0 * * 7", datetime(2026, 10, 25, 0, 0)),
        ("0 8 * * 1-5", datetime(2026, 10, 19, 8, 0)),
        ("0 8 * * 5-7", datetime(2026, 10, 23, 8, 0)),
        ("0 8 * * */2", datetime(2026, 10, 20, 8, 0)),
        ("30 0 12 * * 6", datetime(2026, 10, 24, 12, 0, 30)),
    ],
)
def test_weekdays_fire_on_cron_days(expression, expected):
    trigger = build_cron_trigger(expression, timezone=timezone.utc)

    fire_time = trigger.get_next_fire_time(None, SUNDAY_NOON)

    assert fire_time == expected.replace(tzinfo=timezone.utc)


def test_seconds_field_fires_within_the_minute():
    trigger = build_cron_trigger("45 * * * * *", timezone=timezone.utc)

    assert trigger.get_next_fire_time(None, SUNDAY_NOON) == datetime(2026, 10, 18, 12, 0, 45, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "field, expected",
    [
        ("*", "*"),
        ("1-5", "mon,tue,wed,thu,fri"),
        ("0,7", "sun"),
        ("6-7", "sun,sat"),
        ("1/3", "mon,thu"),
        ("0-6", "*"),
        ("SAT", "sat"),
    ],
)
def test_convert_day_of_week(field, expected):
    assert convert_day_of_week(field) == expected


async def test_schedule_and_destroy_task():
    scheduler = TaskScheduler()

    async def job():
        pass

    task = scheduler.schedule("*/5 * * * *", job, name="cleanup")

    assert scheduler.task_count() == 1
    assert task.job.name == "cleanup"

    task.destroy()

    assert scheduler.task_count() == 0

    # Destroying twice is harmless
    task.destroy()


def test_schedule_rejects_invalid_expression():
    scheduler = TaskScheduler()

    with pytest.raises(ValueError):
        scheduler.schedule("not-a-schedule", lambda: None)

    assert scheduler.task_count() == 0
