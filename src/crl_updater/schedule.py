"""
Schedule expressions — turn a job's schedule string into an APScheduler trigger.

Accepted forms:
  "*/15 * * * *"   — standard 5-field crontab (minute hour dom month dow)
  "@hourly"        — descriptors: @yearly @annually @monthly @weekly
                     @daily @midnight @hourly
  "@every 1h30m"   — fixed interval, duration in the same syntax as job timeouts

Crontab day-of-week numbers follow cron, not APScheduler: 0 and 7 are Sunday,
1-5 is Monday to Friday. The field is rewritten into day names before it
reaches CronTrigger. When both day-of-month and day-of-week are restricted,
either one matching is enough, as in cron.
"""

from __future__ import annotations

from datetime import tzinfo

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from crl_updater.durations import parse_duration

_DESCRIPTORS: dict[str, dict[str, str]] = {
    "@yearly": {"month": "1", "day": "1", "hour": "0", "minute": "0"},
    "@annually": {"month": "1", "day": "1", "hour": "0", "minute": "0"},
    "@monthly": {"day": "1", "hour": "0", "minute": "0"},
    "@weekly": {"day_of_week": "sun", "hour": "0", "minute": "0"},
    "@daily": {"hour": "0", "minute": "0"},
    "@midnight": {"hour": "0", "minute": "0"},
    "@hourly": {"minute": "0"},
}

_EVERY = "@every "

# Index is the cron day number; 7 wraps to Sunday.
_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_LAST_WEEKDAY = 6


def build_trigger(expression: str, timezone: tzinfo | None = None) -> BaseTrigger:
    """
    Build a trigger for a schedule expression.

    timezone defaults to the host's local zone (APScheduler's default).

    Raises ValueError when the expression is empty or not understood.
    """
    expression = expression.strip()
    if not expression:
        raise ValueError("empty schedule expression")

    if expression in _DESCRIPTORS:
        return CronTrigger(**_DESCRIPTORS[expression], timezone=timezone)

    if expression.startswith(_EVERY):
        seconds = parse_duration(expression[len(_EVERY):])
        if seconds <= 0:
            raise ValueError(f"@every needs a positive duration, got {expression!r}")
        return IntervalTrigger(seconds=seconds, timezone=timezone)

    if expression.startswith("@"):
        raise ValueError(f"unrecognized descriptor: {expression!r}")

    return _crontab_trigger(expression, timezone)


def is_valid_schedule(expression: str) -> bool:
    try:
        build_trigger(expression)
    except ValueError:
        return False
    return True


def _crontab_trigger(expression: str, timezone: tzinfo | None) -> BaseTrigger:
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"crontab needs 5 fields, got {len(fields)}: {expression!r}")

    minute, hour, day, month, day_of_week = fields
    common = {"minute": minute, "hour": hour, "month": month, "timezone": timezone}
    weekdays = _day_of_week(day_of_week)

    if _is_unrestricted(day) or _is_unrestricted(day_of_week):
        return CronTrigger(day=_any(day), day_of_week=weekdays, **common)

    return OrTrigger([
        CronTrigger(day=day, **common),
        CronTrigger(day_of_week=weekdays, **common),
    ])


def _is_unrestricted(field: str) -> bool:
    return field.startswith(("*", "?"))


def _any(field: str) -> str:
    return "*" if field == "?" else field


def _day_of_week(field: str) -> str:
    """Rewrite a cron day-of-week field as a list of APScheduler day names."""
    if field in ("*", "?"):
        return "*"

    days: list[str] = []
    for part in field.split(","):
        span, _, step = part.partition("/")
        if span in ("*", "?"):
            first, last = 0, _LAST_WEEKDAY
        elif "-" in span:
            low, high = span.split("-", 1)
            first, last = _weekday_number(low), _weekday_number(high)
        else:
            first = _weekday_number(span)
            last = _LAST_WEEKDAY if step else first

        stride = int(step) if step else 1
        if stride < 1 or first > last:
            raise ValueError(f"invalid day-of-week range: {part!r}")
        days.extend(_WEEKDAYS[number % 7] for number in range(first, last + 1, stride))

    return ",".join(dict.fromkeys(days))


def _weekday_number(token: str) -> int:
    name = token.lower()
    if name in _WEEKDAYS:
        return _WEEKDAYS.index(name)
    if name.isdigit() and int(name) <= 7:
        return int(name)
    raise ValueError(f"invalid day of week: {token!r}")
