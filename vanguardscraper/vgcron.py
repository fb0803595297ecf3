"""
vanguardscraper.vgcron
======================

Cron expressions with second and year granularity, evaluated by
APScheduler's :class:`~apscheduler.triggers.cron.CronTrigger`.

An expression has six or seven whitespace separated fields::

    sec  min  hour  day-of-month  month  day-of-week  [year]

Fields take the usual ``*``, numbers, ranges, lists and steps. The day
fields also accept ``?`` as an alias of ``*``. Weekdays follow cron
numbering (0-7, where both 0 and 7 mean Sunday) and are rewritten into
APScheduler's weekday names, which count from Monday. When both day fields
are restricted, a date must satisfy both. Years are bounded to
:data:`MIN_YEAR`-:data:`MAX_YEAR`.

:meth:`CronSchedule.upcoming` lazily yields the trigger instants.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from apscheduler.triggers.cron import CronTrigger

if TYPE_CHECKING:
    from collections.abc import Iterator

MIN_YEAR = 1970
MAX_YEAR = 2099

_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_WEEKDAY_TERM = re.compile(r"^(?P<first>\*|\w+)(?:-(?P<last>\w+))?(?:/(?P<step>\d+))?$")


class CronError(ValueError):
    """The expression does not follow the supported cron grammar."""


def _weekday_number(token: str) -> int:
    token = token.lower()
    if token in _WEEKDAYS:
        return _WEEKDAYS.index(token)
    if token.isdigit() and int(token) <= 7:
        return int(token)
    msg = f"invalid day-of-week value: {token!r}"
    raise CronError(msg)


def weekday_field(text: str) -> str:
    """
    Rewrite a cron day-of-week field as a list of APScheduler weekday names.

    ``mon-fri`` becomes ``mon,tue,wed,thu,fri``; ``0`` and ``7`` both become
    ``sun``; ``*`` and ``?`` pass through as ``*``.
    """
    if text in ("*", "?"):
        return "*"
    names: list[str] = []
    for term in text.split(","):
        m = _WEEKDAY_TERM.match(term)
        if not m:
            msg = f"invalid day-of-week field: {text!r}"
            raise CronError(msg)
        first, last, step = m.group("first", "last", "step")
        if first == "*":
            if last:
                msg = f"invalid day-of-week field: {text!r}"
                raise CronError(msg)
            start, end = 0, 6
        else:
            start = _weekday_number(first)
            # "1/2" runs from 1 to the end of the week
            end = _weekday_number(last) if last else (7 if step else start)
        stride = int(step) if step else 1
        if start > end or stride == 0:
            msg = f"invalid day-of-week term: {term!r}"
            raise CronError(msg)
        for day in range(start, end + 1, stride):
            name = _WEEKDAYS[day % 7]
            if name not in names:
                names.append(name)
    return ",".join(names)


def _any(text: str) -> str:
    return "*" if text == "?" else text


@dataclass(frozen=True)
class CronSchedule:
    """A parsed cron expression. Build with :meth:`parse`."""

    expression: str
    trigger: CronTrigger

    @classmethod
    def parse(cls, expression: str) -> CronSchedule:
        parts = expression.lower().split()
        if len(parts) not in (6, 7):
            msg = f"expected 6 or 7 cron fields, got {len(parts)}: {expression!r}"
            raise CronError(msg)
        if len(parts) == 6:
            parts.append("*")
        sec, minute, hour, dom, month, dow, year = parts
        weekdays = weekday_field(dow)
        try:
            trigger = CronTrigger(
                year=year,
                month=month,
                day=_any(dom),
                day_of_week=weekdays,
                hour=hour,
                minute=minute,
                second=sec,
                start_date=datetime(MIN_YEAR, 1, 1, tzinfo=UTC),
                end_date=datetime(MAX_YEAR, 12, 31, 23, 59, 59, tzinfo=UTC),
                timezone="UTC",
            )
        except ValueError as e:
            msg = f"invalid cron expression {expression!r}: {e}"
            raise CronError(msg) from e
        return cls(expression, trigger)

    def upcoming(self, start: datetime) -> Iterator[datetime]:
        """
        Yield matching instants, strictly increasing, from ``start`` on.

        The first instant is the earliest match at or after ``start`` rounded
        up to a whole second. A naive ``start`` is taken as local time.
        """
        t = self.trigger.get_next_fire_time(None, start.astimezone(UTC))
        while t is not None:
            yield t.astimezone(UTC)
            t = self.trigger.get_next_fire_time(t, t)
