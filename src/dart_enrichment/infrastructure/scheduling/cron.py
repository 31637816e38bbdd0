# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Cron expressions.

Purpose:
    Parse 5-field (``min hour dom mon dow``) and 6-field
    (``sec min hour dom mon dow``) cron expressions and compute fire times in
    a configured time zone.

Supported syntax:
    ``*``, ``?``, lists (``1,15``), ranges (``1-5``), steps (``*/10``,
    ``0-30/5``, ``5/15``) and English month/day names (``JAN``, ``MON-FRI``).
    Day-of-week accepts ``0``-``7`` with both ``0`` and ``7`` meaning Sunday.

Notes:
    When both day-of-month and day-of-week are restricted a day matches if
    either matches (classic cron semantics).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_MONTH_NAMES = {
    name: index
    for index, name in enumerate(
        ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"),
        start=1,
    )
}
_DAY_NAMES = {
    name: index for index, name in enumerate(("SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"))
}

# Fire times further away than this are treated as "never".
_SEARCH_HORIZON_YEARS = 5


def _parse_value(token: str, names: Mapping[str, int]) -> int:
    upper = token.upper()
    if upper in names:
        return names[upper]
    if not token.isdigit():
        raise ValueError(f"Invalid cron value: {token!r}")
    return int(token)


def _parse_field(
    raw: str,
    low: int,
    high: int,
    names: Mapping[str, int] | None = None,
) -> frozenset[int]:
    names = names or {}
    values: set[int] = set()
    for part in raw.split(","):
        if not part:
            raise ValueError(f"Empty list item in cron field {raw!r}")
        base, _, step_raw = part.partition("/")
        step = 1
        if step_raw:
            if not step_raw.isdigit() or int(step_raw) == 0:
                raise ValueError(f"Invalid cron step: {part!r}")
            step = int(step_raw)

        if base in ("*", "?"):
            start, end = low, high
        elif "-" in base:
            left, _, right = base.partition("-")
            start, end = _parse_value(left, names), _parse_value(right, names)
        else:
            start = _parse_value(base, names)
            end = high if step_raw else start

        if start < low or end > high or start > end:
            raise ValueError(f"Cron field {part!r} out of range {low}-{high}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


def _is_restricted(raw: str) -> bool:
    return not raw.startswith(("*", "?"))


@dataclass(frozen=True)
class CronSchedule:
    """Parsed cron expression bound to a time zone."""

    expression: str
    seconds: frozenset[int]
    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]
    dom_restricted: bool
    dow_restricted: bool
    tz: tzinfo

    @classmethod
    def parse(cls, expression: str, timezone: str | tzinfo = "UTC") -> CronSchedule:
        """Parse ``expression``.

        Args:
            expression: 5- or 6-field cron expression.
            timezone: IANA zone name or a tzinfo instance.

        Raises:
            ValueError: On a malformed expression or unknown zone.
        """
        parts = expression.split()
        if len(parts) == 5:
            parts = ["0", *parts]
        if len(parts) != 6:
            raise ValueError(
                f"Cron expression must have 5 or 6 fields, got {len(parts)}: {expression!r}"
            )
        sec, minute, hour, dom, month, dow = parts

        days_of_week = _parse_field(dow, 0, 7, _DAY_NAMES)
        if 7 in days_of_week:
            days_of_week = (days_of_week - {7}) | {0}

        if isinstance(timezone, str):
            try:
                tz: tzinfo = ZoneInfo(timezone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"Unknown time zone: {timezone!r}") from exc
        else:
            tz = timezone
        return cls(
            expression=expression,
            seconds=_parse_field(sec, 0, 59),
            minutes=_parse_field(minute, 0, 59),
            hours=_parse_field(hour, 0, 23),
            days_of_month=_parse_field(dom, 1, 31),
            months=_parse_field(month, 1, 12, _MONTH_NAMES),
            days_of_week=days_of_week,
            dom_restricted=_is_restricted(dom),
            dow_restricted=_is_restricted(dow),
            tz=tz,
        )

    def matches_day(self, day: date) -> bool:
        """Return True if ``day`` satisfies the day-of-month/day-of-week fields."""
        dom_ok = day.day in self.days_of_month
        dow_ok = (day.weekday() + 1) % 7 in self.days_of_week
        if self.dom_restricted and self.dow_restricted:
            return dom_ok or dow_ok
        if self.dom_restricted:
            return dom_ok
        if self.dow_restricted:
            return dow_ok
        return True

    def next_after(self, moment: datetime) -> datetime:
        """Return the first fire time strictly after ``moment``.

        Args:
            moment: Timezone-aware reference instant.

        Returns:
            datetime: Aware datetime in the schedule's zone.

        Raises:
            ValueError: If ``moment`` is naive or the expression never fires.
        """
        if moment.tzinfo is None:
            raise ValueError("CronSchedule.next_after requires an aware datetime.")

        local = moment.astimezone(self.tz).replace(tzinfo=None, microsecond=0)
        local += timedelta(seconds=1)
        horizon = local.year + _SEARCH_HORIZON_YEARS

        while local.year <= horizon:
            if local.month not in self.months:
                first = local.replace(day=1, hour=0, minute=0, second=0)
                local = (first + timedelta(days=32)).replace(day=1)
                continue
            if not self.matches_day(local.date()):
                local = local.replace(hour=0, minute=0, second=0) + timedelta(days=1)
                continue
            if local.hour not in self.hours:
                local = local.replace(minute=0, second=0) + timedelta(hours=1)
                continue
            if local.minute not in self.minutes:
                local = local.replace(second=0) + timedelta(minutes=1)
                continue
            if local.second not in self.seconds:
                local += timedelta(seconds=1)
                continue
            return local.replace(tzinfo=self.tz)

        raise ValueError(f"Cron expression never fires: {self.expression!r}")
