"""
cadence.engine.time_parser — Reminder Time Expressions
========================================================

Turns ``"10 minutes"``, ``"2 h"`` or ``"1 day"`` into an absolute UTC
timestamp.  The grammar is deliberately small::

    <integer> <unit>
    unit := minute | minutes | m | hour | hours | h | day | days | d

Units are case-insensitive.  Zero and negative amounts are accepted and
yield a time at or before *now*; the scheduler simply fires those on its
next tick.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

__all__ = [
    "TimeParseError",
    "UNIT_SECONDS",
    "format_timestamp",
    "parse_time_expression",
    "split_reminder_request",
]

UNIT_SECONDS: dict[str, int] = {
    "minute": 60,
    "minutes": 60,
    "m": 60,
    "hour": 3600,
    "hours": 3600,
    "h": 3600,
    "day": 86400,
    "days": 86400,
    "d": 86400,
}

_INTEGER_RE = re.compile(r"^[+-]?\d+$")

# Separator between the reminder body and the time expression
REQUEST_SEPARATOR = " in "


class TimeParseError(ValueError):
    """The time expression does not match ``<integer> <unit>``."""


def parse_time_expression(text: str, *, now: datetime | None = None) -> datetime:
    """Return ``now + duration`` as an aware UTC datetime (whole seconds).

    Raises
    ------
    TimeParseError
        Wrong token count, non-integer amount, unknown unit, or a
        duration too large to represent.
    """
    parts = text.split()
    if len(parts) != 2:
        raise TimeParseError("Time format should be 'X unit'")

    amount_str, unit = parts
    if not _INTEGER_RE.match(amount_str):
        raise TimeParseError("Invalid number")
    amount = int(amount_str)

    seconds = UNIT_SECONDS.get(unit.lower())
    if seconds is None:
        raise TimeParseError("Unknown time unit")

    base = now if now is not None else datetime.now(UTC)
    if base.tzinfo is None:
        base = base.replace(tzinfo=UTC)

    try:
        due = base.astimezone(UTC) + timedelta(seconds=amount * seconds)
    except OverflowError as exc:
        raise TimeParseError("Duration out of range") from exc

    return due.replace(microsecond=0)


def split_reminder_request(text: str) -> tuple[str, str] | None:
    """Split ``'"stand up" in 10 minutes'`` into body and time expression.

    Splits on the first ``" in "``.  Returns ``None`` when the separator
    is missing.
    """
    body, sep, when = text.partition(REQUEST_SEPARATOR)
    if not sep:
        return None
    body = body.strip()
    if len(body) >= 2 and body[0] == body[-1] == '"':
        body = body[1:-1].strip()
    return body, when.strip()


def format_timestamp(dt: datetime) -> str:
    """Render a due time the way users see it: ``2026-01-15 12:00:00``."""
    return dt.strftime("%Y-%m-%d %H:%M:%S")
