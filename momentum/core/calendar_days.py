"""Calendar-day helpers — pure date arithmetic on local calendar days.

Every date crossing the store boundary is a canonical "YYYY-MM-DD" key.
Day differences are computed on UTC-normalized keys so that local midnight
and DST shifts never produce an off-by-one.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

# Day-key parsing is shared with the store-boundary records
from momentum.data.coercion import parse_day, to_day_key  # noqa: F401

DAY_MS = 24 * 60 * 60 * 1000

# Index 0 = Sunday … 6 = Saturday (the weekly mask bit order)
WEEKDAY_NAMES = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)
WEEKDAY_SHORT = tuple(name[:3] for name in WEEKDAY_NAMES)

# Supported timeline window lengths, in days
TIMELINE_RANGES = (7, 14, 30)


@dataclass(frozen=True)
class DayLabel:
    """One column of a timeline window."""

    iso_date: str        # YYYY-MM-DD
    day_name: str        # "Today", "Tomorrow", or full weekday name
    day_short: str       # "Mon"
    date_label: str      # "Jan 5"
    date_short: str      # "5"


def day_key_to_utc_ms(day: date) -> int:
    """Milliseconds since the epoch at UTC midnight of the given calendar day."""
    midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return int(midnight.timestamp()) * 1000


def days_between(anchor: date, day: date) -> int:
    """Whole days from anchor to day (negative when day precedes anchor)."""
    return (day_key_to_utc_ms(day) - day_key_to_utc_ms(anchor)) // DAY_MS


def weekday_index(day: date) -> int:
    """Day of week with Sunday = 0 … Saturday = 6."""
    return (day.weekday() + 1) % 7


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def today() -> date:
    """Today's local calendar day."""
    return date.today()


def date_window(start: date, range_days: int) -> list[DayLabel]:
    """Build the labelled, inclusive window of range_days days from start.

    The first two columns are labelled "Today" and "Tomorrow". Raises
    ValueError when range_days is not one of TIMELINE_RANGES.
    """
    if range_days not in TIMELINE_RANGES:
        raise ValueError(f"range must be one of {TIMELINE_RANGES}, got {range_days}")
    labels: list[DayLabel] = []
    for offset in range(range_days):
        day = add_days(start, offset)
        if offset == 0:
            name = "Today"
        elif offset == 1:
            name = "Tomorrow"
        else:
            name = WEEKDAY_NAMES[weekday_index(day)]
        labels.append(DayLabel(
            iso_date=to_day_key(day),
            day_name=name,
            day_short=WEEKDAY_SHORT[weekday_index(day)],
            date_label=f"{day.strftime('%b')} {day.day}",
            date_short=str(day.day),
        ))
    return labels


def shift_window(
    current: date,
    direction: int,
    range_days: int,
    today_: date,
    horizon_days: int,
) -> date:
    """Move a window start one range forward (direction=1) or back (-1).

    The result is clamped to [today_, today_ + max(0, horizon_days - range_days)].
    """
    if direction not in (-1, 1):
        raise ValueError(f"direction must be -1 or 1, got {direction}")
    earliest = today_
    latest = add_days(today_, max(0, horizon_days - range_days))
    moved = add_days(current, direction * range_days)
    if moved < earliest:
        return earliest
    if moved > latest:
        return latest
    return moved
