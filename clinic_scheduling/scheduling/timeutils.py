"""
Time helpers for availability computation.

All arithmetic is done in integer minutes since midnight. `HH:MM` strings and
`datetime.time` values are only produced or consumed at the edges.
"""

import re
from datetime import date, time
from typing import Iterable, Optional, Union

MINUTES_PER_DAY = 24 * 60

TIME_PATTERN = re.compile(r'^([01]?[0-9]|2[0-3]):([0-5][0-9])$')

TimeLike = Union[str, time, int]


def parse_time(value: str) -> int:
    """Parse an `HH:MM` (or `HH:MM:SS`) string into minutes since midnight."""
    text = value.strip()
    # Postgres TIME columns come back as HH:MM:SS
    if text.count(':') == 2:
        text = text.rsplit(':', 1)[0]

    match = TIME_PATTERN.match(text)
    if not match:
        raise ValueError(f'Invalid time: {value!r}')

    return int(match.group(1)) * 60 + int(match.group(2))


def to_minutes(value: TimeLike) -> int:
    if isinstance(value, bool):
        raise TypeError('Cannot convert bool to minutes')
    if isinstance(value, int):
        if not 0 <= value <= MINUTES_PER_DAY:
            raise ValueError(f'Minutes out of range: {value}')
        return value
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if isinstance(value, str):
        return parse_time(value)
    raise TypeError(f'Cannot convert {type(value)} to minutes')


def optional_minutes(value: Optional[TimeLike]) -> Optional[int]:
    if value is None or value == '':
        return None
    return to_minutes(value)


def format_time(minutes: int) -> str:
    """Format minutes since midnight as `HH:MM`."""
    hours, mins = divmod(minutes, 60)
    return f'{hours:02d}:{mins:02d}'


def to_time(minutes: int) -> time:
    hours, mins = divmod(minutes, 60)
    return time(hours, mins)


def normalize_time_string(value: TimeLike) -> str:
    return format_time(to_minutes(value))


def add_minutes_to_time(value: TimeLike, minutes: int) -> str:
    return format_time(to_minutes(value) + minutes)


def calculate_duration(start: TimeLike, end: TimeLike) -> int:
    """Minutes between two times of the same day."""
    return to_minutes(end) - to_minutes(start)


def generate_time_slots(start: TimeLike, end: TimeLike, interval_minutes: int = 30) -> list[str]:
    """Start times from `start` up to (not including) `end`, every `interval_minutes`.

    Unlike slot generation this does not check that the last step fits before
    `end`; it lists grid points, not bookable slots.
    """
    if interval_minutes <= 0:
        raise ValueError('interval_minutes must be positive')

    current = to_minutes(start)
    end_minutes = to_minutes(end)
    slots = []

    while current < end_minutes:
        slots.append(format_time(current))
        current += interval_minutes

    return slots


def is_time_in_business_hours(
    value: TimeLike,
    start: TimeLike,
    end: TimeLike,
    lunch_start: Optional[TimeLike] = None,
    lunch_end: Optional[TimeLike] = None,
) -> bool:
    minutes = to_minutes(value)

    if minutes < to_minutes(start) or minutes >= to_minutes(end):
        return False

    lunch_start_minutes = optional_minutes(lunch_start)
    lunch_end_minutes = optional_minutes(lunch_end)
    if lunch_start_minutes is not None and lunch_end_minutes is not None:
        if lunch_start_minutes <= minutes < lunch_end_minutes:
            return False

    return True


def schedule_weekday(target_date: date) -> int:
    """Weekday as stored on schedule templates: 0=Sunday .. 6=Saturday."""
    return (target_date.weekday() + 1) % 7


def closest_distance(minutes: int, preferred: Iterable[int]) -> int:
    return min(abs(minutes - candidate) for candidate in preferred)
