"""
Schedule resolution.

Works out the single effective working window of a professional on a date:
a schedule exception for that exact date wins over the weekly template.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from clinic_scheduling.core import config
from clinic_scheduling.scheduling.errors import DataAccessError
from clinic_scheduling.scheduling.stores import ScheduleStore
from clinic_scheduling.scheduling.timeutils import format_time, optional_minutes, schedule_weekday, to_minutes

logger = logging.getLogger(__name__)

PERMISSION_MARKERS = ('insufficient privilege', 'permission denied', 'row-level security')


@dataclass(frozen=True)
class WorkingWindow:
    """Working hours in minutes since midnight. `lunch_end` is only set together with `lunch_start`."""
    start: int
    end: int
    duration: int
    lunch_start: Optional[int] = None
    lunch_end: Optional[int] = None

    @property
    def has_lunch(self) -> bool:
        return self.lunch_start is not None and self.lunch_end is not None

    def as_dict(self) -> dict:
        return {
            'start': format_time(self.start),
            'end': format_time(self.end),
            'duration': self.duration,
            'lunch_start': format_time(self.lunch_start) if self.lunch_start is not None else None,
            'lunch_end': format_time(self.lunch_end) if self.lunch_end is not None else None,
        }


def _log_lookup_failure(exc: DataAccessError, lookup: str, **context) -> None:
    message = str(exc).lower()
    if any(marker in message for marker in PERMISSION_MARKERS):
        logger.warning('Access rejected while reading %s: %s context=%s', lookup, exc, context)
    else:
        logger.error('Failed to read %s: %s context=%s', lookup, exc, context)


class ScheduleResolver:
    def __init__(self, schedule_store: ScheduleStore, exception_duration: Optional[int] = None):
        self.schedule_store = schedule_store
        self.exception_duration = exception_duration or config.EXCEPTION_APPOINTMENT_DURATION_MINUTES

    def resolve_working_window(self, professional_id, target_date: date) -> Optional[WorkingWindow]:
        """
        Returns the working window in effect, or None when the professional
        has no hours that day.

        A failed lookup also yields None: hours are never guessed.
        """
        weekday = schedule_weekday(target_date)

        try:
            exception = self.schedule_store.get_exception(professional_id, target_date)
        except DataAccessError as exc:
            _log_lookup_failure(
                exc,
                'schedule exceptions',
                professional_id=professional_id,
                date=target_date.isoformat(),
                weekday=weekday,
            )
            return None

        if exception is not None:
            if exception.all_day:
                logger.debug('Professional %s blocked all day on %s', professional_id, target_date)
                return None

            if exception.start_time is None or exception.end_time is None:
                logger.error(
                    'Partial-day exception without hours for professional %s on %s',
                    professional_id,
                    target_date,
                )
                return None

            # Exceptions carry no lunch window of their own.
            return WorkingWindow(
                start=to_minutes(exception.start_time),
                end=to_minutes(exception.end_time),
                duration=self.exception_duration,
            )

        try:
            template = self.schedule_store.get_active_template(professional_id, weekday)
        except DataAccessError as exc:
            _log_lookup_failure(
                exc,
                'weekly schedule',
                professional_id=professional_id,
                date=target_date.isoformat(),
                weekday=weekday,
            )
            return None

        if template is None:
            logger.debug('No schedule for professional %s on weekday %s', professional_id, weekday)
            return None

        lunch_start = optional_minutes(template.lunch_start)
        # A lone lunch start closes the day; a lone lunch end is ignored.
        lunch_end = optional_minutes(template.lunch_end) if lunch_start is not None else None

        return WorkingWindow(
            start=to_minutes(template.start_time),
            end=to_minutes(template.end_time),
            duration=template.appointment_duration or config.DEFAULT_APPOINTMENT_DURATION_MINUTES,
            lunch_start=lunch_start,
            lunch_end=lunch_end,
        )
