"""
Slot Generation

Turns a resolved working window into the ordered list of bookable start
times for one day, and builds the multi-day / multi-professional queries the
booking screens use on top of that.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from clinic_scheduling.core import config
from clinic_scheduling.scheduling.errors import DataAccessError
from clinic_scheduling.scheduling.resolver import ScheduleResolver, WorkingWindow
from clinic_scheduling.scheduling.stores import AppointmentStore
from clinic_scheduling.scheduling.timeutils import closest_distance, format_time, normalize_time_string, to_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilitySlot:
    time: str
    available: bool
    professional_id: Any
    duration_minutes: int


@dataclass(frozen=True)
class NextAvailableSlot:
    date: date
    time: str


@dataclass(frozen=True)
class DaySummary:
    total: int
    available: int


def _segments(window: WorkingWindow) -> List[tuple[int, int]]:
    if window.lunch_start is None:
        return [(window.start, window.end)]

    morning = (window.start, min(window.lunch_start, window.end))
    if window.lunch_end is None:
        return [morning]

    afternoon = (max(window.lunch_end, window.start), window.end)
    return [morning, afternoon]


def generate_slots(
    window: WorkingWindow,
    booked_start_times: Iterable[str],
    slot_duration: int,
    professional_id: Any = None,
) -> List[AvailabilitySlot]:
    """
    Enumerates slots inside a working window.

    Morning slots run from the window start to the lunch start (or the window
    end), afternoon slots from the lunch end to the window end. Without a lunch
    end there is no afternoon. A slot is
    emitted only if it ends on or before its segment end. A slot is booked when
    its `HH:MM` start is in `booked_start_times`; appointments of a different
    length do not block the times they overlap.
    """
    if slot_duration <= 0:
        raise ValueError('slot_duration must be positive')

    booked = set(booked_start_times)
    slots: List[AvailabilitySlot] = []

    for segment_start, segment_end in _segments(window):
        current = segment_start
        while current + slot_duration <= segment_end:
            label = format_time(current)
            slots.append(
                AvailabilitySlot(
                    time=label,
                    available=label not in booked,
                    professional_id=professional_id,
                    duration_minutes=slot_duration,
                )
            )
            current += slot_duration

    return slots


class SlotGenerator:
    def __init__(self, resolver: ScheduleResolver, appointment_store: AppointmentStore):
        self.resolver = resolver
        self.appointment_store = appointment_store

    def get_available_slots(
        self,
        professional_id,
        target_date: date,
        duration: Optional[int] = None,
    ) -> List[AvailabilitySlot]:
        """Slots for one professional on one day.

        `duration` overrides the window's own appointment duration when given.
        """
        window = self.resolver.resolve_working_window(professional_id, target_date)
        if window is None:
            return []

        try:
            booked = self.appointment_store.list_booked_start_times(professional_id, target_date)
        except DataAccessError as exc:
            logger.error(
                'Failed to read appointments for professional %s on %s: %s',
                professional_id,
                target_date.isoformat(),
                exc,
            )
            return []

        slot_duration = duration or window.duration
        return generate_slots(window, booked, slot_duration, professional_id)

    def generate_slots_for_professionals(
        self,
        professional_ids: Iterable,
        target_date: date,
        duration: Optional[int] = None,
    ) -> Dict[Any, List[AvailabilitySlot]]:
        results: Dict[Any, List[AvailabilitySlot]] = {}

        for professional_id in professional_ids:
            try:
                results[professional_id] = self.get_available_slots(professional_id, target_date, duration)
            except Exception:
                logger.exception(
                    'Error getting slots for professional %s on %s',
                    professional_id,
                    target_date.isoformat(),
                )
                results[professional_id] = []

        return results

    def find_next_available_slot(
        self,
        professional_id,
        from_date: date,
        duration: Optional[int] = None,
        max_days: Optional[int] = None,
    ) -> Optional[NextAvailableSlot]:
        lookahead = config.NEXT_AVAILABLE_LOOKAHEAD_DAYS if max_days is None else max_days
        current_date = from_date

        for _ in range(lookahead):
            slots = self.get_available_slots(professional_id, current_date, duration)
            for slot in slots:
                if slot.available:
                    return NextAvailableSlot(date=current_date, time=slot.time)
            current_date += timedelta(days=1)

        return None

    def get_weekly_availability(
        self,
        professional_id,
        week_start: date,
        duration: Optional[int] = None,
    ) -> Dict[str, DaySummary]:
        result: Dict[str, DaySummary] = {}

        for offset in range(7):
            current_date = week_start + timedelta(days=offset)
            try:
                slots = self.get_available_slots(professional_id, current_date, duration)
            except Exception:
                logger.exception(
                    'Error getting weekly availability for professional %s on %s',
                    professional_id,
                    current_date.isoformat(),
                )
                slots = []

            result[current_date.isoformat()] = DaySummary(
                total=len(slots),
                available=sum(1 for slot in slots if slot.available),
            )

        return result

    def is_slot_available(
        self,
        professional_id,
        target_date: date,
        slot_time: str,
        duration: Optional[int] = None,
    ) -> bool:
        wanted = normalize_time_string(slot_time)
        for slot in self.get_available_slots(professional_id, target_date, duration):
            if slot.time == wanted:
                return slot.available
        return False

    def find_optimal_slots(
        self,
        professional_id,
        target_date: date,
        preferred_times: Iterable[str] = (),
        duration: Optional[int] = None,
    ) -> List[AvailabilitySlot]:
        available = [
            slot for slot in self.get_available_slots(professional_id, target_date, duration)
            if slot.available
        ]

        preferred = [to_minutes(value) for value in preferred_times]
        if not preferred:
            return available

        return sorted(available, key=lambda slot: closest_distance(to_minutes(slot.time), preferred))
