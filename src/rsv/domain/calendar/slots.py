from __future__ import annotations

from datetime import date, time

from rsv.domain.calendar.hours import MINUTES_PER_DAY, OperatingHoursCalendar, minutes_of

SLOT_INTERVAL_MINUTES = 30


class InvalidSlotFormatError(ValueError):
    pass


def generate_slots(calendar: OperatingHoursCalendar, on_date: date) -> tuple[time, ...]:
    """Arrival slots for the night starting on ``on_date``.

    Slots run every 30 minutes from opening up to and including the last
    arrival time. A last arrival earlier than opening belongs to the next
    calendar day, so nights that cross midnight are walked in minutes past the
    opening day's midnight and folded back into clock times.
    """
    window = calendar.resolve_window(on_date)
    start = minutes_of(window.start_time)
    last_arrival = minutes_of(window.last_arrival_time)
    if last_arrival < start:
        last_arrival += MINUTES_PER_DAY

    return tuple(
        time((minute // 60) % 24, minute % 60)
        for minute in range(start, last_arrival + 1, SLOT_INTERVAL_MINUTES)
    )


def is_valid_slot(calendar: OperatingHoursCalendar, on_date: date, arrival: time) -> bool:
    return arrival in generate_slots(calendar, on_date)


def parse_slot(value: str) -> time:
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() and len(part) == 2 for part in parts):
        raise InvalidSlotFormatError(f"time slot must be formatted HH:MM, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        raise InvalidSlotFormatError(f"time slot out of range: {value!r}")
    return time(hour, minute)


def format_slot(value: time) -> str:
    return value.strftime("%H:%M")
