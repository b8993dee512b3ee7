from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time

MINUTES_PER_DAY = 24 * 60


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


@dataclass(frozen=True)
class DailyHours:
    start_time: time
    end_time: time
    last_arrival_time: time

    def __post_init__(self) -> None:
        start = minutes_of(self.start_time)
        end = _unwrap(start, minutes_of(self.end_time))
        last_arrival = _unwrap(start, minutes_of(self.last_arrival_time))
        if last_arrival > end:
            raise ValueError("last_arrival_time must fall between start_time and end_time")


@dataclass(frozen=True)
class SpecialHours:
    date: date
    name: str
    hours: DailyHours

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("special hours name must be non-empty")


@dataclass(frozen=True)
class OperatingWindow:
    start_time: time
    end_time: time
    last_arrival_time: time
    is_special: bool
    label: str | None = None


@dataclass(frozen=True)
class OperatingHoursCalendar:
    """Recurring nightly hours plus date-keyed overrides.

    The calendar is an immutable value; callers build one from configuration
    and pass it to whatever needs to resolve a night's window.
    """

    default: DailyHours
    overrides: tuple[SpecialHours, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        seen: set[date] = set()
        for override in self.overrides:
            if override.date in seen:
                raise ValueError(f"duplicate special hours for {override.date.isoformat()}")
            seen.add(override.date)

    def resolve_window(self, on_date: date) -> OperatingWindow:
        for override in self.overrides:
            if override.date == on_date:
                return OperatingWindow(
                    start_time=override.hours.start_time,
                    end_time=override.hours.end_time,
                    last_arrival_time=override.hours.last_arrival_time,
                    is_special=True,
                    label=override.name,
                )
        return OperatingWindow(
            start_time=self.default.start_time,
            end_time=self.default.end_time,
            last_arrival_time=self.default.last_arrival_time,
            is_special=False,
        )


def _unwrap(start_minutes: int, value_minutes: int) -> int:
    # Values earlier than the opening time belong to the next calendar day.
    if value_minutes < start_minutes:
        return value_minutes + MINUTES_PER_DAY
    return value_minutes


def default_calendar() -> OperatingHoursCalendar:
    return OperatingHoursCalendar(
        default=DailyHours(
            start_time=time(23, 0),
            end_time=time(6, 0),
            last_arrival_time=time(2, 0),
        ),
        overrides=(
            SpecialHours(
                date=date(2025, 12, 24),
                name="Christmas Eve",
                hours=DailyHours(time(22, 0), time(2, 0), time(2, 0)),
            ),
            SpecialHours(
                date=date(2025, 12, 25),
                name="Christmas Day",
                hours=DailyHours(time(22, 0), time(3, 0), time(3, 0)),
            ),
            SpecialHours(
                date=date(2025, 12, 31),
                name="New Year's Eve",
                hours=DailyHours(time(21, 0), time(3, 0), time(3, 0)),
            ),
        ),
    )
