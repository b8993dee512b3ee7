from __future__ import annotations

import datetime as dt
import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

from rsv.application.booking_policy import BookingPolicy
from rsv.domain.calendar.hours import (
    DailyHours,
    OperatingHoursCalendar,
    SpecialHours,
    default_calendar,
)
from rsv.domain.common.money import Money


class HoursConfig(BaseModel):
    start_time: dt.time
    end_time: dt.time
    last_arrival_time: dt.time

    def to_domain(self) -> DailyHours:
        return DailyHours(
            start_time=self.start_time,
            end_time=self.end_time,
            last_arrival_time=self.last_arrival_time,
        )


class SpecialHoursConfig(HoursConfig):
    date: dt.date
    name: str = Field(min_length=1)


class CalendarConfig(BaseModel):
    default: HoursConfig
    special_hours: list[SpecialHoursConfig] = Field(default_factory=list)

    def to_domain(self) -> OperatingHoursCalendar:
        return OperatingHoursCalendar(
            default=self.default.to_domain(),
            overrides=tuple(
                SpecialHours(date=item.date, name=item.name, hours=item.to_domain())
                for item in self.special_hours
            ),
        )


def load_calendar(path: str | Path | None = None) -> OperatingHoursCalendar:
    """Reads OPERATING_HOURS_FILE, falling back to the venue's built-in hours."""
    source = path or os.getenv("OPERATING_HOURS_FILE")
    if not source:
        return default_calendar()
    raw = Path(source).read_text(encoding="utf-8")
    return CalendarConfig.model_validate_json(raw).to_domain()


@lru_cache(maxsize=1)
def get_calendar() -> OperatingHoursCalendar:
    return load_calendar()


def booking_policy_from_env() -> BookingPolicy:
    return BookingPolicy(
        deposit=Money(
            amount_cents=int(os.getenv("DEPOSIT_AMOUNT_CENTS", "5000")),
            currency=os.getenv("DEPOSIT_CURRENCY", "GBP").upper(),
        ),
        max_days_ahead=int(os.getenv("BOOKING_MAX_DAYS_AHEAD", "31")),
    )
