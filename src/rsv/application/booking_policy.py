from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from rsv.domain.common.money import Money


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BookingPolicy:
    deposit: Money = field(default_factory=lambda: Money(amount_cents=5000, currency="GBP"))
    max_days_ahead: int = 31
    clock: Callable[[], datetime] = _utc_now

    def __post_init__(self) -> None:
        if self.max_days_ahead < 0:
            raise ValueError("max_days_ahead must be >= 0")

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.clock().date()

    def latest_bookable_date(self) -> date:
        return self.today() + timedelta(days=self.max_days_ahead)

    def within_booking_window(self, on_date: date) -> bool:
        return self.today() <= on_date <= self.latest_bookable_date()
