from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from voucher_engine.core.settings import settings
from voucher_engine.services.clock import as_utc


@dataclass(frozen=True)
class ModificationPolicy:
    """When a confirmed booking may still be changed by its holder.

    Refund eligibility on cancellation is the same predicate as the window check:
    a cancellation that passes the window is refundable.
    """

    window: timedelta = timedelta(hours=48)
    max_free_reschedules: int = 1

    @property
    def window_hours(self) -> int:
        return int(self.window.total_seconds() // 3600)

    def window_open(self, booking_date: datetime, now: datetime) -> bool:
        return as_utc(booking_date) - as_utc(now) >= self.window

    def reschedule_allowed(self, rescheduled_count: int | None) -> bool:
        return int(rescheduled_count or 0) < self.max_free_reschedules

    def refund_eligible(self, booking_date: datetime, now: datetime) -> bool:
        return self.window_open(booking_date, now)


def default_policy() -> ModificationPolicy:
    return ModificationPolicy(
        window=timedelta(hours=settings.modification_window_hours),
        max_free_reschedules=settings.max_free_reschedules,
    )
