from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from voucher_engine.core.settings import settings

logger = logging.getLogger(__name__)

BOOKING_CONFIRMED = "booking.confirmed"
BOOKING_CANCELLED = "booking.cancelled"

# Edge functions of the notification subsystem, keyed by the event they consume.
SUPABASE_FUNCTIONS: dict[str, str] = {
    BOOKING_CONFIRMED: "send-booking-confirmation",
    BOOKING_CANCELLED: "send-cancellation-confirmation",
}


@dataclass(frozen=True)
class EngineEvent:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationPublisher(Protocol):
    def publish(self, event: EngineEvent) -> None:
        ...


class LoggingPublisher:
    def publish(self, event: EngineEvent) -> None:
        logger.info("notifications.skipped event=%s payload=%s", event.name, event.payload)


class SupabaseFunctionPublisher:
    def __init__(self, *, supabase_url: str, api_key: str, timeout_s: float = 10.0) -> None:
        self._base_url = (supabase_url or "").strip().rstrip("/")
        self._api_key = (api_key or "").strip()
        self._timeout = httpx.Timeout(timeout_s)

    def publish(self, event: EngineEvent) -> None:
        function_name = SUPABASE_FUNCTIONS.get(event.name)
        if not function_name:
            logger.debug("notifications.no_consumer event=%s", event.name)
            return
        url = f"{self._base_url}/functions/v1/{function_name}"
        try:
            resp = httpx.post(
                url,
                json=event.payload,
                headers={
                    "apikey": self._api_key,
                    "authorization": f"Bearer {self._api_key}",
                    "content-type": "application/json",
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("notifications.delivery_failed event=%s error=%s", event.name, exc)
            return
        if resp.status_code >= 400:
            logger.warning(
                "notifications.rejected event=%s status=%s body=%s",
                event.name,
                resp.status_code,
                resp.text[:300],
            )
            return
        logger.info("notifications.delivered event=%s function=%s", event.name, function_name)


_default_publisher: NotificationPublisher | None = None


def get_publisher() -> NotificationPublisher:
    global _default_publisher
    if _default_publisher is None:
        api_key = settings.supabase_service_role_key or settings.supabase_anon_key
        if settings.notifications_enabled and settings.supabase_url and api_key:
            _default_publisher = SupabaseFunctionPublisher(
                supabase_url=settings.supabase_url,
                api_key=api_key,
                timeout_s=settings.notifications_timeout_s,
            )
        else:
            _default_publisher = LoggingPublisher()
    return _default_publisher


def publish_after_commit(publisher: NotificationPublisher | None, event: EngineEvent) -> None:
    """Deliver an event for a state change that has already committed.

    Delivery problems are logged; they never undo the committed transition.
    """
    target = publisher or get_publisher()
    try:
        target.publish(event)
    except Exception:
        logger.exception("notifications.publish_error event=%s", event.name)


def booking_confirmed_event(booking: Any) -> EngineEvent:
    return EngineEvent(
        name=BOOKING_CONFIRMED,
        payload={
            "bookingId": booking.id,
            "voucherId": booking.voucher_id,
            "userId": booking.user_id,
        },
    )


def booking_cancelled_event(booking: Any, *, refund_eligible: bool) -> EngineEvent:
    return EngineEvent(
        name=BOOKING_CANCELLED,
        payload={
            "bookingId": booking.id,
            "refundEligible": bool(refund_eligible),
        },
    )
