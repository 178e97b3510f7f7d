import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx

from voucher_engine.services.notifications import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    EngineEvent,
    SupabaseFunctionPublisher,
    booking_cancelled_event,
    booking_confirmed_event,
    publish_after_commit,
)


class TestSupabaseFunctionPublisher(unittest.TestCase):
    def setUp(self):
        self.publisher = SupabaseFunctionPublisher(supabase_url="https://proj.supabase.co/", api_key="service-key")

    @patch("voucher_engine.services.notifications.httpx.post")
    def test_confirmation_goes_to_booking_function(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200, text="ok")
        booking = SimpleNamespace(id="b-1", voucher_id="v-1", user_id="u-1")

        self.publisher.publish(booking_confirmed_event(booking))

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://proj.supabase.co/functions/v1/send-booking-confirmation")
        self.assertEqual(kwargs["json"], {"bookingId": "b-1", "voucherId": "v-1", "userId": "u-1"})
        self.assertEqual(kwargs["headers"]["authorization"], "Bearer service-key")

    @patch("voucher_engine.services.notifications.httpx.post")
    def test_cancellation_carries_refund_flag(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200, text="ok")
        booking = SimpleNamespace(id="b-2", voucher_id="v-2", user_id="u-2")

        self.publisher.publish(booking_cancelled_event(booking, refund_eligible=False))

        args, kwargs = mock_post.call_args
        self.assertTrue(args[0].endswith("/send-cancellation-confirmation"))
        self.assertEqual(kwargs["json"], {"bookingId": "b-2", "refundEligible": False})

    @patch("voucher_engine.services.notifications.httpx.post")
    def test_transport_errors_are_logged_not_raised(self, mock_post):
        mock_post.side_effect = httpx.ConnectError("boom")
        with self.assertLogs("voucher_engine.services.notifications", level="WARNING"):
            self.publisher.publish(EngineEvent(name=BOOKING_CONFIRMED, payload={"bookingId": "b"}))

    @patch("voucher_engine.services.notifications.httpx.post")
    def test_error_status_is_logged(self, mock_post):
        mock_post.return_value = MagicMock(status_code=500, text="function crashed")
        with self.assertLogs("voucher_engine.services.notifications", level="WARNING") as logs:
            self.publisher.publish(EngineEvent(name=BOOKING_CANCELLED, payload={"bookingId": "b"}))
        self.assertIn("status=500", logs.output[0])

    @patch("voucher_engine.services.notifications.httpx.post")
    def test_unknown_event_is_ignored(self, mock_post):
        self.publisher.publish(EngineEvent(name="voucher.issued"))
        mock_post.assert_not_called()


class TestPublishAfterCommit(unittest.TestCase):
    def test_publisher_exception_is_swallowed_and_logged(self):
        broken = MagicMock()
        broken.publish.side_effect = RuntimeError("down")
        with self.assertLogs("voucher_engine.services.notifications", level="ERROR"):
            publish_after_commit(broken, EngineEvent(name=BOOKING_CONFIRMED))
        broken.publish.assert_called_once()


if __name__ == "__main__":
    unittest.main()
