import unittest
from datetime import timedelta
from unittest.mock import patch

from engine_fixtures import NOW, USER_ID, RecordingPublisher, issue_active_voucher, make_session_factory

from voucher_engine.models.booking import Booking, BookingStatus
from voucher_engine.models.voucher import Voucher, VoucherStatus
from voucher_engine.services.clock import as_utc
from voucher_engine.services.errors import ErrorCode, InvariantViolation
from voucher_engine.services.notifications import BOOKING_CONFIRMED
from voucher_engine.services.redemption import redeem_voucher


class TestRedemption(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = make_session_factory()
        self.db = self.Session()
        self.publisher = RecordingPublisher()
        self.voucher = issue_active_voucher(self.db)
        self.voucher_id = self.voucher.id

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _redeem(self, db=None, **overrides):
        kwargs = {
            "voucher_id": self.voucher_id,
            "user_id": USER_ID,
            "booking_date": NOW + timedelta(days=10),
            "participants": 2,
            "now": NOW,
            "publisher": self.publisher,
        }
        kwargs.update(overrides)
        return redeem_voucher(db or self.db, **kwargs)

    def _assert_linked(self, booking_id: str) -> None:
        voucher = self.db.query(Voucher).filter(Voucher.id == self.voucher_id).populate_existing().one()
        booking = self.db.query(Booking).filter(Booking.id == booking_id).one()
        self.assertEqual(VoucherStatus(voucher.status), VoucherStatus.USED)
        self.assertEqual(voucher.linked_booking_id, booking.id)
        self.assertEqual(as_utc(voucher.redemption_date), NOW)
        self.assertEqual(booking.voucher_id, voucher.id)
        self.assertNotEqual(BookingStatus(booking.status), BookingStatus.PENDING)

    def test_redeem_creates_confirmed_booking(self):
        result = self._redeem(special_requests="  vegetarian menu ")
        self.assertTrue(result.success)
        self.assertIsNotNone(result.booking_id)
        self._assert_linked(result.booking_id)

        booking = self.db.query(Booking).filter(Booking.id == result.booking_id).one()
        self.assertEqual(BookingStatus(booking.status), BookingStatus.CONFIRMED)
        self.assertEqual(booking.rescheduled_count, 0)
        self.assertEqual(booking.participants, 2)
        self.assertEqual(booking.experience_id, "E1")
        self.assertEqual(booking.user_id, USER_ID)
        self.assertEqual(booking.special_requests, "vegetarian menu")
        self.assertEqual(as_utc(booking.booking_date), NOW + timedelta(days=10))

    def test_success_publishes_confirmation(self):
        result = self._redeem()
        self.assertEqual(len(self.publisher.events), 1)
        event = self.publisher.events[0]
        self.assertEqual(event.name, BOOKING_CONFIRMED)
        self.assertEqual(event.payload["bookingId"], result.booking_id)
        self.assertEqual(event.payload["voucherId"], self.voucher_id)

    def test_second_redeem_is_rejected(self):
        first = self._redeem()
        second = self._redeem()
        self.assertTrue(first.success)
        self.assertFalse(second.success)
        self.assertEqual(second.error_code, ErrorCode.VOUCHER_ALREADY_REDEEMED)
        self.assertEqual(second.error_message, "This voucher was already used")
        self.assertEqual(self.db.query(Booking).count(), 1)
        self.assertEqual(len(self.publisher.events), 1)

    def test_unknown_voucher(self):
        result = self._redeem(voucher_id="missing")
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, ErrorCode.VOUCHER_NOT_FOUND)

    def test_non_active_voucher(self):
        for status in (VoucherStatus.EXPIRED, VoucherStatus.EXCHANGED, VoucherStatus.TRANSFERRED):
            voucher = self.db.query(Voucher).filter(Voucher.id == self.voucher_id).one()
            voucher.status = status
            self.db.commit()
            result = self._redeem()
            self.assertFalse(result.success)
            self.assertEqual(result.error_code, ErrorCode.VOUCHER_NOT_ACTIVE)
        self.assertEqual(self.db.query(Booking).count(), 0)

    def test_lapsed_voucher_rejected_before_sweep(self):
        later = NOW + timedelta(days=400)
        result = self._redeem(now=later, booking_date=later + timedelta(days=5))
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, ErrorCode.VOUCHER_LAPSED)
        voucher = self.db.query(Voucher).filter(Voucher.id == self.voucher_id).populate_existing().one()
        self.assertEqual(VoucherStatus(voucher.status), VoucherStatus.ACTIVE)

    def test_invalid_parameters(self):
        cases = [
            {"participants": 0},
            {"participants": -3},
            {"booking_date": NOW - timedelta(minutes=1)},
        ]
        for overrides in cases:
            result = self._redeem(**overrides)
            self.assertFalse(result.success, overrides)
            self.assertEqual(result.error_code, ErrorCode.INVALID_BOOKING_PARAMETERS)
        voucher = self.db.query(Voucher).filter(Voucher.id == self.voucher_id).populate_existing().one()
        self.assertEqual(VoucherStatus(voucher.status), VoucherStatus.ACTIVE)
        self.assertEqual(self.db.query(Booking).count(), 0)
        self.assertEqual(self.publisher.events, [])

    def test_naive_booking_date_is_treated_as_utc(self):
        result = self._redeem(booking_date=(NOW + timedelta(days=3)).replace(tzinfo=None))
        self.assertTrue(result.success)

    def test_stale_read_loses_to_committed_redemption(self):
        stale = self.db.query(Voucher).filter(Voucher.id == self.voucher_id).one()
        self.db.expunge(stale)

        winner = self._redeem()
        self.assertTrue(winner.success)

        with patch("voucher_engine.services.redemption._lock_voucher", return_value=stale):
            loser = self._redeem(booking_date=NOW + timedelta(days=20))

        self.assertFalse(loser.success)
        self.assertEqual(loser.error_code, ErrorCode.VOUCHER_ALREADY_REDEEMED)
        self.assertEqual(self.db.query(Booking).count(), 1)
        self._assert_linked(winner.booking_id)

    def test_competing_sessions_exactly_one_wins(self):
        results = []
        for _ in range(5):
            session = self.Session()
            try:
                results.append(self._redeem(db=session))
            finally:
                session.close()
        self.assertEqual(sum(1 for r in results if r.success), 1)
        losers = [r for r in results if not r.success]
        self.assertTrue(all(r.error_code == ErrorCode.VOUCHER_ALREADY_REDEEMED for r in losers))
        self.assertEqual(self.db.query(Booking).count(), 1)

    def test_publisher_failure_does_not_undo_redemption(self):
        class BrokenPublisher:
            def publish(self, event):
                raise RuntimeError("mail relay down")

        result = self._redeem(publisher=BrokenPublisher())
        self.assertTrue(result.success)
        self._assert_linked(result.booking_id)

    def test_used_voucher_without_link_is_corruption(self):
        voucher = self.db.query(Voucher).filter(Voucher.id == self.voucher_id).one()
        voucher.status = VoucherStatus.USED
        self.db.commit()
        with self.assertRaises(InvariantViolation):
            self._redeem()


if __name__ == "__main__":
    unittest.main()
