import unittest
from datetime import timedelta

from engine_fixtures import NOW, issue_active_voucher, make_session_factory

from voucher_engine.models.voucher import Voucher, VoucherStatus
from voucher_engine.services.expiry_sweeper import sweep_expired_vouchers
from voucher_engine.services.voucher_validator import validate_voucher_code


class TestExpirySweeper(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = make_session_factory()
        self.db = self.Session()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _status(self, voucher_id: str) -> VoucherStatus:
        voucher = self.db.query(Voucher).filter(Voucher.id == voucher_id).populate_existing().one()
        return VoucherStatus(voucher.status)

    def test_only_lapsed_active_vouchers_expire(self):
        short = issue_active_voucher(self.db, validity_months=1).id
        long = issue_active_voucher(self.db, validity_months=24).id

        result = sweep_expired_vouchers(self.db, now=NOW + timedelta(days=60))
        self.assertEqual(result.updated_count, 1)
        self.assertEqual(self._status(short), VoucherStatus.EXPIRED)
        self.assertEqual(self._status(long), VoucherStatus.ACTIVE)

    def test_second_run_is_a_no_op(self):
        issue_active_voucher(self.db, validity_months=1)
        later = NOW + timedelta(days=60)
        self.assertEqual(sweep_expired_vouchers(self.db, now=later).updated_count, 1)
        self.assertEqual(sweep_expired_vouchers(self.db, now=later).updated_count, 0)

    def test_expiry_instant_itself_is_not_swept(self):
        voucher = issue_active_voucher(self.db, validity_months=1)
        expiry = voucher.expiry_date
        self.assertEqual(sweep_expired_vouchers(self.db, now=expiry).updated_count, 0)
        self.assertEqual(
            sweep_expired_vouchers(self.db, now=expiry + timedelta(seconds=1)).updated_count,
            1,
        )

    def test_non_active_statuses_are_never_touched(self):
        ids = {}
        for status in (VoucherStatus.USED, VoucherStatus.EXCHANGED, VoucherStatus.TRANSFERRED):
            voucher = issue_active_voucher(self.db, validity_months=1)
            voucher.status = status
            ids[status] = voucher.id
        self.db.commit()

        result = sweep_expired_vouchers(self.db, now=NOW + timedelta(days=400))
        self.assertEqual(result.updated_count, 0)
        for status, voucher_id in ids.items():
            self.assertEqual(self._status(voucher_id), status)

    def test_swept_voucher_reports_not_active(self):
        voucher = issue_active_voucher(self.db, validity_months=1)
        later = NOW + timedelta(days=60)
        before = validate_voucher_code(self.db, voucher.code, now=later)
        sweep_expired_vouchers(self.db, now=later)
        after = validate_voucher_code(self.db, voucher.code, now=later)

        self.assertEqual(before.error_code.value, "VoucherLapsed")
        self.assertEqual(after.error_code.value, "VoucherNotActive")
        self.assertEqual(after.error_message, "This voucher has expired")


if __name__ == "__main__":
    unittest.main()
