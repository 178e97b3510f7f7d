from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from voucher_engine.core.database import Base
from voucher_engine.models.booking import Booking, BookingStatus
from voucher_engine.models.experience import Experience
from voucher_engine.models.voucher import Voucher, VoucherStatus
from voucher_engine.services.booking_changes import cancel_booking, reschedule_booking
from voucher_engine.services.expiry_sweeper import sweep_expired_vouchers
from voucher_engine.services.notifications import LoggingPublisher
from voucher_engine.services.redemption import redeem_voucher
from voucher_engine.services.voucher_issuer import issue_voucher
from voucher_engine.services.voucher_validator import validate_voucher_code


def main() -> None:
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    publisher = LoggingPublisher()
    try:
        now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        db.add(Experience(id="E1", title="Sunset kayak tour", price=Decimal("300.00"), is_active=True))
        db.commit()

        issued = issue_voucher(db, experience_id="E1", owner_user_id="user-1", now=now)
        assert issued.success, issued
        voucher_id = issued.voucher.id

        check = validate_voucher_code(db, issued.voucher.code.lower(), now=now)
        assert check.is_valid and check.voucher_id == voucher_id, check

        redeemed = redeem_voucher(
            db,
            voucher_id=voucher_id,
            user_id="user-1",
            booking_date=now + timedelta(days=10),
            participants=2,
            now=now,
            publisher=publisher,
        )
        assert redeemed.success, redeemed
        again = redeem_voucher(
            db,
            voucher_id=voucher_id,
            user_id="user-1",
            booking_date=now + timedelta(days=10),
            participants=2,
            now=now,
            publisher=publisher,
        )
        assert not again.success and again.error_code.value == "VoucherAlreadyRedeemed", again

        moved = reschedule_booking(db, booking_id=redeemed.booking_id, new_booking_date=now + timedelta(days=12), now=now)
        assert moved.success, moved
        moved_again = reschedule_booking(db, booking_id=redeemed.booking_id, new_booking_date=now + timedelta(days=14), now=now)
        assert moved_again.error_code.value == "RescheduleLimitReached", moved_again

        cancelled = cancel_booking(
            db,
            booking_id=redeemed.booking_id,
            reason="schedule conflict",
            now=now + timedelta(days=3),
            publisher=publisher,
        )
        assert cancelled.success and cancelled.refund_eligible, cancelled

        booking = db.query(Booking).filter(Booking.id == redeemed.booking_id).one()
        assert BookingStatus(booking.status) == BookingStatus.CANCELLED
        assert booking.rescheduled_count == 1

        spare = issue_voucher(db, experience_id="E1", validity_months=1, now=now)
        assert spare.success, spare
        swept = sweep_expired_vouchers(db, now=now + timedelta(days=45))
        assert swept.updated_count == 1, swept
        assert sweep_expired_vouchers(db, now=now + timedelta(days=45)).updated_count == 0

        statuses = {v.id: VoucherStatus(v.status) for v in db.query(Voucher).all()}
        assert statuses[voucher_id] == VoucherStatus.USED
        assert statuses[spare.voucher.id] == VoucherStatus.EXPIRED
    finally:
        db.close()


if __name__ == "__main__":
    main()
    print("OK")
