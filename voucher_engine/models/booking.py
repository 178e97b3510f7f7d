import enum
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from voucher_engine.core.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (CheckConstraint("rescheduled_count >= 0", name="ck_bookings_rescheduled_count"),)

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid4()))
    # Null for direct paid bookings; at most one booking per voucher.
    voucher_id = Column(String(36), ForeignKey("vouchers.id"), unique=True, nullable=True)
    experience_id = Column(String(36), ForeignKey("experiences.id"), index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    booking_date = Column(DateTime(timezone=True), index=True, nullable=False)
    participants = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(10, 2), nullable=False)
    special_requests = Column(Text, nullable=True)
    status = Column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [m.value for m in e]),
        index=True,
        nullable=False,
        default=BookingStatus.PENDING,
    )
    cancellation_date = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    rescheduled_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Booking id={self.id} status={self.status}>"
