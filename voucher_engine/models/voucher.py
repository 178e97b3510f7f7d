import enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.sql import func

from voucher_engine.core.database import Base


class VoucherStatus(str, enum.Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"
    EXCHANGED = "exchanged"
    TRANSFERRED = "transferred"


class Voucher(Base):
    __tablename__ = "vouchers"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid4()))
    code = Column(String(32), unique=True, index=True, nullable=False)
    experience_id = Column(String(36), ForeignKey("experiences.id"), index=True, nullable=False)
    owner_user_id = Column(String, index=True, nullable=True)
    purchase_price = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(VoucherStatus, name="voucher_status", values_callable=lambda e: [m.value for m in e]),
        index=True,
        nullable=False,
        default=VoucherStatus.ACTIVE,
    )
    issue_date = Column(DateTime(timezone=True), nullable=False)
    expiry_date = Column(DateTime(timezone=True), index=True, nullable=False)

    # Set together, exactly once, by the redemption transaction.
    redemption_date = Column(DateTime(timezone=True), nullable=True)
    linked_booking_id = Column(String(36), nullable=True)

    qr_code_data = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Voucher id={self.id} status={self.status}>"
