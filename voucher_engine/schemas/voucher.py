from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from voucher_engine.models.voucher import VoucherStatus
from voucher_engine.services.errors import ErrorCode


class IssueVoucherRequest(BaseModel):
    experience_id: str
    owner_user_id: Optional[str] = None
    purchase_price: Optional[float] = Field(default=None, ge=0)
    validity_months: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class VoucherResponse(BaseModel):
    id: str
    code: str
    experience_id: str
    owner_user_id: Optional[str] = None
    purchase_price: float
    status: VoucherStatus
    issue_date: datetime
    expiry_date: datetime
    redemption_date: Optional[datetime] = None
    linked_booking_id: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class IssueVoucherResponse(BaseModel):
    success: bool
    voucher: Optional[VoucherResponse] = None
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None


class ValidateVoucherRequest(BaseModel):
    code: str = Field(max_length=64)


class ValidateVoucherResponse(BaseModel):
    is_valid: bool
    experience_id: Optional[str] = None
    voucher_id: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None


class RedeemVoucherRequest(BaseModel):
    booking_date: datetime
    participants: int = 1
    special_requests: Optional[str] = Field(default=None, max_length=1000)


class RedeemVoucherResponse(BaseModel):
    success: bool
    booking_id: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None


class SweepResponse(BaseModel):
    updated_count: int
