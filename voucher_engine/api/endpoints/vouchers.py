from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from voucher_engine.core.database import get_db
from voucher_engine.core.security import CurrentUser, get_current_user
from voucher_engine.models.voucher import Voucher
from voucher_engine.schemas.voucher import (
    RedeemVoucherRequest,
    RedeemVoucherResponse,
    ValidateVoucherRequest,
    ValidateVoucherResponse,
    VoucherResponse,
)
from voucher_engine.services.notifications import NotificationPublisher, get_publisher
from voucher_engine.services.redemption import redeem_voucher
from voucher_engine.services.voucher_validator import validate_voucher_code


router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/vouchers/validate", response_model=ValidateVoucherResponse)
def validate_voucher(body: ValidateVoucherRequest, db: Session = Depends(get_db)) -> ValidateVoucherResponse:
    result = validate_voucher_code(db, body.code)
    return ValidateVoucherResponse(
        is_valid=result.is_valid,
        experience_id=result.experience_id,
        voucher_id=result.voucher_id,
        error_code=result.error_code,
        error_message=result.error_message,
    )


@router.post("/vouchers/{voucher_id}/redeem", response_model=RedeemVoucherResponse)
def redeem(
    voucher_id: str,
    body: RedeemVoucherRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    publisher: NotificationPublisher = Depends(get_publisher),
) -> RedeemVoucherResponse:
    result = redeem_voucher(
        db,
        voucher_id=voucher_id,
        user_id=current_user.id,
        booking_date=body.booking_date,
        participants=body.participants,
        special_requests=body.special_requests,
        publisher=publisher,
    )
    return RedeemVoucherResponse(
        success=result.success,
        booking_id=result.booking_id,
        error_code=result.error_code,
        error_message=result.error_message,
    )


@router.get("/vouchers/mine", response_model=list[VoucherResponse])
def my_vouchers(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[Voucher]:
    return (
        db.query(Voucher)
        .filter(Voucher.owner_user_id == current_user.id)
        .order_by(Voucher.issue_date.desc())
        .all()
    )
