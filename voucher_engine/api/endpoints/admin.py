from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from voucher_engine.core.database import get_db
from voucher_engine.core.security import require_admin
from voucher_engine.schemas.voucher import IssueVoucherRequest, IssueVoucherResponse, SweepResponse, VoucherResponse
from voucher_engine.services.expiry_sweeper import sweep_expired_vouchers
from voucher_engine.services.voucher_issuer import issue_voucher


router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/admin/vouchers", response_model=IssueVoucherResponse)
def admin_issue_voucher(body: IssueVoucherRequest, db: Session = Depends(get_db)) -> IssueVoucherResponse:
    result = issue_voucher(
        db,
        experience_id=body.experience_id,
        owner_user_id=body.owner_user_id,
        purchase_price=body.purchase_price,
        validity_months=body.validity_months,
        notes=body.notes,
    )
    return IssueVoucherResponse(
        success=result.success,
        voucher=VoucherResponse.model_validate(result.voucher) if result.voucher is not None else None,
        error_code=result.error_code,
        error_message=result.error_message,
    )


@router.post("/admin/vouchers/sweep", response_model=SweepResponse)
def admin_sweep_expired_vouchers(db: Session = Depends(get_db)) -> SweepResponse:
    result = sweep_expired_vouchers(db)
    return SweepResponse(updated_count=result.updated_count)
