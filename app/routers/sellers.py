from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.permissions import require_platform_admin
from app.core.security_current import get_current_seller
from app.models.seller import MarketplaceSeller
from app.models.user import User
from app.schemas.seller import (
    SellerCommissionRateUpdateIn,
    SellerCreate,
    SellerOut,
    SellerVerificationUpdateIn,
)
from app.services.audit_service import log_audit_event
from app.services.seller_service import (
    create_seller,
    get_seller,
    update_seller_commission_rate,
    update_seller_verification_status,
)

router = APIRouter(prefix="/admin/sellers", tags=["sellers"])
me_router = APIRouter(prefix="/sellers", tags=["sellers"])


@router.post(
    "",
    response_model=SellerOut,
    status_code=201,
    summary="Register marketplace seller",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def register_seller(
    payload: SellerCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    owner = db.get(User, payload.owner_user_id)
    if not owner:
        raise HTTPException(status_code=404, detail="Owner user not found")
    existing = db.execute(
        select(MarketplaceSeller.id).where(MarketplaceSeller.owner_user_id == owner.id)
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=409, detail="User already owns a seller account")

    seller = create_seller(
        db,
        owner_user_id=owner.id,
        shop_name=payload.shop_name,
        shop_description=payload.shop_description,
        business_name=payload.business_name,
        tax_id=payload.tax_id,
        payment_account_id=payload.payment_account_id,
        commission_rate=payload.commission_rate,
    )
    log_audit_event(
        db,
        actor_user_id=admin.id,
        action="seller.create",
        target_type="marketplace_seller",
        target_id=seller.id,
        metadata_json={
            "owner_user_id": owner.id,
            "shop_slug": seller.shop_slug,
            "channel_id": seller.channel_id,
        },
    )
    db.commit()
    db.refresh(seller)
    return SellerOut.model_validate(seller)


@router.get(
    "/{seller_id}",
    response_model=SellerOut,
    summary="Get marketplace seller",
    responses=error_responses(401, 403, 404, 500),
)
def get_marketplace_seller(
    seller_id: str,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin),
):
    return SellerOut.model_validate(get_seller(db, seller_id))


@router.patch(
    "/{seller_id}/commission-rate",
    response_model=SellerOut,
    summary="Update seller commission rate",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def update_commission_rate(
    seller_id: str,
    payload: SellerCommissionRateUpdateIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    seller, previous_rate = update_seller_commission_rate(db, seller_id, payload.commission_rate)
    log_audit_event(
        db,
        actor_user_id=admin.id,
        action="seller.commission_rate.update",
        target_type="marketplace_seller",
        target_id=seller.id,
        metadata_json={
            "from_rate": None if previous_rate is None else str(previous_rate),
            "to_rate": None if seller.commission_rate is None else str(seller.commission_rate),
        },
    )
    db.commit()
    db.refresh(seller)
    return SellerOut.model_validate(seller)


@router.patch(
    "/{seller_id}/verification",
    response_model=SellerOut,
    summary="Update seller verification status",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def update_verification(
    seller_id: str,
    payload: SellerVerificationUpdateIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    previous_status = get_seller(db, seller_id).verification_status
    seller = update_seller_verification_status(db, seller_id, payload.verification_status)
    log_audit_event(
        db,
        actor_user_id=admin.id,
        action="seller.verification.update",
        target_type="marketplace_seller",
        target_id=seller.id,
        metadata_json={"from_status": previous_status, "to_status": seller.verification_status},
    )
    db.commit()
    db.refresh(seller)
    return SellerOut.model_validate(seller)


@me_router.get(
    "/me",
    response_model=SellerOut,
    summary="Get current seller account",
    responses=error_responses(401, 403, 404, 500),
)
def get_my_seller(seller: MarketplaceSeller = Depends(get_current_seller)):
    return SellerOut.model_validate(seller)
