from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.errors import SettlementError
from app.core.permissions import require_platform_admin
from app.models.marketplace_settings import MarketplaceSettings
from app.models.user import User
from app.schemas.marketplace_settings import MarketplaceSettingsOut, MarketplaceSettingsUpdateIn
from app.services.audit_service import log_audit_event
from app.services.marketplace_settings_service import (
    default_marketplace_settings,
    get_marketplace_settings,
    upsert_marketplace_settings,
)

router = APIRouter(prefix="/admin/marketplace-settings", tags=["marketplace settings"])


def _settings_out(row: MarketplaceSettings, *, persisted: bool) -> MarketplaceSettingsOut:
    return MarketplaceSettingsOut(
        default_commission_rate=row.default_commission_rate,
        payout_schedule_frequency=row.payout_schedule_frequency,
        payout_minimum_threshold=row.payout_minimum_threshold,
        payout_scheduler_last_run=row.payout_scheduler_last_run,
        persisted=persisted,
    )


@router.get(
    "",
    response_model=MarketplaceSettingsOut,
    summary="Get marketplace settings",
    responses=error_responses(401, 403, 500),
)
def get_settings(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin),
):
    row = get_marketplace_settings(db)
    if row is None:
        return _settings_out(default_marketplace_settings(), persisted=False)
    return _settings_out(row, persisted=True)


@router.put(
    "",
    response_model=MarketplaceSettingsOut,
    summary="Update marketplace settings",
    responses=error_responses(400, 401, 403, 422, 500),
)
def update_settings(
    payload: MarketplaceSettingsUpdateIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    try:
        row = upsert_marketplace_settings(
            db,
            default_commission_rate=payload.default_commission_rate,
            payout_schedule_frequency=payload.payout_schedule_frequency,
            payout_minimum_threshold=payload.payout_minimum_threshold,
        )
    except SettlementError:
        db.rollback()
        raise
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit_event(
        db,
        actor_user_id=admin.id,
        action="marketplace_settings.update",
        target_type="marketplace_settings",
        target_id=row.id,
        metadata_json=payload.model_dump(mode="json", exclude_none=True),
    )
    db.commit()
    db.refresh(row)
    return _settings_out(row, persisted=True)
