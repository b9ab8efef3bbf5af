from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.marketplace_settings import MARKETPLACE_SETTINGS_ID, MarketplaceSettings
from app.services.commission_service import RateLike, validate_commission_rate

PAYOUT_SCHEDULE_FREQUENCIES = {"weekly", "monthly"}


def normalize_payout_frequency(value: str) -> str:
    normalized = (value or "").strip().lower()
    if normalized not in PAYOUT_SCHEDULE_FREQUENCIES:
        allowed = ", ".join(sorted(PAYOUT_SCHEDULE_FREQUENCIES))
        raise ValueError(f"Invalid payout schedule frequency. Allowed: {allowed}")
    return normalized


def default_marketplace_settings() -> MarketplaceSettings:
    """Unsaved row carrying the configured defaults."""
    return MarketplaceSettings(
        id=MARKETPLACE_SETTINGS_ID,
        default_commission_rate=Decimal(str(settings.default_commission_rate)),
        payout_schedule_frequency=settings.payout_schedule_frequency,
        payout_minimum_threshold=settings.payout_minimum_threshold,
        payout_scheduler_last_run=None,
    )


def get_marketplace_settings(db: Session) -> MarketplaceSettings | None:
    return db.get(MarketplaceSettings, MARKETPLACE_SETTINGS_ID)


def get_or_create_marketplace_settings(db: Session) -> MarketplaceSettings:
    row = get_marketplace_settings(db)
    if row is None:
        row = default_marketplace_settings()
        db.add(row)
        db.flush()
    return row


def upsert_marketplace_settings(
    db: Session,
    *,
    default_commission_rate: RateLike | None = None,
    payout_schedule_frequency: str | None = None,
    payout_minimum_threshold: int | None = None,
) -> MarketplaceSettings:
    row = get_or_create_marketplace_settings(db)
    if default_commission_rate is not None:
        row.default_commission_rate = validate_commission_rate(default_commission_rate)
    if payout_schedule_frequency is not None:
        row.payout_schedule_frequency = normalize_payout_frequency(payout_schedule_frequency)
    if payout_minimum_threshold is not None:
        if payout_minimum_threshold < 0:
            raise ValueError("Payout minimum threshold cannot be negative")
        row.payout_minimum_threshold = payout_minimum_threshold
    db.flush()
    return row


def get_payout_minimum_threshold(db: Session) -> int:
    row = get_marketplace_settings(db)
    if row is not None:
        return row.payout_minimum_threshold
    return settings.payout_minimum_threshold
