import re
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.errors import SellerNotFoundError
from app.models.channel import Channel
from app.models.seller import MarketplaceSeller, SellerVerificationStatus
from app.services.commission_service import RateLike, validate_commission_rate

SHOP_SLUG_MAX_LENGTH = 100


def slugify_shop_name(seed: str) -> str:
    cleaned = re.sub(r"[^a-z0-9]+", "-", seed.strip().lower())
    cleaned = re.sub(r"-+", "-", cleaned).strip("-")
    if len(cleaned) < 3:
        return "shop" if not cleaned else f"shop-{cleaned}"
    return cleaned[:SHOP_SLUG_MAX_LENGTH]


def _slug_exists(db: Session, slug: str) -> bool:
    found = db.execute(
        select(MarketplaceSeller.id).where(func.lower(MarketplaceSeller.shop_slug) == slug.lower())
    ).scalar_one_or_none()
    return found is not None


def generate_unique_shop_slug(db: Session, shop_name: str) -> str:
    base = slugify_shop_name(shop_name)
    candidate = base
    suffix = 1
    while _slug_exists(db, candidate):
        suffix += 1
        tail = f"-{suffix}"
        candidate = f"{base[:SHOP_SLUG_MAX_LENGTH - len(tail)]}{tail}"
    return candidate


def get_seller(db: Session, seller_id: str) -> MarketplaceSeller:
    seller = db.get(MarketplaceSeller, seller_id)
    if seller is None:
        raise SellerNotFoundError(f"Seller with ID {seller_id} not found")
    return seller


def create_seller(
    db: Session,
    *,
    owner_user_id: str,
    shop_name: str,
    shop_description: str | None = None,
    business_name: str | None = None,
    tax_id: str | None = None,
    payment_account_id: str | None = None,
    commission_rate: RateLike | None = None,
) -> MarketplaceSeller:
    """Register a seller together with the dedicated channel its products sell through."""
    shop_slug = generate_unique_shop_slug(db, shop_name)
    channel = Channel(code=f"seller-{shop_slug}", name=shop_name)
    db.add(channel)
    db.flush()

    seller = MarketplaceSeller(
        owner_user_id=owner_user_id,
        shop_name=shop_name,
        shop_slug=shop_slug,
        shop_description=shop_description,
        business_name=business_name,
        tax_id=tax_id,
        payment_account_id=payment_account_id,
        commission_rate=None if commission_rate is None else validate_commission_rate(commission_rate),
        channel_id=channel.id,
        verification_status=SellerVerificationStatus.PENDING.value,
    )
    db.add(seller)
    db.flush()
    return seller


def update_seller_commission_rate(
    db: Session,
    seller_id: str,
    commission_rate: RateLike | None,
) -> tuple[MarketplaceSeller, Decimal | None]:
    seller = get_seller(db, seller_id)
    previous_rate = seller.commission_rate
    seller.commission_rate = None if commission_rate is None else validate_commission_rate(commission_rate)
    db.flush()
    return seller, previous_rate


def update_seller_verification_status(
    db: Session,
    seller_id: str,
    status: SellerVerificationStatus,
) -> MarketplaceSeller:
    seller = get_seller(db, seller_id)
    seller.verification_status = SellerVerificationStatus(status).value
    seller.is_active = seller.verification_status != SellerVerificationStatus.SUSPENDED.value
    db.flush()
    return seller
