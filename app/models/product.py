from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.id_utils import generate_shortuuid
from app.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    seller_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("marketplace_sellers.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), index=True)

    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")  # minor units

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index(
            "ux_product_variants_sku_lower",
            func.lower(sku),
            unique=True,
            postgresql_where=sku.isnot(None),
            sqlite_where=sku.isnot(None),
        ),
    )
