from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.id_utils import generate_shortuuid
from app.db.base import Base
from app.models.channel import Channel

shipping_method_channels = Table(
    "shipping_method_channels",
    Base.metadata,
    Column("shipping_method_id", String(36), ForeignKey("shipping_methods.id"), primary_key=True),
    Column("channel_id", String(36), ForeignKey("channels.id"), primary_key=True),
)


class ShippingMethod(Base):
    __tablename__ = "shipping_methods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    code: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    channels: Mapped[list[Channel]] = relationship(secondary=shipping_method_channels, lazy="selectin")

    @property
    def channel_ids(self) -> list[str]:
        return [channel.id for channel in self.channels]


class ShippingLine(Base):
    __tablename__ = "shipping_lines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("orders.id"), index=True)
    shipping_method_id: Mapped[str] = mapped_column(String(36), ForeignKey("shipping_methods.id"), index=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)

    shipping_method: Mapped[ShippingMethod] = relationship(lazy="joined")
