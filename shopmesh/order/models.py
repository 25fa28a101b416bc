"""Orders, order items, partner commissions and their JSON views."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Uuid, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, MappedAsDataclass, mapped_column, relationship

NIL_UUID = uuid.UUID(int=0)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _require_object(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _uuid(data: Mapping[str, Any], key: str) -> uuid.UUID:
    value = data.get(key)
    if value is None:
        return NIL_UUID
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a UUID")
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise ValueError(f"{key} must be a UUID") from exc


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _number(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


class _Base(MappedAsDataclass, DeclarativeBase):
    pass


class OrderItem(_Base):
    """One product line of an order, handled by one partner."""

    __tablename__ = "order_items"

    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    partner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default_factory=uuid.uuid4)
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, default=None
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[float] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=False, default=0.0
    )
    status: Mapped[str] = mapped_column(String(20), default="pending")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "order_id": str(self.order_id) if self.order_id is not None else None,
            "product_id": str(self.product_id),
            "partner_id": str(self.partner_id),
            "quantity": self.quantity,
            "price": self.price,
            "status": self.status,
        }


class Order(_Base):
    """A buyer's order; its items are always loaded with it."""

    __tablename__ = "orders"

    buyer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default_factory=uuid.uuid4)
    create_time: Mapped[Optional[datetime]] = mapped_column(DateTime, default_factory=_now)
    total_price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), default=0.0)
    order_items: Mapped[list[OrderItem]] = relationship(
        default_factory=list, cascade="all, delete-orphan", lazy="selectin"
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "buyer_id": str(self.buyer_id),
            "create_time": _iso(self.create_time),
            "total_price": self.total_price,
            "address": self.address,
            "order_items": [item.to_dict() for item in self.order_items],
        }


class PartnerCommission(_Base):
    """The share of an order item's value owed to its partner."""

    __tablename__ = "partner_commissions"

    partner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    order_item_id: Mapped[uuid.UUID] = mapped_column("order_items", Uuid, nullable=False)
    commission_rate: Mapped[float] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=False
    )
    commission_amount: Mapped[float] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=False
    )
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default_factory=uuid.uuid4)
    create_time: Mapped[Optional[datetime]] = mapped_column(DateTime, default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "partner_id": str(self.partner_id),
            "order_items": str(self.order_item_id),
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "create_time": _iso(self.create_time),
        }


@dataclass(frozen=True)
class ProductInfo:
    """Product details as reported by the product service."""

    id: uuid.UUID
    name: str = ""
    price: float = 0.0
    image: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "ProductInfo":
        """Build from decoded JSON; a missing id becomes the nil UUID."""
        data = _require_object(data, "product")
        return cls(
            id=_uuid(data, "id"),
            name=_text(data, "name"),
            price=_number(data, "price"),
            image=_text(data, "image"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": str(self.id), "name": self.name, "price": self.price, "image": self.image}


@dataclass(frozen=True)
class OrderItemView:
    """An order item with its product details filled in."""

    id: uuid.UUID
    order_id: Optional[uuid.UUID]
    product: ProductInfo
    partner_id: uuid.UUID
    quantity: int
    price: float
    status: str

    @classmethod
    def from_item(cls, item: OrderItem, product: ProductInfo) -> "OrderItemView":
        return cls(
            id=item.id,
            order_id=item.order_id,
            product=product,
            partner_id=item.partner_id,
            quantity=item.quantity,
            price=item.price,
            status=item.status,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "order_id": str(self.order_id) if self.order_id is not None else None,
            "product": self.product.to_dict(),
            "partner_id": str(self.partner_id),
            "quantity": self.quantity,
            "price": self.price,
            "status": self.status,
        }


@dataclass(frozen=True)
class OrderView:
    """An order whose items carry product details."""

    id: uuid.UUID
    buyer_id: uuid.UUID
    create_time: Optional[datetime]
    total_price: float
    address: str
    order_items: list[OrderItemView] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "buyer_id": str(self.buyer_id),
            "create_time": _iso(self.create_time),
            "total_price": self.total_price,
            "address": self.address,
            "order_items": [item.to_dict() for item in self.order_items],
        }


@dataclass(frozen=True)
class CommissionView:
    """A commission together with the order item it was earned on."""

    id: uuid.UUID
    order_item: OrderItemView
    commission_rate: float
    commission_amount: float
    create_time: Optional[datetime]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "order_items": self.order_item.to_dict(),
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "create_time": _iso(self.create_time),
        }


@dataclass(frozen=True)
class PartnerInfo:
    """A partner as listed by the user service."""

    id: uuid.UUID
    name: str

    @classmethod
    def from_dict(cls, data: Any) -> "PartnerInfo":
        data = _require_object(data, "partner")
        return cls(id=_uuid(data, "id"), name=_text(data, "name"))

    def to_dict(self) -> dict[str, Any]:
        return {"id": str(self.id), "name": self.name}


@dataclass(frozen=True)
class Notification:
    """A message to a buyer about one of their orders."""

    buyer_id: uuid.UUID
    title: str
    message: str
    order_id: uuid.UUID

    def to_dict(self) -> dict[str, Any]:
        return {
            "buyer_id": str(self.buyer_id),
            "title": self.title,
            "message": self.message,
            "order_id": str(self.order_id),
        }


def init_db(url: str) -> Engine:
    """Open the database at url and create the order tables if needed."""
    engine = create_engine(url)
    _Base.metadata.create_all(engine)
    return engine