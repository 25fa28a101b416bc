"""Storage and lookup of orders, order items and partner commissions."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from shopmesh.order.models import (
    CommissionView,
    Order,
    OrderItem,
    OrderItemView,
    PartnerCommission,
)


class RecordNotFound(LookupError):
    """Raised when a looked-up record does not exist."""


class NotOwnerError(PermissionError):
    """Raised when a user does not own the order item they act on."""


def _item_view(client: Any, item: OrderItem) -> OrderItemView:
    product = client.get_product_by_id(item.product_id)
    if product is None:
        raise RecordNotFound(f"product with ID {item.product_id} not found")
    return OrderItemView.from_item(item, product)


class _Store:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _session(self) -> Session:
        return Session(self._engine, expire_on_commit=False)


class OrderRepository(_Store):
    """Order item lookups and status changes; product details come from client."""

    def __init__(self, engine: Engine, client: Any) -> None:
        super().__init__(engine)
        self._client = client

    def get_order(self, order_id: uuid.UUID, status: str = "") -> Order:
        """The order with its items; with a status, it must hold an item in that status."""
        stmt = select(Order).where(Order.id == order_id)
        if status:
            stmt = stmt.where(Order.order_items.any(OrderItem.status == status))
        with self._session() as session:
            order = session.scalars(stmt.limit(1)).first()
        if order is None:
            raise RecordNotFound("record not found")
        return order

    def _item(self, session: Session, order_item_id: uuid.UUID) -> OrderItem:
        item = session.get(OrderItem, order_item_id)
        if item is None:
            raise RecordNotFound("record not found")
        return item

    def update_order_status(self, order_item_id: uuid.UUID, status: str) -> OrderItemView:
        with self._session() as session:
            session.execute(
                update(OrderItem).where(OrderItem.id == order_item_id).values(status=status)
            )
            session.commit()
            item = self._item(session, order_item_id)
        return _item_view(self._client, item)

    def check_owner_order(self, buyer_id: uuid.UUID, order_item_id: uuid.UUID) -> bool:
        stmt = (
            select(func.count())
            .select_from(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .where(OrderItem.id == order_item_id, Order.buyer_id == buyer_id)
        )
        with self._session() as session:
            count = session.scalar(stmt)
        if not count:
            raise NotOwnerError("you are not the owner of this order item")
        return True

    def check_partner_order(self, partner_id: uuid.UUID, order_item_id: uuid.UUID) -> bool:
        stmt = (
            select(func.count())
            .select_from(OrderItem)
            .where(OrderItem.partner_id == partner_id, OrderItem.id == order_item_id)
        )
        with self._session() as session:
            count = session.scalar(stmt)
        if not count:
            raise NotOwnerError("you are not the owner of this order item")
        return True

    def get_order_item_status(self, order_item_id: uuid.UUID) -> str:
        with self._session() as session:
            row = session.execute(
                select(OrderItem.status).where(OrderItem.id == order_item_id).limit(1)
            ).first()
        if row is None:
            raise RecordNotFound("record not found")
        return row[0]

    def get_order_item(self, order_item_id: uuid.UUID) -> OrderItemView:
        with self._session() as session:
            item = self._item(session, order_item_id)
        return _item_view(self._client, item)

    def get_buyer_id_by_order_item(self, order_item_id: uuid.UUID) -> uuid.UUID:
        with self._session() as session:
            item = self._item(session, order_item_id)
            buyer_id = session.scalar(select(Order.buyer_id).where(Order.id == item.order_id))
        if buyer_id is None:
            raise RecordNotFound("record not found")
        return buyer_id


class AdminRepository(_Store):
    """Unrestricted reads of orders."""

    def get_all_orders(self) -> list[Order]:
        with self._session() as session:
            return list(session.scalars(select(Order)))

    def get_order_by_id(self, order_id: uuid.UUID) -> Order:
        with self._session() as session:
            order = session.get(Order, order_id)
        if order is None:
            raise RecordNotFound("record not found")
        return order


class PartnerCommissionRepository(_Store):
    """Commission records, reported with their order items."""

    def __init__(self, engine: Engine, orders: OrderRepository) -> None:
        super().__init__(engine)
        self._orders = orders

    def _view(self, commission: PartnerCommission) -> CommissionView:
        return CommissionView(
            id=commission.id,
            order_item=self._orders.get_order_item(commission.order_item_id),
            commission_rate=commission.commission_rate,
            commission_amount=commission.commission_amount,
            create_time=commission.create_time,
        )

    def get_commissions_by_partner(self, partner_id: uuid.UUID) -> list[CommissionView]:
        with self._session() as session:
            commissions = list(
                session.scalars(
                    select(PartnerCommission).where(PartnerCommission.partner_id == partner_id)
                )
            )
        return [self._view(commission) for commission in commissions]

    def create_commission(self, commission: PartnerCommission) -> PartnerCommission:
        with self._session() as session:
            session.add(commission)
            session.commit()
        return commission

    def get_commission_by_order_item(self, order_item_id: uuid.UUID) -> CommissionView:
        with self._session() as session:
            commission = session.scalars(
                select(PartnerCommission)
                .where(PartnerCommission.order_item_id == order_item_id)
                .order_by(PartnerCommission.id)
                .limit(1)
            ).first()
        if commission is None:
            raise RecordNotFound("record not found")
        return self._view(commission)


class PartnerRepository(_Store):
    """Order items seen from the partner who fulfils them."""

    def __init__(self, engine: Engine, client: Any) -> None:
        super().__init__(engine)
        self._client = client

    def get_orders_by_partner(self, partner_id: uuid.UUID, status: str = "") -> list[OrderItemView]:
        stmt = select(OrderItem).where(OrderItem.partner_id == partner_id)
        if status:
            stmt = stmt.where(OrderItem.status == status)
        with self._session() as session:
            items = list(session.scalars(stmt))
        return [_item_view(self._client, item) for item in items]