"""Placing orders and listing them for their buyer."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopmesh.order.clients import ServiceCallError
from shopmesh.order.models import NIL_UUID, Order, OrderItem, OrderItemView, OrderView
from shopmesh.order.repository import RecordNotFound


class OrderCreationError(RuntimeError):
    """Raised when an order cannot be placed; nothing is stored."""


class BuyerRepository:
    """Orders from the buyer's side; product prices come from the product service."""

    def __init__(self, engine: Engine, client: Any) -> None:
        self._engine = engine
        self._client = client

    def _session(self) -> Session:
        return Session(self._engine, expire_on_commit=False)

    def create_order(self, order: Order) -> Order:
        """Price every item, total the order and store it in one transaction."""
        if order.id is None or order.id == NIL_UUID:
            order.id = uuid.uuid4()

        total = 0.0
        for item in order.order_items:
            item.id = uuid.uuid4()
            item.order_id = order.id
            item.status = "pending"
            if item.quantity <= 0:
                raise OrderCreationError("order item quantity must be greater than zero")
            try:
                product = self._client.get_product_by_id(item.product_id)
            except ServiceCallError as exc:
                raise OrderCreationError(
                    f"failed to get product info for ProductID {item.product_id}: {exc}"
                ) from exc
            if product is None:
                raise OrderCreationError(f"product with ID {item.product_id} not found")
            item.price = product.price
            total += item.price * item.quantity

        order.total_price = total
        with self._session() as session:
            try:
                session.add(order)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise OrderCreationError(f"failed to create order: {exc}") from exc
        return order

    def _item_view(self, item: OrderItem) -> OrderItemView:
        try:
            product = self._client.get_product_by_id(item.product_id)
        except ServiceCallError as exc:
            raise ServiceCallError(
                f"failed to get product info for ProductID {item.product_id}: {exc}"
            ) from exc
        if product is None:
            raise RecordNotFound(f"product with ID {item.product_id} not found")
        return OrderItemView.from_item(item, product)

    def get_orders_by_buyer(self, buyer_id: uuid.UUID, status: str = "") -> list[OrderView]:
        """The buyer's orders; with a status, only orders and items in that status."""
        stmt = select(Order).where(Order.buyer_id == buyer_id)
        if status:
            matching = select(OrderItem.order_id).where(OrderItem.status == status)
            stmt = stmt.where(Order.id.in_(matching))
        with self._session() as session:
            orders = list(session.scalars(stmt))

        return [
            OrderView(
                id=order.id,
                buyer_id=order.buyer_id,
                create_time=order.create_time,
                total_price=order.total_price,
                address=order.address,
                order_items=[
                    self._item_view(item)
                    for item in order.order_items
                    if not status or item.status == status
                ],
            )
            for order in orders
        ]