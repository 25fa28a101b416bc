"""Order workflows for buyers, partners and administrators."""

from __future__ import annotations

import logging
import threading
import uuid
from functools import partial
from typing import Any, Callable, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError

from shopmesh.auth import UserRole
from shopmesh.order.models import Notification, PartnerCommission
from shopmesh.order.repository import RecordNotFound

log = logging.getLogger(__name__)

COMMISSION_RATE = 0.1
NOTIFY_URL = "http://localhost:8083/api/notify"
READY_TITLE = "Đơn hàng của bạn đã sẵn sàng"
READY_MESSAGE = "Đơn hàng của bạn đã sẵn sàng để nhận. Vui lòng xác nhận."
_NOTIFY_TIMEOUT = 10.0


class OrderStatusError(RuntimeError):
    """Raised when an order item's status cannot be changed."""


def _normalise(status: str) -> str:
    return status.strip().lower()


def _start_thread(task: Callable[[], Any]) -> None:
    threading.Thread(target=task, daemon=True).start()


class PartnerCommissionService:
    """Access to partner commissions."""

    def __init__(self, repository: Any) -> None:
        self._repository = repository

    def get_commissions_by_partner(self, partner_id: uuid.UUID) -> Any:
        return self._repository.get_commissions_by_partner(partner_id)

    def create_commission(self, commission: PartnerCommission) -> PartnerCommission:
        return self._repository.create_commission(commission)

    def get_commission_by_order_item(self, order_item_id: uuid.UUID) -> Any:
        return self._repository.get_commission_by_order_item(order_item_id)


class AdminService:
    """Read-only views of all orders and commissions."""

    def __init__(self, orders: Any, commissions: PartnerCommissionService, admin_repository: Any) -> None:
        self._orders = orders
        self._commissions = commissions
        self._admin = admin_repository

    def get_all_orders(self) -> Any:
        return self._admin.get_all_orders()

    def get_order_by_id(self, order_id: uuid.UUID) -> Any:
        return self._admin.get_order_by_id(order_id)

    def get_commission_by_order_item(self, order_item_id: uuid.UUID) -> Any:
        return self._commissions.get_commission_by_order_item(order_item_id)


class BuyerService:
    """Placing, listing and closing orders on behalf of a buyer."""

    def __init__(self, orders: Any, commissions: PartnerCommissionService, buyer_repository: Any) -> None:
        self._orders = orders
        self._commissions = commissions
        self._buyers = buyer_repository

    def create_order(self, order: Any) -> Any:
        return self._buyers.create_order(order)

    def get_orders_by_buyer(self, buyer_id: uuid.UUID, status: str = "") -> Any:
        return self._buyers.get_orders_by_buyer(buyer_id, status)

    def update_order_status(self, role: Any, buyer_id: uuid.UUID, order_item_id: uuid.UUID) -> Any:
        """Cancel a pending item, or complete a confirmed one and record the commission."""
        if role != UserRole.BUYER:
            raise OrderStatusError("only buyer can update order status")
        if not self._orders.check_owner_order(buyer_id, order_item_id):
            raise OrderStatusError("you are not the owner of this order")

        current = self._orders.get_order_item_status(order_item_id)
        state = _normalise(current)
        if state == "pending":
            return self._orders.update_order_status(order_item_id, "cancel")
        if state == "confirmed":
            item = self._orders.get_order_item(order_item_id)
            if item is None:
                raise OrderStatusError("order not found")
            commission = PartnerCommission(
                partner_id=item.partner_id,
                order_item_id=order_item_id,
                commission_rate=COMMISSION_RATE,
                commission_amount=item.price * COMMISSION_RATE * item.quantity,
            )
            try:
                created = self._commissions.create_commission(commission)
            except SQLAlchemyError as exc:
                raise OrderStatusError(f"failed to create partner commission: {exc}") from exc
            if created is None:
                raise OrderStatusError("failed to create partner commission")
            return self._orders.update_order_status(order_item_id, "complete")
        raise OrderStatusError(f"cannot update order with status: {current}")


class PartnerService:
    """Order items from the partner's side, and confirming them."""

    def __init__(
        self,
        orders: Any,
        partner_repository: Any,
        notify_url: str = NOTIFY_URL,
        session: Optional[requests.Session] = None,
        background: Callable[[Callable[[], Any]], Any] = _start_thread,
    ) -> None:
        self._orders = orders
        self._partners = partner_repository
        self._notify_url = notify_url
        self._session = session or requests.Session()
        self._background = background

    def get_orders_by_partner(self, partner_id: uuid.UUID, status: str = "") -> Any:
        return self._partners.get_orders_by_partner(partner_id, status)

    def update_order_status(self, role: Any, partner_id: uuid.UUID, order_item_id: uuid.UUID) -> Any:
        """Confirm a pending item and tell its buyer in the background."""
        if role != UserRole.PARTNER:
            raise OrderStatusError("only partner can update order status")
        current = self._orders.get_order_item_status(order_item_id)
        if not self._orders.check_partner_order(partner_id, order_item_id):
            raise OrderStatusError("you are not the owner of this order item")

        if _normalise(current) != "pending":
            raise OrderStatusError(f"cannot update order with status: {current}")

        item = self._orders.update_order_status(order_item_id, "confirmed")
        try:
            buyer_id = self._orders.get_buyer_id_by_order_item(order_item_id)
        except (RecordNotFound, SQLAlchemyError) as exc:
            log.warning("Failed to get buyerID for notification: %s", exc)
        else:
            self._background(partial(self.notify_buyer_order_ready, buyer_id, item.order_id))
        return item

    def notify_buyer_order_ready(self, buyer_id: uuid.UUID, order_id: uuid.UUID) -> bool:
        """Post a ready notification; failures are logged and reported as False."""
        notification = Notification(
            buyer_id=buyer_id, title=READY_TITLE, message=READY_MESSAGE, order_id=order_id
        )
        try:
            response = self._session.post(
                self._notify_url, json=notification.to_dict(), timeout=_NOTIFY_TIMEOUT
            )
        except requests.RequestException as exc:
            log.warning("Failed to send notification: %s", exc)
            return False
        response.close()
        return True