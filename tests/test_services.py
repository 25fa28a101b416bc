import dataclasses
import json
import uuid

import pytest
import requests
import responses

from shopmesh.auth import UserRole
from shopmesh.order.models import OrderItemView, ProductInfo
from shopmesh.order.repository import NotOwnerError, RecordNotFound
from shopmesh.order.services import (
    COMMISSION_RATE,
    READY_MESSAGE,
    READY_TITLE,
    AdminService,
    BuyerService,
    OrderStatusError,
    PartnerCommissionService,
    PartnerService,
)

NOTIFY = "http://notify.example.com/api/notify"


def _view(status="pending", price=50.0, quantity=2):
    return OrderItemView(
        id=uuid.uuid4(),
        order_id=uuid.uuid4(),
        product=ProductInfo(id=uuid.uuid4(), name="Pen", price=price),
        partner_id=uuid.uuid4(),
        quantity=quantity,
        price=price,
        status=status,
    )


class FakeOrders:
    def __init__(self, view, owner=True, buyer_id=None):
        self.view = view
        self.owner = owner
        self.buyer_id = buyer_id
        self.updates = []

    def check_owner_order(self, buyer_id, order_item_id):
        if not self.owner:
            raise NotOwnerError("you are not the owner of this order item")
        return True

    check_partner_order = check_owner_order

    def get_order_item_status(self, order_item_id):
        return self.view.status

    def get_order_item(self, order_item_id):
        return self.view

    def update_order_status(self, order_item_id, status):
        self.updates.append((order_item_id, status))
        return dataclasses.replace(self.view, status=status)

    def get_buyer_id_by_order_item(self, order_item_id):
        if self.buyer_id is None:
            raise RecordNotFound("record not found")
        return self.buyer_id


class FakeCommissionRepo:
    def __init__(self):
        self.created = []

    def create_commission(self, commission):
        self.created.append(commission)
        return commission

    def get_commissions_by_partner(self, partner_id):
        return [c for c in self.created if c.partner_id == partner_id]

    def get_commission_by_order_item(self, order_item_id):
        return next(c for c in self.created if c.order_item_id == order_item_id)


class FakePassThrough:
    def __init__(self, **results):
        self.results = results
        self.calls = []

    def __getattr__(self, name):
        def call(*args):
            self.calls.append((name, args))
            return self.results[name]

        return call


def _buyer_service(view, owner=True):
    orders = FakeOrders(view, owner=owner)
    repo = FakeCommissionRepo()
    service = BuyerService(orders, PartnerCommissionService(repo), FakePassThrough())
    return service, orders, repo


def test_buyer_cancels_pending_item():
    view = _view(status=" Pending ")
    service, orders, repo = _buyer_service(view)
    result = service.update_order_status(UserRole.BUYER, uuid.uuid4(), view.id)
    assert result.status == "cancel"
    assert orders.updates == [(view.id, "cancel")]
    assert repo.created == []


def test_buyer_completes_confirmed_item_with_commission():
    view = _view(status="confirmed", price=50.0, quantity=2)
    service, orders, repo = _buyer_service(view)
    result = service.update_order_status("buyer", uuid.uuid4(), view.id)
    assert result.status == "complete"
    assert orders.updates == [(view.id, "complete")]
    [commission] = repo.created
    assert commission.partner_id == view.partner_id
    assert commission.order_item_id == view.id
    assert commission.commission_rate == COMMISSION_RATE
    assert commission.commission_amount == pytest.approx(10.0)


def test_buyer_cannot_update_other_status():
    view = _view(status="complete")
    service, orders, _ = _buyer_service(view)
    with pytest.raises(OrderStatusError, match="cannot update order with status: complete"):
        service.update_order_status(UserRole.BUYER, uuid.uuid4(), view.id)
    assert orders.updates == []


def test_buyer_service_rejects_wrong_role_and_non_owner():
    view = _view()
    service, _, _ = _buyer_service(view)
    with pytest.raises(OrderStatusError, match="only buyer"):
        service.update_order_status(UserRole.PARTNER, uuid.uuid4(), view.id)
    other, _, _ = _buyer_service(view, owner=False)
    with pytest.raises(NotOwnerError):
        other.update_order_status(UserRole.BUYER, uuid.uuid4(), view.id)


def test_buyer_service_passes_through_to_repository():
    buyers = FakePassThrough(create_order="created", get_orders_by_buyer=["view"])
    service = BuyerService(FakeOrders(_view()), PartnerCommissionService(FakeCommissionRepo()), buyers)
    buyer = uuid.uuid4()
    assert service.create_order("order") == "created"
    assert service.get_orders_by_buyer(buyer, "pending") == ["view"]
    assert buyers.calls == [("create_order", ("order",)), ("get_orders_by_buyer", (buyer, "pending"))]


def test_partner_confirms_pending_item_and_schedules_notice():
    view = _view(status="pending")
    orders = FakeOrders(view, buyer_id=uuid.uuid4())
    scheduled = []
    service = PartnerService(orders, FakePassThrough(), NOTIFY, background=scheduled.append)
    result = service.update_order_status(UserRole.PARTNER, view.partner_id, view.id)
    assert result.status == "confirmed"
    assert orders.updates == [(view.id, "confirmed")]
    assert len(scheduled) == 1


def test_partner_confirm_without_buyer_skips_notice():
    view = _view(status="pending")
    scheduled = []
    service = PartnerService(FakeOrders(view), FakePassThrough(), NOTIFY, background=scheduled.append)
    result = service.update_order_status(UserRole.PARTNER, view.partner_id, view.id)
    assert result.status == "confirmed"
    assert scheduled == []


def test_partner_service_errors():
    view = _view(status="confirmed")
    service = PartnerService(FakeOrders(view), FakePassThrough(), NOTIFY)
    with pytest.raises(OrderStatusError, match="only partner"):
        service.update_order_status(UserRole.BUYER, view.partner_id, view.id)
    with pytest.raises(OrderStatusError, match="cannot update order with status: confirmed"):
        service.update_order_status(UserRole.PARTNER, view.partner_id, view.id)
    stranger = PartnerService(FakeOrders(_view(), owner=False), FakePassThrough(), NOTIFY)
    with pytest.raises(NotOwnerError):
        stranger.update_order_status(UserRole.PARTNER, uuid.uuid4(), uuid.uuid4())


def test_notify_posts_notification():
    buyer, order = uuid.uuid4(), uuid.uuid4()
    service = PartnerService(FakeOrders(_view()), FakePassThrough(), NOTIFY)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, NOTIFY, json={})
        assert service.notify_buyer_order_ready(buyer, order) is True
        sent = json.loads(rsps.calls[0].request.body)
    assert sent == {
        "buyer_id": str(buyer),
        "title": READY_TITLE,
        "message": READY_MESSAGE,
        "order_id": str(order),
    }


def test_notify_failure_reports_false():
    service = PartnerService(FakeOrders(_view()), FakePassThrough(), NOTIFY)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, NOTIFY, body=requests.ConnectionError("down"))
        assert service.notify_buyer_order_ready(uuid.uuid4(), uuid.uuid4()) is False


def test_partner_lists_orders_through_repository():
    partners = FakePassThrough(get_orders_by_partner=["item"])
    service = PartnerService(FakeOrders(_view()), partners, NOTIFY)
    partner = uuid.uuid4()
    assert service.get_orders_by_partner(partner, "pending") == ["item"]
    assert partners.calls == [("get_orders_by_partner", (partner, "pending"))]


def test_commission_service_round_trip():
    repo = FakeCommissionRepo()
    commissions = PartnerCommissionService(repo)
    view = _view(status="confirmed")
    service = BuyerService(FakeOrders(view), commissions, FakePassThrough())
    service.update_order_status(UserRole.BUYER, uuid.uuid4(), view.id)
    assert commissions.get_commission_by_order_item(view.id).partner_id == view.partner_id
    assert [c.order_item_id for c in commissions.get_commissions_by_partner(view.partner_id)] == [view.id]


def test_admin_service_delegates():
    admin = FakePassThrough(get_all_orders=["order"], get_order_by_id="one")
    repo = FakeCommissionRepo()
    commissions = PartnerCommissionService(repo)
    view = _view(status="confirmed")
    BuyerService(FakeOrders(view), commissions, FakePassThrough()).update_order_status(
        UserRole.BUYER, uuid.uuid4(), view.id
    )
    service = AdminService(FakeOrders(view), commissions, admin)
    order_id = uuid.uuid4()
    assert service.get_all_orders() == ["order"]
    assert service.get_order_by_id(order_id) == "one"
    assert service.get_commission_by_order_item(view.id) is repo.created[0]
    assert admin.calls[1] == ("get_order_by_id", (order_id,))