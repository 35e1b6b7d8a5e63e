import pytest

from thintava.models import Order, OrderStatus, User
from thintava.models.auth import ROLE_KITCHEN
from thintava.services import order_notify_service
from thintava.services.order_notify_service import (
    TYPE_NEW_ORDER,
    TYPE_ORDER_STATUS_UPDATE,
    notify_kitchen_on_new_order,
    notify_user_on_status_change,
    status_message,
)
from thintava.triggers import CREATE, UPDATE, Change


def order_created(order_id, **fields):
    after = {"id": order_id, "user_id": "cust-1", "status": "Placed", **fields}
    return Change(CREATE, Order, (order_id,), None, after)


def status_changed(order_id, old, new, user_id="cust-1"):
    before = {"id": order_id, "user_id": user_id, "status": old}
    after = {"id": order_id, "user_id": user_id, "status": new}
    return Change(UPDATE, Order, (order_id,), before, after)


@pytest.mark.parametrize("status, expected", [
    ("cooking", "Your order is now being prepared! 👨‍🍳"),
    ("Cooked", "Your order is ready! Please come to pick it up. 🍽️"),
    ("PICK UP", "Your order is ready for pickup! Please collect it within 5 minutes. ⏰"),
    ("PickedUp", "Thank you! Enjoy your meal! 😊"),
    ("terminated", "Your order has been cancelled. Please contact support if needed."),
    ("unknownstatus", "Your order status has been updated to unknownstatus."),
    ("Placed", "Your order status has been updated to Placed."),
])
def test_status_message_table(status, expected):
    assert status_message(status) == expected


def test_kitchen_notified_of_new_order(db_session, dispatcher, kitchen):
    result = notify_kitchen_on_new_order(order_created("a1b2c3d4e5f6"))

    assert result is not None
    assert len(dispatcher.sent) == 1
    message = dispatcher.sent[0]
    assert message.token == "tok-kitchen"
    assert message.title == "New Order Received"
    assert message.body == "A new order #a1b2c3 has been placed. Check the kitchen panel."
    assert message.data == {"type": TYPE_NEW_ORDER, "orderId": "a1b2c3d4e5f6"}


def test_only_first_kitchen_user_notified(db_session, dispatcher, seed, kitchen):
    seed(User(id="kitchen-2", email="k2@example.com", role=ROLE_KITCHEN, fcm_token="tok-kitchen-2"))

    notify_kitchen_on_new_order(order_created("ord-777"))

    assert [m.token for m in dispatcher.sent] == ["tok-kitchen"]


def test_no_kitchen_user_is_a_no_op(db_session, dispatcher, customer):
    assert notify_kitchen_on_new_order(order_created("ord-1")) is None
    assert dispatcher.sent == []


def test_kitchen_without_token_is_a_no_op(db_session, dispatcher, seed):
    seed(User(id="kitchen-1", role=ROLE_KITCHEN, fcm_token=None))

    assert notify_kitchen_on_new_order(order_created("ord-1")) is None
    assert dispatcher.sent == []


def test_kitchen_send_failure_is_swallowed(db_session, dispatcher, kitchen):
    dispatcher.failing_tokens.add("tok-kitchen")

    assert notify_kitchen_on_new_order(order_created("ord-1")) is None


def test_customer_notified_of_status_change(db_session, dispatcher, customer):
    result = notify_user_on_status_change(status_changed("ord-42", "Placed", "Cooking"))

    assert result is not None
    message = dispatcher.sent[0]
    assert message.token == "tok-customer"
    assert message.title == "Order Update"
    assert message.body == "Your order is now being prepared! 👨‍🍳"
    assert message.data == {
        "type": TYPE_ORDER_STATUS_UPDATE,
        "orderId": "ord-42",
        "newStatus": "Cooking",
        "oldStatus": "Placed",
    }


def test_unchanged_status_never_sends(db_session, dispatcher, customer):
    change = status_changed("ord-42", "Cooking", "Cooking")
    change.after["total_cents"] = 1200

    assert notify_user_on_status_change(change) is None
    assert dispatcher.sent == []


def test_missing_user_is_a_no_op(db_session, dispatcher):
    assert notify_user_on_status_change(status_changed("ord-42", "Placed", "Cooking", user_id="ghost")) is None
    assert dispatcher.sent == []


def test_user_without_token_is_a_no_op(db_session, dispatcher, seed):
    seed(User(id="cust-1", email="diner@example.com", fcm_token=None))

    assert notify_user_on_status_change(status_changed("ord-42", "Placed", "Cooking")) is None
    assert dispatcher.sent == []


def test_invalid_customer_token_is_swallowed(db_session, dispatcher, customer):
    dispatcher.failing_tokens.add("tok-customer")

    assert notify_user_on_status_change(status_changed("ord-42", "Cooking", "Cooked")) is None
    assert dispatcher.sent == []


def test_lookup_failure_is_swallowed(db_session, dispatcher, monkeypatch, customer):
    def broken_get(*args, **kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(order_notify_service.db.session(), "get", broken_get)

    assert notify_user_on_status_change(status_changed("ord-42", "Cooking", "Cooked")) is None


def test_order_writes_fire_notifications(db_session, dispatcher, drain, kitchen, customer):
    db_session.add(Order(id="feedbeef01", user_id=customer.id))
    drain()
    assert [m.data["type"] for m in dispatcher.sent] == [TYPE_NEW_ORDER]

    order = db_session.get(Order, "feedbeef01")
    order.status = OrderStatus.COOKING.value
    drain()
    order = db_session.get(Order, "feedbeef01")
    order.total_cents = 900  # not a status change
    drain()

    updates = dispatcher.of_type(TYPE_ORDER_STATUS_UPDATE)
    assert len(updates) == 1
    assert updates[0].data["oldStatus"] == "Placed"
    assert updates[0].data["newStatus"] == "Cooking"
