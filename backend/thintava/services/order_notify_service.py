# Overview: Service-layer operations for order notifications; encapsulates business logic and database work.

"""
Order Lifecycle Notifications

Two change handlers:
- a new order pings the kitchen device,
- a status change pings the customer who placed the order.

Both are best-effort. A missing recipient is an expected no-op and any
lookup or send failure is logged and swallowed, so the order write that
fired the trigger is never affected.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order, OrderStatus, User
from ..models.auth import ROLE_KITCHEN
from ..notifications import Dispatcher, PushMessage, get_dispatcher
from ..triggers import Change


TYPE_NEW_ORDER = "NEW_ORDER"
TYPE_ORDER_STATUS_UPDATE = "ORDER_STATUS_UPDATE"

NEW_ORDER_TITLE = "New Order Received"
ORDER_UPDATE_TITLE = "Order Update"

STATUS_MESSAGES: dict[OrderStatus, str] = {
    OrderStatus.COOKING: "Your order is now being prepared! 👨‍🍳",
    OrderStatus.COOKED: "Your order is ready! Please come to pick it up. 🍽️",
    OrderStatus.PICK_UP: "Your order is ready for pickup! Please collect it within 5 minutes. ⏰",
    OrderStatus.PICKED_UP: "Thank you! Enjoy your meal! 😊",
    OrderStatus.TERMINATED: "Your order has been cancelled. Please contact support if needed.",
}

GENERIC_STATUS_MESSAGE = "Your order status has been updated to {status}."


def status_message(status) -> str:
    """
    Customer-facing text for a new order status.

    Matching is case-insensitive. Placed and any value outside OrderStatus
    get the generic template with the raw status.
    """
    member = OrderStatus.parse(status)
    if member in STATUS_MESSAGES:
        return STATUS_MESSAGES[member]
    return GENERIC_STATUS_MESSAGE.format(status=status)


def find_kitchen_user() -> User | None:
    # Single kitchen account; the first match is the recipient
    return db.session.query(User).filter_by(role=ROLE_KITCHEN).order_by(User.created_at, User.id).first()


def notify_kitchen_on_new_order(change: Change, dispatcher: Dispatcher | None = None) -> str | None:
    """Tell the kitchen about a newly created order. Returns the message id or None."""
    order_id = str(change.doc_id)
    try:
        current_app.logger.info("New order created: %s", order_id)

        kitchen_user = find_kitchen_user()
        if kitchen_user is None:
            current_app.logger.info("No kitchen user found!")
            return None
        if not kitchen_user.fcm_token:
            current_app.logger.info("No FCM token for kitchen user!")
            return None

        message = PushMessage(
            token=kitchen_user.fcm_token,
            title=NEW_ORDER_TITLE,
            body=f"A new order #{order_id[:6]} has been placed. Check the kitchen panel.",
            data={"type": TYPE_NEW_ORDER, "orderId": order_id},
        )
        result = (dispatcher or get_dispatcher()).send(message)
        current_app.logger.info("Kitchen notification sent successfully: %s", result)
        return result
    except Exception:
        current_app.logger.exception("Error sending kitchen notification")
        return None


def notify_user_on_status_change(change: Change, dispatcher: Dispatcher | None = None) -> str | None:
    """Tell the customer their order moved to a new status. Returns the message id or None."""
    order_id = str(change.doc_id)
    try:
        before_status = change.before.get("status") if change.before else None
        after_status = change.after.get("status")

        # Updates to other fields keep the same status
        if before_status == after_status:
            return None

        user_id = change.after.get("user_id")
        current_app.logger.info(
            "Order %s status changed from %s to %s for user %s",
            order_id, before_status, after_status, user_id,
        )

        user = db.session.get(User, user_id) if user_id else None
        if user is None:
            current_app.logger.info("User document not found: %s", user_id)
            return None
        if not user.fcm_token:
            current_app.logger.info("No FCM token found for user: %s", user_id)
            return None

        message = PushMessage(
            token=user.fcm_token,
            title=ORDER_UPDATE_TITLE,
            body=status_message(after_status),
            data={
                "type": TYPE_ORDER_STATUS_UPDATE,
                "orderId": order_id,
                "newStatus": after_status,
                "oldStatus": before_status,
            },
        )
        result = (dispatcher or get_dispatcher()).send(message)
        current_app.logger.info("User notification sent successfully: %s", result)
        return result
    except Exception:
        current_app.logger.exception("Error sending user notification for order %s", order_id)
        return None


def register_triggers(runner) -> None:
    runner.on_create(Order)(notify_kitchen_on_new_order)
    runner.on_update(Order)(notify_user_on_status_change)
