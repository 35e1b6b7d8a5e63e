from __future__ import annotations

import enum
import uuid
from typing import Optional

from sqlalchemy.orm import column_property

from ..extensions import db
from thintava.time_utils import to_utc_z, utcnow


def new_document_id() -> str:
    return uuid.uuid4().hex


class OrderStatus(str, enum.Enum):
    """
    Closed set of order lifecycle states.

    Values are the exact strings written by the ordering and kitchen apps.
    """
    PLACED = "Placed"
    COOKING = "Cooking"
    COOKED = "Cooked"
    PICK_UP = "Pick Up"
    PICKED_UP = "PickedUp"
    TERMINATED = "Terminated"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["OrderStatus"]:
        """Case-insensitive lookup; returns None for values outside the enum."""
        if value is None:
            return None
        needle = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == needle:
                return member
        return None


class Order(db.Model):
    """
    Customer order as seen by the kitchen.

    Created by the ordering app, moved through Cooking/Cooked/Pick Up by the
    kitchen, and closed either by the customer (PickedUp) or by the stale
    pickup sweep (Terminated). Terminated orders are archived, never deleted.

    status is stored as a plain string: other writers may put values outside
    OrderStatus and the notifier still has to describe them.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_picked_up", "status", "picked_up_time"),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_document_id)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)

    # active_history keeps the prior status for update triggers
    status = column_property(
        db.Column(db.String(32), nullable=False, default=OrderStatus.PLACED.value),
        active_history=True,
    )
    items = db.Column(db.JSON, nullable=True)
    total_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    picked_up_time = db.Column(db.DateTime, nullable=True)  # set when status becomes Pick Up
    terminated_time = db.Column(db.DateTime, nullable=True)  # set once, by the sweep
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=utcnow)

    # Optimistic locking: a write based on a stale read raises StaleDataError
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        """Every column as archived. version_id is bookkeeping, not order data."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "items": self.items,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
            "picked_up_time": to_utc_z(self.picked_up_time),
            "terminated_time": to_utc_z(self.terminated_time),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderSnapshotMixin:
    """Columns shared by the two archive copies of a terminated order."""
    status = db.Column(db.String(32), nullable=False)
    terminated_time = db.Column(db.DateTime, nullable=True)
    snapshot = db.Column(db.JSON, nullable=False)
    archived_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class OrderHistory(OrderSnapshotMixin, db.Model):
    """
    Per-user archive of terminated orders.

    Keyed by (user_id, order_id); written only by the stale pickup sweep.
    """
    __tablename__ = "order_history"

    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), primary_key=True)
    order_id = db.Column(db.String(64), primary_key=True)


class AdminOrderHistory(OrderSnapshotMixin, db.Model):
    """Admin-wide archive of terminated orders, keyed by order id."""
    __tablename__ = "admin_order_history"

    order_id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
