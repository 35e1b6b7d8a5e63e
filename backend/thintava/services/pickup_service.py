# Overview: Service-layer operations for stale pickups; encapsulates business logic and database work.

"""
Stale Pickup Sweep

Orders sitting in "Pick Up" longer than the pickup window are closed out as
Terminated and archived into the per-user and admin order histories.

Run every minute by the scheduler. The status filter is the only guard
needed for idempotence: a terminated order never matches again, so a sweep
that fails to commit is simply redone by the next tick.

Overlapping sweeps (cron and run-scheduler both enabled, or two hosts) are
resolved by row locks where the database supports them and by the order
version counter everywhere: the sweep that commits second hits
StaleDataError, rolls back, and terminates nothing.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Order, OrderStatus, OrderHistory, AdminOrderHistory
from thintava.time_utils import utcnow


def find_stale_pickups(cutoff: datetime) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(
            Order.status == OrderStatus.PICK_UP.value,
            Order.picked_up_time <= cutoff,
        )
        .order_by(Order.picked_up_time)
        .with_for_update()
        .all()
    )


def archive_snapshot(order: Order) -> dict:
    """Full copy of the order as archived; call after the termination fields are set."""
    return order.to_dict()


def terminate_stale_pickups(*, now: datetime | None = None, pickup_minutes: int | None = None) -> int:
    """
    Terminate every order stuck in Pick Up since before now - pickup window.

    All order updates and both history upserts go into one commit, so either
    the whole sweep lands or none of it does.

    Returns the number of orders terminated (0 when nothing was stale or the
    commit failed).
    """
    if pickup_minutes is None:
        pickup_minutes = current_app.config["STALE_PICKUP_MINUTES"]
    now = now or utcnow()
    cutoff = now - timedelta(minutes=pickup_minutes)

    try:
        stale = find_stale_pickups(cutoff)
        if not stale:
            current_app.logger.info("No stale orders found.")
            return 0

        for order in stale:
            order.status = OrderStatus.TERMINATED.value
            order.terminated_time = now
            order.updated_at = now

            snapshot = archive_snapshot(order)

            # merge() is an upsert on the primary key; a re-run writes the same content
            db.session.merge(OrderHistory(
                user_id=order.user_id,
                order_id=order.id,
                status=order.status,
                terminated_time=now,
                snapshot=snapshot,
                archived_at=now,
            ))
            db.session.merge(AdminOrderHistory(
                order_id=order.id,
                user_id=order.user_id,
                status=order.status,
                terminated_time=now,
                snapshot=snapshot,
                archived_at=now,
            ))

        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        current_app.logger.warning("Stale pickup sweep lost a race with a concurrent write; nothing terminated")
        return 0
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to terminate stale pickups")
        return 0

    current_app.logger.info("Terminated %d stale pickups.", len(stale))
    return len(stale)
