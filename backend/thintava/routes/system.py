# backend/thintava/routes/system.py
"""
System health and version endpoints.

The backend has no user-facing API; these exist for load balancers and
deployment debugging only.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Order, OrderStatus, SessionHistory, User
from ..notifications import EXTENSION_KEY as DISPATCHER_KEY
from ..triggers import get_trigger_runner
from thintava.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        awaiting_pickup = db.session.query(Order).filter_by(status=OrderStatus.PICK_UP.value).count()
        session_history_count = db.session.query(SessionHistory).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "orders_awaiting_pickup": awaiting_pickup,
                "session_history_entries": session_history_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_notification_health() -> dict:
    """
    Report which dispatcher is active. A logging-only dispatcher is degraded:
    the service runs, but nothing reaches devices.
    """
    dispatcher = current_app.extensions.get(DISPATCHER_KEY)
    if dispatcher is None:
        return {"status": "unhealthy", "error": "No dispatcher configured"}
    if dispatcher.name == "log":
        return {
            "status": "degraded",
            "warning": "FCM credentials not configured; notifications are logged only",
            "details": {"dispatcher": dispatcher.name},
        }
    return {"status": "healthy", "details": {"dispatcher": dispatcher.name}}


def check_trigger_health() -> dict:
    runner = get_trigger_runner()
    if runner is None:
        return {"status": "unhealthy", "error": "Trigger runner not initialized"}
    return {
        "status": "healthy",
        "details": {
            "mode": "async" if runner.run_async else "deferred",
            "queued": runner.pending_count(),
        }
    }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: one or more components unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "notifications": check_notification_health(),
        "triggers": check_trigger_health(),
    }

    statuses = [check["status"] for check in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200  # Degraded is still operational
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": checks,
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
