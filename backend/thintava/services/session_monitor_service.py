# Overview: Service-layer operations for session security; encapsulates business logic and database work.

"""
Session Security Monitor

WHY: The app enforces one active device per account. When a login on a new
device kicks out the old one, the old device gets a push explaining why,
and device switches that happen implausibly fast are written to the
security log for review.

This is a heuristic, not a control: nothing here blocks or reverts a login.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import SecurityLog, SessionHistory, User, UserSession
from ..models.auth import LOGOUT_REASON_OTHER_DEVICE
from ..models.security import SUSPICIOUS_DEVICE_SWITCH
from ..notifications import Dispatcher, PushMessage, get_dispatcher
from ..triggers import Change
from thintava.time_utils import hours_between, to_utc_z, utcnow


TYPE_SESSION_TERMINATED = "SESSION_TERMINATED"

SESSION_TERMINATED_TITLE = "Logged Out"
UNKNOWN_ACCOUNT_LABEL = "your account"


def notify_user_on_session_termination(change: Change, dispatcher: Dispatcher | None = None) -> str | None:
    """
    Push a logout notice to the device that was just signed out.

    Only sent when the logout was caused by a login on another device and the
    history entry carries the old device's token. Returns the message id or None.
    """
    entry = change.after
    user_id = entry.get("user_id")
    logout_reason = entry.get("logout_reason")
    fcm_token = entry.get("fcm_token")

    try:
        current_app.logger.info("Session termination detected for user: %s", user_id)

        if logout_reason != LOGOUT_REASON_OTHER_DEVICE or not fcm_token:
            current_app.logger.info(
                "No notification sent - logoutReason: %s, fcmToken: %s",
                logout_reason, bool(fcm_token),
            )
            return None

        user = db.session.get(User, user_id) if user_id else None
        account_label = (user.email if user else None) or UNKNOWN_ACCOUNT_LABEL

        message = PushMessage(
            token=fcm_token,
            title=SESSION_TERMINATED_TITLE,
            body=f"{account_label} was logged in on another device. You have been logged out for security.",
            data={
                "type": TYPE_SESSION_TERMINATED,
                "userId": user_id,
                "timestamp": to_utc_z(entry.get("logout_time") or utcnow()),
            },
        )

        try:
            result = (dispatcher or get_dispatcher()).send(message)
        except Exception:
            # Token might be invalid
            current_app.logger.exception(
                "Error sending session termination notification to %s...", fcm_token[:8]
            )
            return None

        current_app.logger.info("Session termination notification sent for user %s: %s", user_id, result)
        return result
    except Exception:
        current_app.logger.exception("Error in session termination handler for user %s", user_id)
        return None


def monitor_suspicious_activity(change: Change, *, window_hours: float | None = None) -> SecurityLog | None:
    """
    Log a device switch that follows the previous login too closely.

    Compares the session document before and after a login. A changed
    active_device_id with less than window_hours between the two
    last_login_time values appends a SecurityLog entry. Missing login times
    skip the check.

    Returns the new SecurityLog or None.
    """
    if window_hours is None:
        window_hours = current_app.config["SUSPICIOUS_SWITCH_WINDOW_HOURS"]

    before = change.before or {}
    after = change.after
    user_id = after.get("user_id")

    try:
        previous_device = before.get("active_device_id")
        new_device = after.get("active_device_id")
        if previous_device == new_device:
            return None

        current_app.logger.info(
            "Device change detected for user %s: %s -> %s", user_id, previous_device, new_device
        )

        previous_login = before.get("last_login_time")
        new_login = after.get("last_login_time")
        if previous_login is None or new_login is None:
            return None

        gap_hours = hours_between(previous_login, new_login)
        if gap_hours >= window_hours:
            return None

        current_app.logger.warning(
            "Suspicious activity: User %s switched devices within %.2f hours", user_id, gap_hours
        )
        log = SecurityLog(
            user_id=user_id,
            type=SUSPICIOUS_DEVICE_SWITCH,
            previous_device=previous_device,
            new_device=new_device,
            time_difference_hours=gap_hours,
        )
        db.session.add(log)
        db.session.commit()
        return log
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error monitoring suspicious activity for user %s", user_id)
        return None


def register_triggers(runner) -> None:
    runner.on_create(SessionHistory)(notify_user_on_session_termination)
    runner.on_update(UserSession)(monitor_suspicious_activity)
