# Overview: Service-layer operations for onboarding notifications.

from __future__ import annotations

import time

from flask import current_app

from ..extensions import db
from ..models import User
from ..notifications import Dispatcher, PushMessage, get_dispatcher
from ..triggers import Change


TYPE_WELCOME = "WELCOME"

WELCOME_TITLE = "Welcome to Thintava! 🍽️"
WELCOME_BODY = "Start exploring our delicious menu and place your first order!"


def send_welcome_notification(
    change: Change,
    dispatcher: Dispatcher | None = None,
    *,
    delay_seconds: float | None = None,
    sleep=time.sleep,
) -> str | None:
    """
    Send the one-time welcome push for a new account.

    The device registers its token right after sign-up, usually a moment
    after the user row is created, so this waits a fixed delay and re-reads
    the user. No token by then means no welcome message, ever.
    """
    user_id = change.doc_id
    if delay_seconds is None:
        delay_seconds = current_app.config["WELCOME_DELAY_SECONDS"]

    try:
        current_app.logger.info("New user registered: %s", user_id)

        if delay_seconds > 0:
            sleep(delay_seconds)

        # Drop anything cached so the token written meanwhile is visible
        db.session.expire_all()
        user = db.session.get(User, user_id)
        if user is None or not user.fcm_token:
            current_app.logger.info("No FCM token available for welcome notification")
            return None

        message = PushMessage(
            token=user.fcm_token,
            title=WELCOME_TITLE,
            body=WELCOME_BODY,
            data={"type": TYPE_WELCOME, "userId": user_id},
        )
        result = (dispatcher or get_dispatcher()).send(message)
        current_app.logger.info("Welcome notification sent successfully: %s", result)
        return result
    except Exception:
        current_app.logger.exception("Error sending welcome notification")
        return None


def register_triggers(runner) -> None:
    runner.on_create(User)(send_welcome_notification)
