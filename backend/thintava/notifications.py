# Overview: Push notification dispatch; wraps Firebase Cloud Messaging behind a small interface.

"""
Notification Dispatcher

A dispatcher accepts a device token, a title/body pair and a flat string
payload, and either returns the provider's message id or raises
NotificationError. Delivery is best-effort: nothing in this package retries a
failed send.

The dispatcher is built once in create_app() and stored on app.extensions;
handlers fetch it with get_dispatcher().
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from flask import current_app

import firebase_admin
from firebase_admin import credentials, exceptions, messaging


EXTENSION_KEY = "thintava.dispatcher"

FIREBASE_APP_NAME = "thintava"


class NotificationError(Exception):
    """Raised when a push cannot be handed to the delivery service."""

    def __init__(self, message: str, token: str | None = None):
        super().__init__(message)
        self.token = token


@dataclass(frozen=True)
class PushMessage:
    token: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # FCM data payloads only carry strings
        object.__setattr__(
            self, "data", {str(k): "" if v is None else str(v) for k, v in self.data.items()}
        )


class Dispatcher:
    """Base class for notification delivery backends."""

    name = "base"

    def send(self, message: PushMessage) -> str:
        raise NotImplementedError


class FirebaseDispatcher(Dispatcher):
    """Sends through firebase_admin.messaging using a service account."""

    name = "fcm"

    def __init__(self, firebase_app):
        self._firebase_app = firebase_app

    @classmethod
    def from_credentials_file(cls, path: str) -> "FirebaseDispatcher":
        try:
            firebase_app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            firebase_app = firebase_admin.initialize_app(
                credentials.Certificate(path), name=FIREBASE_APP_NAME
            )
        return cls(firebase_app)

    def send(self, message: PushMessage) -> str:
        if not message.token:
            raise NotificationError("Missing device token")

        fcm_message = messaging.Message(
            token=message.token,
            notification=messaging.Notification(title=message.title, body=message.body),
            data=message.data,
        )
        try:
            return messaging.send(fcm_message, app=self._firebase_app)
        except (exceptions.FirebaseError, ValueError) as exc:
            raise NotificationError(str(exc), token=message.token) from exc


class LoggingDispatcher(Dispatcher):
    """
    Development dispatcher used when no FCM credentials are configured.

    Writes the message to the app log and returns a synthetic message id.
    """

    name = "log"

    def __init__(self, logger):
        self._logger = logger

    def send(self, message: PushMessage) -> str:
        if not message.token:
            raise NotificationError("Missing device token")
        message_id = f"local/{uuid.uuid4().hex}"
        self._logger.info(
            "Push %s to %s...: %s | %s | %s",
            message_id, message.token[:8], message.title, message.body, message.data,
        )
        return message_id


def init_dispatcher(app, dispatcher: Dispatcher | None = None) -> Dispatcher:
    """Build the app's dispatcher (explicit instance, FCM, or logging fallback)."""
    if dispatcher is None:
        credentials_file = app.config.get("FCM_CREDENTIALS_FILE")
        if credentials_file:
            dispatcher = FirebaseDispatcher.from_credentials_file(credentials_file)
        else:
            app.logger.warning("FCM_CREDENTIALS_FILE not set; push notifications will only be logged")
            dispatcher = LoggingDispatcher(app.logger)

    app.extensions[EXTENSION_KEY] = dispatcher
    return dispatcher


def get_dispatcher() -> Dispatcher:
    return current_app.extensions[EXTENSION_KEY]
