from __future__ import annotations

from sqlalchemy.orm import column_property

from ..extensions import db
from thintava.time_utils import utcnow
from .orders import new_document_id


ROLE_CUSTOMER = "customer"
ROLE_KITCHEN = "kitchen"

LOGOUT_REASON_OTHER_DEVICE = "Logged in on another device"


class User(db.Model):
    """
    App account, either a customer or the kitchen.

    fcm_token is written by the mobile app once the device registers for push
    and may arrive after the account is created. This backend only reads it.
    """
    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True, default=new_document_id)
    email = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(32), nullable=False, default=ROLE_CUSTOMER, index=True)
    fcm_token = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class UserSession(db.Model):
    """
    Single-device session document, one row per user.

    Rewritten by the app on every login; the previous and new versions of an
    update are what the suspicious activity monitor compares.
    """
    __tablename__ = "user_sessions"

    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), primary_key=True)
    active_device_id = column_property(db.Column(db.String(255), nullable=True), active_history=True)
    last_login_time = column_property(db.Column(db.DateTime, nullable=True), active_history=True)
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=utcnow)


class SessionHistory(db.Model):
    """
    One logout event for a user.

    fcm_token is the token of the device that was logged out, captured at
    logout time so the notice reaches the old device rather than the new one.
    Entries are purged after the retention window by the cleanup job.
    """
    __tablename__ = "session_history"

    id = db.Column(db.String(64), primary_key=True, default=new_document_id)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    logout_reason = db.Column(db.String(255), nullable=True)
    fcm_token = db.Column(db.String(512), nullable=True)
    logout_time = db.Column(db.DateTime, nullable=True, index=True)
