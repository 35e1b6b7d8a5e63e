from __future__ import annotations

from ..extensions import db

SUSPICIOUS_DEVICE_SWITCH = "SUSPICIOUS_DEVICE_SWITCH"


class SecurityLog(db.Model):
    """
    Suspicious session activity detected by the session monitor.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_logs"
    __table_args__ = (
        db.Index("ix_security_logs_user_type", "user_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    type = db.Column(db.String(64), nullable=False, default=SUSPICIOUS_DEVICE_SWITCH)

    previous_device = db.Column(db.String(255), nullable=True)
    new_device = db.Column(db.String(255), nullable=True)
    time_difference_hours = db.Column(db.Float, nullable=True)

    timestamp = db.Column(db.DateTime, nullable=False, server_default=db.func.now(), index=True)
