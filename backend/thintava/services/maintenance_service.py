# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import SessionHistory
from thintava.time_utils import utcnow


def cleanup_session_history(
    *,
    retention_days: int | None = None,
    limit: int | None = None,
    now: datetime | None = None,
) -> int:
    """
    Delete session history entries older than retention_days, across all users.

    At most `limit` entries go per call, oldest first, in a single commit.
    A backlog larger than the limit drains over successive runs.

    Returns the number of entries deleted.
    """
    config = current_app.config
    if retention_days is None:
        retention_days = config["SESSION_HISTORY_RETENTION_DAYS"]
    if limit is None:
        limit = config["SESSION_CLEANUP_BATCH_LIMIT"]

    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    current_app.logger.info("Starting cleanup of expired sessions (cutoff %s)", cutoff.isoformat())

    try:
        expired = (
            db.session.query(SessionHistory)
            .filter(SessionHistory.logout_time < cutoff)
            .order_by(SessionHistory.logout_time)
            .limit(limit)
            .all()
        )
        if not expired:
            current_app.logger.info("No expired sessions to clean up")
            return 0

        for entry in expired:
            db.session.delete(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error cleaning up expired sessions")
        return 0

    current_app.logger.info("Cleaned up %d expired session records", len(expired))
    return len(expired)
