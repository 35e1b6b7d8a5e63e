from datetime import datetime, timedelta

import pytest

from thintava.models import SecurityLog, SessionHistory, User, UserSession
from thintava.models.auth import LOGOUT_REASON_OTHER_DEVICE
from thintava.services.session_monitor_service import (
    TYPE_SESSION_TERMINATED,
    monitor_suspicious_activity,
    notify_user_on_session_termination,
)
from thintava.time_utils import utcnow
from thintava.triggers import CREATE, UPDATE, Change

from conftest import T0


def history_entry(**fields):
    after = {"id": "hist-1", "user_id": "cust-1", "logout_reason": LOGOUT_REASON_OTHER_DEVICE,
             "fcm_token": "tok-old-device", "logout_time": T0}
    after.update(fields)
    return Change(CREATE, SessionHistory, (after["id"],), None, after)


def session_update(before_device, after_device, before_login, after_login, user_id="cust-1"):
    before = {"user_id": user_id, "active_device_id": before_device, "last_login_time": before_login}
    after = {"user_id": user_id, "active_device_id": after_device, "last_login_time": after_login}
    return Change(UPDATE, UserSession, (user_id,), before, after)


class TestSessionTerminationNotice:
    def test_device_switch_logout_notifies_old_device(self, db_session, dispatcher, customer):
        result = notify_user_on_session_termination(history_entry())

        assert result is not None
        message = dispatcher.sent[0]
        assert message.token == "tok-old-device"
        assert message.title == "Logged Out"
        assert message.body == (
            "diner@example.com was logged in on another device. You have been logged out for security."
        )
        assert message.data == {
            "type": TYPE_SESSION_TERMINATED,
            "userId": "cust-1",
            "timestamp": "2026-10-19T12:00:00Z",
        }

    @pytest.mark.parametrize("reason", ["User logout", "Session expired", "", None])
    def test_other_reasons_never_send(self, db_session, dispatcher, customer, reason):
        assert notify_user_on_session_termination(history_entry(logout_reason=reason)) is None
        assert dispatcher.sent == []

    def test_missing_token_never_sends(self, db_session, dispatcher, customer):
        assert notify_user_on_session_termination(history_entry(fcm_token=None)) is None
        assert dispatcher.sent == []

    def test_missing_user_uses_placeholder(self, db_session, dispatcher):
        notify_user_on_session_termination(history_entry(user_id="ghost"))

        assert dispatcher.sent[0].body.startswith("your account was logged in on another device.")

    def test_user_without_email_uses_placeholder(self, db_session, dispatcher, seed):
        seed(User(id="cust-1", email=None))

        notify_user_on_session_termination(history_entry())

        assert dispatcher.sent[0].body.startswith("your account was logged in")

    def test_missing_logout_time_uses_now(self, db_session, dispatcher, customer):
        notify_user_on_session_termination(history_entry(logout_time=None))

        timestamp = dispatcher.sent[0].data["timestamp"]
        sent_at = datetime.fromisoformat(timestamp.replace("Z", "+00:00")).replace(tzinfo=None)
        assert abs(sent_at - utcnow()) < timedelta(minutes=1)

    def test_invalid_token_is_swallowed(self, db_session, dispatcher, customer):
        dispatcher.failing_tokens.add("tok-old-device")

        assert notify_user_on_session_termination(history_entry()) is None

    def test_history_append_fires_notice(self, db_session, dispatcher, drain, customer):
        db_session.add(SessionHistory(
            user_id=customer.id,
            logout_reason=LOGOUT_REASON_OTHER_DEVICE,
            fcm_token="tok-old-device",
            logout_time=T0,
        ))
        drain()

        notices = dispatcher.of_type(TYPE_SESSION_TERMINATED)
        assert len(notices) == 1
        assert notices[0].token == "tok-old-device"


class TestSuspiciousActivity:
    def test_switch_within_59_minutes_is_logged(self, db_session, customer):
        log = monitor_suspicious_activity(
            session_update("device-a", "device-b", T0, T0 + timedelta(minutes=59))
        )

        assert log is not None
        logs = db_session.query(SecurityLog).all()
        assert len(logs) == 1
        assert logs[0].user_id == "cust-1"
        assert logs[0].type == "SUSPICIOUS_DEVICE_SWITCH"
        assert logs[0].previous_device == "device-a"
        assert logs[0].new_device == "device-b"
        assert logs[0].time_difference_hours == pytest.approx(59 / 60)
        assert logs[0].timestamp is not None

    @pytest.mark.parametrize("gap", [timedelta(minutes=60), timedelta(hours=5)])
    def test_switch_after_an_hour_or_more_is_not_logged(self, db_session, customer, gap):
        assert monitor_suspicious_activity(session_update("device-a", "device-b", T0, T0 + gap)) is None
        assert db_session.query(SecurityLog).count() == 0

    def test_same_device_is_ignored(self, db_session, customer):
        change = session_update("device-a", "device-a", T0, T0 + timedelta(minutes=1))

        assert monitor_suspicious_activity(change) is None
        assert db_session.query(SecurityLog).count() == 0

    @pytest.mark.parametrize("before_login, after_login", [(None, T0), (T0, None), (None, None)])
    def test_missing_login_time_skips_check(self, db_session, customer, before_login, after_login):
        change = session_update("device-a", "device-b", before_login, after_login)

        assert monitor_suspicious_activity(change) is None
        assert db_session.query(SecurityLog).count() == 0

    def test_window_is_configurable(self, db_session, customer):
        change = session_update("device-a", "device-b", T0, T0 + timedelta(hours=2))

        assert monitor_suspicious_activity(change, window_hours=3) is not None

    def test_session_update_fires_monitor(self, db_session, dispatcher, drain, session_doc):
        session_doc.active_device_id = "device-b"
        session_doc.last_login_time = T0 + timedelta(minutes=10)
        drain()

        logs = db_session.query(SecurityLog).all()
        assert len(logs) == 1
        assert logs[0].time_difference_hours == pytest.approx(10 / 60)
        # Logging only: no push and the login stands
        assert dispatcher.sent == []
        assert db_session.get(UserSession, "cust-1").active_device_id == "device-b"

    def test_login_on_same_device_does_not_log(self, db_session, drain, session_doc):
        session_doc.last_login_time = T0 + timedelta(minutes=5)
        drain()

        assert db_session.query(SecurityLog).count() == 0
