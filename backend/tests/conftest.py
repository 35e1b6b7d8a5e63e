"""
Pytest fixtures for Thintava backend tests.

Provides an in-memory database, a recording notification dispatcher and a
deferred trigger runner so change-triggered handlers run only when a test
drains them.
"""

from datetime import datetime

import pytest
from thintava import create_app
from thintava.extensions import db
from thintava.models import Order, OrderStatus, User, UserSession
from thintava.models.auth import ROLE_CUSTOMER, ROLE_KITCHEN
from thintava.notifications import Dispatcher, NotificationError
from thintava.triggers import EXTENSION_KEY as TRIGGERS_KEY


T0 = datetime(2026, 10, 19, 12, 0, 0)


class RecordingDispatcher(Dispatcher):
    """Captures sent messages; tokens in failing_tokens raise like an unregistered device."""

    name = "recording"

    def __init__(self):
        self.sent = []
        self.failing_tokens = set()

    def send(self, message):
        if message.token in self.failing_tokens:
            raise NotificationError("Requested entity was not found.", token=message.token)
        self.sent.append(message)
        return f"projects/thintava-test/messages/{len(self.sent)}"

    def of_type(self, message_type):
        return [m for m in self.sent if m.data.get("type") == message_type]

    def reset(self):
        self.sent.clear()
        self.failing_tokens.clear()


@pytest.fixture(scope='session')
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture(scope='session')
def app(dispatcher):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TRIGGERS_ASYNC': False,
        'WELCOME_DELAY_SECONDS': 0,
    }, dispatcher=dispatcher)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def runner(app):
    return app.extensions[TRIGGERS_KEY]


@pytest.fixture(scope='function')
def db_session(app, runner, dispatcher):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        runner.clear()
        dispatcher.reset()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        runner.clear()


@pytest.fixture(scope='function')
def seed(db_session, runner):
    """
    Add and commit rows as pre-existing state.

    Handlers queued by these writes are discarded so a test only sees the
    invocations caused by the write under test.
    """
    def _seed(*objects):
        for obj in objects:
            db_session.add(obj)
        db_session.commit()
        runner.clear()
        return objects[0] if len(objects) == 1 else objects
    return _seed


@pytest.fixture(scope='function')
def drain(db_session, runner):
    """Commit, run every queued handler, and expire cached rows."""
    def _drain():
        db_session.commit()
        count = runner.run_pending()
        db_session.expire_all()
        return count
    return _drain


@pytest.fixture(scope='function')
def customer(seed):
    return seed(User(id="cust-1", email="diner@example.com", role=ROLE_CUSTOMER, fcm_token="tok-customer"))


@pytest.fixture(scope='function')
def kitchen(seed):
    return seed(User(id="kitchen-1", email="kitchen@example.com", role=ROLE_KITCHEN, fcm_token="tok-kitchen"))


@pytest.fixture(scope='function')
def make_order(seed):
    def _make(order_id, user_id="cust-1", status=OrderStatus.PLACED.value, **fields):
        return seed(Order(id=order_id, user_id=user_id, status=status, **fields))
    return _make


@pytest.fixture(scope='function')
def session_doc(seed, customer):
    return seed(UserSession(user_id=customer.id, active_device_id="device-a", last_login_time=T0))
