# Overview: Change-triggered invocation on top of the SQLAlchemy session.

"""
Document Change Triggers

Handlers subscribe to "create" or "update" events of a model. The ORM
session listeners below record a Change for every watched row written during
a flush and hand the batch to the TriggerRunner once the transaction commits.
A rolled back transaction produces no events.

Handlers therefore always observe committed state, run in their own app
context and database session, and can never fail the write that triggered
them: anything they raise is logged and dropped here.

Only ORM unit-of-work writes are observed. Bulk query.update()/delete() calls
bypass the session and fire nothing.

DEPLOYMENT REQUIREMENT: triggers see only writes committed through
thintava's db.session in a process that called create_app(). Anything that
writes orders, users, user_sessions or session_history from outside (another
service, a direct SQL client, the mobile app talking to the database) must go
through this package's models and session, or its changes never reach the
handlers. The bundled wsgi.py serves only /health and /version and accepts no
such writes itself.
"""

from __future__ import annotations

import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

from flask import current_app, has_app_context
from sqlalchemy import event, inspect

from .extensions import db


EXTENSION_KEY = "thintava.triggers"
PENDING_KEY = "thintava.pending_changes"

CREATE = "create"
UPDATE = "update"


@dataclass(frozen=True)
class Change:
    """
    A committed write to one row.

    before is None for creates. For updates both snapshots hold every column
    of the row, keyed by attribute name; before carries the values as they
    were prior to the update.
    """
    kind: str
    model: type
    key: tuple
    before: Optional[dict]
    after: dict

    @property
    def doc_id(self) -> Any:
        return self.key[0] if len(self.key) == 1 else self.key

    def value_changed(self, name: str) -> bool:
        if self.before is None:
            return True
        return self.before.get(name) != self.after.get(name)


Handler = Callable[[Change], Any]


class TriggerRunner:
    """
    Routes committed changes to their handlers.

    With run_async the handlers execute on a thread pool, so two changes may be
    handled concurrently and complete out of order. Without it invocations
    queue up until run_pending() drains them (tests, one-shot CLI jobs).
    """

    def __init__(self, app, *, run_async: bool = True, max_workers: int = 4):
        self.app = app
        self.run_async = run_async
        self._handlers: dict[tuple[type, str], list[Handler]] = {}
        self._queue: deque[tuple[Handler, Change]] = deque()
        self._executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="trigger")
            if run_async else None
        )
        self._lock = threading.Lock()

    def register(self, model: type, kind: str, handler: Handler) -> None:
        if kind not in (CREATE, UPDATE):
            raise ValueError(f"Unknown trigger kind: {kind}")
        self._handlers.setdefault((model, kind), []).append(handler)

    def on_create(self, model: type):
        def decorator(handler: Handler) -> Handler:
            self.register(model, CREATE, handler)
            return handler
        return decorator

    def on_update(self, model: type):
        def decorator(handler: Handler) -> Handler:
            self.register(model, UPDATE, handler)
            return handler
        return decorator

    def watches(self, model: type, kind: str) -> bool:
        return (model, kind) in self._handlers

    def submit(self, changes: list[Change]) -> None:
        for change in changes:
            for handler in self._handlers.get((change.model, change.kind), ()):
                if self._executor is not None:
                    self._executor.submit(self._invoke, handler, change)
                else:
                    self._queue.append((handler, change))

    def run_pending(self) -> int:
        """
        Run queued invocations, including any queued by the handlers themselves.

        Returns the number of handler invocations executed.
        """
        count = 0
        while True:
            with self._lock:
                if not self._queue:
                    return count
                handler, change = self._queue.popleft()
            self._invoke(handler, change)
            count += 1

    def pending_count(self) -> int:
        return len(self._queue)

    def clear(self) -> None:
        self._queue.clear()

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

    def _invoke(self, handler: Handler, change: Change) -> Any:
        # Fresh app context means a fresh scoped session for the handler
        with self.app.app_context():
            try:
                return handler(change)
            except Exception:
                self.app.logger.exception(
                    "Trigger handler %s failed for %s %s %s",
                    getattr(handler, "__name__", handler), change.model.__name__, change.kind, change.doc_id,
                )
                db.session.rollback()
                return None


def get_trigger_runner() -> Optional[TriggerRunner]:
    if not has_app_context():
        return None
    return current_app.extensions.get(EXTENSION_KEY)


def _column_keys(mapper) -> list[str]:
    return [attr.key for attr in mapper.column_attrs]


def _row_key(mapper, values: dict) -> tuple:
    return tuple(values.get(mapper.get_property_by_column(col).key) for col in mapper.primary_key)


def _current_values(state) -> dict:
    return {key: state.dict.get(key) for key in _column_keys(state.mapper)}


def _previous_values(state) -> dict:
    values = {}
    for key in _column_keys(state.mapper):
        history = state.attrs[key].history
        if history.deleted:
            values[key] = history.deleted[0]
        elif history.added:
            # Modified without the prior value loaded
            values[key] = None
        else:
            values[key] = state.dict.get(key)
    return values


def _load_watched_rows(session, flush_context, instances):
    runner = get_trigger_runner()
    if runner is None:
        return
    for obj in session.dirty:
        if not runner.watches(type(obj), UPDATE):
            continue
        state = inspect(obj)
        # Unexpire untouched columns so the "after" snapshot is complete
        for key in _column_keys(state.mapper):
            if key in state.unloaded:
                getattr(obj, key)


def _collect_changes(session, flush_context):
    runner = get_trigger_runner()
    if runner is None:
        return
    pending = session.info.setdefault(PENDING_KEY, [])

    for obj in session.new:
        if not runner.watches(type(obj), CREATE):
            continue
        state = inspect(obj)
        after = _current_values(state)
        pending.append(Change(CREATE, type(obj), _row_key(state.mapper, after), None, after))

    for obj in session.dirty:
        if not runner.watches(type(obj), UPDATE):
            continue
        if not session.is_modified(obj, include_collections=False):
            continue
        state = inspect(obj)
        after = _current_values(state)
        before = _previous_values(state)
        pending.append(Change(UPDATE, type(obj), _row_key(state.mapper, after), before, after))


def _dispatch_committed(session):
    changes = session.info.pop(PENDING_KEY, None)
    if not changes:
        return
    runner = get_trigger_runner()
    if runner is not None:
        runner.submit(changes)


def _discard_pending(session):
    session.info.pop(PENDING_KEY, None)


_LISTENERS = (
    ("before_flush", _load_watched_rows),
    ("after_flush", _collect_changes),
    ("after_commit", _dispatch_committed),
    ("after_rollback", _discard_pending),
)


def init_triggers(app) -> TriggerRunner:
    """Create the app's TriggerRunner and attach the session listeners once."""
    runner = TriggerRunner(
        app,
        run_async=app.config.get("TRIGGERS_ASYNC", True),
        max_workers=app.config.get("TRIGGER_WORKERS", 4),
    )
    app.extensions[EXTENSION_KEY] = runner

    for identifier, listener in _LISTENERS:
        if not event.contains(db.session, identifier, listener):
            event.listen(db.session, identifier, listener)

    return runner
