"""Durable storage for the live session snapshot.

Writes are coalesced: while a write is in flight only the newest pending
save (or clear) is kept, and a single writer applies them in order. In
TESTING mode writes happen inline so tests can assert on the database.
"""

import json
import threading
import time
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from playgame import db, socketio
from playgame.models import GameSnapshot, SNAPSHOT_KEY
from .errors import PersistenceError

_SAVE = 'save'
_CLEAR = 'clear'


class SessionStore:
    def __init__(self, app=None, synchronous: Optional[bool] = None) -> None:
        self.app = app
        self.synchronous = synchronous
        self.last_error: Optional[str] = None
        self._pending: Optional[Tuple[str, Optional[str], Optional[dict]]] = None
        self._pending_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._writer_running = False
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.app = app
        if self.synchronous is None:
            self.synchronous = bool(app.config.get('TESTING'))

    def save(self, game) -> None:
        self._submit((_SAVE, game.kind, game.to_record()))

    def clear(self) -> None:
        self._submit((_CLEAR, None, None))

    def _submit(self, op) -> None:
        if self.synchronous:
            self._apply(op)
            return
        with self._pending_lock:
            self._pending = op
            if self._writer_running:
                return
            self._writer_running = True
        try:
            socketio.start_background_task(self._drain)
        except Exception:
            with self._pending_lock:
                self._writer_running = False
            self.app.logger.exception("[store-writer-failed] could not start background writer; writing inline")
            self.flush()

    def _drain(self) -> None:
        while True:
            with self._pending_lock:
                op = self._pending
                self._pending = None
                if op is None:
                    self._writer_running = False
                    return
            try:
                self._apply(op)
            except Exception as exc:
                self.last_error = str(exc)
                self.app.logger.error(f"[store-writer-error] {exc}", exc_info=True)

    def flush(self) -> None:
        """Apply any pending write on the calling thread."""
        with self._pending_lock:
            op = self._pending
            self._pending = None
        if op is not None:
            self._apply(op)

    def _apply(self, op) -> bool:
        action, kind, record = op
        with self._write_lock, self.app.app_context():
            try:
                if action == _SAVE:
                    self._write(kind, record)
                else:
                    self._delete()
            except (SQLAlchemyError, PersistenceError) as exc:
                try:
                    db.session.rollback()
                except SQLAlchemyError:
                    self.app.logger.error("[store-rollback-failed]", exc_info=True)
                self.last_error = str(exc)
                self.app.logger.error(f"[store-{action}-failed] {exc}", exc_info=True)
                return False
        self.last_error = None
        return True

    def _write(self, kind: str, record: dict) -> None:
        try:
            payload = json.dumps(record)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f'session record is not serializable: {exc}') from exc
        row = db.session.get(GameSnapshot, SNAPSHOT_KEY)
        if row is None:
            row = GameSnapshot(key=SNAPSHOT_KEY)
        row.kind = kind
        row.payload = payload
        row.updated_at = time.time()
        db.session.add(row)
        db.session.commit()

    def _delete(self) -> None:
        row = db.session.get(GameSnapshot, SNAPSHOT_KEY)
        if row is not None:
            db.session.delete(row)
            db.session.commit()

    def load(self) -> Optional[Tuple[str, dict]]:
        """Return ``(kind, record)`` for the stored session, or None if there is none."""
        with self.app.app_context():
            try:
                row = db.session.get(GameSnapshot, SNAPSHOT_KEY)
                if row is None:
                    return None
                return row.kind, row.record
            except (SQLAlchemyError, ValueError) as exc:
                db.session.rollback()
                self.last_error = str(exc)
                self.app.logger.error(f"[store-load-failed] {exc}", exc_info=True)
                return None
