# Overview: Persistence ports; local key-value storage and the remote document mirror.

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable

import httpx
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..extensions import db
from ..models import StorageEntry
from ..validation import PersistenceError
from ministore.time_utils import utcnow, to_utc_z

"""
Persistence contract

Local storage:
- Synchronous. A write either stores every given key or none of them.
- Failure raises PersistenceError(scope="local"), which is fatal to the
  operation that triggered it.

Remote mirror:
- One JSON document per tenant, same five collection fields plus lastUpdated.
- Writes are debounced: calls to schedule() inside the debounce window
  collapse into one PUT carrying the state current at fire time.
- Failures never propagate to the caller of schedule(); they are logged and
  leave the mirror "degraded" until the next successful push.
"""

logger = logging.getLogger(__name__)


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class MemoryStorage:
    """Process-local storage used for tests and offline demo mode."""

    kind = "memory"

    def __init__(self, initial: dict | None = None):
        self._data: dict[str, str] = {k: _dumps(v) for k, v in (initial or {}).items()}

    def ensure_schema(self) -> None:
        pass

    def read_all(self) -> dict[str, Any]:
        return {k: json.loads(v) for k, v in self._data.items()}

    def write_many(self, entries: dict[str, Any]) -> None:
        encoded = {k: _dumps(v) for k, v in entries.items()}
        self._data.update(encoded)

    def clear(self) -> None:
        self._data.clear()


class SqlLocalStorage:
    """
    Key-value storage on the application database (storage_entries table).

    Requires an active Flask app context.
    """

    kind = "sqlite"

    def __init__(self, *, attempts: int = 3, backoff_base: float = 0.1):
        self.attempts = attempts
        self.backoff_base = backoff_base

    def _with_retry(self, func):
        """Run func, retrying while SQLite reports the database as locked."""
        for attempt in range(1, self.attempts + 1):
            try:
                return func()
            except OperationalError as exc:
                db.session.rollback()
                if attempt == self.attempts:
                    raise
                delay = self.backoff_base * (2 ** (attempt - 1))
                logger.warning("Local write failed (attempt %d/%d), retrying in %.2fs: %s",
                               attempt, self.attempts, delay, exc.orig)
                time.sleep(delay)

    def ensure_schema(self) -> None:
        try:
            StorageEntry.__table__.create(db.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to prepare local storage", scope="local") from exc

    def read_all(self) -> dict[str, Any]:
        try:
            rows = db.session.query(StorageEntry).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Failed to read local storage", scope="local") from exc

        data = {}
        for row in rows:
            try:
                data[row.key] = json.loads(row.value_json)
            except ValueError as exc:
                raise PersistenceError(
                    f"Local storage entry {row.key!r} is not valid JSON",
                    scope="local",
                    entity="storage_entry",
                    value=row.key,
                ) from exc
        return data

    def write_many(self, entries: dict[str, Any]) -> None:
        # Serialize first so an encoding problem never reaches the session.
        encoded = {k: _dumps(v) for k, v in entries.items()}

        def _op():
            now = utcnow()
            for key, value_json in encoded.items():
                row = db.session.get(StorageEntry, key)
                if row is None:
                    row = StorageEntry(key=key, value_json=value_json, updated_at=now)
                    db.session.add(row)
                else:
                    row.value_json = value_json
                    row.updated_at = now
            db.session.commit()

        try:
            self._with_retry(_op)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(
                "Failed to write local storage",
                scope="local",
                details={"keys": sorted(entries)},
            ) from exc

    def clear(self) -> None:
        try:
            db.session.query(StorageEntry).delete()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Failed to clear local storage", scope="local") from exc


class RemoteMirror:
    """HTTP client for the per-tenant remote document, with debounced writes."""

    def __init__(
        self,
        base_url: str,
        tenant_id: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        debounce_seconds: float = 0.5,
        client: httpx.Client | None = None,
    ):
        self.tenant_id = tenant_id
        self.debounce_seconds = debounce_seconds
        self._owns_client = client is None
        if client is None:
            headers = {"Authorization": f"Bearer {token}"} if token else {}
            client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, headers=headers)
        self._client = client

        self._lock = threading.Lock()
        self._push_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending: Callable[[], dict] | None = None

        self.degraded = False
        self.last_error: str | None = None
        self.last_synced_at = None

    @property
    def document_path(self) -> str:
        return f"/documents/{self.tenant_id}"

    def fetch(self) -> dict | None:
        """Return the tenant document, or None when it does not exist yet."""
        try:
            response = self._client.get(self.document_path)
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Remote store unavailable: {exc}", scope="remote") from exc

        if response.status_code == 404:
            return None
        if response.is_error:
            raise PersistenceError(
                f"Remote store returned HTTP {response.status_code}",
                scope="remote",
                details={"status": response.status_code},
            )
        try:
            document = response.json()
        except ValueError as exc:
            raise PersistenceError("Remote document is not valid JSON", scope="remote") from exc
        if not isinstance(document, dict):
            raise PersistenceError("Remote document must be a JSON object", scope="remote")
        return document

    def push(self, document: dict) -> None:
        body = dict(document)
        body["lastUpdated"] = to_utc_z(utcnow())
        with self._push_lock:
            try:
                response = self._client.put(self.document_path, json=body)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                self.degraded = True
                self.last_error = str(exc)
                raise PersistenceError(f"Remote save failed: {exc}", scope="remote") from exc
            self.degraded = False
            self.last_error = None
            self.last_synced_at = utcnow()

    def schedule(self, document_factory: Callable[[], dict]) -> None:
        """Debounced push; the factory runs when the timer fires."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = document_factory
            self._timer = threading.Timer(self.debounce_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _take_pending(self) -> Callable[[], dict] | None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            factory, self._pending = self._pending, None
            return factory

    def _fire(self) -> None:
        factory = self._take_pending()
        if factory is None:
            return
        try:
            self.push(factory())
        except PersistenceError as exc:
            logger.warning("Data saved locally only (tenant=%s): %s", self.tenant_id, exc)

    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def flush(self) -> bool:
        """Push any pending write now. Returns True if something was pushed."""
        factory = self._take_pending()
        if factory is None:
            return False
        self.push(factory())
        return True

    def close(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None
        if self._owns_client:
            self._client.close()

    def status(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "degraded": self.degraded,
            "pending": self.has_pending(),
            "last_error": self.last_error,
            "last_synced_at": to_utc_z(self.last_synced_at),
        }
