# Overview: Store data layer; owns the in-memory state and commits transitions to local and remote storage.

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from flask import current_app

from ..models import StoreState
from ..models.state import COLLECTION_KEYS
from ..validation import NotFoundError, PersistenceError, ValidationError
from ministore.time_utils import utcnow
from .backup_service import restore_snapshot
from .identifier_service import IdSequence
from .persistence_service import MemoryStorage, RemoteMirror, SqlLocalStorage

logger = logging.getLogger(__name__)

REMOTE_DEGRADED_NOTICE = "Data saved locally only"

EXTENSION_KEY = "ministore.store"


@dataclass(frozen=True)
class OperationContext:
    """Clock reading and id source handed to every state transition."""
    now: datetime
    ids: IdSequence

    def next_id(self) -> int:
        return self.ids.next_id(self.now)


@dataclass(frozen=True)
class OperationResult:
    value: Any = None
    notices: tuple[str, ...] = ()

    @property
    def saved_locally_only(self) -> bool:
        return REMOTE_DEGRADED_NOTICE in self.notices


def _hydrate_local(document: dict) -> StoreState:
    try:
        return StoreState.from_document(document)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise PersistenceError(f"Local storage holds an invalid record: {e}", scope="local") from e


def _hydrate_remote(document: dict) -> StoreState:
    try:
        return restore_snapshot(document)
    except ValidationError as e:
        raise PersistenceError(f"Remote document rejected: {e.message}", scope="remote") from e


class Store:
    """
    Single owner of the persisted collections.

    Mutations go through execute(): the operation computes a new StoreState
    from the current one, the changed collections are written to local storage
    in one transaction, and only then does the new state become visible. A
    failed local write raises PersistenceError and leaves memory untouched.
    The remote mirror is updated afterwards, debounced and best-effort.
    """

    def __init__(
        self,
        local,
        remote: RemoteMirror | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._local = local
        self._remote = remote
        self._clock = clock
        self._ids = IdSequence()
        self._lock = threading.RLock()
        self._state = StoreState()
        self.loaded = False
        self.source = "empty"
        self.demo_mode = False

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def remote(self) -> RemoteMirror | None:
        return self._remote

    @property
    def local(self):
        return self._local

    def now(self) -> datetime:
        return self._clock()

    def context(self) -> OperationContext:
        return OperationContext(now=self._clock(), ids=self._ids)

    # ----- load -----

    def load(self, *, prefer_remote: bool = False, allow_demo: bool = False) -> str:
        """
        Populate memory from storage and return where the data came from
        ("local", "remote", "demo" or "empty").
        """
        with self._lock:
            self._local.ensure_schema()
            local_doc = self._local.read_all()
            state = _hydrate_local(local_doc) if local_doc else None
            source = "local" if local_doc else "empty"
            remote_failed = self._remote is None

            if self._remote is not None and (prefer_remote or state is None):
                try:
                    remote_doc = self._remote.fetch()
                    remote_state = _hydrate_remote(remote_doc) if remote_doc is not None else None
                except PersistenceError as exc:
                    logger.warning("Remote load failed, using local data: %s", exc)
                    remote_failed = True
                else:
                    if remote_state is not None:
                        state = remote_state
                        self._local.write_many(state.to_document())
                        source = "remote"
                    elif state is not None:
                        self._push_quietly(state.to_document())

            if state is None and allow_demo and remote_failed:
                logger.warning("No stored data and remote unavailable; loading demo data into memory")
                return self._enter_demo_mode()

            self._install(state or StoreState(), source)
            logger.info("Store loaded from %s (%d products, %d sales)",
                        source, len(self._state.products), len(self._state.sales))
            return source

    def ensure_loaded(self, **kwargs) -> None:
        with self._lock:
            if not self.loaded:
                self.load(**kwargs)

    def _enter_demo_mode(self) -> str:
        from .demo_data import build_demo_state

        if self._remote is not None:
            self._remote.close()
        self._remote = None
        self._local = MemoryStorage()
        state = build_demo_state(self._clock())
        self._local.write_many(state.to_document())
        self.demo_mode = True
        self._install(state, "demo")
        return "demo"

    def _install(self, state: StoreState, source: str) -> None:
        self._ids.observe(state.all_record_ids())
        self._state = state
        self.source = source
        self.loaded = True

    def _push_quietly(self, document: dict) -> None:
        try:
            self._remote.push(document)
        except PersistenceError as exc:
            logger.warning("Could not create remote document: %s", exc)

    # ----- mutate -----

    def execute(self, operation: Callable, *args, **kwargs) -> OperationResult:
        """Run operation(state, ctx, *args, **kwargs) -> (new_state, value) and commit it."""
        with self._lock:
            current = self._state
            new_state, value = operation(current, self.context(), *args, **kwargs)
            notices = self._commit(current, new_state)
            return OperationResult(value=value, notices=notices)

    def replace_state(self, new_state: StoreState) -> OperationResult:
        """Commit every collection of new_state, changed or not (restore, wipe)."""
        with self._lock:
            notices = self._commit(self._state, new_state, keys=set(COLLECTION_KEYS))
            return OperationResult(value=new_state, notices=notices)

    def _commit(self, current: StoreState, new_state: StoreState, keys: set | None = None) -> tuple[str, ...]:
        changed = keys if keys is not None else new_state.changed_keys(current)
        if not changed:
            return self.notices()

        entries = {key: new_state.serialize(key) for key in changed}
        self._local.write_many(entries)
        self._state = new_state
        self._ids.observe(new_state.all_record_ids())
        logger.debug("Committed collections: %s", ", ".join(sorted(changed)))

        if self._remote is not None:
            self._remote.schedule(self.to_document)
        return self.notices()

    def notices(self) -> tuple[str, ...]:
        if self._remote is not None and self._remote.degraded:
            return (REMOTE_DEGRADED_NOTICE,)
        return ()

    # ----- remote -----

    def to_document(self) -> dict:
        return self._state.to_document()

    def flush(self) -> bool:
        if self._remote is None:
            return False
        return self._remote.flush()

    def push(self) -> None:
        """Synchronous full push, replacing any pending debounced write."""
        remote = self._require_remote()
        remote.flush()
        remote.push(self.to_document())

    def pull(self) -> StoreState:
        """Replace local and in-memory state with the remote document."""
        remote = self._require_remote()
        with self._lock:
            document = remote.fetch()
            if document is None:
                raise NotFoundError(
                    f"No remote document for tenant {remote.tenant_id!r}",
                    entity="remote_document",
                    value=remote.tenant_id,
                )
            state = _hydrate_remote(document)
            self._local.write_many(state.to_document())
            self._install(state, "remote")
            return state

    def _require_remote(self) -> RemoteMirror:
        if self._remote is None:
            raise PersistenceError("Remote store is not configured", scope="remote")
        return self._remote

    def close(self) -> None:
        if self._remote is not None:
            self._remote.close()

    def status(self) -> dict:
        return {
            "loaded": self.loaded,
            "source": self.source,
            "demo_mode": self.demo_mode,
            "local_storage": self._local.kind,
            "remote": self._remote.status() if self._remote is not None else None,
            "counts": {
                "products": len(self._state.products),
                "sales": len(self._state.sales),
                "priceHistory": len(self._state.price_history),
                "restockHistory": len(self._state.restock_history),
            },
        }


def build_store(config) -> Store:
    remote = None
    if config.get("REMOTE_STORE_URL"):
        remote = RemoteMirror(
            config["REMOTE_STORE_URL"],
            config.get("STORE_TENANT_ID", "default"),
            token=config.get("REMOTE_STORE_TOKEN"),
            timeout=config.get("REMOTE_TIMEOUT_SECONDS", 10.0),
            debounce_seconds=config.get("REMOTE_DEBOUNCE_SECONDS", 0.5),
        )
    return Store(SqlLocalStorage(), remote)


def get_store() -> Store:
    """The app's Store, loaded on first use."""
    store = current_app.extensions[EXTENSION_KEY]
    store.ensure_loaded(
        prefer_remote=current_app.config.get("REMOTE_PREFER_ON_LOAD", True),
        allow_demo=current_app.config.get("OFFLINE_DEMO_DATA", False),
    )
    return store
