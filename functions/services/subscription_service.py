"""
Live, decoded views over Firestore collections.

A LiveCollection holds the latest full snapshot of a query as an immutable
tuple of entities and tells its listeners whenever that changes. Each push
from the store replaces the previous snapshot outright. If any record in a
push fails to decode, the whole push is rejected: the last good snapshot stays
published, the collection moves to ERROR and its channel is closed until a
consumer calls resubscribe().

SubscriptionRegistry makes sure one scope never opens two channels for the
same query and closes a channel once its last consumer has released it.
"""

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from google.cloud.firestore import FieldFilter

from services.errors import DecodeError, SubscriptionError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuerySpec:
    """Hashable description of what to listen to: a filtered collection or one document."""

    path: str
    filters: tuple = ()
    order_by: tuple = ()
    limit: Optional[int] = None
    document_id: Optional[str] = None

    def where(self, field: str, op: str, value) -> "QuerySpec":
        # Lists ("in", "array-contains-any") are held as tuples so the query stays hashable
        if isinstance(value, list):
            value = tuple(value)
        return replace(self, filters=self.filters + ((field, op, value),))

    def ordered_by(self, field: str, direction: str = "ASCENDING") -> "QuerySpec":
        return replace(self, order_by=self.order_by + ((field, direction),))


class FirestoreSnapshotSource:
    """Snapshot transport backed by Firestore's on_snapshot listeners."""

    def __init__(self, db):
        self._db = db

    def _target(self, query: QuerySpec):
        collection = self._db.collection(query.path)
        if query.document_id is not None:
            return collection.document(query.document_id)
        target = collection
        for field, op, value in query.filters:
            if isinstance(value, tuple):
                value = list(value)
            target = target.where(filter=FieldFilter(field, op, value))
        for field, direction in query.order_by:
            target = target.order_by(field, direction=direction)
        if query.limit is not None:
            target = target.limit(query.limit)
        return target

    def listen(self, query: QuerySpec, on_snapshot, on_error):
        """Opens a listener and returns the callable that closes it."""

        def callback(docs, changes, read_time):
            try:
                records = [(doc.id, doc.to_dict()) for doc in docs if doc.exists]
            except Exception as e:
                on_error(e)
                return
            on_snapshot(records)

        try:
            watch = self._target(query).on_snapshot(callback)
        except Exception as e:
            log.error(f"Could not open listener on {query.path}: {e}")
            on_error(e)
            return lambda: None
        return watch.unsubscribe


class SubscriptionStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    ERROR = "error"


@dataclass(frozen=True)
class CollectionState:
    items: tuple = ()
    is_loading: bool = True
    error: Optional[SubscriptionError] = None
    status: SubscriptionStatus = SubscriptionStatus.IDLE


def _close_channel(unsubscribe):
    # Listener callbacks run on the watch's own thread, which cannot stop itself.
    threading.Thread(target=unsubscribe, name="subscription-close", daemon=True).start()


class LiveCollection:
    def __init__(self, query: QuerySpec, converter, source):
        self.query = query
        self._converter = converter
        self._source = source
        self._lock = threading.RLock()
        self._state = CollectionState()
        self._unsubscribe = None
        self._generation = 0
        self._listeners = []

    @property
    def state(self) -> CollectionState:
        return self._state

    @property
    def items(self) -> tuple:
        return self._state.items

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> Optional[SubscriptionError]:
        return self._state.error

    @property
    def status(self) -> SubscriptionStatus:
        return self._state.status

    def subscribe(self, listener):
        """Calls listener with the current state now and with every new state after."""
        with self._lock:
            self._listeners.append(listener)
            state = self._state
        listener(state)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def start(self):
        with self._lock:
            if self._state.status is not SubscriptionStatus.IDLE:
                return
        self._connect()

    def resubscribe(self):
        with self._lock:
            if self._state.status is not SubscriptionStatus.ERROR:
                return
        self._connect()

    def stop(self):
        with self._lock:
            self._generation += 1
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            state = self._state = CollectionState()
        if unsubscribe:
            unsubscribe()
        log.info(f"Closed subscription to {self.query.path}")
        self._notify(state)

    def _connect(self):
        with self._lock:
            self._generation += 1
            generation = self._generation
            state = self._state = replace(
                self._state, is_loading=True, error=None, status=SubscriptionStatus.CONNECTING
            )
        self._notify(state)
        log.info(f"Opening subscription to {self.query.path}")
        unsubscribe = self._source.listen(
            self.query,
            lambda records: self._on_snapshot(generation, records),
            lambda error: self._on_error(generation, error),
        )
        with self._lock:
            keep = generation == self._generation and self._state.status is not SubscriptionStatus.ERROR
            if keep:
                self._unsubscribe = unsubscribe
        if not keep:
            unsubscribe()

    def _on_snapshot(self, generation, records):
        with self._lock:
            if generation != self._generation or self._state.status is SubscriptionStatus.ERROR:
                return
            try:
                items = tuple(self._converter.from_wire(key, record) for key, record in records)
            except DecodeError as e:
                log.error(f"Rejected snapshot of {self.query.path}: {e}")
                state, unsubscribe = self._fail(e)
            else:
                state = self._state = CollectionState(items=items, is_loading=False, status=SubscriptionStatus.STREAMING)
                unsubscribe = None
        if unsubscribe:
            _close_channel(unsubscribe)
        self._notify(state)

    def _on_error(self, generation, error):
        with self._lock:
            if generation != self._generation or self._state.status is SubscriptionStatus.ERROR:
                return
            log.error(f"Subscription to {self.query.path} failed: {error}")
            state, unsubscribe = self._fail(error)
        if unsubscribe:
            _close_channel(unsubscribe)
        self._notify(state)

    def _fail(self, cause):
        self._state = replace(
            self._state,
            is_loading=False,
            error=SubscriptionError(self.query.path, cause),
            status=SubscriptionStatus.ERROR,
        )
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        return self._state, unsubscribe

    def _notify(self, state):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                log.exception(f"Listener on {self.query.path} failed")


class SubscriptionRegistry:
    """Reference-counted LiveCollections, one per distinct QuerySpec."""

    def __init__(self, source):
        self._source = source
        self._lock = threading.Lock()
        self._entries = {}

    def acquire(self, query: QuerySpec, converter) -> LiveCollection:
        with self._lock:
            entry = self._entries.get(query)
            opened = entry is None
            if opened:
                entry = self._entries[query] = [LiveCollection(query, converter, self._source), 0]
            entry[1] += 1
            live = entry[0]
        if opened:
            live.start()
        return live

    def release(self, live: LiveCollection):
        with self._lock:
            entry = self._entries.get(live.query)
            if entry is None or entry[0] is not live:
                return
            entry[1] -= 1
            last = entry[1] == 0
            if last:
                del self._entries[live.query]
        if last:
            live.stop()

    def active_count(self) -> int:
        with self._lock:
            return len(self._entries)
