"""
Fire-and-forget writes against Firestore.

Every mutation is handed to a single background worker and the call returns at
once. One worker means writes reach the store in the order they were issued.
A failed write is never raised to the caller: it is logged and published as a
WriteFailureEvent on the event channel, and the live subscriptions simply never
show it. Nothing is retried here.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Optional

from google.api_core import exceptions as gcp_exceptions

from services.errors import WriteErrorKind
from utils.event_channel import WRITE_FAILED, error_emitter

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteFailureEvent:
    operation: str
    path: str
    payload: Optional[dict]
    kind: WriteErrorKind
    error: BaseException


def classify_write_error(error: BaseException) -> WriteErrorKind:
    if isinstance(error, (gcp_exceptions.Forbidden, gcp_exceptions.Unauthorized)):
        return WriteErrorKind.PERMISSION_DENIED
    if isinstance(error, (
        gcp_exceptions.ServiceUnavailable,
        gcp_exceptions.DeadlineExceeded,
        gcp_exceptions.RetryError,
        ConnectionError,
        TimeoutError,
    )):
        return WriteErrorKind.UNAVAILABLE
    if isinstance(error, (gcp_exceptions.BadRequest, TypeError, ValueError)):
        return WriteErrorKind.INVALID_ARGUMENT
    return WriteErrorKind.UNKNOWN


class OptimisticWriter:
    def __init__(self, db, events=None):
        self._db = db
        self._events = events or error_emitter
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="optimistic-writer")
        self._lock = threading.Lock()
        self._in_flight = set()
        self._closed = False

    def create(self, path: str, key: str, record: dict):
        self._submit("create", path, key, record, lambda ref: ref.set(record))

    def update(self, path: str, key: str, record: dict):
        """Partial write of an existing document. Fails with NotFound if it was removed."""
        self._submit("update", path, key, record, lambda ref: ref.update(record))

    def set_merged(self, path: str, key: str, record: dict):
        """Merge write that creates the document when it does not exist yet."""
        self._submit("set_merged", path, key, record, lambda ref: ref.set(record, merge=True))

    def remove(self, path: str, key: str):
        self._submit("delete", path, key, None, lambda ref: ref.delete())

    def flush(self, timeout: float = None) -> bool:
        """Blocks until every write issued so far has finished. Returns False on timeout."""
        with self._lock:
            futures = list(self._in_flight)
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def close(self):
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    def _submit(self, operation, path, key, payload, action):
        with self._lock:
            if self._closed:
                log.warning(f"{operation} {path}/{key} dropped: writer is closed")
                return
            future = self._executor.submit(self._run, operation, path, key, payload, action)
            self._in_flight.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future):
        with self._lock:
            self._in_flight.discard(future)

    def _run(self, operation, path, key, payload, action):
        document_path = f"{path}/{key}"
        try:
            action(self._db.collection(path).document(key))
            log.info(f"{operation} {document_path} acknowledged")
        except Exception as e:
            kind = classify_write_error(e)
            log.error(f"{operation} {document_path} failed ({kind.value}): {e}")
            self._events.emit(WRITE_FAILED, WriteFailureEvent(
                operation=operation,
                path=document_path,
                payload=payload,
                kind=kind,
                error=e,
            ))


class CollectionWriter:
    """Binds an OptimisticWriter to one collection and its entity converter."""

    def __init__(self, writer: OptimisticWriter, path: str, converter):
        self.path = path
        self._writer = writer
        self._converter = converter

    def create(self, entity):
        self._writer.create(self.path, entity.id, self._converter.to_wire(entity))

    def update(self, key: str, changes: dict):
        self._writer.update(self.path, key, self._converter.to_wire_fields(changes))

    def set_merged(self, key: str, changes: dict):
        self._writer.set_merged(self.path, key, self._converter.to_wire_fields(changes))

    def remove(self, key: str):
        self._writer.remove(self.path, key)
