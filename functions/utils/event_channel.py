import logging
import threading
from collections import defaultdict

log = logging.getLogger(__name__)

WRITE_FAILED = "write-failed"


class EventChannel:
    """
    Process-wide publish/subscribe channel.
    Listeners run synchronously on the publishing thread; a failing listener is
    logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners = defaultdict(list)

    def on(self, event_name: str, listener):
        with self._lock:
            self._listeners[event_name].append(listener)
        return lambda: self.off(event_name, listener)

    def off(self, event_name: str, listener):
        with self._lock:
            if listener in self._listeners[event_name]:
                self._listeners[event_name].remove(listener)

    def emit(self, event_name: str, payload) -> int:
        with self._lock:
            listeners = list(self._listeners[event_name])
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                log.exception(f"Listener {listener!r} failed while handling '{event_name}'")
        return len(listeners)


error_emitter = EventChannel()
