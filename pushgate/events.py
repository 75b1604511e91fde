"""Named host-facing events with exactly-once delivery per emit."""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Any, Callable, Deque, Dict, List, Tuple

from .config import Settings
from .utils import log_debug, log_error

Listener = Callable[..., Any]

# Event name -> payload types, in order.
EVENT_SIGNATURES: Dict[str, Tuple[type, ...]] = {
    "initialized": (),
    "initialization_failed": (str,),
    "token_received": (str,),
    "token_fetch_failed": (str,),
    "permission_request_completed": (bool,),
}

FAILURE_EVENTS = frozenset({"initialization_failed", "token_fetch_failed"})


class EventEmitter:
    """
    Fire-and-forget delivery of gateway outcomes to host listeners.

    Events emitted while nobody listens to that name are either buffered
    (bounded, oldest dropped first) and replayed on the first ``connect``, or
    dropped, depending on ``Settings.buffer_early_events``. Failure events are
    always logged at emit time regardless of that policy.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._listeners: Dict[str, List[Listener]] = {name: [] for name in EVENT_SIGNATURES}
        self._buffers: Dict[str, Deque[Tuple[Any, ...]]] = {}
        self._lock = Lock()

    def connect(self, name: str, listener: Listener) -> None:
        self._check_name(name)
        with self._lock:
            self._listeners[name].append(listener)
            pending = list(self._buffers.pop(name, ()))
        if pending:
            log_debug(self._settings, f"Replaying {len(pending)} buffered '{name}' event(s)")
        for payload in pending:
            self._deliver(name, [listener], payload)

    def disconnect(self, name: str, listener: Listener) -> None:
        self._check_name(name)
        with self._lock:
            if listener in self._listeners[name]:
                self._listeners[name].remove(listener)

    def emit(self, name: str, *payload: Any) -> None:
        self._check_name(name)
        self._check_payload(name, payload)

        if name in FAILURE_EVENTS:
            log_error("events", f"{name}: {payload[0]}")

        with self._lock:
            listeners = list(self._listeners[name])
            if not listeners:
                self._hold(name, payload)
                return
        self._deliver(name, listeners, payload)

    def buffered(self, name: str) -> List[Tuple[Any, ...]]:
        """Payloads waiting for a first listener on ``name``."""
        self._check_name(name)
        with self._lock:
            return list(self._buffers.get(name, ()))

    def _hold(self, name: str, payload: Tuple[Any, ...]) -> None:
        if not self._settings.buffer_early_events:
            log_debug(self._settings, f"No listener for '{name}', event dropped")
            return
        buffer = self._buffers.setdefault(name, deque(maxlen=self._settings.event_buffer_size))
        if len(buffer) == buffer.maxlen:
            log_debug(self._settings, f"Event buffer for '{name}' full, oldest event dropped")
        buffer.append(payload)

    def _deliver(self, name: str, listeners: List[Listener], payload: Tuple[Any, ...]) -> None:
        for listener in listeners:
            try:
                listener(*payload)
            except Exception as exc:  # pylint: disable=broad-except
                log_error("events", f"listener for '{name}' raised", exception=exc)

    @staticmethod
    def _check_name(name: str) -> None:
        if name not in EVENT_SIGNATURES:
            raise ValueError(f"Unknown event: {name}")

    @staticmethod
    def _check_payload(name: str, payload: Tuple[Any, ...]) -> None:
        expected = EVENT_SIGNATURES[name]
        if len(payload) != len(expected) or not all(
            isinstance(value, kind) for value, kind in zip(payload, expected)
        ):
            types = ", ".join(kind.__name__ for kind in expected)
            raise ValueError(f"Event '{name}' expects payload ({types}), got {payload!r}")
