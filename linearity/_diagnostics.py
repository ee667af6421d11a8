"""Structured diagnostics for outcome collection.

The collector never configures or relies on global logging.  It emits
:class:`DiagnosticEvent` objects into whatever sink it was given:

- :class:`NullSink` (the default) drops everything.
- :class:`DiagnosticsRecorder` keeps the events in memory, which is what
  tests and interactive debugging want.
- :class:`LoggingSink` forwards them to the ``linearity`` logger hierarchy.

Event kinds, from coarse to fine: ``harness``, ``summary``, ``cutoff``,
``linearization``, ``visibility``, ``projection``, ``outcome``, ``conflict``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

# Below DEBUG; per-configuration events are too chatty for DEBUG.
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVELS = {
    "harness": logging.INFO,
    "summary": logging.INFO,
    "cutoff": logging.INFO,
    "linearization": logging.DEBUG,
    "visibility": TRACE,
    "projection": TRACE,
    "outcome": TRACE,
    "conflict": TRACE,
}


@dataclass(slots=True)
class DiagnosticEvent:
    """A single diagnostic emitted while collecting outcomes."""

    kind: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


class DiagnosticsSink(Protocol):
    def wants(self, kind: str) -> bool: ...

    def emit(self, event: DiagnosticEvent) -> None: ...


class NullSink:
    """Discards every event."""

    def wants(self, kind: str) -> bool:
        return False

    def emit(self, event: DiagnosticEvent) -> None:
        pass


class DiagnosticsRecorder:
    """Accumulates DiagnosticEvent objects in memory.

    Thread-safe: parallel collection may emit from worker threads.
    """

    __slots__ = ("events", "_lock", "enabled", "kinds")

    def __init__(self, *, enabled: bool = True, kinds: frozenset[str] | None = None) -> None:
        self.events: list[DiagnosticEvent] = []
        self._lock = threading.Lock()
        self.enabled = enabled
        self.kinds = kinds

    def wants(self, kind: str) -> bool:
        return self.enabled and (self.kinds is None or kind in self.kinds)

    def emit(self, event: DiagnosticEvent) -> None:
        if not self.wants(event.kind):
            return
        with self._lock:
            self.events.append(event)

    def of_kind(self, kind: str) -> list[DiagnosticEvent]:
        with self._lock:
            return [e for e in self.events if e.kind == kind]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


class LoggingSink:
    """Forwards events to :mod:`logging`.

    ``harness``, ``summary`` and ``cutoff`` log at INFO, ``linearization``
    at DEBUG, and per-configuration events at the custom TRACE level (5).
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger if logger is not None else logging.getLogger("linearity.outcomes")

    def wants(self, kind: str) -> bool:
        return self.logger.isEnabledFor(_LEVELS.get(kind, logging.DEBUG))

    def emit(self, event: DiagnosticEvent) -> None:
        level = _LEVELS.get(event.kind, logging.DEBUG)
        if self.logger.isEnabledFor(level):
            self.logger.log(level, "%s: %s", event.kind, event.message, extra={"linearity_details": event.details})
