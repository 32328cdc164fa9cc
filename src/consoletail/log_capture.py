"""Capture the application's own log records as push notifications."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from .models import PushRecord, Severity
from .retention import INTERNAL_LOG_CAPACITY, RetentionBuffer

PushCallback = Callable[[PushRecord], None]


def severity_for_level(levelno: int) -> Severity:
    """Map a ``logging`` level number to a Severity."""
    if levelno >= logging.ERROR:
        return Severity.ERROR
    if levelno >= logging.WARNING:
        return Severity.WARN
    if levelno >= logging.INFO:
        return Severity.INFO
    return Severity.DEBUG


class BufferingLogHandler(logging.Handler):
    """Logging handler that keeps recent records and fans them out.

    Every emitted record is converted to a PushRecord, stored in a
    bounded history (for late subscribers) and passed to each subscriber
    callback. A failing subscriber never affects the others or the
    logging call.

    The record's ``source`` is taken from ``extra={"source": ...}`` when
    given, otherwise from the logger name.
    """

    def __init__(self, capacity: int = INTERNAL_LOG_CAPACITY, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.history: RetentionBuffer[PushRecord] = RetentionBuffer(capacity)
        self._subscribers: list[PushCallback] = []
        self._subscribers_lock = threading.Lock()

    def to_push_record(self, record: logging.LogRecord) -> PushRecord:
        return PushRecord(
            severity=severity_for_level(record.levelno),
            message=record.getMessage(),
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
            source=getattr(record, "source", None) or record.name,
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = self.to_push_record(record)
        except Exception:
            self.handleError(record)
            return

        self.history.append([entry])

        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(entry)
            except Exception:
                self.handleError(record)

    def subscribe(self, callback: PushCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self._subscribers)

    def recent(self, limit: int = 100) -> list[PushRecord]:
        """Return the most recent ``limit`` records, oldest first."""
        entries = self.history.snapshot()
        return entries[-limit:] if limit > 0 else []
