"""Live log streams: a polled console log and a pushed internal log."""

import logging
import threading
from collections import deque
from typing import Callable, Deque

from .classifier import classify
from .models import ClassifiedRecord, FilterLevel, PushRecord, Severity, StreamState
from .noise_filter import NoiseFilter
from .reader import INITIAL_LOAD_LINES
from .retention import INTERNAL_LOG_CAPACITY, ROLLING_CAPACITY, RetentionBuffer
from .scheduler import DEFAULT_POLL_INTERVAL, PollScheduler
from .service import LogTailService

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[list[ClassifiedRecord], bool], None]


class LogStream:
    """One subscription to a polled log source.

    Loads the last ``initial_lines`` lines on open, then polls the
    service for new lines every ``interval`` seconds, classifies them and
    appends them to a bounded retention buffer (or replaces its content
    when the file was rotated). Noise filtering is applied only when the
    buffer is viewed.

    Usage:
        with LogStream(service, "console") as stream:
            stream.pause()
            stream.force_refresh()
            for record in stream.visible():
                ...
    """

    def __init__(
        self,
        service: LogTailService,
        source_id: str,
        *,
        noise_filter: NoiseFilter | None = None,
        level: FilterLevel = FilterLevel.FILTERED,
        capacity: int = ROLLING_CAPACITY,
        initial_lines: int = INITIAL_LOAD_LINES,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self.service = service
        self.source_id = source_id
        self.noise_filter = noise_filter or NoiseFilter()
        self.level = level
        self.initial_lines = initial_lines
        self.on_update = on_update

        self.state = StreamState()
        self.buffer: RetentionBuffer[ClassifiedRecord] = RetentionBuffer(capacity)
        self.scheduler = PollScheduler(
            self.poll, interval=interval, state=self.state, name=f"consoletail-{source_id}"
        )
        self.exists = False
        self.path = ""

        self._apply_lock = threading.Lock()
        self._generation = 0
        self._needs_snapshot = True
        self._closed = False

    def __enter__(self) -> "LogStream":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # --- lifecycle ---

    def open(self, start: bool = True) -> None:
        """Run the initial load and start polling.

        A failed initial load is retried by the next poll instead of
        raising.
        """
        self.scheduler.run_once(force=True)
        if start:
            self.scheduler.start()

    def close(self) -> None:
        """Stop polling; results of a read still in flight are discarded."""
        with self._apply_lock:
            self._closed = True
        self.scheduler.stop()
        self.buffer.close()

    @property
    def closed(self) -> bool:
        return self._closed

    # --- read cycle ---

    def poll(self) -> None:
        """One read cycle. Raises on read failure; the scheduler absorbs it."""
        with self._apply_lock:
            generation = self._generation
            offset = self.state.last_known_offset
            needs_snapshot = self._needs_snapshot

        if needs_snapshot:
            snap = self.service.snapshot(self.source_id, max_lines=self.initial_lines)
            records = [classify(line) for line in snap.lines]
            self._apply(generation, records, snap.size, snap.exists, rotated=True,
                        path=snap.path)
            return

        resp = self.service.fetch(self.source_id, offset)
        records = [classify(line) for line in resp.new_lines]
        self._apply(generation, records, resp.current_size, resp.exists, rotated=resp.rotated)

    def _apply(
        self,
        generation: int,
        records: list[ClassifiedRecord],
        offset: int,
        exists: bool,
        rotated: bool,
        path: str | None = None,
    ) -> None:
        with self._apply_lock:
            if self._closed or generation != self._generation:
                logger.debug("%s: discarding stale read result", self.source_id)
                return
            if rotated:
                self.buffer.replace_all(records)
            elif records:
                self.buffer.append(records)
            self.state.last_known_offset = offset
            self.exists = exists
            if path is not None:
                self.path = path
                # Keep loading snapshots until the file shows up so its
                # first appearance is read with the bounded initial load
                self._needs_snapshot = not exists

        if self.on_update is not None and (records or rotated):
            self.on_update(records, rotated)

    # --- controls ---

    def pause(self) -> None:
        self.scheduler.pause()

    def resume(self) -> None:
        self.scheduler.resume()

    def force_refresh(self) -> None:
        self.scheduler.force_refresh()

    @property
    def paused(self) -> bool:
        return self.state.paused

    def clear(self) -> None:
        """Truncate the source and empty the buffer.

        A read started before the clear is discarded when it completes.
        """
        self.service.clear(self.source_id)
        with self._apply_lock:
            self._generation += 1
            self.state.last_known_offset = 0
            self.buffer.clear()

    # --- view ---

    def set_filtered(self, filtered: bool) -> None:
        self.state.filtered = filtered

    @property
    def effective_level(self) -> FilterLevel:
        return self.level if self.state.filtered else FilterLevel.ALL

    def records(self) -> list[ClassifiedRecord]:
        """All retained records, regardless of the filter."""
        return self.buffer.snapshot()

    def visible(self) -> list[ClassifiedRecord]:
        return self.noise_filter.view(self.buffer.snapshot(), self.effective_level)

    def counts(self) -> tuple[int, int]:
        """Return ``(total, visible)``."""
        return self.noise_filter.counts(self.buffer.snapshot(), self.effective_level)

    @property
    def stale(self) -> bool:
        """True while the most recent read cycle failed."""
        return self.scheduler.failures > 0


class PushStream:
    """A stream fed by push notifications instead of file reads.

    Used for the application's own log: records arrive already
    classified and go straight into the retention buffer. While paused,
    incoming records are held (bounded by the buffer capacity) and are
    delivered by ``resume`` or ``force_refresh``.
    """

    def __init__(
        self,
        capacity: int = INTERNAL_LOG_CAPACITY,
        noise_filter: NoiseFilter | None = None,
    ) -> None:
        self.noise_filter = noise_filter
        self.state = StreamState(filtered=noise_filter is not None)
        self.buffer: RetentionBuffer[PushRecord] = RetentionBuffer(capacity)
        self._held: Deque[PushRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._closed = False
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self, subscribe: Callable[[Callable[[PushRecord], None]], Callable[[], None]]) -> None:
        """Subscribe to a producer, e.g. ``BufferingLogHandler.subscribe``."""
        self._unsubscribe = subscribe(self.push)

    def push(self, record: PushRecord) -> None:
        with self._lock:
            if self._closed:
                return
            if self.state.paused:
                self._held.append(record)
                return
            self.buffer.append([record])

    def pause(self) -> None:
        with self._lock:
            self.state.paused = True

    def resume(self) -> None:
        with self._lock:
            self.state.paused = False
            self._drain_held()

    def force_refresh(self) -> None:
        """Deliver held records without changing the pause state."""
        self._flush_held()

    def _flush_held(self) -> None:
        with self._lock:
            self._drain_held()

    def _drain_held(self) -> None:
        # caller holds _lock
        if self._held:
            self.buffer.append(list(self._held))
            self._held.clear()

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def held_count(self) -> int:
        return len(self._held)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._held.clear()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.buffer.close()

    def clear(self) -> None:
        """Empty the view; the producer is not affected."""
        self.buffer.clear()

    def records(self) -> list[PushRecord]:
        return self.buffer.snapshot()

    def sources(self) -> list[str]:
        return sorted({record.source for record in self.buffer.snapshot()})

    def severity_counts(self) -> dict[Severity, int]:
        counts: dict[Severity, int] = {}
        for record in self.buffer.snapshot():
            counts[record.severity] = counts.get(record.severity, 0) + 1
        return counts

    def visible(
        self,
        severity: Severity | None = None,
        source: str | None = None,
        query: str | None = None,
    ) -> list[PushRecord]:
        """Return retained records matching all given criteria.

        Args:
            severity: Only records with this severity.
            source: Only records from this source.
            query: Case-insensitive substring of the message or source.
        """
        needle = query.lower() if query else None
        out = []
        for record in self.buffer.snapshot():
            if severity is not None and record.severity != severity:
                continue
            if source is not None and record.source != source:
                continue
            if needle and needle not in record.message.lower() and needle not in record.source.lower():
                continue
            if (
                self.state.filtered
                and self.noise_filter is not None
                and self.noise_filter.is_noisy(record.message)
            ):
                continue
            out.append(record)
        return out
