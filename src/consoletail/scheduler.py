"""Poll scheduler driving read cycles at a fixed cadence."""

import logging
import threading
from enum import Enum
from typing import Callable

from .models import StreamState

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


class SchedulerState(Enum):
    RUNNING = "running"
    PAUSED = "paused"


class PollScheduler:
    """Repeatedly invokes a read cycle unless paused.

    The scheduler owns the StreamState of its subscription. Cycles run
    on a single background worker; ``run_once`` may also be called
    directly. At most one cycle is in flight at a time: a dispatch that
    finds one running is skipped, not queued.

    Failures raised by a cycle are logged and absorbed so polling never
    stops; ``failures`` counts consecutive failed cycles and
    ``last_error`` holds the most recent exception.

    Example:
        >>> scheduler = PollScheduler(stream.poll, interval=2.0)
        >>> scheduler.start()
        >>> scheduler.pause()
        >>> scheduler.force_refresh()   # one read, still paused
        >>> scheduler.stop()
    """

    def __init__(
        self,
        cycle: Callable[[], None],
        interval: float = DEFAULT_POLL_INTERVAL,
        state: StreamState | None = None,
        name: str = "consoletail-poll",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.state = state or StreamState()
        self.name = name
        self.failures = 0
        self.last_error: Exception | None = None

        self._cycle = cycle
        self._guard = threading.Lock()
        self._in_flight = False
        self._force_pending = False
        self._wake = threading.Event()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def status(self) -> SchedulerState:
        return SchedulerState.PAUSED if self.state.paused else SchedulerState.RUNNING

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def pause(self) -> None:
        """Suppress scheduled cycles. A cycle already running completes."""
        self.state.paused = True

    def resume(self) -> None:
        self.state.paused = False

    def force_refresh(self) -> None:
        """Run exactly one cycle regardless of the pause flag.

        With a worker running the cycle is handed to it; otherwise it runs
        on the calling thread.
        """
        if self.running:
            with self._guard:
                self._force_pending = True
            self._wake.set()
        else:
            self.run_once(force=True)

    def run_once(self, force: bool = False) -> bool:
        """Run one cycle now.

        Args:
            force: Ignore the pause flag for this cycle.

        Returns:
            True if a cycle ran and succeeded, False if it was skipped
            (paused, stopped, another cycle in flight) or failed.
        """
        if self._stopped.is_set():
            return False
        if self.state.paused and not force:
            return False

        with self._guard:
            if self._in_flight:
                logger.debug("%s: cycle already in flight, skipping", self.name)
                if force and self.running:
                    # Run the forced cycle once the current one completes
                    self._force_pending = True
                return False
            self._in_flight = True

        try:
            self._cycle()
        except Exception as e:
            self.failures += 1
            self.last_error = e
            logger.warning(
                "%s: read cycle failed (%d in a row): %s", self.name, self.failures, e
            )
            return False
        else:
            self.failures = 0
            self.last_error = None
            return True
        finally:
            with self._guard:
                self._in_flight = False
                rerun = self._force_pending
            if rerun:
                self._wake.set()

    def start(self) -> None:
        """Start the background worker."""
        if self.running or self._stopped.is_set():
            return
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Cancel the trigger and wait for the worker to exit."""
        self._stopped.set()
        self._wake.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _take_force(self) -> bool:
        with self._guard:
            force = self._force_pending
            self._force_pending = False
        return force

    def _run(self) -> None:
        while not self._stopped.is_set():
            self._wake.wait(self.interval)
            self._wake.clear()
            if self._stopped.is_set():
                break
            self.run_once(force=self._take_force())
