"""
DevLoop Debouncer.

Coalesces bursts of file system events into a single change set.
Requires Python 3.11+.
"""

import asyncio
import inspect
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from utils.logger import LoggerMixin
from watcher.models import ChangeKind, ChangeSet, RawChangeEvent

ChangeListener = Callable[[ChangeSet], Any]


@dataclass
class PendingChange:
    """A pending file change waiting to be emitted."""

    path: Path
    change_type: ChangeKind
    timestamp: float


class Debouncer(LoggerMixin):
    """
    Debounces rapid file changes.

    Accumulates changes and emits them as one ChangeSet once the quiet
    period passes with no new change. Every new change restarts the
    quiet period; there is no cap on how long a burst may accumulate.

    Emission is serialized: listeners run one ChangeSet at a time and to
    completion. Changes arriving meanwhile keep accumulating and are
    emitted after the running listeners return.
    """

    def __init__(
        self,
        delay_ms: int = 500,
        callback: ChangeListener | None = None,
    ) -> None:
        """
        Initialize the debouncer.

        Args:
            delay_ms: Quiet period in milliseconds
            callback: Listener to call with each ChangeSet
        """
        self._delay = delay_ms / 1000.0
        self._listeners: list[ChangeListener] = []
        if callback is not None:
            self._listeners.append(callback)
        self._pending: dict[Path, PendingChange] = {}
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._closed = False
        # Guards pending state; never held while listeners run
        self._lock = threading.Lock()
        # Held for the whole listener chain of one emission
        self._dispatch_lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a listener for emitted change sets."""
        self._listeners.append(listener)

    def set_callback(self, callback: ChangeListener) -> None:
        """Replace all listeners with a single callback."""
        self._listeners = [callback]

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Set the event loop for async listeners."""
        self._loop = loop

    def on_event(self, event: RawChangeEvent) -> None:
        """Add a raw change event to the pending set."""
        self.debounce(event.path, event.kind, event.timestamp)

    def debounce(
        self,
        path: Path,
        change_type: ChangeKind,
        timestamp: float | None = None,
    ) -> None:
        """
        Add a file change to the pending set.

        A path already pending keeps its position; only its change type
        is updated.

        Args:
            path: Path to the changed file
            change_type: Type of change
            timestamp: When the change was observed, defaults to now
        """
        timestamp = time.time() if timestamp is None else timestamp

        with self._lock:
            if self._closed:
                return

            if self._timer is not None:
                self._timer.cancel()

            pending = self._pending.get(path)
            if pending is None:
                self._pending[path] = PendingChange(path, change_type, timestamp)
            else:
                pending.change_type = change_type
                pending.timestamp = timestamp

            self._generation += 1
            self._timer = threading.Timer(
                self._delay, self._process_pending, args=(self._generation,)
            )
            self._timer.daemon = True
            self._timer.start()

    def _take_pending(self) -> ChangeSet:
        """Drain pending changes into a ChangeSet. Caller holds the lock."""
        change_set = ChangeSet(
            tuple((change.path, change.change_type) for change in self._pending.values())
        )
        self._pending.clear()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return change_set

    def _process_pending(self, generation: int) -> None:
        """Emit pending changes if no newer change arrived."""
        with self._dispatch_lock:
            with self._lock:
                # A newer change restarted the quiet period
                if self._closed or generation != self._generation or not self._pending:
                    return
                change_set = self._take_pending()

            self._dispatch(change_set)

    def _dispatch(self, change_set: ChangeSet) -> None:
        """Run every listener on a change set, blocking until they finish."""
        self.log.debug("processing_debounced_changes", count=len(change_set))

        for listener in list(self._listeners):
            try:
                if inspect.iscoroutinefunction(listener):
                    if self._loop is not None:
                        future = asyncio.run_coroutine_threadsafe(
                            listener(change_set), self._loop
                        )
                        future.result()
                    else:
                        asyncio.run(listener(change_set))
                else:
                    listener(change_set)
            except Exception as e:
                self.log.error("debounce_listener_failed", error=str(e), exc_info=True)

    def flush(self) -> ChangeSet:
        """
        Immediately emit all pending changes.

        Returns:
            The ChangeSet that was emitted, empty if nothing was pending
        """
        with self._dispatch_lock:
            with self._lock:
                if self._closed:
                    return ChangeSet()
                self._generation += 1
                change_set = self._take_pending()

            if change_set:
                self._dispatch(change_set)

        return change_set

    def clear(self) -> None:
        """Clear all pending changes without emitting them."""
        with self._lock:
            self._generation += 1
            self._take_pending()

    def close(self) -> None:
        """Discard pending changes and stop emitting for good."""
        with self._lock:
            self._closed = True
            self._generation += 1
            self._take_pending()

    @property
    def is_closed(self) -> bool:
        """Check if the debouncer has been closed."""
        return self._closed

    @property
    def pending_count(self) -> int:
        """Get number of pending changes."""
        with self._lock:
            return len(self._pending)

    @property
    def pending_paths(self) -> list[Path]:
        """Get list of paths with pending changes."""
        with self._lock:
            return list(self._pending.keys())
