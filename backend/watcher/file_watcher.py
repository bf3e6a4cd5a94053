"""
DevLoop File Watcher.

Polling file system monitoring using watchdog.
Requires Python 3.11+.
"""

import asyncio
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from utils.logger import LoggerMixin
from watcher.debouncer import ChangeListener, Debouncer
from watcher.models import ChangeKind, ChangeSet, RawChangeEvent
from watcher.path_filter import PathFilter
from watcher.targets import WatchStartupError


class ChangeEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Turns file system events into debouncer input.

    Directory events are ignored and excluded paths are dropped before
    they reach the debouncer.
    """

    def __init__(self, debouncer: Debouncer, path_filter: PathFilter) -> None:
        """
        Initialize the event handler.

        Args:
            debouncer: Debouncer to accumulate changes
            path_filter: Filter deciding which paths are excluded
        """
        super().__init__()
        self._debouncer = debouncer
        self._path_filter = path_filter

    def _record(self, path: str | bytes, kind: ChangeKind) -> None:
        if isinstance(path, bytes):
            path = path.decode()
        if self._path_filter.is_excluded(path):
            return

        self.log.debug("file_changed", path=path, kind=kind.value)
        self._debouncer.on_event(RawChangeEvent(Path(path), kind, time.time()))

    def on_created(self, event: FileCreatedEvent | DirCreatedEvent) -> None:
        """Handle file creation."""
        if not event.is_directory:
            self._record(event.src_path, ChangeKind.CREATED)

    def on_modified(self, event: FileModifiedEvent | DirModifiedEvent) -> None:
        """Handle file modification."""
        if not event.is_directory:
            self._record(event.src_path, ChangeKind.MODIFIED)

    def on_deleted(self, event: FileDeletedEvent | DirDeletedEvent) -> None:
        """Handle file deletion."""
        if not event.is_directory:
            self._record(event.src_path, ChangeKind.DELETED)

    def on_moved(self, event: FileMovedEvent | DirMovedEvent) -> None:
        """Handle a rename as a deletion plus a creation."""
        if event.is_directory:
            return

        self._record(event.src_path, ChangeKind.DELETED)
        self._record(event.dest_path, ChangeKind.CREATED)


class FileWatcher(LoggerMixin):
    """
    Watches source directories for changes by polling.

    Each root is snapshotted recursively every poll interval and diffed
    against the previous snapshot, which keeps working on network and
    container-mounted volumes where native notifications are unreliable.
    Changes are debounced into ChangeSets before listeners see them.
    """

    def __init__(
        self,
        roots: Iterable[Path],
        path_filter: PathFilter,
        on_change: ChangeListener | None = None,
        poll_interval_ms: int = 2000,
        quiet_period_ms: int = 500,
    ) -> None:
        """
        Initialize the file watcher.

        Args:
            roots: Directories to watch recursively
            path_filter: Filter for excluded paths
            on_change: Listener for debounced ChangeSets
            poll_interval_ms: Interval between snapshots in milliseconds
            quiet_period_ms: Debounce quiet period in milliseconds
        """
        self._roots = tuple(dict.fromkeys(roots))
        self._poll_interval = poll_interval_ms / 1000.0

        self._debouncer = Debouncer(delay_ms=quiet_period_ms, callback=on_change)
        self._handler = ChangeEventHandler(self._debouncer, path_filter)

        self._observer: BaseObserver | None = None
        self._running = False

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a listener for debounced changes."""
        self._debouncer.add_listener(listener)

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Set the event loop for async listeners."""
        self._debouncer.set_event_loop(loop)

    def start(self) -> None:
        """
        Start polling for file changes.

        Raises:
            WatchStartupError: If there is no root to watch
        """
        if self._running:
            return
        if not self._roots:
            raise WatchStartupError("No watch roots to observe")

        observer = PollingObserver(timeout=self._poll_interval)
        for root in self._roots:
            observer.schedule(self._handler, str(root), recursive=True)
        observer.start()
        self._observer = observer
        self._running = True

        self.log.info(
            "file_watcher_started",
            roots=[str(root) for root in self._roots],
            poll_interval=self._poll_interval,
        )

    def stop(self) -> None:
        """
        Stop polling and discard pending changes.

        No ChangeSet is emitted after this returns, though one already
        being handled by listeners is allowed to finish.

        Raises:
            RuntimeError: If the observer thread outlives the join timeout
        """
        self._debouncer.close()

        if not self._running:
            return

        observer, self._observer = self._observer, None
        self._running = False

        if observer is not None:
            observer.stop()
            observer.join(timeout=self._poll_interval + 5.0)
            if observer.is_alive():
                self.log.error("file_watcher_stop_timeout")
                raise RuntimeError("File observer thread did not stop")

        self.log.info("file_watcher_stopped")

    def flush(self) -> ChangeSet:
        """Immediately emit any pending changes."""
        return self._debouncer.flush()

    @property
    def roots(self) -> tuple[Path, ...]:
        """Get the watched roots."""
        return self._roots

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    @property
    def pending_count(self) -> int:
        """Get number of pending changes."""
        return self._debouncer.pending_count

    def __enter__(self) -> "FileWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
