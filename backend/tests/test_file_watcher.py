"""
Tests for the File Watcher.

Requires Python 3.11+.
"""

import threading
import time
from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from conftest import wait_until
from watcher.debouncer import Debouncer
from watcher.file_watcher import ChangeEventHandler, FileWatcher
from watcher.models import ChangeKind, ChangeSet
from watcher.path_filter import PathFilter
from watcher.targets import DEFAULT_EXCLUDES, WatchStartupError


class TestChangeEventHandler:
    """Test cases for ChangeEventHandler."""

    @pytest.fixture
    def root(self, tmp_path: Path) -> Path:
        """Watch root."""
        return tmp_path / "src" / "main"

    @pytest.fixture
    def debouncer(self):
        """Debouncer that never fires during a test."""
        debouncer = Debouncer(delay_ms=60000)
        yield debouncer
        debouncer.close()

    @pytest.fixture
    def handler(self, debouncer: Debouncer, root: Path) -> ChangeEventHandler:
        """Handler with default excludes."""
        return ChangeEventHandler(debouncer, PathFilter(DEFAULT_EXCLUDES, roots=[root]))

    def test_file_events_recorded(self, handler: ChangeEventHandler, debouncer: Debouncer, root: Path):
        """Test that file events reach the debouncer with their kind."""
        handler.on_created(FileCreatedEvent(str(root / "a.java")))
        handler.on_modified(FileModifiedEvent(str(root / "b.java")))
        handler.on_deleted(FileDeletedEvent(str(root / "c.java")))

        change_set = debouncer.flush()

        assert list(change_set) == [
            (root / "a.java", ChangeKind.CREATED),
            (root / "b.java", ChangeKind.MODIFIED),
            (root / "c.java", ChangeKind.DELETED),
        ]

    def test_directory_events_ignored(self, handler: ChangeEventHandler, debouncer: Debouncer, root: Path):
        """Test that directory events are not recorded."""
        handler.on_modified(DirModifiedEvent(str(root / "java")))

        assert debouncer.pending_count == 0

    def test_excluded_paths_dropped(self, handler: ChangeEventHandler, debouncer: Debouncer, root: Path):
        """Test that excluded paths never reach the debouncer."""
        handler.on_modified(FileModifiedEvent(str(root / "build" / "output.class")))
        handler.on_created(FileCreatedEvent(str(root / ".git" / "index")))

        assert debouncer.pending_count == 0

    def test_move_is_delete_plus_create(self, handler: ChangeEventHandler, debouncer: Debouncer, root: Path):
        """Test that a rename records both ends."""
        handler.on_moved(FileMovedEvent(str(root / "Old.java"), str(root / "New.java")))

        change_set = debouncer.flush()

        assert change_set.kind_of(root / "Old.java") == ChangeKind.DELETED
        assert change_set.kind_of(root / "New.java") == ChangeKind.CREATED

    def test_move_into_excluded_dir(self, handler: ChangeEventHandler, debouncer: Debouncer, root: Path):
        """Test that only the non-excluded end of a move is recorded."""
        handler.on_moved(FileMovedEvent(str(root / "A.java"), str(root / "dist" / "A.java")))

        assert debouncer.pending_paths == [root / "A.java"]


class TestFileWatcher:
    """Test cases for FileWatcher."""

    @pytest.fixture
    def root(self, project_dir: Path) -> Path:
        """Main source root of the test project."""
        return project_dir / "src" / "main"

    def make_watcher(self, root: Path, on_change=None, quiet_period_ms: int = 150) -> FileWatcher:
        path_filter = PathFilter(DEFAULT_EXCLUDES, roots=[root])
        return FileWatcher(
            [root],
            path_filter,
            on_change=on_change,
            poll_interval_ms=50,
            quiet_period_ms=quiet_period_ms,
        )

    def test_start_without_roots(self):
        """Test that starting with nothing to watch fails."""
        watcher = FileWatcher([], PathFilter(DEFAULT_EXCLUDES))

        with pytest.raises(WatchStartupError):
            watcher.start()

    def test_duplicate_roots(self, root: Path):
        """Test that duplicate roots are watched once."""
        watcher = FileWatcher([root, root], PathFilter(DEFAULT_EXCLUDES))

        assert watcher.roots == (root,)

    def test_detects_burst_of_changes(self, root: Path):
        """Test that edits 100ms apart produce one change set with both files."""
        a, b = root / "a.txt", root / "b.txt"
        a.write_text("a")
        b.write_text("b")
        received: list[ChangeSet] = []
        emitted = threading.Event()

        def listener(change_set: ChangeSet) -> None:
            received.append(change_set)
            emitted.set()

        with self.make_watcher(root, on_change=listener) as watcher:
            assert watcher.is_running
            time.sleep(0.2)

            a.write_text("a changed")
            time.sleep(0.1)
            b.write_text("b changed")

            assert emitted.wait(timeout=5)
            time.sleep(0.4)

        assert not watcher.is_running
        assert len(received) == 1
        assert set(received[0].paths) == {a, b}

    def test_excluded_change_never_emitted(self, root: Path):
        """Test that changes under an excluded directory are ignored."""
        received: list[ChangeSet] = []
        (root / "build").mkdir()

        with self.make_watcher(root, on_change=received.append):
            time.sleep(0.2)
            (root / "build" / "output.class").write_text("bytes")
            time.sleep(0.6)

        assert received == []

    def test_stop_discards_pending(self, root: Path):
        """Test that no change set is emitted after stop."""
        received: list[ChangeSet] = []
        watcher = self.make_watcher(root, on_change=received.append, quiet_period_ms=2000)
        watcher.start()
        try:
            time.sleep(0.2)
            (root / "late.txt").write_text("late")
            assert wait_until(lambda: watcher.pending_count > 0, timeout=2)
        finally:
            watcher.stop()

        time.sleep(0.4)
        assert received == []
        assert watcher.pending_count == 0

    def test_stop_reports_stuck_observer(self, root: Path, monkeypatch: pytest.MonkeyPatch):
        """Test that an observer thread that keeps running is reported."""
        watcher = self.make_watcher(root)
        watcher.start()
        observer = watcher._observer
        monkeypatch.setattr(observer, "join", lambda timeout=None: None)
        monkeypatch.setattr(observer, "is_alive", lambda: True)

        with pytest.raises(RuntimeError, match="did not stop"):
            watcher.stop()

        assert not watcher.is_running
        monkeypatch.undo()
        observer.join(timeout=5)
        assert not observer.is_alive()
