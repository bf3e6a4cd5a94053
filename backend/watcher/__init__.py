"""
DevLoop File Watcher Package.

Polling file system monitoring with debounced change sets.
Requires Python 3.11+.
"""

from watcher.debouncer import Debouncer
from watcher.file_watcher import ChangeEventHandler, FileWatcher
from watcher.models import ChangeKind, ChangeSet, RawChangeEvent
from watcher.path_filter import PathFilter
from watcher.targets import (
    DEFAULT_EXCLUDES,
    WatchConfig,
    WatchStartupError,
    resolve_watch_config,
)

__all__ = [
    "ChangeEventHandler",
    "ChangeKind",
    "ChangeSet",
    "DEFAULT_EXCLUDES",
    "Debouncer",
    "FileWatcher",
    "PathFilter",
    "RawChangeEvent",
    "WatchConfig",
    "WatchStartupError",
    "resolve_watch_config",
]
