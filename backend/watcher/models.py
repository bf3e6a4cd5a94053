"""
DevLoop Watcher Data Models.

Change events and aggregated change sets.
Requires Python 3.11+.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ChangeKind(str, Enum):
    """Kinds of filesystem mutations."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(slots=True)
class RawChangeEvent:
    """A single filesystem mutation observed by the poller."""

    path: Path
    kind: ChangeKind
    timestamp: float


@dataclass(frozen=True, slots=True)
class ChangeSet:
    """
    Paths changed since the previous emission.

    Entries keep first-arrival order; each path appears once, carrying
    the kind of its most recent event.
    """

    changes: tuple[tuple[Path, ChangeKind], ...] = field(default_factory=tuple)

    @property
    def paths(self) -> list[Path]:
        """Get changed paths in arrival order."""
        return [path for path, _ in self.changes]

    def kind_of(self, path: Path) -> ChangeKind | None:
        """Get the latest change kind recorded for a path."""
        for changed, kind in self.changes:
            if changed == path:
                return kind
        return None

    def __len__(self) -> int:
        return len(self.changes)

    def __iter__(self) -> Iterator[tuple[Path, ChangeKind]]:
        return iter(self.changes)

    def __contains__(self, path: object) -> bool:
        return any(changed == path for changed, _ in self.changes)

    def __str__(self) -> str:
        return ", ".join(f"{kind.value}:{path}" for path, kind in self.changes)
