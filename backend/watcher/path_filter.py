"""
DevLoop Path Filter.

Glob-based exclusion of changed paths.
Requires Python 3.11+.
"""

from collections.abc import Iterable
from pathlib import Path

from wcmatch import glob

# ** spans directories, * and ? stay inside one segment, dot names match
_GLOB_FLAGS = glob.GLOBSTAR | glob.DOTGLOB


class PathFilter:
    """
    Decides whether a changed path is excluded from watching.

    Patterns are path globs matched against the whole relative path:
    ``**`` spans any number of directories and ``*`` stays inside one
    path segment. A path is checked relative to every root that contains
    it and relative to the base directory, and is excluded when any of
    those matches any pattern.
    """

    def __init__(
        self,
        patterns: Iterable[str],
        roots: Iterable[Path] = (),
        base_dir: Path | None = None,
    ) -> None:
        self._patterns = frozenset(patterns)
        self._globs = sorted(self._patterns)
        anchors = list(roots)
        if base_dir is not None:
            anchors.append(base_dir)
        self._anchors = tuple(anchors)

    @property
    def patterns(self) -> frozenset[str]:
        """Get the pattern set."""
        return self._patterns

    def _candidates(self, path: Path) -> list[str]:
        candidates = []
        for anchor in self._anchors:
            if path.is_relative_to(anchor) and path != anchor:
                candidates.append(path.relative_to(anchor).as_posix())
        if not candidates:
            candidates.append(path.as_posix().lstrip("/"))
        return candidates

    def is_excluded(self, path: Path | str) -> bool:
        """Check if a path matches any exclude pattern."""
        if not self._globs:
            return False
        return any(
            glob.globmatch(candidate, self._globs, flags=_GLOB_FLAGS)
            for candidate in self._candidates(Path(path))
        )
