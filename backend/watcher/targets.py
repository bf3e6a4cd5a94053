"""
DevLoop Watch Target Resolution.

Turns configured watch targets into the concrete roots and exclude set
of a watch session.
Requires Python 3.11+.
"""

from dataclasses import dataclass
from pathlib import Path

from utils.config import WatchTarget
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_EXCLUDES: frozenset[str] = frozenset(
    {
        "**/build/**",
        "**/.gradle/**",
        "**/gradle/**",
        "**/.idea/**",
        "**/.git/**",
        "**/dist/**",
        "**/node_modules/**",
        "**/test/java/**",
        "**/test/resources/**",
    }
)

DEFAULT_TARGET_NAME = "javaSource"
DEFAULT_TARGET_ROOT = Path("src/main")
DEFAULT_TARGET_EXCLUDE = "**/src/main/resources/console/**"


class WatchStartupError(RuntimeError):
    """Raised when a watch session has nothing it can watch."""


@dataclass(frozen=True)
class WatchConfig:
    """Resolved roots and excludes for one watch session."""

    project_dir: Path
    roots: tuple[Path, ...]
    excludes: frozenset[str]


def default_target() -> WatchTarget:
    """Target used when the configuration declares none."""
    return WatchTarget(
        name=DEFAULT_TARGET_NAME,
        roots=[DEFAULT_TARGET_ROOT],
        excludes=[DEFAULT_TARGET_EXCLUDE],
    )


def resolve_watch_config(
    targets: list[WatchTarget],
    project_dir: Path,
) -> WatchConfig:
    """
    Resolve watch targets into a WatchConfig.

    Relative roots are resolved against the project directory. Roots that
    are not existing directories are skipped; duplicates are dropped
    keeping the first declaration. Default excludes are always added.

    Args:
        targets: Declared watch targets, in order
        project_dir: Base directory for relative roots

    Returns:
        The resolved configuration

    Raises:
        WatchStartupError: If no root resolves to an existing directory
    """
    project_dir = project_dir.resolve()
    declared = list(targets) or [default_target()]

    roots: dict[Path, None] = {}
    excludes: set[str] = set()
    for target in declared:
        for root in target.roots:
            resolved = (project_dir / root).resolve()
            if not resolved.is_dir():
                logger.warning("watch_root_skipped", target=target.name, root=str(resolved))
                continue
            roots.setdefault(resolved, None)
        excludes.update(target.excludes)

    excludes |= DEFAULT_EXCLUDES

    if not roots:
        raise WatchStartupError(
            f"No watch root resolves to an existing directory under {project_dir}"
        )

    return WatchConfig(
        project_dir=project_dir,
        roots=tuple(roots),
        excludes=frozenset(excludes),
    )
