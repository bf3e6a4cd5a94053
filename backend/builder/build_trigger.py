"""
DevLoop Build Trigger.

Runs the external build tool for a change set.
Requires Python 3.11+.
"""

import os
import subprocess
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from utils.logger import LoggerMixin


@dataclass(frozen=True)
class BuildRequest:
    """Everything needed to run one build. Immutable once captured."""

    project_dir: Path
    args: tuple[str, ...]
    environment: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def capture(
        cls,
        project_dir: Path,
        tasks: Iterable[str],
        properties: Mapping[str, str] | None = None,
    ) -> "BuildRequest":
        """
        Build a request from the current process environment.

        Args:
            project_dir: Directory to run the build in
            tasks: Fixed build arguments, e.g. task names
            properties: Project properties passed as -Pkey=value

        Returns:
            A request carrying a snapshot of os.environ
        """
        args = [*tasks]
        args.extend(f"-P{key}={value}" for key, value in (properties or {}).items())
        return cls(
            project_dir=project_dir,
            args=tuple(args),
            environment=MappingProxyType(dict(os.environ)),
        )


@dataclass(frozen=True)
class BuildResult:
    """Outcome of a build."""

    success: bool
    returncode: int | None
    duration_seconds: float
    error: str | None = None


class BuildTrigger(LoggerMixin):
    """
    Invokes the external build and waits for it.

    Holds no state between runs; callers are responsible for never
    running two builds at once.
    """

    def __init__(self, executable: str = "./gradlew") -> None:
        """
        Initialize the build trigger.

        Args:
            executable: Build tool to invoke
        """
        self._executable = executable

    @property
    def executable(self) -> str:
        """Get the build tool command."""
        return self._executable

    def command(self, request: BuildRequest) -> list[str]:
        """Get the full command line for a request."""
        return [self._executable, *request.args]

    def run(self, request: BuildRequest) -> BuildResult:
        """
        Run the build and block until it finishes.

        Failures are reported in the result, never raised.

        Args:
            request: The build to run

        Returns:
            BuildResult describing the outcome
        """
        command = self.command(request)
        self.log.info("build_started", command=command, cwd=str(request.project_dir))
        started = time.monotonic()

        try:
            completed = subprocess.run(
                command,
                cwd=request.project_dir,
                env=dict(request.environment),
                check=False,
            )
        except OSError as e:
            duration = time.monotonic() - started
            self.log.error("build_launch_failed", command=command, error=str(e))
            return BuildResult(
                success=False,
                returncode=None,
                duration_seconds=duration,
                error=str(e),
            )

        duration = time.monotonic() - started
        result = BuildResult(
            success=completed.returncode == 0,
            returncode=completed.returncode,
            duration_seconds=duration,
            error=None if completed.returncode == 0 else f"exit code {completed.returncode}",
        )

        if result.success:
            self.log.info("build_succeeded", duration=round(duration, 3))
        else:
            self.log.error(
                "build_failed",
                returncode=completed.returncode,
                duration=round(duration, 3),
            )
        return result
