"""
DevLoop Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import asyncio
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from builder.build_trigger import BuildRequest, BuildResult


class FakeBuilder:
    """Build trigger double recording every run."""

    def __init__(self, results: list[bool] | None = None) -> None:
        self.requests: list[BuildRequest] = []
        self.results = list(results or [])
        self.gate: threading.Event | None = None
        self.started = threading.Event()
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def run(self, request: BuildRequest) -> BuildResult:
        with self._lock:
            self.requests.append(request)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.started.set()
        try:
            if self.gate is not None:
                self.gate.wait(timeout=10)
            success = self.results.pop(0) if self.results else True
            return BuildResult(success=success, returncode=0 if success else 1, duration_seconds=0.0)
        finally:
            with self._lock:
                self.active -= 1

    @property
    def run_count(self) -> int:
        return len(self.requests)


class FakeNotifier:
    """Reload notifier double recording calls in order."""

    def __init__(self, initialize_ok: bool = True, initialize_error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str | None]] = []
        self.initialize_ok = initialize_ok
        self.initialize_error = initialize_error
        self.close_error: Exception | None = None
        self.closed = False

    async def initialize(self) -> bool:
        self.calls.append(("initialize", None))
        if self.initialize_error is not None:
            raise self.initialize_error
        return self.initialize_ok

    async def reload(self, target: str) -> bool:
        self.calls.append(("reload", target))
        return True

    async def aclose(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error

    @property
    def reload_count(self) -> int:
        return sum(1 for name, _ in self.calls if name == "reload")


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a project tree with a main source directory."""
    root = tmp_path.resolve() / "plugin"
    (root / "src" / "main" / "java").mkdir(parents=True)
    (root / "src" / "main" / "resources" / "console").mkdir(parents=True)
    (root / "src" / "test" / "java").mkdir(parents=True)
    (root / "build").mkdir()
    return root


@pytest.fixture
def fake_builder() -> FakeBuilder:
    """Create a build trigger double."""
    return FakeBuilder()


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    """Create a reload notifier double."""
    return FakeNotifier()


@pytest.fixture
def build_request(project_dir: Path) -> BuildRequest:
    """Create a build request for the test project."""
    return BuildRequest.capture(project_dir, ["build"])


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll a condition from synchronous tests."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


async def async_wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll a condition from async tests without blocking the loop."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()
