"""
DevLoop Watch Orchestrator.

Wires file watching to the build and to reload notifications.
Requires Python 3.11+.
"""

import asyncio
from pathlib import Path
from typing import Any

from builder.build_trigger import BuildRequest, BuildTrigger
from notifier.http_client import create_http_client
from notifier.reload_notifier import ReloadNotifier
from utils.config import Settings, WatchTarget
from utils.logger import LoggerMixin
from watcher.file_watcher import FileWatcher
from watcher.models import ChangeSet
from watcher.path_filter import PathFilter
from watcher.targets import WatchConfig, resolve_watch_config


class TeardownError(ExceptionGroup):
    """One or more session resources failed to release."""


class WatchOrchestrator(LoggerMixin):
    """
    Owns a watch session: watch, debounce, build, reload.

    On start the cold-start sequence (initialize, then reload) is sent as
    an independent task while the watcher comes up. The two are not
    ordered: a change seen early may reload before the cold start ends,
    which only costs a duplicate reload.

    Change sets are handled one at a time. A failed build never sends a
    reload. After stop() begins no build or notification is dispatched;
    a build already running is allowed to finish.

    Usage:
        async with WatchOrchestrator(...) as orchestrator:
            await orchestrator.run_until(stop_event)
    """

    def __init__(
        self,
        targets: list[WatchTarget],
        project_dir: Path,
        builder: BuildTrigger,
        notifier: ReloadNotifier,
        build_request: BuildRequest,
        reload_target: str,
        poll_interval_ms: int = 2000,
        quiet_period_ms: int = 500,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            targets: Declared watch targets
            project_dir: Base directory for relative roots
            builder: Runs the external build
            notifier: Sends initialize/reload to the target service
            build_request: Request used for every triggered build
            reload_target: Name of the plugin to reload
            poll_interval_ms: File polling interval in milliseconds
            quiet_period_ms: Debounce quiet period in milliseconds
        """
        self._targets = list(targets)
        self._project_dir = project_dir
        self._builder = builder
        self._notifier = notifier
        self._build_request = build_request
        self._reload_target = reload_target
        self._poll_interval_ms = poll_interval_ms
        self._quiet_period_ms = quiet_period_ms

        self._config: WatchConfig | None = None
        self._watcher: FileWatcher | None = None
        self._cold_start_task: asyncio.Task[None] | None = None
        self._build_lock = asyncio.Lock()
        self._started = False
        self._stopping = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "WatchOrchestrator":
        """
        Create an orchestrator and its collaborators from settings.

        The plugin name defaults to the project directory name.
        """
        project_dir = settings.build.project_dir.resolve()
        notifier = ReloadNotifier(
            create_http_client(settings.reload),
            initialize_path=settings.reload.initialize_path,
            reload_path=settings.reload.reload_path,
        )
        return cls(
            targets=settings.watcher.targets,
            project_dir=project_dir,
            builder=BuildTrigger(settings.build.executable),
            notifier=notifier,
            build_request=BuildRequest.capture(
                project_dir, settings.build.tasks, settings.build.properties
            ),
            reload_target=settings.reload.plugin_name or project_dir.name,
            poll_interval_ms=settings.watcher.poll_interval_ms,
            quiet_period_ms=settings.watcher.quiet_period_ms,
        )

    @property
    def config(self) -> WatchConfig | None:
        """Get the resolved watch configuration, once started."""
        return self._config

    @property
    def is_running(self) -> bool:
        """Check if the session is started and not stopping."""
        return self._started and not self._stopping

    async def start(self) -> None:
        """
        Start watching and dispatch the cold-start sequence.

        Raises:
            WatchStartupError: If no watch root can be resolved
        """
        if self._started:
            return
        self._started = True
        loop = asyncio.get_running_loop()

        try:
            self._config = resolve_watch_config(self._targets, self._project_dir)
            self.log.info(
                "watch_config_resolved",
                roots=[str(root) for root in self._config.roots],
                excludes=sorted(self._config.excludes),
            )

            path_filter = PathFilter(
                self._config.excludes,
                roots=self._config.roots,
                base_dir=self._config.project_dir,
            )
            self._watcher = FileWatcher(
                self._config.roots,
                path_filter,
                poll_interval_ms=self._poll_interval_ms,
                quiet_period_ms=self._quiet_period_ms,
            )
            self._watcher.set_event_loop(loop)
            self._watcher.add_listener(self._on_change)

            self._cold_start_task = asyncio.create_task(self._cold_start())
            self._watcher.start()
        except BaseException:
            try:
                await self.stop()
            except TeardownError as e:
                self.log.error("startup_teardown_failed", errors=[str(x) for x in e.exceptions])
            raise

    async def _cold_start(self) -> None:
        """Initialize the target service, then load the plugin."""
        try:
            if not await self._notifier.initialize():
                self.log.warning("cold_start_reload_skipped", target=self._reload_target)
                return
            if self._stopping:
                return
            await self._notifier.reload(self._reload_target)
            self.log.info("cold_start_completed", target=self._reload_target)
        except Exception as e:
            self.log.error("cold_start_failed", error=str(e), exc_info=True)

    async def _on_change(self, change_set: ChangeSet) -> None:
        """Build for a change set and reload on success."""
        if self._stopping:
            return

        async with self._build_lock:
            if self._stopping:
                self.log.info("change_set_dropped", count=len(change_set))
                return

            self.log.info(
                "change_set_received",
                count=len(change_set),
                paths=[str(path) for path in change_set.paths],
            )
            result = await asyncio.to_thread(self._builder.run, self._build_request)

            if not result.success:
                self.log.warning("reload_skipped", reason="build_failed", error=result.error)
                return
            if self._stopping:
                return

            await self._notifier.reload(self._reload_target)

    async def run_until(self, stop_event: asyncio.Event) -> None:
        """Keep the session alive until the event is set."""
        await stop_event.wait()

    async def stop(self) -> None:
        """
        Stop the session and release its resources.

        Safe to call more than once. Every release step is attempted.

        Raises:
            TeardownError: With every failure raised while releasing
        """
        if self._stopping:
            return
        self._stopping = True
        self.log.info("watch_session_stopping")

        errors: list[Exception] = []

        if self._watcher is not None:
            try:
                await asyncio.to_thread(self._watcher.stop)
            except Exception as e:
                errors.append(e)

        if self._cold_start_task is not None and not self._cold_start_task.done():
            self._cold_start_task.cancel()
            try:
                await self._cold_start_task
            except asyncio.CancelledError:
                pass

        # Let an in-flight build finish
        async with self._build_lock:
            pass

        try:
            await self._notifier.aclose()
        except Exception as e:
            errors.append(e)

        if errors:
            self.log.error("watch_session_teardown_failed", errors=[str(e) for e in errors])
            raise TeardownError("Failed to release watch session resources", errors)

        self.log.info("watch_session_stopped")

    async def __aenter__(self) -> "WatchOrchestrator":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()
