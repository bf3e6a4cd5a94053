"""
DevLoop Command Line.

Runs the watch, build and reload loop until interrupted.
Requires Python 3.11+.

Usage:
    devloop --plugin-name my-plugin
    devloop --watch src/main --exclude "**/*.md"
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from orchestrator.watch_orchestrator import TeardownError, WatchOrchestrator
from utils.config import (
    BuildSettings,
    ReloadSettings,
    Settings,
    WatcherSettings,
    WatchTarget,
    get_settings,
)
from utils.logger import configure_logging, get_logger
from watcher.targets import WatchStartupError, default_target

logger = get_logger("devloop")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="devloop",
        description="Rebuild on source changes and hot-reload the plugin",
    )
    parser.add_argument(
        "--project-dir",
        type=Path,
        help="Project directory (build working directory, base for watch roots)",
    )
    parser.add_argument(
        "--watch",
        type=Path,
        action="append",
        default=[],
        metavar="DIR",
        help="Directory to watch; repeatable, replaces configured targets",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Extra glob pattern to exclude; repeatable",
    )
    parser.add_argument("--plugin-name", help="Plugin to reload after each build")
    parser.add_argument("--base-url", help="Base URL of the target service")
    parser.add_argument("--poll-interval-ms", type=int, help="File polling interval")
    parser.add_argument("--quiet-period-ms", type=int, help="Debounce quiet period")
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        help="Log output format",
    )
    return parser


def resolve_targets(
    configured: list[WatchTarget],
    watch: list[Path],
    excludes: list[str],
) -> list[WatchTarget]:
    """
    Combine configured targets with command line overrides.

    --watch replaces the configured targets with a single ad-hoc target;
    --exclude is added to every resulting target.
    """
    if watch:
        targets = [WatchTarget(name="cli", roots=watch)]
    else:
        targets = [t.model_copy(deep=True) for t in configured] or [default_target()]

    for target in targets:
        target.excludes.extend(excludes)
    return targets


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """
    Return a copy of settings with command line values applied.

    The changed groups are validated again, so command line values obey
    the same limits as environment values.

    Raises:
        pydantic.ValidationError: If an override is out of range
    """
    build = settings.build.model_dump()
    reload = settings.reload.model_dump()
    watcher = settings.watcher.model_dump()

    if args.project_dir is not None:
        build["project_dir"] = args.project_dir
    if args.plugin_name is not None:
        reload["plugin_name"] = args.plugin_name
    if args.base_url is not None:
        reload["base_url"] = args.base_url
    if args.poll_interval_ms is not None:
        watcher["poll_interval_ms"] = args.poll_interval_ms
    if args.quiet_period_ms is not None:
        watcher["quiet_period_ms"] = args.quiet_period_ms

    watcher["targets"] = resolve_targets(settings.watcher.targets, args.watch, args.exclude)

    return settings.model_copy(
        update={
            "build": BuildSettings.model_validate(build),
            "reload": ReloadSettings.model_validate(reload),
            "watcher": WatcherSettings.model_validate(watcher),
        }
    )


async def run(settings: Settings) -> None:
    """Run a watch session until SIGTERM or cancellation."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, stop_event.set)
    except NotImplementedError:
        # Signal handlers are unavailable on Windows event loops
        pass

    async with WatchOrchestrator.from_settings(settings) as orchestrator:
        await orchestrator.run_until(stop_event)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = apply_overrides(get_settings(), args)
    except ValidationError as e:
        parser.error(f"invalid option value:\n{e}")

    configure_logging(args.log_format)

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("interrupted")
    except WatchStartupError as e:
        logger.error("watch_startup_failed", error=str(e))
        print(f"\n✗ Cannot start watching: {e}", file=sys.stderr)
        return 1
    except TeardownError as e:
        logger.error("teardown_failed", errors=[str(x) for x in e.exceptions])
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
