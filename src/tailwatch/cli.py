"""Command-line entry point for the log watcher.

Settings are layered: defaults, ``TAILWATCH_*`` environment variables, an
optional YAML file, then flags. A watcher that fails to start exits with
status 1.
"""

import asyncio
import logging
import signal
import sys

import click

from tailwatch import __version__
from tailwatch.config import WatcherConfig, load_config
from tailwatch.events.bus import EventBus
from tailwatch.events.models import WatcherEvent
from tailwatch.logging_manager import LoggingManager
from tailwatch.watch_supervisor import WatchSupervisor

logger = logging.getLogger(__name__)


def build_config(config_path: str | None = None, **overrides) -> WatcherConfig:
    """Layer env, YAML and explicit overrides into a validated config."""
    config = WatcherConfig.from_env()
    if config_path:
        config = load_config(config_path, base=config)
    return config.merged(overrides).validate()


async def run_watcher(config: WatcherConfig, stop_event: asyncio.Event | None = None) -> int:
    """
    Run a watcher until ``stop_event`` is set or a signal arrives.

    Returns:
        Process exit status: 0 after a clean stop, 1 if the watcher failed to start
    """
    logging_manager = LoggingManager(config.log_dir, config.log_level)
    bus = EventBus()
    logging_manager.attach(bus)

    def echo_event(event: WatcherEvent) -> None:
        if event.event_type in ("update", "snapshot"):
            return
        logger.info(f"[{event.event_type}] {event.payload()}")

    bus.subscribe_all(echo_event)

    supervisor = WatchSupervisor(config, bus=bus)
    stop_event = stop_event or asyncio.Event()

    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            pass

    try:
        if not await supervisor.start():
            logger.critical(f"Failed to start watcher for {config.file_path}")
            return 1
        await stop_event.wait()
        return 0
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await supervisor.stop()
        await supervisor.compression.drain()
        logging_manager.shutdown()


@click.command()
@click.version_option(version=__version__, prog_name="tailwatch")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file with watcher settings",
)
@click.option("--file", "file_path", help="Log file to watch")
@click.option("--max-lines", type=int, help="Records retained and backfilled")
@click.option("--buffer-size", type=int, help="Trailing window per read, in bytes")
@click.option("--rotation-size", type=int, help="Rotate once the file reaches this size, in bytes")
@click.option("--compress/--no-compress", "compression", default=None, help="Gzip rotated files")
@click.option("--interval-ms", "watch_interval_ms", type=int, help="Heartbeat interval in milliseconds")
@click.option("--log-dir", help="Directory for the watcher's own logs")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Console log level",
)
def main(config_path, **overrides):
    """
    Tail a log file, keep its recent records and rotate it by size.

    \b
    Examples:
      tailwatch --file /var/log/app.log
      tailwatch --file app.log --rotation-size 1048576 --compress
      tailwatch --config tailwatch.yaml
    """
    try:
        config = build_config(config_path, **overrides)
    except (ValueError, FileNotFoundError) as e:
        raise click.UsageError(str(e)) from e

    sys.exit(asyncio.run(run_watcher(config)))
