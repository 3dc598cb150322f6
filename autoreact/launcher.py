"""Launcher: builds the transport and engine from config and runs the poll loop."""

import asyncio
import signal
import sys
from typing import Optional

from autoreact.config import AppConfig, ConfigurationError
from autoreact.adapters.storage.json_store import JsonCursorStore
from autoreact.domain.backoff import BackoffController
from autoreact.domain.cursor import Cursor
from autoreact.domain.engine import ReactionEngine
from autoreact.domain.models import RemoteChannelError
from autoreact.domain.scheduler import PollScheduler
from autoreact.domain.stats import StatsReporter
from autoreact.ports.outbound import RemoteChannelPort


def _log(msg: str):
    print(msg, file=sys.stderr)


def _create_channel(config: AppConfig) -> RemoteChannelPort:
    """Create the Discord transport selected by DISCORD_TRANSPORT."""
    settings = config.discord
    if settings.transport == "client":
        from autoreact.adapters.discord.client_channel import DiscordClientChannel
        return DiscordClientChannel(settings.token)

    from autoreact.adapters.discord.rest_channel import DiscordRestChannel
    return DiscordRestChannel(
        settings.token,
        api_base=settings.api_base,
        timeout_seconds=settings.request_timeout_seconds,
    )


def _create_cursor(config: AppConfig) -> Cursor:
    """In-memory cursor, mirrored to CURSOR_FILE when one is configured."""
    store = JsonCursorStore(config.cursor_file) if config.cursor_file else None
    cursor = Cursor(store=store)
    cursor.load()
    return cursor


def build_engine(config: AppConfig, channel: RemoteChannelPort) -> ReactionEngine:
    return ReactionEngine(
        channel=channel,
        channel_id=config.discord.channel_id,
        policy=config.policy,
        cursor=_create_cursor(config),
        backoff=BackoffController(config.backoff),
        stats=StatsReporter(),
        fetch_limit=config.fetch_limit,
    )


def _stats_logger(config: AppConfig, stats: StatsReporter):
    every = config.stats_log_every if config.stats_enabled else 0

    def _maybe_log():
        if every and stats.cycles and stats.cycles % every == 0:
            _log(f"[stats] {stats.format_summary()}")

    return _maybe_log


_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _install_signal_handlers(stop_event: asyncio.Event) -> bool:
    loop = asyncio.get_running_loop()
    try:
        for sig in _SIGNALS:
            loop.add_signal_handler(sig, stop_event.set)
    except (NotImplementedError, RuntimeError, ValueError):
        # Windows / non-main thread: KeyboardInterrupt is handled in main()
        return False
    return True


def _remove_signal_handlers():
    loop = asyncio.get_running_loop()
    for sig in _SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, RuntimeError, ValueError):
            pass


async def _start_status_server(config: AppConfig, engine: ReactionEngine):
    import uvicorn

    from autoreact.adapters.web.status_routes import create_status_app

    server = uvicorn.Server(
        uvicorn.Config(
            create_status_app(engine),
            host=config.status.host,
            port=config.status.port,
            log_level="warning",
        )
    )

    async def _serve():
        try:
            await server.serve()
        except (Exception, SystemExit) as e:
            # uvicorn exits the process when it cannot bind; keep polling without it
            _log(f"[launcher] status server failed: {e!r}")

    task = asyncio.create_task(_serve())
    _log(f"[launcher] status server on http://{config.status.host}:{config.status.port}/status")
    return server, task


async def run_bot(
    config: AppConfig,
    channel: Optional[RemoteChannelPort] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> ReactionEngine:
    """Run the poll loop until stop_event is set (or SIGINT/SIGTERM arrives)."""
    if channel is None:
        channel = _create_channel(config)
    if stop_event is None:
        stop_event = asyncio.Event()

    await channel.open()
    handlers_installed = _install_signal_handlers(stop_event)
    engine = build_engine(config, channel)
    scheduler = PollScheduler(
        engine.run_cycle,
        engine.backoff,
        interval_variation_ms=config.interval_variation_ms,
        on_cycle_done=_stats_logger(config, engine.stats),
    )

    status_server = None
    if config.status.enabled:
        status_server = await _start_status_server(config, engine)

    _log(f"[launcher] starting auto-reaction bot for channel: {config.discord.channel_id}")
    _log(f"[launcher] using emoji: {engine.policy.emoji}")

    try:
        scheduler.start(run_immediately=True)
        await stop_event.wait()
    finally:
        scheduler.stop()
        await scheduler.wait_idle()
        await engine.drain(config.shutdown_grace_ms / 1000)
        if status_server:
            server, task = status_server
            server.should_exit = True
            await task
        await channel.close()
        if handlers_installed:
            _remove_signal_handlers()
        if config.stats_enabled:
            _log(f"[stats] final: {engine.stats.format_summary()}")
        _log("[launcher] auto-reaction bot stopped")

    return engine


def main() -> int:
    try:
        config = AppConfig.from_env()
    except ConfigurationError as e:
        _log("Configuration error:")
        for problem in e.problems:
            _log(f"  - {problem}")
        return 1

    try:
        asyncio.run(run_bot(config))
    except RemoteChannelError as e:
        _log(f"[launcher] startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        _log("[launcher] interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
