from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv

from arena_watch.config import AppConfig, ConfigError, load_config
from arena_watch.errors import StoreError
from arena_watch.logging_config import setup_logging
from arena_watch.models import ArenaItem
from arena_watch.notifiers import TelegramBotNotifier, random_lead_in, render_message_text
from arena_watch.pairing import PairingPinger
from arena_watch.scheduler import PollScheduler
from arena_watch.server import ControlServer
from arena_watch.service import ArenaWatchService, log_run_stats
from arena_watch.sources import ArenaChannelSource, Source
from arena_watch.store import SQLiteStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arena-watch",
        description="Watch Are.na channels and post new elements to Telegram.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Optional YAML config file; environment variables override it",
    )
    parser.add_argument(
        "--log-level",
        help="Override config log level (e.g. INFO, DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser(
        "serve",
        help="Poll forever, serve the control endpoint and ping the partner",
    )
    subparsers.add_parser("run", help="Run one cycle and post new elements")
    subparsers.add_parser("dry-run", help="Run one cycle and print what would be posted")
    subparsers.add_parser("init-db", help="Initialize SQLite schema")

    backfill = subparsers.add_parser(
        "backfill",
        help="Fetch current elements and mark them seen without posting",
    )
    backfill.add_argument(
        "--mark-seen",
        action="store_true",
        help="Required safety flag for backfill operation",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "backfill" and not args.mark_seen:
        parser.error("backfill requires --mark-seen")

    load_dotenv()
    try:
        app_config = load_config(args.config)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    log_level = args.log_level or app_config.log_level
    setup_logging(log_level, secrets=app_config.secrets())

    store = SQLiteStore(app_config.storage.path)
    try:
        store.open()
        store.init_db()
    except StoreError as exc:
        logger.critical("Cannot reach the store at startup: %s", exc)
        store.close()
        return EXIT_FAILURE

    try:
        return _dispatch(args.command, app_config, store)
    finally:
        store.close()
        logger.info("Store closed")


def _dispatch(command: str, app_config: AppConfig, store: SQLiteStore) -> int:
    if command == "init-db":
        logger.info("Initialized SQLite database at %s", app_config.storage.path)
        return EXIT_OK

    sources = _build_sources(app_config)

    if command == "backfill":
        service = ArenaWatchService(sources=sources, store=store, notifier=None)
        stats = service.backfill()
        log_run_stats(stats, label="Backfill")
        return EXIT_OK if stats.ok else EXIT_FAILURE

    if command == "dry-run":
        service = ArenaWatchService(
            sources=sources,
            store=store,
            notifier=None,
            dry_run=True,
            preview_callback=_telegram_dry_run_preview,
        )
        stats = service.run_once()
        log_run_stats(stats)
        return EXIT_OK if stats.ok else EXIT_FAILURE

    notifier = _build_notifier(app_config)
    if notifier is None:
        return EXIT_CONFIG_ERROR
    service = ArenaWatchService(sources=sources, store=store, notifier=notifier)

    if command == "run":
        stats = service.run_once()
        log_run_stats(stats)
        return EXIT_OK if stats.ok else EXIT_FAILURE

    try:
        return asyncio.run(serve(app_config, service))
    except KeyboardInterrupt:
        logger.info("Interrupted; shut down")
        return EXIT_OK
    except OSError as exc:
        logger.critical(
            "Cannot bind the control endpoint on %s:%d: %s",
            app_config.server.host,
            app_config.server.port,
            exc,
        )
        return EXIT_FAILURE


async def serve(
    app_config: AppConfig,
    service: ArenaWatchService,
    stop_event: asyncio.Event | None = None,
) -> int:
    loop = asyncio.get_running_loop()
    if stop_event is None:
        stop_event = asyncio.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handler for %s not supported here", signum)

    scheduler = PollScheduler(service.run_once, app_config.poll.interval_seconds)
    pairing = PairingPinger(
        partner_url=app_config.pairing.partner_url,
        secret=app_config.pairing.secret,
        delay_seconds=app_config.pairing.delay_seconds,
        primary=app_config.pairing.primary,
    )
    server = ControlServer(
        pairing=pairing,
        secret=app_config.pairing.secret,
        host=app_config.server.host,
        port=app_config.server.port,
    )

    scheduler_task: asyncio.Task[None] | None = None
    try:
        await server.start()
        scheduler_task = asyncio.create_task(scheduler.run(), name="poll-scheduler")
        await pairing.start()
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        scheduler.stop()
        if scheduler_task is not None:
            await scheduler_task
        # No /ping may re-arm the timer once pairing is closed.
        await server.stop()
        await pairing.close()

    return EXIT_OK


def _build_sources(app_config: AppConfig) -> list[Source]:
    return [
        ArenaChannelSource(url, timeout_seconds=app_config.feeds.timeout_seconds)
        for url in app_config.feeds.urls
    ]


def _build_notifier(app_config: AppConfig) -> TelegramBotNotifier | None:
    telegram = app_config.telegram
    if not telegram.bot_token:
        logger.error("Missing Telegram bot token (BOT_API_TOKEN)")
        return None
    if not telegram.chat_id:
        logger.error("Missing Telegram chat id (TELEGRAM_CHAT_ID)")
        return None
    return TelegramBotNotifier(bot_token=telegram.bot_token, chat_id=telegram.chat_id)


def _telegram_dry_run_preview(items: list[ArenaItem]) -> None:
    print("[DRY RUN] WOULD POST TEXT:")
    print(render_message_text(items, random_lead_in()))
    print("")


if __name__ == "__main__":
    raise SystemExit(main())
