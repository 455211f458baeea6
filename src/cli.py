"""
Command-line interface for duyuru-tracker.

Provides commands to run the announcement pipeline and the Telegram
bot, initialize the database and run diagnostic checks.

Usage:
    duyuru-tracker run            # Scheduler + bot until SIGINT/SIGTERM
    duyuru-tracker fetch-once     # One fetch cycle, then exit
    duyuru-tracker init-db        # Create tables
    duyuru-tracker seed-sources   # Load sources from JSON
    duyuru-tracker list-sources   # Show the source registry
    duyuru-tracker health         # Check database and Telegram
"""

import asyncio
import signal
import sys
from pathlib import Path

import click

from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics

EXIT_CONFIG_ERROR = 1
EXIT_DATABASE_ERROR = 2


def _fatal(message: str, code: int) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(code)


async def _connect_database():
    """Open the pool and create tables, or exit with EXIT_DATABASE_ERROR."""
    from src.sources.repository import SourcesRepository
    from src.storage.database import Database, DatabaseUnavailableError
    from src.storage.repository import AnnouncementStore

    db = Database()
    try:
        await db.connect()
    except DatabaseUnavailableError as e:
        _fatal(f"database unavailable: {e}", EXIT_DATABASE_ERROR)

    # subscriptions reference sources
    await SourcesRepository(db).create_table()
    await AnnouncementStore(db).create_tables()
    return db


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Duyuru Tracker - university announcement notifications over Telegram."""
    setup_logging("DEBUG" if debug else None)


def build_runtime(sources, store, client, messenger, notification_config=None, bot_config=None):
    """
    Wire the scheduler and the bot poller around shared collaborators.

    Both bot handlers get the same SessionStore so a pending action is
    cleared in one place, whichever handler ends it.

    Returns:
        (AnnouncementService, BotPoller)
    """
    from src.bot.config import BotConfig
    from src.bot.handlers import CallbackHandler, CommandHandler
    from src.bot.polling import BotPoller
    from src.bot.session import SessionStore
    from src.ingestion.fetcher import AnnouncementFetcher
    from src.notifications.config import NotificationConfig
    from src.notifications.notifier import Notifier
    from src.services.announcement_service import AnnouncementService

    settings = get_settings()
    notification_config = notification_config or NotificationConfig()
    bot_config = bot_config or BotConfig()
    sessions = SessionStore()

    service = AnnouncementService(
        sources,
        AnnouncementFetcher(client),
        store,
        Notifier(sources, store, messenger, notification_config),
        interval_seconds=settings.fetch_interval_seconds,
    )
    poller = BotPoller(
        messenger,
        CommandHandler(sources, store, messenger, sessions, bot_config),
        CallbackHandler(store, messenger, sessions),
        bot_config,
    )
    return service, poller


@main.command()
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def run(metrics: bool) -> None:
    """Run the fetch scheduler and the Telegram bot."""
    from src.ingestion.http_client import ScraperClient
    from src.notifications.channels import TelegramMessenger
    from src.notifications.config import NotificationConfig
    from src.sources.service import SourcesService
    from src.storage.repository import AnnouncementStore

    settings = get_settings()
    if not settings.telegram_configured:
        _fatal("TELEGRAM_BOT_TOKEN is not set", EXIT_CONFIG_ERROR)

    async def run_services():
        db = await _connect_database()
        sources = SourcesService(db)
        await sources.ensure_seeded()
        store = AnnouncementStore(db)

        if metrics:
            get_metrics().start_server(port=settings.metrics_port)

        notification_config = NotificationConfig()

        async with ScraperClient() as client, TelegramMessenger(
            settings.telegram_bot_token,
            api_url=settings.telegram_api_url,
            timeout=notification_config.send_timeout_seconds,
        ) as messenger:
            service, poller = build_runtime(
                sources, store, client, messenger, notification_config
            )

            # Handle shutdown signals
            shutdown_requested = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, shutdown_requested.set)

            service.start()
            poller.start()
            await shutdown_requested.wait()
            await poller.stop()
            await service.stop()

        await db.close()

    asyncio.run(run_services())


@main.command("fetch-once")
@click.option("--notify/--no-notify", default=False, help="Send Telegram notifications for new rows")
@click.option(
    "--sources-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Fetch the sources in this JSON file instead of the database registry",
)
def fetch_once(notify: bool, sources_file: Path | None) -> None:
    """Run a single fetch cycle and print the report."""
    from src.ingestion.fetcher import AnnouncementFetcher
    from src.ingestion.http_client import ScraperClient
    from src.notifications.channels import TelegramMessenger
    from src.notifications.notifier import Notifier
    from src.services.announcement_service import AnnouncementService
    from src.sources.service import SourcesService, StaticSourceRegistry, load_seed_file
    from src.storage.repository import AnnouncementStore

    settings = get_settings()
    if notify and not settings.telegram_configured:
        _fatal("--notify requires TELEGRAM_BOT_TOKEN", EXIT_CONFIG_ERROR)

    async def run_cycle():
        db = await _connect_database()
        if sources_file is not None:
            sources = StaticSourceRegistry(load_seed_file(sources_file))
        else:
            sources = SourcesService(db)
            await sources.ensure_seeded()
        store = AnnouncementStore(db)

        async with ScraperClient() as client:
            fetcher = AnnouncementFetcher(client)
            if notify:
                async with TelegramMessenger(
                    settings.telegram_bot_token, api_url=settings.telegram_api_url
                ) as messenger:
                    service = AnnouncementService(
                        sources, fetcher, store, Notifier(sources, store, messenger)
                    )
                    report = await service.run_once()
            else:
                service = AnnouncementService(sources, fetcher, store)
                report = await service.run_once()

        await db.close()

        click.echo("\nCycle Results:")
        click.echo(f"  sources: {report.sources_total}")
        click.echo(f"  rows fetched: {report.rows_fetched}")
        click.echo(f"  new announcements: {report.new_announcements}")
        if notify:
            click.echo(f"  delivered: {report.deliveries_ok}")
            click.echo(f"  delivery failures: {report.deliveries_failed}")
        if report.sources_failed:
            click.echo(click.style(f"  failed sources: {', '.join(report.sources_failed)}", fg="red"))
        click.echo(f"  elapsed: {report.elapsed_seconds:.1f}s")

    asyncio.run(run_cycle())


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""

    async def run_init():
        db = await _connect_database()
        await db.close()
        click.echo("Database initialized successfully")

    asyncio.run(run_init())


@main.command("seed-sources")
@click.option(
    "--file",
    "seed_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Seed JSON (defaults to the bundled list)",
)
def seed_sources(seed_file: Path | None) -> None:
    """Load sources from JSON into the database (upsert)."""
    from src.sources.service import SourcesService

    async def run_seed():
        db = await _connect_database()
        count = await SourcesService(db).seed_from_json(seed_file)
        await db.close()
        click.echo(f"Seeded {count} sources")

    asyncio.run(run_seed())


@main.command("list-sources")
def list_sources() -> None:
    """Print the source registry."""
    from collections import Counter

    from src.sources.service import SourcesService
    from src.storage.repository import AnnouncementStore

    async def run_list():
        db = await _connect_database()
        sources = await SourcesService(db).get_sources()
        followers = Counter(
            s.source_id for s in await AnnouncementStore(db).list_subscriptions()
        )
        await db.close()

        if not sources:
            click.echo("No sources registered. Run 'duyuru-tracker seed-sources'.")
            return
        for source in sources:
            click.echo(
                f"  {source.source_id:>4}  {source.short_name:<16} {source.name}"
                f"  ({followers[source.source_id]} followers)"
            )
            click.echo(f"        {source.listing_url}")

    asyncio.run(run_list())


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}
        settings = get_settings()

        # Check PostgreSQL
        try:
            from src.storage.database import Database
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        # Check Telegram
        results["telegram_configured"] = settings.telegram_configured
        if settings.telegram_configured:
            try:
                from src.notifications.channels import TelegramMessenger
                async with TelegramMessenger(
                    settings.telegram_bot_token, api_url=settings.telegram_api_url
                ) as messenger:
                    await messenger.get_me()
                results["telegram"] = True
            except Exception as e:
                results["telegram"] = False
                logger.error("Telegram health check failed", error=str(e))

        # Print results
        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if not status:
                all_healthy = False

        click.echo("-" * 40)

        if all_healthy:
            click.echo(click.style("All services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
