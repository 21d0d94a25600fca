#!/usr/bin/env python3
"""CLI entry point for the LeadSweep service.

This module provides the command-line interface for seeding the zone grid,
running scraping and email jobs, inspecting statistics and managing lead
lifecycle events. Results are printed as JSON.

Usage:
    leadsweep init-db
    leadsweep seed-zones
    leadsweep scrape --location "Austin, Texas"
    leadsweep crawl --max-zones 5 --verbose
    leadsweep campaign
    leadsweep stats
    leadsweep unsubscribe 42 --email owner@cafe.example
    leadsweep serve
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Optional

from .config import Config
from .errors import LeadSweepError
from .logging_utils import setup_logging
from .models import Database
from .orchestrator import LeadSweepService, ServiceSettings
from .scheduling.task_scheduler import CancellationToken
from .utils.templates import MessageRenderer

logger = logging.getLogger("leadsweep.cli")

SCRAPING_COMMANDS = {"scrape", "crawl", "serve"}
EMAIL_COMMANDS = {"campaign", "serve"}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="leadsweep",
        description="Zone-based local business discovery and outreach scheduler",
        epilog="""
Examples:
  %(prog)s init-db
  %(prog)s seed-zones
  %(prog)s crawl --max-zones 3 --verbose
  %(prog)s campaign
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("seed-zones", help="Partition the bounds and seed missing zones")

    zones = subparsers.add_parser("zones", help="Show zone statistics and stuck zones")
    zones.add_argument("--reset", action="store_true", help="Reset completed zones to pending")

    scrape = subparsers.add_parser("scrape", help="Run one scraping job")
    scrape.add_argument(
        "--location",
        "-l",
        default=None,
        help="Scrape around a named location instead of the next zone",
    )

    crawl = subparsers.add_parser("crawl", help="Work zones continuously until stopped")
    crawl.add_argument(
        "--max-zones",
        type=int,
        default=None,
        help="Stop after this many zones (default: run until interrupted)",
    )
    crawl.add_argument(
        "--pause",
        type=float,
        default=None,
        help="Seconds to pause between zones (default: ZONE_PAUSE_SECONDS)",
    )

    subparsers.add_parser("campaign", help="Run the daily and follow-up email campaigns")
    subparsers.add_parser("stats", help="Show lead, zone and daily statistics")

    unsubscribe = subparsers.add_parser("unsubscribe", help="Suppress a lead permanently")
    unsubscribe.add_argument("lead_id", type=int)
    unsubscribe.add_argument("--email", default=None, help="Email address that opted out")

    convert = subparsers.add_parser("convert", help="Mark a contacted lead as converted")
    convert.add_argument("lead_id", type=int)

    respond = subparsers.add_parser("respond", help="Record a reply from a lead")
    respond.add_argument("lead_id", type=int)

    subparsers.add_parser("serve", help="Run the periodic task scheduler")

    return parser


def print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def build_service(config: Config, command: str) -> LeadSweepService:
    """Build the service with only the collaborators the command needs.

    Raises:
        ConfigurationError: If required configuration is missing.
    """
    config.validate_for_database()
    logger.debug("Building service for %s", command, extra=config.summary())
    database = Database(config.DATABASE_URL, **config.database_options())

    extractor = None
    if command in SCRAPING_COMMANDS and (command != "serve" or config.ENABLE_AUTO_SCRAPING):
        config.validate_for_scraping()
        from .integrations.google_maps import GoogleMapsExtractor

        extractor = GoogleMapsExtractor(
            api_key=config.GOOGLE_MAPS_API_KEY,
            keyword=config.SEARCH_KEYWORD,
            location_radius_km=config.SEARCH_RADIUS_KM,
            max_results=config.MAX_BUSINESSES_PER_RUN,
        )

    mailer = None
    if command in EMAIL_COMMANDS and (command != "serve" or config.ENABLE_AUTO_EMAILING):
        config.validate_for_email()
        from .integrations.sendgrid import SendGridMailer

        mailer = SendGridMailer(
            api_key=config.SENDGRID_API_KEY,
            from_email=config.SENDGRID_FROM_EMAIL,
            from_name=config.SENDGRID_FROM_NAME,
        )

    renderer = MessageRenderer(
        sender_name=config.SENDGRID_FROM_NAME,
        location=config.SEARCH_LOCATION,
        price=config.SERVICE_PRICE,
        currency=config.SERVICE_CURRENCY,
        phone=config.BUSINESS_PHONE,
        unsubscribe_email=config.UNSUBSCRIBE_EMAIL,
    )
    return LeadSweepService(
        database,
        extractor=extractor,
        mailer=mailer,
        settings=ServiceSettings.from_config(config),
        renderer=renderer,
    )


def _cancel_on_signals(token: CancellationToken) -> None:
    """Cancel the token on SIGINT/SIGTERM so loops stop between ticks."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.cancel)
        except NotImplementedError:
            # Signal handlers are unavailable on some platforms (e.g. Windows)
            pass


async def _serve(service: LeadSweepService) -> dict:
    scheduler = service.build_task_scheduler()
    token = CancellationToken()
    _cancel_on_signals(token)
    logger.info("Task scheduler running: %s", ", ".join(t.name for t in scheduler.tasks))
    await scheduler.run_forever(token)
    return {task.name: {"runs": task.runs, "failures": task.failures} for task in scheduler.tasks}


async def run_command(args: argparse.Namespace, config: Config) -> Optional[Any]:
    """Execute one CLI command and return a JSON-serializable result."""
    service = build_service(config, args.command)
    try:
        if args.command == "init-db":
            await service.database.create_tables()
            return {"tables_created": True}

        if args.command == "seed-zones":
            config.validate_for_zones()
            return (await service.seed_zones()).to_dict()

        if args.command == "zones":
            reset = await service.reset_zone_cycle() if args.reset else None
            stats = (await service.zone_stats()).to_dict()
            stuck = [zone.name for zone in await service.stuck_zones()]
            return {"stats": stats, "stuck": stuck, "reset": reset}

        if args.command == "scrape":
            if args.location:
                return (await service.run_location_job(args.location)).to_dict()
            result = await service.run_scraping_job()
            return result.to_dict() if result is not None else None

        if args.command == "crawl":
            config.validate_for_zones()
            if not await service.zones.is_ready():
                await service.seed_zones()
            token = CancellationToken()
            _cancel_on_signals(token)
            result = await service.run_continuous(
                token, pause_seconds=args.pause, max_zones=args.max_zones
            )
            return result.to_dict()

        if args.command == "campaign":
            return (await service.run_email_job()).to_dict()

        if args.command == "stats":
            return await service.health_check()

        if args.command == "unsubscribe":
            created = await service.unsubscribe(args.lead_id, args.email)
            return {"lead_id": args.lead_id, "unsubscribed": True, "new_marker": created}

        if args.command == "convert":
            converted = await service.mark_converted(args.lead_id)
            return {"lead_id": args.lead_id, "converted": converted}

        if args.command == "respond":
            await service.record_response(args.lead_id)
            return {"lead_id": args.lead_id, "response_recorded": True}

        if args.command == "serve":
            return await _serve(service)

        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await service.database.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    level = None
    if args.debug:
        level = "DEBUG"
    elif args.verbose:
        level = "INFO"
    setup_logging(level=level)

    try:
        config = Config()
        result = asyncio.run(run_command(args, config))
    except KeyboardInterrupt:
        print("\nCancelled by user.", file=sys.stderr)
        return 130
    except LeadSweepError as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_json(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
