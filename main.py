"""Inmo Search — CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging to both console and log file."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    run_date = datetime.now().strftime("%Y-%m-%d")
    log_file = log_dir / f"run_{run_date}.log"

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def print_result(result) -> None:
    """Human-readable summary of a resolved inquiry."""
    criteria = result.criteria
    print(f"Criteria ({criteria.confidence}% confidence): {criteria.describe()}")
    if criteria.features:
        print(f"  Features: {', '.join(criteria.features)}")
    if criteria.notes:
        print(f"  Notes: {criteria.notes}")

    print(f"\nInventory matches ({len(result.inventory_matches)}):")
    for match in result.inventory_matches:
        price = f"{match.currency} {match.price:,.0f}" if match.price is not None else "n/a"
        print(f"  #{match.property_id} {match.title} — {price} — {match.zone or match.address or ''}")

    print(f"\nPortal links ({len(result.portal_links)}):")
    for link in result.portal_links:
        print(f"  {link.icon} [{link.category.value}] {link.title}: {link.url}")

    print(f"\nScraped listings ({len(result.scraped_listings)}):")
    for listing in result.scraped_listings:
        print(f"  [{listing.source}] {listing.title} — {listing.price_text} — {listing.url}")

    if result.persisted:
        print(
            f"\nSaved search #{result.persisted.search_id} for "
            f"{result.persisted.client_name} (client #{result.persisted.client_id})"
        )


def main() -> None:
    """Main CLI entrypoint for Inmo Search."""
    parser = argparse.ArgumentParser(
        description="Resolve a client's property inquiry against inventory and portals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py "busco casa en Candioti hasta 150000 dolares, 3 dormitorios"
  python main.py "alquiler depto 2 ambientes con cochera" --no-scrape
  python main.py "busco depto en Centro hasta 90 mil usd" --persist --client-id 12
  python main.py "..." --json               # Print the full result as JSON
        """,
    )
    parser.add_argument("message", help="Free-form inquiry text (e.g. a WhatsApp message)")
    parser.add_argument(
        "--persist",
        action="store_true",
        help="Save the inquiry as a search record for a client",
    )
    parser.add_argument(
        "--client-id",
        type=int,
        default=None,
        help="Existing client to attach the saved search to (implies --persist)",
    )
    parser.add_argument(
        "--no-scrape",
        action="store_true",
        help="Skip live portal scraping",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite database path override (default: $DB_PATH or data/inmo.db)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override (DEBUG, INFO, WARNING, ERROR)",
    )

    args = parser.parse_args()

    # Load environment variables
    load_dotenv()

    # Setup logging
    log_level = args.log_level or os.getenv("LOG_LEVEL", "INFO")
    setup_logging(log_level)

    logger = logging.getLogger("inmo_search")

    from inmo_search.config import Settings
    from inmo_search.exceptions import ResolveError
    from inmo_search.graph import build_context, resolve

    settings = Settings.from_env()
    if args.db:
        settings = settings.model_copy(update={"db_path": args.db})

    logger.info("Resolving inquiry (%d chars)", len(args.message))
    start_time = time.time()

    context = build_context(settings)
    try:
        result = resolve(
            args.message,
            persist=args.persist or args.client_id is not None,
            client_ref=args.client_id,
            context=context,
            scrape=not args.no_scrape,
        )
    except ResolveError as e:
        logger.error("Could not process request: %s", e)
        sys.exit(1)
    finally:
        context.close()

    logger.info("Done in %.1f seconds", time.time() - start_time)

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print_result(result)


if __name__ == "__main__":
    main()
