#!/usr/bin/env python3
"""
Run a scrape from the command line.

Usage:
    cd backend
    python -m scrapers.cli [source ...] --keywords KEYWORD [KEYWORD ...]

Examples:
    python -m scrapers.cli naukri --keywords python django --pages 2
    python -m scrapers.cli linkedin --mode recommendations
    python -m scrapers.cli naukri linkedin --keywords python --mode both --no-details
    python -m scrapers.cli naukri --keywords python --dry-run   # Crawl without saving
    python -m scrapers.cli --list
"""

import asyncio
import argparse
import logging
import json

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from scrapers.base import ScrapeConfigError, BrowserUnavailableError, ScrapeMode
from scrapers.manager import ScraperManager


def list_scrapers():
    """List all configured sources."""
    print(f"\n{'='*60}")
    print("Available Scrapers")
    print(f"{'='*60}\n")

    for site in ScraperManager().list_scrapers():
        status = "✅" if site['enabled'] else "⏳"
        caps = site['capabilities'] or {}
        recs = "search+recommendations" if caps.get('supports_recommendations') else "search"
        print(f"{status} {site['key']:10} - {site['name']} ({recs})")
        print(f"              URL: {site['url']}")
        print(f"              Login: {site['login_url']}")
        print()


def print_results(results):
    print(f"\n{'='*60}")
    print("Results")
    print(f"{'='*60}\n")

    for result in results:
        print(f"{result.source}:")
        print(f"  Found: {result.jobs_found}")
        print(f"  Added: {result.jobs_added}  Updated: {result.jobs_updated}  Skipped: {result.jobs_skipped}")
        if result.login_required:
            print("  Login required - log in through the browser window and rerun")
        for warning in result.warnings:
            print(f"  WARNING: {warning}")
        for error in result.errors:
            print(f"  ERROR: {error}")
        print()


async def run(args) -> int:
    db = None
    if not args.dry_run:
        from api.database import SessionLocal, init_db
        init_db()
        db = SessionLocal()

    manager = ScraperManager(db)
    try:
        results = await manager.run(
            [s.lower() for s in args.sources],
            args.keywords,
            max_pages=args.pages,
            fetch_full_details=not args.no_details,
            mode=args.mode,
        )
    except (ScrapeConfigError, BrowserUnavailableError) as e:
        print(f"ERROR: {e}")
        return 1
    finally:
        if db is not None:
            db.close()

    print_results(results)
    if args.json:
        print(json.dumps(manager.get_results_summary(), indent=2, default=str))
    return 0


async def main() -> int:
    parser = argparse.ArgumentParser(description='Scrape job boards into the job store')
    parser.add_argument('sources', nargs='*', help='Source keys (e.g., naukri linkedin)')
    parser.add_argument('--keywords', nargs='+', default=[], help='Search keywords')
    parser.add_argument('--pages', type=int, default=3, help='Pages per source (1-10)')
    parser.add_argument('--mode', choices=[m.value for m in ScrapeMode], default=ScrapeMode.SEARCH.value)
    parser.add_argument('--no-details', action='store_true', help='Skip visiting each job page')
    parser.add_argument('--dry-run', action='store_true', help='Crawl without saving to the database')
    parser.add_argument('--json', action='store_true', help='Print the results summary as JSON')
    parser.add_argument('--list', action='store_true', help='List all scrapers')

    args = parser.parse_args()

    if args.list:
        list_scrapers()
        return 0

    if not args.sources:
        parser.print_help()
        print("\nExample: python -m scrapers.cli naukri --keywords python")
        return 1

    return await run(args)


def cli():
    raise SystemExit(asyncio.run(main()))


if __name__ == '__main__':
    cli()
