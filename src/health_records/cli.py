"""CLI tools for running ingestion workers and seeding a store."""

import argparse
import asyncio
import sys
from datetime import date, datetime

from .config import get_settings
from .documents import DocumentKind, new_document
from .fitbit import FitbitClient
from .logging import setup_logging
from .repository import repository_for
from .store import create_store
from .workers import build_worker


def parse_date(date_str: str) -> date:
    """Parse date string in YYYY-MM-DD format."""
    return datetime.strptime(date_str, "%Y-%m-%d").date()


def parse_kind(value: str) -> DocumentKind:
    """Parse a document kind name, case-insensitively."""
    for kind in DocumentKind:
        if kind.value.lower() == value.lower():
            return kind
    choices = ", ".join(kind.value for kind in DocumentKind)
    raise argparse.ArgumentTypeError(f"unknown kind '{value}' (choose from {choices})")


def _add_kind_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--kind",
        type=parse_kind,
        required=True,
        help="Document kind: Activity, Sleep, Weight or Food",
    )


async def _run_worker(kind: DocumentKind, day: date | None) -> int:
    settings = get_settings()
    setup_logging(settings.app)

    async with create_store(settings) as store, FitbitClient(settings.fitbit) as fitbit:
        worker = build_worker(kind, fitbit, store)
        return await worker.run(day.isoformat() if day else None)


def worker_run() -> None:
    """CLI entry point for a one-shot ingestion worker.

    Usage:
        health-records-worker --kind Activity [--date 2024-01-15]
    """
    parser = argparse.ArgumentParser(
        description="Fetch one day of Fitbit data and store it as a document"
    )
    _add_kind_argument(parser)
    parser.add_argument(
        "--date",
        type=parse_date,
        default=None,
        help="Day to ingest (YYYY-MM-DD, default: today)",
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(_run_worker(args.kind, args.date)))


def _seed_payload(kind: DocumentKind, day: str) -> dict:
    if kind is DocumentKind.WEIGHT:
        return {"date": day}
    return {}


async def _seed(kind: DocumentKind, days: list[date]) -> int:
    settings = get_settings()
    setup_logging(settings.app)

    async with create_store(settings) as store:
        repository = repository_for(kind, store)
        written = 0
        for day in days:
            iso = day.isoformat()
            try:
                await repository.create(new_document(kind, iso, _seed_payload(kind, iso)))
                written += 1
            except Exception as e:
                print(f"Error writing {kind.value} document for {iso}: {e}", file=sys.stderr)

    print(f"Wrote {written}/{len(days)} {kind.value} documents")
    return 0 if written == len(days) else 1


def seed() -> None:
    """CLI entry point for writing placeholder documents.

    Usage:
        health-records-seed --kind Activity --dates 2024-01-01 2024-01-15
    """
    parser = argparse.ArgumentParser(description="Write empty documents for smoke testing")
    _add_kind_argument(parser)
    parser.add_argument(
        "--dates",
        type=parse_date,
        nargs="+",
        required=True,
        help="Days to write documents for (YYYY-MM-DD)",
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(_seed(args.kind, args.dates)))
