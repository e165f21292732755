"""gig-reconciler – CLI for reconciling imported gig listings against the canonical calendar."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from gigrecon.conflicts import ConflictDetector
from gigrecon.pipeline import ReconciliationPipeline
from gigrecon.places import GooglePlacesLookup
from gigrecon.reader import read_records
from gigrecon.reporter import print_summary, write_csv_report, write_html_report
from gigrecon.resolver import CandidateResolver
from gigrecon.store import load_reference

PLACES_KEY_ENV = 'GOOGLE_PLACES_API_KEY'


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Reconcile imported gig listings against known venues, artists and events.',
        prog='reconcile.py',
    )
    parser.add_argument(
        '--reference', required=True, type=Path,
        help='Path to the JSON reference file (venues, artists, events)',
    )
    parser.add_argument(
        '--events', required=True, type=Path,
        help='Path to the imported events CSV file',
    )
    parser.add_argument(
        '--output', required=True, type=Path,
        help='Path for the review report (CSV)',
    )
    parser.add_argument(
        '--html', action='store_true',
        help='Also write an HTML review report',
    )
    parser.add_argument(
        '--summary', action='store_true',
        help='Print a summary to stdout',
    )
    parser.add_argument(
        '--places-key',
        help=f'Google Places API key for the venue fallback (default: ${PLACES_KEY_ENV})',
    )
    parser.add_argument(
        '--no-places', action='store_true',
        help='Disable the Google Places venue fallback',
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='Log candidate scoring details',
    )
    return parser


async def run(
    reference_path: Path,
    events_path: Path,
    places_key: str | None,
) -> ReconciliationPipeline:
    """Load inputs and reconcile every imported record."""
    store = load_reference(reference_path)
    records = read_records(events_path)

    place_lookup = GooglePlacesLookup(places_key) if places_key else None
    if place_lookup is None:
        logging.info("Places lookup disabled, unmatched venues stay without candidates")

    pipeline = ReconciliationPipeline(
        records,
        resolver=CandidateResolver(store, place_lookup),
        detector=ConflictDetector(store),
    )
    await pipeline.process_all()
    return pipeline


def main() -> None:
    """Main entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    places_key = None if args.no_places else (args.places_key or os.getenv(PLACES_KEY_ENV))

    try:
        pipeline = asyncio.run(run(args.reference, args.events, places_key))
    except (FileNotFoundError, ValueError) as exc:
        logging.error("Import failed: %s", exc)
        sys.exit(1)

    snapshots = pipeline.snapshot()
    write_csv_report(snapshots, args.output)

    if args.html:
        html_path = args.output.with_suffix('.html')
        write_html_report(snapshots, html_path, args.events.name)

    if args.summary:
        print_summary(snapshots, args.events.name)


if __name__ == '__main__':
    main()
