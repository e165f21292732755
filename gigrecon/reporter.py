"""Review report generation for reconciled records (CSV, HTML, summary)."""

import csv
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from gigrecon import Bucket, MatchResult, RecordStatus
from gigrecon.pipeline import RecordSnapshot, classify

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

CSV_COLUMNS = [
    'Record_ID',
    'Status',
    'Bucket',
    'Date',
    'Time',
    'Raw_Artist',
    'Artist_Match_ID',
    'Artist_Match_Name',
    'Artist_Confidence',
    'Artist_Is_New',
    'Raw_Venue',
    'Venue_Match_ID',
    'Venue_Match_Name',
    'Venue_Confidence',
    'Venue_Is_New',
    'Venue_Place',
    'Venue_Place_Score',
    'Venue_Address',
    'Conflicts',
    'Exact_Duplicate',
    'Can_Commit',
    'Ticket_URL',
    'Ticket_Price',
    'Error',
]

BUCKET_LABELS: dict[Bucket, str] = {
    Bucket.VERIFIED: 'Verified artist, verified venue',
    Bucket.VERIFIED_ARTIST_NEW_VENUE: 'Verified artist, new venue',
    Bucket.NEW_ARTIST_NEW_VENUE: 'New artist, new venue',
    Bucket.NO_VENUE_MATCH: 'No venue match',
}


def _confidence(match: Optional[MatchResult]) -> str:
    # Two decimals for display only
    if match is None:
        return ''
    return f'{match.confidence:.2f}'


def _conflict_text(snapshot: RecordSnapshot) -> str:
    if snapshot.conflicts is None:
        return '' if snapshot.status is not RecordStatus.READY else 'not checked'
    return '; '.join(
        f'{c.kind}: {c.subject_name} / {c.existing_event_name} @ {c.existing_event_start_time}'
        for c in snapshot.conflicts
    )


def _snapshot_to_row(snapshot: RecordSnapshot) -> dict:
    """Convert a RecordSnapshot to a flat dict for CSV/HTML output."""
    vm = snapshot.venue_match
    am = snapshot.artist_match
    ready = snapshot.status is RecordStatus.READY
    bucket = classify(snapshot) if ready else None
    place = vm.place if vm is not None else None
    return {
        'Record_ID': snapshot.id,
        'Status': snapshot.status.value,
        'Bucket': bucket.value if bucket else '',
        'Date': snapshot.date,
        'Time': snapshot.time or '',
        'Raw_Artist': snapshot.raw_artist_name,
        'Artist_Match_ID': (am.candidate_id or '') if am else '',
        'Artist_Match_Name': am.candidate_name if am else '',
        'Artist_Confidence': _confidence(am),
        'Artist_Is_New': str(am.is_new) if am else '',
        'Raw_Venue': snapshot.raw_venue_name,
        'Venue_Match_ID': (vm.candidate_id or '') if vm else '',
        'Venue_Match_Name': vm.candidate_name if vm else '',
        'Venue_Confidence': _confidence(vm),
        'Venue_Is_New': str(vm.is_new) if vm else '',
        'Venue_Place': place.name if place else '',
        'Venue_Place_Score': f'{vm.place_score:.2f}' if place else '',
        'Venue_Address': place.address if place else '',
        'Conflicts': _conflict_text(snapshot),
        'Exact_Duplicate': str(snapshot.exact_duplicate),
        'Can_Commit': str(ready and not snapshot.exact_duplicate),
        'Ticket_URL': snapshot.ticket_url or '',
        'Ticket_Price': snapshot.ticket_price or '',
        'Error': snapshot.error or '',
        # Conflict kinds for targeted highlighting in HTML
        '_conflict_kinds': {c.kind for c in snapshot.conflicts or ()},
        '_bucket': bucket,
    }


def write_csv_report(snapshots: Sequence[RecordSnapshot], output_path: Path) -> None:
    """Write reconciled records as a CSV report.

    Uses UTF-8 with BOM (utf-8-sig) so Excel opens names with accents
    correctly.

    Args:
        snapshots: Records from the pipeline.
        output_path: Path for the output CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction='ignore')
        writer.writeheader()
        for snapshot in snapshots:
            writer.writerow(_snapshot_to_row(snapshot))

    log.info("CSV report written: %s (%d rows)", output_path, len(snapshots))


def write_html_report(
    snapshots: Sequence[RecordSnapshot],
    output_path: Path,
    source_name: str = '',
) -> None:
    """Write reconciled records as an HTML review page, grouped by bucket.

    Args:
        snapshots: Records from the pipeline.
        output_path: Path for the output HTML file.
        source_name: Name of the import file (for the report title).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('report.html')

    rows = [_snapshot_to_row(s) for s in snapshots]
    groups = [
        (BUCKET_LABELS[bucket], [r for r in rows if r['_bucket'] is bucket])
        for bucket in Bucket
    ]
    unfinished = [r for r in rows if r['_bucket'] is None]

    html = template.render(
        source_name=source_name,
        groups=groups,
        unfinished=unfinished,
        stats=compute_stats(snapshots),
        columns=CSV_COLUMNS,
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML report written: %s", output_path)


def compute_stats(snapshots: Sequence[RecordSnapshot]) -> dict:
    """Compute summary statistics for a batch."""
    by_status: Mapping[RecordStatus, int] = {
        status: sum(1 for s in snapshots if s.status is status) for status in RecordStatus
    }
    ready = [s for s in snapshots if s.status is RecordStatus.READY]
    buckets = {bucket: 0 for bucket in Bucket}
    for s in ready:
        buckets[classify(s)] += 1

    return {
        'total': len(snapshots),
        'pending': by_status[RecordStatus.PENDING],
        'ready': by_status[RecordStatus.READY],
        'error': by_status[RecordStatus.ERROR],
        'verified': buckets[Bucket.VERIFIED],
        'verified_artist_new_venue': buckets[Bucket.VERIFIED_ARTIST_NEW_VENUE],
        'new_artist_new_venue': buckets[Bucket.NEW_ARTIST_NEW_VENUE],
        'no_venue_match': buckets[Bucket.NO_VENUE_MATCH],
        'with_conflicts': sum(1 for s in ready if s.conflicts),
        'exact_duplicates': sum(1 for s in ready if s.exact_duplicate),
        'not_checked': sum(1 for s in ready if s.conflicts is None),
    }


def print_summary(snapshots: Sequence[RecordSnapshot], source_name: str = '') -> None:
    """Print a summary of the batch to stdout.

    Args:
        snapshots: Records from the pipeline.
        source_name: Name of the import file.
    """
    stats = compute_stats(snapshots)

    print(f"\n=== Import report: {source_name} ===")
    print(f"Records:                       {stats['total']:>5}")
    print(f"Ready:                         {stats['ready']:>5}")
    print(f"Errors:                        {stats['error']:>5}")
    print(f"Pending:                       {stats['pending']:>5}")
    print("---")
    print(f"Verified artist + venue:       {stats['verified']:>5}")
    print(f"Verified artist, new venue:    {stats['verified_artist_new_venue']:>5}")
    print(f"New artist, new venue:         {stats['new_artist_new_venue']:>5}")
    print(f"No venue match:                {stats['no_venue_match']:>5}")
    print("---")
    print(f"With conflicts:                {stats['with_conflicts']:>5}")
    print(f"  - exact duplicates:          {stats['exact_duplicates']:>5}")
    print(f"Conflict check skipped:        {stats['not_checked']:>5}")
    print()
