"""CSV reader for imported event rows with field detection and normalization."""

import csv
import io
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from gigrecon import ImportedRecord

log = logging.getLogger(__name__)

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')
_TIME_RE = re.compile(r'^(\d{1,2})(?:[:.](\d{2}))?\s*([ap]\.?m\.?)?$', re.IGNORECASE)

# Day-first formats, as listings are UK-based
DATE_FORMATS = (
    '%Y-%m-%d',
    '%d/%m/%Y',
    '%d/%m/%y',
    '%d-%m-%Y',
    '%d-%m-%y',
    '%d.%m.%Y',
    '%d %b %Y',
    '%d %B %Y',
)

# Header keywords per field, checked in order
COLUMN_KEYWORDS: dict[str, tuple[str, ...]] = {
    'artist': ('artist', 'band', 'performer'),
    'venue': ('venue', 'location', 'pub'),
    'date': ('date', 'day'),
    'time': ('time', 'start'),
    'ticket_url': ('ticket url', 'ticket link', 'tickets url', 'url', 'link'),
    'ticket_price': ('price', 'cost', 'entry'),
    'description': ('description', 'notes', 'info'),
}
REQUIRED_FIELDS = ('artist', 'venue', 'date')

IDENTIFIER_COLUMNS: dict[str, tuple[str, str]] = {
    'artist website': ('artist', 'website_url'),
    'artist facebook': ('artist', 'facebook_url'),
    'artist instagram': ('artist', 'instagram_url'),
    'venue website': ('venue', 'website_url'),
    'venue facebook': ('venue', 'facebook_url'),
}


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def normalize_whitespace(value: Optional[str]) -> str:
    """Collapse whitespace runs into one space and strip the ends."""
    if value is None:
        return ''
    return _WHITESPACE_RE.sub(' ', value).strip()


def parse_date(value: str) -> str:
    """Parse a spreadsheet date into ISO ``YYYY-MM-DD``.

    Raises:
        ValueError: If no known format matches.
    """
    value = normalize_whitespace(value)
    # Drop a leading weekday ("Sat 22/02/2025")
    value = re.sub(r'^[A-Za-z]{3,9},?\s+(?=\d)', '', value)
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def parse_time(value: str) -> Optional[str]:
    """Normalize a start time to 24-hour ``HH:MM``.

    Accepts ``19:30``, ``7.30pm``, ``7pm`` and similar. Returns None for
    an empty value.

    Raises:
        ValueError: If the value is not a recognisable time.
    """
    value = normalize_whitespace(value)
    if not value:
        return None
    m = _TIME_RE.match(value)
    if not m:
        raise ValueError(f"Unrecognised time: {value!r}")

    hours = int(m.group(1))
    minutes = int(m.group(2) or 0)
    period = (m.group(3) or '').replace('.', '').lower()
    if period == 'pm' and hours != 12:
        hours += 12
    elif period == 'am' and hours == 12:
        hours = 0
    if hours > 23 or minutes > 59:
        raise ValueError(f"Unrecognised time: {value!r}")
    return f'{hours:02d}:{minutes:02d}'


def map_columns(fieldnames: list[str]) -> dict[str, str]:
    """Map record fields to CSV header names by keyword.

    Identifier columns ("Artist Website", ...) are never taken for a
    plain field.

    Args:
        fieldnames: Normalized header names.

    Returns:
        Dict of field name -> header name for every detected field.
    """
    mapping: dict[str, str] = {}
    taken = {name for name in fieldnames if name.lower() in IDENTIFIER_COLUMNS}
    for field_name, keywords in COLUMN_KEYWORDS.items():
        for keyword in keywords:
            header = next(
                (h for h in fieldnames if h not in taken and keyword in h.lower()),
                None,
            )
            if header is not None:
                mapping[field_name] = header
                taken.add(header)
                break
    return mapping


def read_records(path: str | Path) -> list[ImportedRecord]:
    """Read imported event rows from a CSV or TSV file.

    The delimiter is sniffed, fields are whitespace-normalized and dates
    and times are normalized. Rows with an empty artist or venue name are
    excluded, as are rows whose date cannot be parsed.

    Args:
        path: Path to the CSV file.

    Returns:
        List of ImportedRecord objects, ids ``import-<row>``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is empty or required columns are missing.
    """
    path = Path(path)
    encoding = detect_encoding(path)

    with open(path, 'r', encoding=encoding, newline='') as f:
        content = f.read()

    # Strip BOM if present
    content = content.lstrip('\ufeff')
    if not content.strip():
        raise ValueError(f"File {path} is empty.")

    try:
        dialect = csv.Sniffer().sniff(content.splitlines()[0], delimiters=',;\t')
        delimiter = dialect.delimiter
    except csv.Error:
        delimiter = ','

    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)
    if reader.fieldnames is None:
        raise ValueError(f"File {path} has no header row.")

    headers = [normalize_whitespace(c) for c in reader.fieldnames]
    columns = map_columns(headers)
    missing = [name for name in REQUIRED_FIELDS if name not in columns]
    if missing:
        raise ValueError(f"Missing columns in {path}: {', '.join(missing)}")

    records: list[ImportedRecord] = []
    excluded = 0
    for row_num, row in enumerate(reader, start=2):
        cleaned = {normalize_whitespace(k): normalize_whitespace(v)
                   for k, v in row.items() if k is not None}
        artist = cleaned.get(columns['artist'], '')
        venue = cleaned.get(columns['venue'], '')
        if not artist or not venue:
            excluded += 1
            log.debug("Row %d in %s excluded: artist or venue empty", row_num, path)
            continue

        try:
            record = ImportedRecord(
                id=f'import-{row_num}',
                raw_artist_name=artist,
                raw_venue_name=venue,
                date=parse_date(cleaned.get(columns['date'], '')),
                time=parse_time(_field(cleaned, columns, 'time')),
                ticket_url=_field(cleaned, columns, 'ticket_url') or None,
                ticket_price=_field(cleaned, columns, 'ticket_price') or None,
                description=_field(cleaned, columns, 'description') or None,
                artist_identifiers=_identifiers(cleaned, 'artist'),
                venue_identifiers=_identifiers(cleaned, 'venue'),
            )
            records.append(record)
        except ValueError as exc:
            log.warning("Row %d in %s skipped: %s", row_num, path, exc)

    if excluded:
        log.warning("%d row(s) in %s without artist or venue excluded", excluded, path)
    log.info("%d record(s) read from %s", len(records), path)
    return records


def _identifiers(cleaned: dict[str, str], subject: str) -> dict[str, str]:
    found: dict[str, str] = {}
    for header, value in cleaned.items():
        target = IDENTIFIER_COLUMNS.get(header.lower())
        if target and target[0] == subject and value:
            found[target[1]] = value
    return found


def _field(cleaned: dict[str, str], columns: dict[str, str], name: str) -> str:
    header = columns.get(name)
    if header is None:
        return ''
    return cleaned.get(header, '')
