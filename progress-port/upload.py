"""
Bulk upload pipeline: workbook bytes + metadata -> batch of canonical records.

Nothing here touches an EntityStore; the caller decides whether to commit
the returned entries (see EntityStore.upsert_batch).
"""

import logging
import os
import time

from errors import FieldInferenceWarning, ValidationError
from parser import cell_text, map_row, normalize_header, parse_sheet_bytes

ALLOWED_EXTENSIONS = ('.xlsx', '.xls')
REQUIRED_METADATA = ('year', 'semester', 'program')
PREVIEW_ROWS = 5


def check_extension(filename):
    """Reject anything that is not an Excel file, before decoding."""
    ext = os.path.splitext(filename or '')[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError('Please upload only Excel files (.xlsx or .xls)')
    return ext


def _missing_metadata(metadata):
    missing = []
    for field in REQUIRED_METADATA:
        value = metadata.get(field)
        if field == 'program' and not value:
            value = metadata.get('course')
        if not value:
            missing.append(field)
    return missing


def build_preview(headers, data_rows, limit=PREVIEW_ROWS):
    """Format the first rows as display strings aligned with the headers."""
    return {
        'headers': [text for _, text in headers],
        'rows': [
            [cell_text(row[ci]) if ci < len(row) else '' for ci, _ in headers]
            for row in data_rows[:limit]
        ],
    }


def has_required_headers(headers):
    """True when some header maps to rollNo and some header maps to name."""
    fields = {normalize_header(text) for _, text in headers}
    return 'rollNo' in fields and 'name' in fields


def process_upload(payload, filename, metadata, logger=None, timestamp=None):
    """
    Run the whole pipeline for one uploaded workbook.

    Returns a dict with:
      - entries: canonical records, one per data row
      - warnings: FieldInferenceWarning instances (non-fatal)
      - preview: {'headers', 'rows'} for the first few data rows
      - missingRequiredFields: header presence check result

    Raises ValidationError for a wrong extension or missing metadata and
    ParseError for undecodable or too-short workbooks.
    """
    logger = logger or logging.getLogger('progress_port.upload')
    metadata = metadata or {}

    check_extension(filename)
    headers, data_rows = parse_sheet_bytes(payload)

    missing = _missing_metadata(metadata)
    if missing:
        raise ValidationError(f"Missing metadata: {', '.join(missing)}")

    preview = build_preview(headers, data_rows)
    missing_required = not has_required_headers(headers)

    if timestamp is None:
        timestamp = int(time.time() * 1000)
    entries = [
        map_row(headers, row, ri, metadata, timestamp=timestamp)
        for ri, row in enumerate(data_rows)
    ]

    warnings = []
    if missing_required:
        warning = FieldInferenceWarning(
            'Could not find roll number and name columns; values were inferred '
            'from column positions or generated. Please verify the uploaded data.'
        )
        warnings.append(warning)
        logger.warning('%s: %s', filename, warning)

    logger.info(
        'Parsed %s: %d header(s), %d row(s) for year=%s semester=%s',
        filename, len(headers), len(entries),
        metadata.get('year'), metadata.get('semester'),
    )
    return {
        'entries': entries,
        'warnings': warnings,
        'preview': preview,
        'missingRequiredFields': missing_required,
    }
