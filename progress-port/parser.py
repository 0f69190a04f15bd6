"""
Spreadsheet parsing for bulk student uploads.

Decodes .xlsx/.xls workbooks (first sheet only), recognises column headers
without requiring a specific column order or naming convention, and maps
each data row onto a canonical project/internship record.

Handles:
  - Header variants ("Enrollment No", "Reg. No", "Student Roll No" -> rollNo)
  - Punctuation and case differences ("S.No", "s no", "SNO" -> id)
  - Attendance columns with a month suffix ("Attendance - June 2024")
  - Blank header cells, while keeping row values aligned by column index
  - Numeric cells that should be text (21001.0 -> "21001")
  - Rows with no recognisable roll number or name (fallback + synthesis)
"""

import io
import os
import re
import time
from datetime import date, datetime

from errors import ParseError

XLSX_MAGIC = b'PK\x03\x04'
XLS_MAGIC = b'\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1'

MONTHS = [
    'january', 'february', 'march', 'april', 'may', 'june',
    'july', 'august', 'september', 'october', 'november', 'december',
]

# Serial-number headers are matched on the whole key, never as a substring,
# otherwise "Email ID" or "Roll No" would be swallowed.
SERIAL_HEADERS = {'sno', 'sn', 'srno', 'slno', 'no', 'id'}

# Ordered: first match wins, and several keyword lists overlap
# ("Student Roll No" must resolve to rollNo, not name).
HEADER_RULES = [
    ('rollNo', ['roll', 'enrol', 'registration', 'regno', 'admission']),
    ('name', ['name', 'student']),
    ('program', ['program', 'course', 'degree', 'branch', 'stream']),
    ('organization', ['organi', 'company', 'internshipplace']),
    ('dates', ['date', 'duration', 'period', 'time']),
    ('noc', ['noc', 'objection', 'certificate']),
    ('offerLetter', ['offer', 'letter']),
    ('pop', ['pop', 'proof', 'completion']),
]

# Checked after the attendance rule, before falling through to a custom column.
PROJECT_HEADER_RULES = [
    ('groupNo', ['group', 'team']),
    ('email', ['email', 'mail']),
    ('phoneNo', ['phone', 'mobile', 'contact']),
    ('facultyMentor', ['facultymentor', 'guide', 'supervisor']),
    ('industryMentor', ['industrymentor', 'externalmentor']),
    ('facultyCoordinator', ['coordinator']),
    ('title', ['title', 'topic']),
    ('domain', ['domain']),
    ('session', ['session', 'academicyear']),
    ('form', ['form', 'proposal']),
    ('presentation', ['presentation', 'ppt']),
    ('report', ['report']),
    ('year', ['year']),
    ('semester', ['semester']),
]

PROJECT_FIELDS = [
    'groupNo', 'rollNo', 'name', 'email', 'phoneNo', 'title', 'domain',
    'facultyMentor', 'industryMentor', 'program', 'facultyCoordinator',
    'session', 'year', 'semester', 'form', 'presentation', 'report',
]
INTERNSHIP_FIELDS = [
    'rollNo', 'name', 'program', 'organization', 'dates',
    'noc', 'offerLetter', 'pop', 'year', 'semester', 'session',
]
CANONICAL_FIELDS = set(PROJECT_FIELDS) | set(INTERNSHIP_FIELDS) | {'id'}

ROLL_FALLBACK_COLUMNS = (1, 2, 3)
NAME_FALLBACK_COLUMNS = (2, 3, 4)
ROLL_PATTERN = re.compile(r'^(\d+|[A-Za-z]+\d+)$')
DIGITS_PATTERN = re.compile(r'^\d+$')


def cell_text(val):
    """Convert a cell value to a stripped display string."""
    if val is None:
        return ''
    if isinstance(val, bool):
        return 'true' if val else 'false'
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    if isinstance(val, datetime):
        if val.hour == val.minute == val.second == val.microsecond == 0:
            return val.date().isoformat()
        return val.isoformat(sep=' ')
    if isinstance(val, date):
        return val.isoformat()
    return str(val).strip()


def _header_key(header):
    """Lowercase and strip everything that is not a letter or digit."""
    return re.sub(r'[^a-z0-9]', '', cell_text(header).lower())


def _is_serial(key):
    if key == '' or key in SERIAL_HEADERS:
        return True
    if key.startswith('serial'):
        return True
    return re.fullmatch(r'column\d*', key) is not None


def _attendance_field(key):
    for month in MONTHS:
        if month in key:
            return f'Attendance {month.capitalize()}'
    return 'Attendance'


def normalize_header(header):
    """
    Map a raw column header to a canonical field name.

    Returns the header itself when nothing matches, so unknown columns
    survive as custom (dynamic) fields.
    """
    key = _header_key(header)
    if _is_serial(key):
        return 'id'
    for field, keywords in HEADER_RULES:
        if any(kw in key for kw in keywords):
            return field
    if 'attendance' in key:
        return _attendance_field(key)
    for field, keywords in PROJECT_HEADER_RULES:
        if any(kw in key for kw in keywords):
            return field
    if key == 'sem':
        return 'semester'
    return header


def _value_at(row, index):
    if index < len(row):
        return cell_text(row[index])
    return ''


def map_row(headers, raw_row, row_index, metadata=None, timestamp=None):
    """
    Build a canonical record from one spreadsheet row.

    headers is the ordered list of (column_index, header_text) pairs from
    parse_sheet_bytes; values are read by column_index so that dropped
    blank headers never shift the alignment.

    The record always has a non-empty rollNo and name. When the sheet has
    no usable value they are guessed from fixed columns, then synthesised
    (R<1000+row_index>, "Student <row_index+1>"); synthesised values are
    low-confidence by nature.
    """
    metadata = metadata or {}
    if timestamp is None:
        timestamp = int(time.time() * 1000)

    record = {'id': f'upload-{timestamp}-{row_index}', 'extra': {}}
    for field in ('year', 'semester', 'facultyCoordinator', 'session'):
        if metadata.get(field):
            record[field] = metadata[field]
    program = metadata.get('program') or metadata.get('course')
    if program:
        record['program'] = program

    for ci, header in headers:
        field = normalize_header(header)
        if field == 'id':
            continue  # serial numbers are not identifiers
        if ci >= len(raw_row) or raw_row[ci] is None:
            continue
        value = cell_text(raw_row[ci])
        if field in CANONICAL_FIELDS:
            record[field] = value
        else:
            record['extra'][field] = value

    if not record.get('rollNo'):
        for ci in ROLL_FALLBACK_COLUMNS:
            value = _value_at(raw_row, ci)
            if value and ROLL_PATTERN.match(value):
                record['rollNo'] = value
                break

    if not record.get('name'):
        for ci in NAME_FALLBACK_COLUMNS:
            value = _value_at(raw_row, ci)
            if value and not DIGITS_PATTERN.match(value):
                record['name'] = value
                break

    if not record.get('rollNo'):
        record['rollNo'] = f'R{1000 + row_index}'
    if not record.get('name'):
        record['name'] = f'Student {row_index + 1}'

    return record


def _load_xlsx(payload):
    """Read the first worksheet of an .xlsx payload as a list of rows."""
    from openpyxl import load_workbook
    wb = load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    try:
        if not wb.worksheets:
            return []
        ws = wb.worksheets[0]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _load_xls(payload):
    """Read the first worksheet of a legacy .xls payload as a list of rows."""
    import xlrd
    book = xlrd.open_workbook(file_contents=payload)
    if book.nsheets == 0:
        return []
    sheet = book.sheet_by_index(0)
    rows = []
    for ri in range(sheet.nrows):
        row = []
        for cell in sheet.row(ri):
            if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
                row.append(None)
            elif cell.ctype == xlrd.XL_CELL_DATE:
                row.append(xlrd.xldate.xldate_as_datetime(cell.value, book.datemode))
            elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                row.append(bool(cell.value))
            else:
                row.append(cell.value)
        rows.append(row)
    return rows


def _decode(payload):
    if payload.startswith(XLSX_MAGIC):
        loader = _load_xlsx
    elif payload.startswith(XLS_MAGIC):
        loader = _load_xls
    else:
        raise ParseError('File is not a readable Excel workbook (.xlsx or .xls)')
    try:
        return loader(payload)
    except Exception as e:
        raise ParseError(f'Could not read spreadsheet: {e}') from e


def parse_sheet_bytes(payload):
    """
    Decode a workbook payload into (headers, data_rows).

    headers: list of (column_index, header_text) with blank header cells
    removed. data_rows: remaining non-empty rows, unpadded; read them by
    column_index.
    """
    if not payload:
        raise ParseError('File is empty or unreadable')
    rows = _decode(payload)
    rows = [row for row in rows if any(cell_text(c) != '' for c in row)]
    if len(rows) < 2:
        raise ParseError('Spreadsheet needs a header row and at least one data row')

    headers = [
        (ci, cell_text(cell))
        for ci, cell in enumerate(rows[0])
        if cell_text(cell) != ''
    ]
    return headers, rows[1:]


def parse_sheet(filepath):
    """Parse a workbook on disk. Same result as parse_sheet_bytes."""
    ext = os.path.splitext(filepath)[1].lower()
    if ext not in ('.xlsx', '.xls'):
        raise ParseError(f'Unsupported file format: {ext}. Use .xlsx or .xls')
    with open(filepath, 'rb') as f:
        return parse_sheet_bytes(f.read())
