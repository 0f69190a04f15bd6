"""
Document linking for project/internship rows.

Files are not stored here: a document slot only holds a reference name.
Google Drive linking is a stub that validates the link and records a
conventional file name, the same way local uploads are named.
"""

import os
from datetime import date

from errors import ValidationError
from store import DOCUMENT_SLOTS

DRIVE_HOST = 'drive.google.com'

COLUMN_CHOICES = {
    'project': ['form', 'presentation', 'report', 'custom'],
    'internship': ['noc', 'offerLetter', 'pop', 'attendance', 'custom'],
}


def _check_slot(kind, slot):
    if slot not in DOCUMENT_SLOTS[kind]:
        raise ValidationError(
            f"Unknown document slot '{slot}'. Use one of: {', '.join(DOCUMENT_SLOTS[kind])}"
        )


def _prefix(kind, entity):
    if kind == 'project':
        return f"{entity.get('groupNo', '')}_{entity.get('rollNo', '')}"
    return entity.get('rollNo', '')


def document_filename(kind, entity, slot, original_name):
    """Name a locally uploaded file after the row: G1_R101_form.pdf / R101_noc.pdf."""
    _check_slot(kind, slot)
    ext = os.path.splitext(original_name or '')[1].lstrip('.').lower()
    if not ext:
        raise ValidationError('Uploaded file has no extension')
    return f'{_prefix(kind, entity)}_{slot}.{ext}'


def is_drive_link(link):
    return bool(link) and DRIVE_HOST in link


def drive_document_filename(kind, entity, slot, link):
    """Reference name for a document linked from Google Drive."""
    _check_slot(kind, slot)
    if not is_drive_link(link):
        raise ValidationError('Please enter a valid Google Drive link')
    return f'{_prefix(kind, entity)}_{slot}_drive.pdf'


def resolve_column(kind, column_type, custom_name=None, today=None):
    """
    Turn a column-selection choice into a column name.

    Returns (column_name, is_dynamic). 'attendance' becomes
    "Attendance <current month>", 'custom' uses custom_name; both are
    dynamic columns the caller must register on its store.
    """
    if column_type not in COLUMN_CHOICES[kind]:
        raise ValidationError(
            f"Unknown column '{column_type}'. Use one of: {', '.join(COLUMN_CHOICES[kind])}"
        )
    if column_type == 'attendance':
        today = today or date.today()
        return f"Attendance {today.strftime('%B')}", True
    if column_type == 'custom':
        name = (custom_name or '').strip()
        if not name:
            raise ValidationError('Custom column name is required')
        return name, True
    return column_type, False
