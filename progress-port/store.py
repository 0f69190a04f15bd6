"""
In-memory entity store for the Project and Internship portals.

The flat entity list is the only source of truth. The grouped project
view, filter results and pages are derived from it on every read; writes
(upserts, row edits, deletes, new dynamic columns) always go through the
store, which then notifies its subscribers.

Entity shape: a dict of string fields (see PROJECT_FIELDS /
INTERNSHIP_FIELDS in parser.py) plus 'id' and an 'extra' dict holding
dynamic columns such as "Attendance June".
"""

import itertools
import logging
import math
import re
import time

from errors import EditConflictError, ValidationError
from parser import INTERNSHIP_FIELDS, PROJECT_FIELDS

KINDS = ('project', 'internship')

FIELDS = {
    'project': PROJECT_FIELDS,
    'internship': INTERNSHIP_FIELDS,
}
NATURAL_KEYS = {
    'project': ('rollNo', 'groupNo'),
    'internship': ('rollNo', 'program'),
}
REQUIRED_ON_SAVE = {
    'project': ('groupNo', 'rollNo', 'name'),
    'internship': ('rollNo', 'name'),
}
FIELD_LABELS = {
    'groupNo': 'Group No',
    'rollNo': 'Roll No',
    'name': 'Name',
}
DOCUMENT_SLOTS = {
    'project': ('form', 'presentation', 'report'),
    'internship': ('noc', 'offerLetter', 'pop'),
}
TRANSIENT_FLAGS = ('isEditing', 'isNew')

FILTER_FIELDS = ('year', 'semester', 'session', 'program', 'facultyCoordinator')
FILTER_ALIASES = {'course': 'program'}
FILTER_ANY_PREFIX = 'all-'

GROUP_SHARED_FIELDS = (
    'title', 'domain', 'facultyMentor', 'industryMentor', 'form',
    'presentation', 'report', 'year', 'semester', 'program',
    'facultyCoordinator', 'session',
)
STUDENT_FIELDS = (
    'id', 'rollNo', 'name', 'email', 'phoneNo', 'year', 'semester',
    'program', 'facultyCoordinator',
)
UNGROUPED_KEY = 'ungrouped'

PAGE_SIZES = (10, 25, 50, 100)
DEFAULT_PAGE_SIZE = 50


def _text(val):
    if val is None:
        return ''
    return str(val)


def blank_entity(kind, entity_id=''):
    """An entity with every static field present and empty."""
    entity = {'id': entity_id}
    for field in FIELDS[kind]:
        entity[field] = ''
    entity['extra'] = {}
    return entity


def _copy(entity):
    out = dict(entity)
    out['extra'] = dict(entity.get('extra') or {})
    return out


# Filtering

def apply_filter(entities, filters):
    """
    Keep entities matching every populated filter field (exact string match).

    Empty values and "all-*" sentinels impose no constraint; 'course' is
    accepted as an alias of 'program'. Unknown keys are ignored.
    """
    active = {}
    for key, value in (filters or {}).items():
        field = FILTER_ALIASES.get(key, key)
        if field not in FILTER_FIELDS:
            continue
        value = _text(value)
        if not value or value.startswith(FILTER_ANY_PREFIX):
            continue
        active[field] = value
    if not active:
        return list(entities)
    return [
        e for e in entities
        if all(_text(e.get(field)) == value for field, value in active.items())
    ]


# Grouping

def group_projects(entities):
    """
    Fold project entities into one record per groupNo.

    Entities are sorted by groupNo (empty first); the first member of each
    group supplies the shared fields, later members only add themselves to
    'students' and fill a document slot the group still has empty.
    Entities without a groupNo all land in the 'ungrouped' bucket.
    """
    groups = {}
    for project in sorted(entities, key=lambda e: _text(e.get('groupNo'))):
        group_no = _text(project.get('groupNo'))
        key = group_no or UNGROUPED_KEY
        group = groups.get(key)
        if group is None:
            group = {'key': key, 'groupNo': group_no, 'students': []}
            for field in GROUP_SHARED_FIELDS:
                group[field] = _text(project.get(field))
            groups[key] = group

        student = {field: _text(project.get(field)) for field in STUDENT_FIELDS}
        student['extra'] = dict(project.get('extra') or {})
        group['students'].append(student)

        for slot in DOCUMENT_SLOTS['project']:
            if project.get(slot) and not group[slot]:
                group[slot] = project[slot]
    return list(groups.values())


def ungroup_projects(groups):
    """Flatten grouped records back into one project entity per student."""
    flat = []
    for group in groups:
        for student in group['students']:
            project = blank_entity('project', student['id'])
            for field in GROUP_SHARED_FIELDS:
                project[field] = group.get(field, '')
            for field in STUDENT_FIELDS:
                project[field] = student.get(field, '')
            project['groupNo'] = group['groupNo']
            project['extra'] = dict(student.get('extra') or {})
            flat.append(project)
    return flat


# Pagination

def paginate(rows, page=1, page_size=DEFAULT_PAGE_SIZE):
    """Slice one page out of rows; the page number is clamped into range."""
    if page_size not in PAGE_SIZES:
        raise ValidationError(
            f"Page size must be one of {', '.join(str(s) for s in PAGE_SIZES)}"
        )
    total = len(rows)
    total_pages = math.ceil(total / page_size)
    page = max(1, min(page, total_pages))
    start = (page - 1) * page_size
    end = min(start + page_size, total)
    return {
        'rows': rows[start:end],
        'page': page,
        'pageSize': page_size,
        'totalPages': total_pages,
        'total': total,
    }


# Persistence adapter

def _snake(name):
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def _camel(name):
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def to_storage_record(entity):
    """Translate an entity to database column names (rollNo -> roll_no)."""
    row = {}
    for key, value in entity.items():
        if key in TRANSIENT_FLAGS:
            continue
        if key == 'extra':
            row['extra'] = dict(value or {})
        else:
            row[_snake(key)] = value
    return row


def from_storage_record(row):
    """Inverse of to_storage_record."""
    entity = {}
    for key, value in row.items():
        if key == 'extra':
            entity['extra'] = dict(value or {})
        else:
            entity[_camel(key)] = _text(value)
    entity.setdefault('extra', {})
    return entity


class EntityStore:
    """
    Authoritative list of one portal's entities plus the table's edit state.

    Only one row can be edited at a time. Edits happen on a draft copy and
    reach the list only through save_edit().
    """

    def __init__(self, kind, entities=None, logger=None):
        if kind not in KINDS:
            raise ValueError(f"Unknown portal kind: {kind!r}")
        self.kind = kind
        self.logger = logger or logging.getLogger(f'progress_port.store.{kind}')
        self._entities = []
        self._columns = []
        self._listeners = []
        self._editing_id = None
        self._draft = None
        self._seq = itertools.count(1)
        for record in entities or []:
            entity = blank_entity(kind)
            self._merge_into(entity, record)
            if not entity['id']:
                entity['id'] = self._new_id()
            self._entities.append(entity)
        self._register_columns()

    # Reads

    @property
    def entities(self):
        return [_copy(e) for e in self._entities]

    @property
    def dynamic_columns(self):
        return list(self._columns)

    @property
    def editing(self):
        """The draft being edited, or None."""
        return _copy(self._draft) if self._draft is not None else None

    def __len__(self):
        return len(self._entities)

    def get(self, entity_id):
        entity = self._find(entity_id)
        return _copy(entity) if entity is not None else None

    def filter(self, filters=None):
        return apply_filter(self.entities, filters)

    def grouped(self, filters=None):
        if self.kind != 'project':
            raise ValidationError('Only project data can be grouped')
        return group_projects(self.filter(filters))

    def available_sessions(self):
        return sorted({e['session'] for e in self._entities if e.get('session')})

    # Observers

    def subscribe(self, listener):
        """Call listener('changed', payload) after each mutation."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _emit(self, action, **details):
        payload = {'action': action, 'kind': self.kind}
        payload.update(details)
        for listener in list(self._listeners):
            listener('changed', payload)

    # Upload merge

    def natural_key(self, record):
        return tuple(_text(record.get(field)) for field in NATURAL_KEYS[self.kind])

    def upsert_batch(self, entries):
        """
        Merge uploaded records by natural key.

        Existing entities are updated field by field (incoming wins, id is
        kept); unknown keys append a new entity.
        """
        inserted = updated = 0
        for entry in entries:
            key = self.natural_key(entry)
            existing = next(
                (e for e in self._entities if self.natural_key(e) == key), None
            )
            if existing is not None:
                entity_id = existing['id']
                self._merge_into(existing, entry)
                existing['id'] = entity_id
                updated += 1
            else:
                entity = blank_entity(self.kind)
                self._merge_into(entity, entry)
                if not entity['id'] or self._find(entity['id']) is not None:
                    entity['id'] = self._new_id()
                self._entities.append(entity)
                inserted += 1
        self._register_columns()
        self.logger.info(
            '%s upsert: %d inserted, %d updated', self.kind, inserted, updated
        )
        self._emit('upsert', inserted=inserted, updated=updated)
        return {'inserted': inserted, 'updated': updated}

    # Dynamic columns

    def add_dynamic_column(self, name):
        """Register a column and back-fill it with '' on every entity."""
        name = _text(name).strip()
        if not name:
            raise ValidationError('Column name is required')
        if name in FIELDS[self.kind] or name in ('id', 'extra'):
            raise ValidationError(f"'{name}' is already a standard column")
        if name in self._columns:
            return False
        self._columns.append(name)
        self._backfill()
        self.logger.info('%s: added column %r', self.kind, name)
        self._emit('column', column=name)
        return True

    def _register_columns(self):
        for entity in self._entities:
            for column in entity['extra']:
                if column not in self._columns:
                    self._columns.append(column)
        self._backfill()

    def _backfill(self):
        for entity in self._entities:
            for column in self._columns:
                entity['extra'].setdefault(column, '')

    # Row editing

    def _require_idle(self):
        if self._editing_id is not None:
            raise EditConflictError('Please save or cancel the current edit first.')

    def start_edit(self, entity_id):
        self._require_idle()
        entity = self._find(entity_id)
        if entity is None:
            raise KeyError(entity_id)
        draft = _copy(entity)
        draft['isEditing'] = True
        draft['isNew'] = False
        self._editing_id = entity_id
        self._draft = draft
        self._emit('edit-start', id=entity_id)
        return _copy(draft)

    def add_new_row(self):
        """Open a blank draft row; it joins the list only when saved."""
        self._require_idle()
        draft = blank_entity(self.kind, self._new_id())
        for column in self._columns:
            draft['extra'][column] = ''
        draft['isEditing'] = True
        draft['isNew'] = True
        self._editing_id = draft['id']
        self._draft = draft
        self._emit('edit-start', id=draft['id'], new=True)
        return _copy(draft)

    def update_edit(self, changes):
        """Apply field changes to the draft; the list is untouched."""
        if self._draft is None:
            raise EditConflictError('No row is being edited.')
        for key, value in changes.items():
            if key in ('id',) + TRANSIENT_FLAGS:
                continue
            if key == 'extra':
                for column, column_value in (value or {}).items():
                    self._draft['extra'][column] = _text(column_value)
            elif key in FIELDS[self.kind]:
                self._draft[key] = _text(value)
            else:
                self._draft['extra'][key] = _text(value)
        return _copy(self._draft)

    def save_edit(self):
        if self._draft is None:
            raise EditConflictError('No row is being edited.')
        missing = [
            field for field in REQUIRED_ON_SAVE[self.kind]
            if not self._draft.get(field, '').strip()
        ]
        if missing:
            labels = [FIELD_LABELS[field] for field in missing]
            raise EditConflictError(f"{', '.join(labels)} required.")

        is_new = self._draft['isNew']
        entity = {k: v for k, v in self._draft.items() if k not in TRANSIENT_FLAGS}
        if is_new:
            self._entities.append(entity)
        else:
            for i, existing in enumerate(self._entities):
                if existing['id'] == entity['id']:
                    self._entities[i] = entity
                    break
        self._editing_id = None
        self._draft = None
        self._register_columns()
        self.logger.debug('%s: saved row %s', self.kind, entity['id'])
        self._emit('save', id=entity['id'], new=is_new)
        return _copy(entity)

    def cancel_edit(self):
        if self._editing_id is None:
            return
        entity_id = self._editing_id
        self._editing_id = None
        self._draft = None
        self._emit('edit-cancel', id=entity_id)

    def delete_row(self, entity_id):
        """Remove a row; deleting the unsaved new row discards its draft."""
        entity = self._find(entity_id)
        if entity is None:
            if self._editing_id == entity_id and self._draft['isNew']:
                self._editing_id = None
                self._draft = None
                self._emit('delete', id=entity_id, new=True)
                return
            raise KeyError(entity_id)
        self._entities.remove(entity)
        if self._editing_id == entity_id:
            self._editing_id = None
            self._draft = None
        self.logger.info('%s: deleted row %s', self.kind, entity_id)
        self._emit('delete', id=entity_id)

    # Internals

    def _find(self, entity_id):
        return next((e for e in self._entities if e['id'] == entity_id), None)

    def _new_id(self):
        return f'new-{int(time.time() * 1000)}-{next(self._seq)}'

    def _merge_into(self, entity, record):
        """Shallow-merge record over entity; unknown keys become dynamic columns."""
        fields = FIELDS[self.kind]
        for key, value in record.items():
            if key in TRANSIENT_FLAGS:
                continue
            if key == 'extra':
                for column, column_value in (value or {}).items():
                    entity['extra'][column] = _text(column_value)
            elif key == 'id' or key in fields:
                entity[key] = _text(value)
            elif key in FILTER_ALIASES:
                if not record.get(FILTER_ALIASES[key]) and FILTER_ALIASES[key] in fields:
                    entity[FILTER_ALIASES[key]] = _text(value)
            elif key in FIELDS['project'] or key in FIELDS['internship']:
                continue  # standard field of the other portal
            else:
                entity['extra'][key] = _text(value)
