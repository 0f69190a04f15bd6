import pytest

from errors import EditConflictError, ValidationError
from store import (
    EntityStore, apply_filter, from_storage_record, group_projects, paginate,
    to_storage_record, ungroup_projects,
)


@pytest.fixture
def store(projects):
    return EntityStore('project', projects)


@pytest.fixture
def internships():
    return EntityStore('internship', [
        {'id': 'i1', 'rollNo': '201', 'name': 'Kiran', 'program': 'BCA', 'organization': 'Zoho'},
        {'id': 'i2', 'rollNo': '202', 'name': 'Tara', 'program': 'MCA',
         'extra': {'Attendance July': 'Present'}},
    ])


# Upsert

def test_upsert_twice_inserts_then_updates(store):
    batch = [
        {'groupNo': 'G3', 'rollNo': '301', 'name': 'Nisha'},
        {'groupNo': 'G3', 'rollNo': '302', 'name': 'Omar'},
    ]
    assert store.upsert_batch(batch) == {'inserted': 2, 'updated': 0}
    keys_after_first = {store.natural_key(e) for e in store.entities}
    assert store.upsert_batch(batch) == {'inserted': 0, 'updated': 2}
    assert {store.natural_key(e) for e in store.entities} == keys_after_first
    assert len(store) == 5


def test_upsert_merges_over_existing_and_keeps_id(store):
    result = store.upsert_batch([
        {'id': 'upload-1-0', 'groupNo': 'G1', 'rollNo': '101', 'name': 'Asha V', 'email': 'a@x.in'},
    ])
    assert result == {'inserted': 0, 'updated': 1}
    entity = store.get('p1')
    assert entity['name'] == 'Asha V'
    assert entity['email'] == 'a@x.in'
    assert entity['title'] == 'Smart Campus'
    assert store.get('upload-1-0') is None


def test_same_roll_in_other_group_is_a_new_project(store):
    assert store.upsert_batch([{'groupNo': 'G9', 'rollNo': '101', 'name': 'Asha'}]) == {
        'inserted': 1, 'updated': 0,
    }


def test_internship_natural_key_is_roll_and_program(internships):
    result = internships.upsert_batch([
        {'rollNo': '201', 'program': 'BCA', 'organization': 'TCS'},
        {'rollNo': '201', 'program': 'MCA', 'name': 'Kiran'},
    ])
    assert result == {'inserted': 1, 'updated': 1}
    assert internships.get('i1')['organization'] == 'TCS'


def test_upsert_generates_id_when_missing(store):
    store.upsert_batch([{'groupNo': 'G4', 'rollNo': '401', 'name': 'Dev'}])
    new = [e for e in store.entities if e['rollNo'] == '401'][0]
    assert new['id'].startswith('new-')


def test_upsert_strips_transient_flags(store):
    store.upsert_batch([{'groupNo': 'G4', 'rollNo': '401', 'name': 'Dev', 'isEditing': True}])
    new = [e for e in store.entities if e['rollNo'] == '401'][0]
    assert 'isEditing' not in new


# Dynamic columns

def test_dynamic_columns_are_union_of_extras(internships):
    assert internships.dynamic_columns == ['Attendance July']
    assert internships.get('i1')['extra'] == {'Attendance July': ''}


def test_add_dynamic_column_backfills_every_entity(internships):
    assert internships.add_dynamic_column('Attendance August') is True
    for entity in internships.entities:
        assert 'Attendance August' in entity['extra']
    assert internships.get('i2')['extra']['Attendance July'] == 'Present'


def test_add_dynamic_column_twice_is_a_no_op(internships):
    internships.add_dynamic_column('Mentor Remarks')
    assert internships.add_dynamic_column('Mentor Remarks') is False
    assert internships.dynamic_columns.count('Mentor Remarks') == 1


@pytest.mark.parametrize('name', ['', '   ', 'rollNo', 'organization'])
def test_add_dynamic_column_rejects_blank_or_standard_names(internships, name):
    with pytest.raises(ValidationError):
        internships.add_dynamic_column(name)


def test_upsert_introduces_and_backfills_columns(internships):
    internships.upsert_batch([
        {'rollNo': '203', 'name': 'Lena', 'program': 'BSc', 'extra': {'Attendance June': 'P'}},
    ])
    assert 'Attendance June' in internships.dynamic_columns
    assert internships.get('i1')['extra']['Attendance June'] == ''


# Filtering

def test_empty_and_sentinel_filters_are_no_ops(projects):
    assert apply_filter(projects, {}) == projects
    assert apply_filter(projects, None) == projects
    assert apply_filter(projects, {
        'year': '', 'semester': 'all-semesters', 'session': 'all-sessions',
        'program': 'all-courses', 'facultyCoordinator': 'all-coordinators',
    }) == projects


def test_filter_is_exact_and_combined(projects):
    assert [p['id'] for p in apply_filter(projects, {'year': '3'})] == ['p1', 'p2']
    assert [p['id'] for p in apply_filter(projects, {'year': '3', 'program': 'MCA'})] == []
    assert [p['id'] for p in apply_filter(projects, {'session': '2023-2024'})] == ['p3']
    assert apply_filter(projects, {'year': '03'}) == []


def test_filter_accepts_course_alias(projects):
    assert [p['id'] for p in apply_filter(projects, {'course': 'MCA'})] == ['p3']


def test_filter_ignores_unknown_keys(projects):
    assert apply_filter(projects, {'name': 'Asha'}) == projects


# Grouping

def test_group_backfills_document_slot_and_keeps_members(store):
    groups = {g['groupNo']: g for g in group_projects(store.entities)}
    g1 = groups['G1']
    assert g1['form'] == 'proposal.pdf'
    assert len(g1['students']) == 2
    assert g1['title'] == 'Smart Campus'


def test_group_order_and_ungrouped_bucket():
    entities = [
        {'id': 'a', 'groupNo': 'G2', 'rollNo': '1', 'name': 'A'},
        {'id': 'b', 'groupNo': '', 'rollNo': '2', 'name': 'B'},
        {'id': 'c', 'rollNo': '3', 'name': 'C'},
        {'id': 'd', 'groupNo': 'G1', 'rollNo': '4', 'name': 'D'},
    ]
    groups = group_projects(entities)
    assert [g['key'] for g in groups] == ['ungrouped', 'G1', 'G2']
    assert [s['id'] for s in groups[0]['students']] == ['b', 'c']
    assert groups[0]['groupNo'] == ''


def test_ungroup_reproduces_every_student(store):
    original = store.entities
    flat = ungroup_projects(group_projects(original))
    assert sorted(e['id'] for e in flat) == sorted(e['id'] for e in original)
    by_id = {e['id']: e for e in flat}
    assert by_id['p1']['form'] == 'proposal.pdf'
    assert by_id['p3']['groupNo'] == 'G2'
    assert by_id['p2']['rollNo'] == '102'


def test_grouped_view_is_rebuilt_after_writes(store):
    store.upsert_batch([{'groupNo': 'G2', 'rollNo': '104', 'name': 'Zoya'}])
    g2 = [g for g in store.grouped() if g['groupNo'] == 'G2'][0]
    assert [s['rollNo'] for s in g2['students']] == ['103', '104']


def test_internships_cannot_be_grouped(internships):
    with pytest.raises(ValidationError):
        internships.grouped()


# Editing

def test_second_edit_is_rejected_without_state_change(store):
    store.start_edit('p2')
    store.update_edit({'name': 'Ravi K'})
    with pytest.raises(EditConflictError):
        store.start_edit('p1')
    assert store.editing['id'] == 'p2'
    assert store.editing['name'] == 'Ravi K'
    assert store.get('p1')['name'] == 'Asha'


def test_save_requires_group_roll_and_name(store):
    store.start_edit('p1')
    store.update_edit({'groupNo': ''})
    with pytest.raises(EditConflictError, match='Group No'):
        store.save_edit()
    assert store.editing is not None
    assert store.get('p1')['groupNo'] == 'G1'


def test_internship_save_does_not_need_group(internships):
    internships.start_edit('i1')
    saved = internships.save_edit()
    assert saved['id'] == 'i1'


def test_save_writes_draft_and_clears_flags(store):
    store.start_edit('p1')
    store.update_edit({'name': 'Asha Verma', 'Hostel': 'B2'})
    saved = store.save_edit()
    assert 'isEditing' not in saved and 'isNew' not in saved
    assert store.get('p1')['name'] == 'Asha Verma'
    assert store.get('p1')['extra']['Hostel'] == 'B2'
    assert 'Hostel' in store.dynamic_columns
    assert store.editing is None


def test_cancel_discards_changes(store):
    before = store.entities
    store.start_edit('p1')
    store.update_edit({'name': 'Changed'})
    store.cancel_edit()
    assert store.entities == before
    assert store.editing is None


def test_new_row_joins_list_only_when_saved(store):
    draft = store.add_new_row()
    assert draft['isNew'] is True and draft['isEditing'] is True
    assert store.get(draft['id']) is None
    store.update_edit({'groupNo': 'G5', 'rollNo': '501', 'name': 'Ira'})
    store.save_edit()
    assert store.get(draft['id'])['rollNo'] == '501'


def test_cancelled_new_row_is_discarded(store):
    draft = store.add_new_row()
    store.cancel_edit()
    assert store.get(draft['id']) is None
    assert len(store) == 3


def test_new_internship_row_prefills_dynamic_columns(internships):
    draft = internships.add_new_row()
    assert draft['extra'] == {'Attendance July': ''}


def test_delete_clears_edit_of_deleted_row(store):
    store.start_edit('p3')
    store.delete_row('p3')
    assert store.get('p3') is None
    assert store.editing is None
    store.start_edit('p1')


def test_delete_other_row_keeps_edit(store):
    store.start_edit('p1')
    store.delete_row('p3')
    assert store.editing['id'] == 'p1'


def test_delete_unsaved_new_row_discards_draft(store):
    events = []
    store.subscribe(lambda event, payload: events.append(payload['action']))
    draft = store.add_new_row()
    store.delete_row(draft['id'])
    assert store.editing is None
    assert store.get(draft['id']) is None
    assert len(store) == 3
    assert events[-1] == 'delete'
    store.start_edit('p1')


def test_delete_unknown_row_raises_key_error(store):
    with pytest.raises(KeyError):
        store.delete_row('missing')


def test_update_without_edit_is_rejected(store):
    with pytest.raises(EditConflictError):
        store.update_edit({'name': 'x'})
    with pytest.raises(EditConflictError):
        store.save_edit()


# Observers

def test_subscribers_hear_each_mutation(store):
    events = []
    unsubscribe = store.subscribe(lambda event, payload: events.append((event, payload['action'])))
    store.upsert_batch([{'groupNo': 'G8', 'rollNo': '801', 'name': 'Ana'}])
    store.start_edit('p1')
    store.save_edit()
    store.delete_row('p1')
    assert events == [
        ('changed', 'upsert'), ('changed', 'edit-start'),
        ('changed', 'save'), ('changed', 'delete'),
    ]
    unsubscribe()
    store.delete_row('p2')
    assert len(events) == 4


# Pagination & persistence

def test_paginate_clamps_page():
    rows = list(range(23))
    page = paginate(rows, page=9, page_size=10)
    assert page['page'] == 3
    assert page['rows'] == [20, 21, 22]
    assert page['totalPages'] == 3
    assert paginate(rows, page=0, page_size=10)['rows'] == list(range(10))


def test_paginate_empty_and_invalid_size():
    assert paginate([], page=1, page_size=50)['rows'] == []
    with pytest.raises(ValidationError):
        paginate([1], page=1, page_size=7)


def test_storage_record_uses_snake_case(store):
    store.start_edit('p1')
    draft = store.editing
    row = to_storage_record(draft)
    assert row['roll_no'] == '101'
    assert row['faculty_coordinator'] == ''
    assert 'is_editing' not in row and 'isEditing' not in row
    back = from_storage_record(row)
    assert back['rollNo'] == '101'
    assert back['facultyCoordinator'] == ''
    assert back['extra'] == draft['extra']
