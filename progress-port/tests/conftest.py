import io

import pytest
from openpyxl import Workbook

from server import create_app


def make_xlsx(rows, extra_sheets=None):
    """Build an .xlsx payload in memory; rows[0] is the header row."""
    wb = Workbook()
    ws = wb.active
    ws.title = 'Students'
    for row in rows:
        ws.append(row)
    for title, sheet_rows in (extra_sheets or {}).items():
        extra = wb.create_sheet(title)
        for row in sheet_rows:
            extra.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def make_xls(rows, date_columns=()):
    """Build a legacy .xls payload with xlwt; cells in date_columns get a date format."""
    import xlwt
    wb = xlwt.Workbook()
    ws = wb.add_sheet('Students')
    date_style = xlwt.easyxf(num_format_str='YYYY-MM-DD')
    for ri, row in enumerate(rows):
        for ci, value in enumerate(row):
            if value is None:
                continue
            if ri > 0 and ci in date_columns:
                ws.write(ri, ci, value, date_style)
            else:
                ws.write(ri, ci, value)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


SCENARIO_A_ROWS = [
    ['S.No', 'Enrollment No', 'Student Name', 'Branch'],
    [1, '21001', 'Asha Verma', 'BTech CSE'],
]
SCENARIO_A_METADATA = {'year': '3', 'semester': '5', 'course': 'BTech CSE'}


@pytest.fixture
def scenario_a_payload():
    return make_xlsx(SCENARIO_A_ROWS)


@pytest.fixture
def projects():
    return [
        {'id': 'p1', 'groupNo': 'G1', 'rollNo': '101', 'name': 'Asha', 'title': 'Smart Campus',
         'form': '', 'year': '3', 'semester': '5', 'program': 'BCA', 'session': '2024-2025'},
        {'id': 'p2', 'groupNo': 'G1', 'rollNo': '102', 'name': 'Ravi', 'title': 'Other Title',
         'form': 'proposal.pdf', 'year': '3', 'semester': '5', 'program': 'BCA', 'session': '2024-2025'},
        {'id': 'p3', 'groupNo': 'G2', 'rollNo': '103', 'name': 'Meera', 'title': 'Crop AI',
         'year': '4', 'semester': '7', 'program': 'MCA', 'session': '2023-2024'},
    ]


@pytest.fixture
def app(projects):
    app = create_app(
        config={'SECRET_KEY': 'test', 'TESTING': True},
        projects=projects,
        internships=[
            {'id': 'i1', 'rollNo': '201', 'name': 'Kiran', 'program': 'BCA',
             'organization': 'Zoho', 'year': '2', 'semester': '4'},
        ],
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client):
    resp = client.post('/api/login', json={'username': 'faculty1', 'password': 'password1'})
    assert resp.status_code == 200
    return client
