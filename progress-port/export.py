"""
Export modules: PDF report of the filtered table and a JSON dump.
"""

import json
from datetime import datetime
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

PROJECT_COLUMNS = [
    ('groupNo', 'Group No.'),
    ('rollNo', 'Roll No.'),
    ('name', 'Name'),
    ('email', 'Email'),
    ('phoneNo', 'Phone'),
    ('title', 'Title'),
    ('domain', 'Domain'),
    ('facultyMentor', 'Faculty Mentor'),
    ('industryMentor', 'Industry Mentor'),
]
INTERNSHIP_COLUMNS = [
    ('rollNo', 'Roll No.'),
    ('name', 'Name'),
    ('program', 'Program'),
    ('organization', 'Organization'),
    ('dates', 'Dates'),
    ('noc', 'NOC'),
    ('offerLetter', 'Offer Letter'),
    ('pop', 'PoP'),
]
FILTER_LABELS = {
    'year': 'Year',
    'semester': 'Semester',
    'session': 'Session',
    'program': 'Program',
    'course': 'Program',
    'facultyCoordinator': 'Faculty Coordinator',
}

HEADER_FILL = colors.Color(0 / 255, 96 / 255, 170 / 255)
ALT_ROW_FILL = colors.Color(240 / 255, 240 / 255, 240 / 255)


def table_columns(kind, dynamic_columns=None):
    """(field, label) pairs for the report; dynamic columns come last."""
    if kind == 'project':
        return list(PROJECT_COLUMNS)
    return list(INTERNSHIP_COLUMNS) + [(c, c) for c in dynamic_columns or []]


def _cell(entity, field):
    if field in entity:
        return entity[field] or ''
    return (entity.get('extra') or {}).get(field, '')


def table_rows(entities, columns):
    return [[_cell(e, field) for field, _ in columns] for e in entities]


def _active_filters(filters):
    lines = []
    for key, value in (filters or {}).items():
        if value and not str(value).startswith('all-'):
            lines.append(f"{FILTER_LABELS.get(key, key)}: {value}")
    return lines


def export_pdf(entities, filters, title, kind, output, dynamic_columns=None):
    """
    Render the filtered table as a landscape A4 PDF.

    output is a file path or a writable binary file object.
    """
    doc = SimpleDocTemplate(
        output, pagesize=landscape(A4),
        leftMargin=0.5 * inch, rightMargin=0.5 * inch,
        topMargin=0.5 * inch, bottomMargin=0.5 * inch,
        title=title,
    )
    styles = getSampleStyleSheet()
    header_style = ParagraphStyle(
        'TableHeader', parent=styles['Normal'], fontName='Helvetica-Bold',
        fontSize=8, textColor=colors.white,
    )
    cell_style = ParagraphStyle(
        'TableCell', parent=styles['Normal'], fontName='Helvetica', fontSize=8,
    )

    story = [Paragraph(escape(title), styles['Title'])]
    for line in _active_filters(filters):
        story.append(Paragraph(escape(line), styles['Normal']))
    story.append(Paragraph(
        escape(f"Generated {datetime.now().strftime('%d-%b-%Y %H:%M')} | {len(entities)} record(s)"),
        styles['Normal'],
    ))
    story.append(Spacer(1, 0.15 * inch))

    columns = table_columns(kind, dynamic_columns)
    data = [[Paragraph(escape(label), header_style) for _, label in columns]]
    for row in table_rows(entities, columns):
        data.append([Paragraph(escape(str(v)), cell_style) for v in row])

    table = Table(data, repeatRows=1)
    style = [
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_FILL),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]
    for ri in range(2, len(data), 2):
        style.append(('BACKGROUND', (0, ri), (-1, ri), ALT_ROW_FILL))
    table.setStyle(TableStyle(style))
    story.append(table)

    doc.build(story)


def export_json(data, output_path):
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
