"""
Submission-form wizard: validates FormSettings and describes the form.

build_form_fields() gives the portal-neutral field list
({fieldName, label, type, required, choices?}); build_form_requests()
turns it into Google Forms batchUpdate requests. Sending them is left to
whatever client the deployment has.
"""

from errors import ValidationError

PROJECT_BASE_FIELDS = [
    'groupNo', 'title', 'domain', 'facultyMentor', 'industryMentor',
    'facultyCoordinator',
]
PROJECT_STUDENT_FIELDS = ['rollNo', 'name', 'email', 'phoneNo']
INTERNSHIP_BASE_FIELDS = ['rollNo', 'name', 'program', 'organization', 'dates']

PDF_FIELDS = {
    'project': ['form', 'presentation', 'report'],
    'internship': ['noc', 'offerLetter', 'pop'],
}

FIELD_LABELS = {
    'groupNo': 'Group Number',
    'rollNo': 'Roll Number',
    'name': 'Student Name',
    'email': 'Email',
    'phoneNo': 'Phone Number',
    'title': 'Project Title',
    'domain': 'Domain',
    'facultyMentor': 'Faculty Mentor',
    'industryMentor': 'Industry Mentor',
    'facultyCoordinator': 'Faculty Coordinator',
    'program': 'Program',
    'organization': 'Organization',
    'dates': 'Dates',
    'form': 'Form Document',
    'presentation': 'Presentation',
    'report': 'Report',
    'noc': 'NOC',
    'offerLetter': 'Offer Letter',
    'pop': 'Proof of Participation',
}

DEFAULT_MIN_STUDENTS = 1
DEFAULT_MAX_STUDENTS = 4
MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _as_int(value, name):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be a whole number')


def validate_form_settings(raw):
    """
    Check and normalise a FormSettings dict.

    Fills defaults: includeFields/pdfFields from the portal type,
    customFields empty, minStudents/maxStudents 1 and 4 for projects.
    """
    if not isinstance(raw, dict):
        raise ValidationError('Form settings must be an object')
    portal = raw.get('portalType')
    if portal not in ('project', 'internship'):
        raise ValidationError("portalType must be 'project' or 'internship'")

    settings = {'portalType': portal}
    for field in ('title', 'session', 'year', 'semester'):
        value = str(raw.get(field) or '').strip()
        if not value:
            raise ValidationError(f'{field.capitalize()} is required')
        settings[field] = value
    settings['program'] = str(raw.get('program') or '').strip()

    base = PROJECT_BASE_FIELDS + PROJECT_STUDENT_FIELDS if portal == 'project' else INTERNSHIP_BASE_FIELDS
    include = raw.get('includeFields')
    settings['includeFields'] = list(base if include is None else include)
    unknown = [f for f in settings['includeFields'] if f not in base]
    if unknown:
        raise ValidationError(f"Unknown fields for {portal} form: {', '.join(unknown)}")

    pdf = raw.get('pdfFields')
    settings['pdfFields'] = list(PDF_FIELDS[portal] if pdf is None else pdf)
    unknown = [f for f in settings['pdfFields'] if f not in PDF_FIELDS[portal]]
    if unknown:
        raise ValidationError(f"Unknown document fields: {', '.join(unknown)}")

    settings['customFields'] = [
        str(f).strip() for f in raw.get('customFields') or [] if str(f).strip()
    ]

    if portal == 'project':
        low = _as_int(raw.get('minStudents', DEFAULT_MIN_STUDENTS), 'minStudents')
        high = _as_int(raw.get('maxStudents', DEFAULT_MAX_STUDENTS), 'maxStudents')
        if low < 1 or high < low:
            raise ValidationError('Students per group must satisfy 1 <= min <= max')
        settings['minStudents'] = low
        settings['maxStudents'] = high
    return settings


def _field(name, label, type_, required, choices=None):
    field = {'fieldName': name, 'label': label, 'type': type_, 'required': required}
    if choices:
        field['choices'] = list(choices)
    return field


def build_form_fields(settings):
    """Field list for a validated FormSettings dict."""
    include = settings['includeFields']
    fields = []

    if settings['portalType'] == 'project':
        for name in PROJECT_BASE_FIELDS:
            if name in include:
                fields.append(_field(name, FIELD_LABELS[name], 'text', True))
        for n in range(1, settings['maxStudents'] + 1):
            required = n <= settings['minStudents']
            for name in PROJECT_STUDENT_FIELDS:
                if name in include:
                    fields.append(_field(
                        f'student{n}_{name}',
                        f'Student {n} {FIELD_LABELS[name]}',
                        'text', required,
                    ))
    else:
        for name in INTERNSHIP_BASE_FIELDS:
            if name in include:
                fields.append(_field(name, FIELD_LABELS[name], 'text', True))

    for name in settings['customFields']:
        fields.append(_field(name, name, 'paragraph', False))
    for name in settings['pdfFields']:
        fields.append(_field(name, f'Upload {FIELD_LABELS[name]}', 'file', True))

    meta = [('session', 'Session'), ('year', 'Year'), ('semester', 'Semester')]
    if settings.get('program'):
        meta.append(('program', 'Program'))
    for name, label in meta:
        fields.append(_field(
            f'meta_{name}', f'{label} (Do not modify)', 'text', True,
            choices=[settings[name]],
        ))
    return fields


def _question(field):
    if field['type'] == 'file':
        body = {'fileUploadQuestion': {
            'maxFiles': 1,
            'maxFileSize': MAX_UPLOAD_BYTES,
            'types': ['PDF'],
        }}
    elif field.get('choices'):
        body = {'choiceQuestion': {
            'type': 'DROP_DOWN',
            'options': [{'value': c} for c in field['choices']],
        }}
    else:
        body = {'textQuestion': {'paragraph': field['type'] == 'paragraph'}}
    body['required'] = field['required']
    return body


def build_form_requests(settings):
    """Google Forms batchUpdate body creating every item of the form."""
    portal_label = 'project' if settings['portalType'] == 'project' else 'internship'
    description = (
        f"This form collects {portal_label} details for "
        f"{settings.get('program') or 'all programs'} for {settings['session']}. "
        f"Please fill all required fields accurately."
    )
    requests = [{
        'updateFormInfo': {
            'info': {'description': description},
            'updateMask': 'description',
        }
    }]
    for index, field in enumerate(build_form_fields(settings)):
        requests.append({
            'createItem': {
                'item': {
                    'title': field['label'],
                    'questionItem': {'question': _question(field)},
                },
                'location': {'index': index},
            }
        })
    return {
        'info': {'title': settings['title'], 'documentTitle': settings['title']},
        'requests': requests,
    }
