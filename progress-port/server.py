"""
Flask server: JSON API for the Project and Internship portals.
"""

import functools
import io
import json
import logging

from flask import Flask, Response, request, send_file, session

from auth import authenticate
from config import load_config
from documents import document_filename, drive_document_filename, resolve_column
from errors import EditConflictError
from export import export_pdf
from forms import build_form_fields, build_form_requests, validate_form_settings
from samples import generate_sample_internships, generate_sample_projects
from store import EntityStore, FILTER_ALIASES, FILTER_FIELDS, paginate
from upload import process_upload

EXPORT_TITLES = {
    'projects': 'Project Portal - Data Export',
    'internships': 'Internship Portal - Data Export',
}
METADATA_FIELDS = ('year', 'semester', 'program', 'course', 'facultyCoordinator', 'session')


def _json(payload, status=200):
    return Response(
        json.dumps(payload, ensure_ascii=False),
        status=status,
        mimetype='application/json'
    )


def _error(message, status):
    return _json({'error': message}, status=status)


def _filters_from(source):
    keys = FILTER_FIELDS + tuple(FILTER_ALIASES)
    return {k: source.get(k) for k in keys if source.get(k)}


def create_app(config=None, projects=None, internships=None, logger=None):
    cfg = load_config(config)
    app = Flask(__name__)
    app.config.update(cfg)
    log = logger or logging.getLogger('progress_port.server')

    if projects is None:
        projects = generate_sample_projects(cfg['SAMPLE_PROJECTS'])
    if internships is None:
        internships = generate_sample_internships(cfg['SAMPLE_INTERNSHIPS'])
    app.stores = {
        'projects': EntityStore('project', projects),
        'internships': EntityStore('internship', internships),
    }

    def api(view):
        """Require a logged-in faculty user and turn errors into JSON."""
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            if 'user' not in session:
                return _error('Login required', 401)
            portal = kwargs.get('portal')
            if portal is not None and portal not in app.stores:
                return _error(f'Unknown portal: {portal}', 404)
            try:
                return view(*args, **kwargs)
            except KeyError:
                return _error('Not found', 404)
            except EditConflictError as e:
                return _error(str(e), 409)
            except ValueError as e:
                return _error(str(e), 422)
            except Exception as e:
                log.exception('Unhandled error in %s', request.path)
                return _error(f'Internal error: {e}', 500)
        return wrapper

    # Auth

    @app.route('/api/login', methods=['POST'])
    def login():
        body = request.get_json(silent=True) or {}
        user = authenticate(body.get('username'), body.get('password'))
        if user is None:
            return _error('Invalid username or password', 401)
        session['user'] = user
        log.info('Login: %s', user['username'])
        return _json(user)

    @app.route('/api/logout', methods=['POST'])
    def logout():
        session.pop('user', None)
        return _json({'ok': True})

    @app.route('/api/me')
    @api
    def me():
        return _json(session['user'])

    # Table data

    @app.route('/api/<portal>')
    @api
    def list_entries(portal):
        store = app.stores[portal]
        filters = _filters_from(request.args)
        grouped = request.args.get('grouped') in ('1', 'true') and portal == 'projects'
        rows = store.grouped(filters) if grouped else store.filter(filters)
        page = paginate(
            rows,
            page=request.args.get('page', 1, type=int),
            page_size=request.args.get('pageSize', app.config['PAGE_SIZE'], type=int),
        )
        page.update({
            'grouped': grouped,
            'dynamicColumns': store.dynamic_columns,
            'sessions': store.available_sessions(),
            'editing': store.editing,
        })
        return _json(page)

    @app.route('/api/<portal>/columns')
    @api
    def list_columns(portal):
        return _json({'dynamicColumns': app.stores[portal].dynamic_columns})

    @app.route('/api/<portal>/columns', methods=['POST'])
    @api
    def add_column(portal):
        body = request.get_json(silent=True) or {}
        added = app.stores[portal].add_dynamic_column(body.get('name'))
        return _json({'added': added, 'dynamicColumns': app.stores[portal].dynamic_columns})

    # Excel upload

    def _run_upload():
        if 'file' not in request.files:
            return None, _error('No file provided', 400)
        f = request.files['file']
        if not f.filename:
            return None, _error('No file selected', 400)
        metadata = {k: request.form.get(k, '') for k in METADATA_FIELDS}
        result = process_upload(f.read(), f.filename, metadata, logger=log)
        return result, None

    def _upload_summary(result):
        return {
            'count': len(result['entries']),
            'warnings': [str(w) for w in result['warnings']],
            'missingRequiredFields': result['missingRequiredFields'],
            'preview': result['preview'],
        }

    @app.route('/api/<portal>/upload/preview', methods=['POST'])
    @api
    def upload_preview(portal):
        result, failure = _run_upload()
        if failure is not None:
            return failure
        summary = _upload_summary(result)
        summary['entries'] = result['entries']
        return _json(summary)

    @app.route('/api/<portal>/upload', methods=['POST'])
    @api
    def upload(portal):
        result, failure = _run_upload()
        if failure is not None:
            return failure
        summary = _upload_summary(result)
        summary.update(app.stores[portal].upsert_batch(result['entries']))
        return _json(summary)

    # Row editing

    @app.route('/api/<portal>/rows', methods=['POST'])
    @api
    def new_row(portal):
        return _json(app.stores[portal].add_new_row(), status=201)

    @app.route('/api/<portal>/rows/<entity_id>/edit', methods=['POST'])
    @api
    def start_edit(portal, entity_id):
        return _json(app.stores[portal].start_edit(entity_id))

    @app.route('/api/<portal>/edit', methods=['PUT'])
    @api
    def update_edit(portal):
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return _error('Expected a JSON object of field values', 400)
        return _json(app.stores[portal].update_edit(body))

    @app.route('/api/<portal>/edit/save', methods=['POST'])
    @api
    def save_edit(portal):
        return _json(app.stores[portal].save_edit())

    @app.route('/api/<portal>/edit/cancel', methods=['POST'])
    @api
    def cancel_edit(portal):
        app.stores[portal].cancel_edit()
        return _json({'ok': True})

    @app.route('/api/<portal>/rows/<entity_id>', methods=['DELETE'])
    @api
    def delete_row(portal, entity_id):
        app.stores[portal].delete_row(entity_id)
        return _json({'ok': True})

    # Documents

    @app.route('/api/<portal>/edit/documents', methods=['POST'])
    @api
    def link_document(portal):
        store = app.stores[portal]
        draft = store.editing
        if draft is None:
            raise EditConflictError('Start editing a row before linking documents.')
        body = request.get_json(silent=True) or {}
        slot = body.get('slot')
        if body.get('driveLink'):
            name = drive_document_filename(store.kind, draft, slot, body['driveLink'])
        else:
            name = document_filename(store.kind, draft, slot, body.get('filename'))
        return _json(store.update_edit({slot: name}))

    @app.route('/api/<portal>/documents/column', methods=['POST'])
    @api
    def select_document_column(portal):
        store = app.stores[portal]
        body = request.get_json(silent=True) or {}
        column, dynamic = resolve_column(
            store.kind, body.get('columnType'), body.get('customName')
        )
        added = store.add_dynamic_column(column) if dynamic else False
        return _json({'column': column, 'added': added})

    # Export & forms

    @app.route('/api/<portal>/export/pdf', methods=['POST'])
    @api
    def export_pdf_endpoint(portal):
        store = app.stores[portal]
        body = request.get_json(silent=True) or {}
        filters = _filters_from(body.get('filters') or {})
        title = body.get('title') or EXPORT_TITLES[portal]
        buf = io.BytesIO()
        export_pdf(
            store.filter(filters), filters, title, store.kind, buf,
            dynamic_columns=store.dynamic_columns,
        )
        buf.seek(0)
        return send_file(
            buf,
            mimetype='application/pdf',
            as_attachment=True,
            download_name=f'{store.kind}_data.pdf'
        )

    @app.route('/api/forms', methods=['POST'])
    @api
    def create_form():
        settings = validate_form_settings(request.get_json(silent=True))
        return _json({
            'settings': settings,
            'fields': build_form_fields(settings),
            'request': build_form_requests(settings),
        })

    return app


def run_server(host='127.0.0.1', port=8080, config=None):
    app = create_app(config=config)
    app.run(host=host, port=port, debug=False)
