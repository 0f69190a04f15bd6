#!/usr/bin/env python3
"""
Progress Port CLI: parse a student upload sheet, report on it, export it,
or launch the portal API.

Usage:
    python cli.py                                           # Launch API server
    python cli.py sheet.xlsx -y 3 -s 5 --program "BTech CSE"       # Validation report
    python cli.py sheet.xlsx -y 3 -s 5 --program BCA --json out.json
    python cli.py sheet.xlsx -y 3 -s 5 --program BCA --pdf out.pdf --portal internship
"""

import argparse
import logging
import os
import sys

from config import load_config
from errors import ProgressPortError
from upload import process_upload

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(message)s'


def setup_logging(level):
    logger = logging.getLogger('progress_port')
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


def main(argv=None):
    config = load_config()
    ap = argparse.ArgumentParser(
        description='Progress Port: student project and internship tracking'
    )
    ap.add_argument(
        'file',
        nargs='?',
        help='Path to an .xlsx or .xls upload sheet (omit to launch the server)'
    )
    ap.add_argument(
        '--portal',
        choices=['project', 'internship'],
        default='project',
        help='Which portal the sheet belongs to (default: project)'
    )
    ap.add_argument('--year', '-y', default='', help='Year the sheet covers')
    ap.add_argument('--semester', '-s', default='', help='Semester the sheet covers')
    ap.add_argument('--program', '--course', '-c', default='', help='Program / course')
    ap.add_argument('--coordinator', default='', help='Faculty coordinator')
    ap.add_argument('--session', default='', help='Academic session, e.g. 2024-2025')
    ap.add_argument(
        '--json', '-j',
        default=None,
        metavar='OUTPUT.json',
        help='Export mapped records as JSON'
    )
    ap.add_argument(
        '--pdf',
        default=None,
        metavar='OUTPUT.pdf',
        help='Export mapped records as a PDF report'
    )
    ap.add_argument(
        '--port', '-p',
        type=int,
        default=int(os.environ.get('PORT', 8080)),
        help='Server port (default: 8080)'
    )
    ap.add_argument(
        '--host',
        default=os.environ.get('HOST', '127.0.0.1'),
        help='Server host (default: 127.0.0.1)'
    )
    ap.add_argument(
        '--log-level',
        default=config['LOG_LEVEL'],
        help='Logging level (default: %(default)s)'
    )

    args = ap.parse_args(argv)
    logger = setup_logging(args.log_level)

    if not args.file:
        from server import run_server
        print(f"\n  Starting Progress Port API at http://{args.host}:{args.port}")
        print("  Press Ctrl+C to stop\n")
        run_server(host=args.host, port=args.port)
        return 0

    filepath = args.file
    if not os.path.exists(filepath):
        print(f"Error: File not found: {filepath}", file=sys.stderr)
        return 1

    metadata = {
        'year': args.year,
        'semester': args.semester,
        'program': args.program,
        'facultyCoordinator': args.coordinator,
        'session': args.session,
    }

    print(f"Parsing: {filepath}")
    try:
        with open(filepath, 'rb') as f:
            result = process_upload(
                f.read(), os.path.basename(filepath), metadata,
                logger=logger.getChild('upload'),
            )
    except ProgressPortError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    from store import EntityStore
    store = EntityStore(args.portal, logger=logger.getChild('store'))
    counts = store.upsert_batch(result['entries'])

    # Validation report
    preview = result['preview']
    print(f"\n  Rows:         {len(result['entries'])}")
    print(f"  Students:     {counts['inserted']} unique, {counts['updated']} duplicate row(s)")
    if store.dynamic_columns:
        print(f"  Extra cols:   {', '.join(store.dynamic_columns)}")
    for warning in result['warnings']:
        print(f"\n  Warning: {warning}")

    print("\n  Column mapping:")
    from parser import normalize_header
    for header in preview['headers']:
        print(f"    {header!r:30s} → {normalize_header(header)}")

    if args.json:
        from export import export_json
        export_json(store.entities, args.json)
        print(f"\n  JSON exported to: {args.json}")

    if args.pdf:
        from export import export_pdf
        title = f"{args.portal.capitalize()} Portal - Data Export"
        export_pdf(
            store.entities, metadata, title, args.portal, args.pdf,
            dynamic_columns=store.dynamic_columns,
        )
        print(f"\n  PDF exported to: {args.pdf}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
