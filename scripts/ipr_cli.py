#!/usr/bin/env python3
"""
Patent register CLI - Dual Mode

This script can operate in two modes:
1. Direct mode (default): Works on the database through the services
2. API mode: Makes HTTP requests to the FastAPI backend

Usage:
    # Direct mode
    python scripts/ipr_cli.py import --file KLE-IPR.xlsx
    python scripts/ipr_cli.py export --output backup.xlsx
    python scripts/ipr_cli.py stats

    # API mode (synchronous, or queued with --background)
    python scripts/ipr_cli.py import --file KLE-IPR.xlsx --api-url http://localhost:8000
"""

import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import time
import logging
from typing import Optional

import click
from dotenv import load_dotenv
import requests

from backend.database import create_db_engine, create_session_factory, describe_url
from backend.models import Base
from backend.models.job import FINISHED_STATUSES
from services.bootstrap_service import initialize_database
from services.export_service import export_patents
from services.patent_import_service import PatentImportService, DEFAULT_WORKBOOK_PATH
from services.portfolio_service import dashboard_stats, renewals_due_within, renewal_table_text, sort_by_filed_date
from services.patent_store import PatentStore

# Load environment variables
load_dotenv()

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FILE = os.getenv('CLI_LOG_FILE')

handlers = [logging.StreamHandler(sys.stderr)]
if LOG_FILE:
    handlers.append(logging.FileHandler(LOG_FILE))

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=handlers
)

logger = logging.getLogger('ipr_cli')

DEFAULT_DATABASE_URL = 'sqlite:///ipr_tracker.db'
XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def open_session(database_url: str):
    """Create tables if needed and return a new session."""
    engine = create_db_engine(database_url)
    Base.metadata.create_all(engine)
    return create_session_factory(engine)()


def show_progress(stage: str, percent: float, message: str):
    bar_length = 40
    filled = int(bar_length * percent / 100)
    bar = '█' * filled + '░' * (bar_length - filled)
    click.echo(f"\r[{bar}] {percent:.1f}% - {stage}: {message}", nl=False)


def print_import_result(result: dict):
    """Print an import result dict and exit non-zero on fatal failure."""
    if not result.get('success'):
        message = '; '.join(result.get('errors') or []) or 'Unknown error'
        click.echo(f"\n✗ Import failed: {message}", err=True)
        sys.exit(1)

    click.echo(f"\n✓ Imported {result.get('imported', 0)} patents")
    click.echo(f"  Created: {result.get('created', 0)}")
    click.echo(f"  Updated: {result.get('updated', 0)}")
    click.echo(f"  Skipped (no application number): {result.get('skipped', 0)}")

    errors = result.get('errors') or []
    if errors:
        click.echo(f"\n⚠️  {len(errors)} rows failed:", err=True)
        for error in errors[:20]:
            click.echo(f"  {error}", err=True)
        if len(errors) > 20:
            click.echo(f"  ... and {len(errors) - 20} more", err=True)


@click.group()
@click.option('--database-url', envvar='DATABASE_URL', default=DEFAULT_DATABASE_URL,
              show_default=True, help='Database for direct mode')
@click.pass_context
def cli(ctx, database_url):
    """KLE IPR patent register tools."""
    ctx.ensure_object(dict)
    ctx.obj['database_url'] = database_url


@cli.command('import')
@click.option('--file', '-f', 'file_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Path to the patent register workbook')
@click.option('--api-url', envvar='API_URL', help='FastAPI backend URL (enables API mode)')
@click.option('--background', is_flag=True, help='API mode: queue a job and poll until it finishes')
@click.pass_context
def import_cmd(ctx, file_path: str, api_url: Optional[str], background: bool):
    """Import (upsert) patents from a workbook."""
    if api_url:
        click.echo(f"🌐 API Mode: Using backend at {api_url}")
        if background:
            import_via_job(api_url, file_path)
        else:
            import_via_api(api_url, file_path)
    else:
        click.echo(f"💾 Direct Mode: {describe_url(ctx.obj['database_url'])}")
        import_direct(ctx.obj['database_url'], file_path)


@cli.command('import-default')
@click.option('--file', '-f', 'file_path', default=DEFAULT_WORKBOOK_PATH, show_default=True,
              help='Bundled register location')
@click.pass_context
def import_default_cmd(ctx, file_path: str):
    """Re-import the bundled patent register."""
    session = open_session(ctx.obj['database_url'])
    try:
        service = PatentImportService(session, progress_callback=show_progress, default_workbook_path=file_path)
        result = service.import_default_file()
        click.echo()
        print_import_result(result.to_dict())
    finally:
        session.close()


@cli.command('init-db')
@click.option('--file', '-f', 'file_path', default=DEFAULT_WORKBOOK_PATH, show_default=True,
              help='Bundled register location')
@click.pass_context
def init_db_cmd(ctx, file_path: str):
    """Create tables and seed an empty database from the bundled register."""
    session = open_session(ctx.obj['database_url'])
    try:
        service = PatentImportService(session, default_workbook_path=file_path)
        if not initialize_database(session, service):
            click.echo("✗ Database initialization failed, see log", err=True)
            sys.exit(1)
        click.echo(f"✓ Database ready with {PatentStore(session).count()} patents")
    finally:
        session.close()


@cli.command('export')
@click.option('--output', '-o', type=click.Path(dir_okay=False),
              help='Output file (default: dated file name in the current directory)')
@click.pass_context
def export_cmd(ctx, output: Optional[str]):
    """Export every patent to a workbook."""
    session = open_session(ctx.obj['database_url'])
    try:
        filename, content = export_patents(session)
    finally:
        session.close()

    target = Path(output or filename)
    target.write_bytes(content)
    click.echo(f"✓ Exported to {target}")


@cli.command('stats')
@click.pass_context
def stats_cmd(ctx):
    """Print portfolio counters."""
    session = open_session(ctx.obj['database_url'])
    try:
        stats = dashboard_stats(session)
    finally:
        session.close()

    click.echo("\nPortfolio")
    click.echo("=" * 40)
    click.echo(f"Total patents:        {stats['total_patents']}")
    click.echo(f"Granted:              {stats['granted']}")
    click.echo(f"Under examination:    {stats['under_examination']}")
    click.echo(f"Abandoned/ceased:     {stats['abandoned']}")
    click.echo(f"Renewals due 0-30d:   {stats['renewals_due_30']}")
    click.echo(f"Renewals due 31-60d:  {stats['renewals_due_60']}")
    click.echo(f"Renewals due 61-90d:  {stats['renewals_due_90']}")
    click.echo(f"Renewals overdue:     {stats['renewals_overdue']}")
    click.echo(f"Payments recorded:    {stats['total_payments']}")


@cli.command('renewals')
@click.option('--days', '-d', default=30, show_default=True, type=click.IntRange(min=1),
              help='Look-ahead window in days')
@click.pass_context
def renewals_cmd(ctx, days: int):
    """Print upcoming renewals as a text table."""
    session = open_session(ctx.obj['database_url'])
    try:
        due = renewals_due_within(sort_by_filed_date(PatentStore(session).all()), days)
        if not due:
            click.echo(f"No renewals due in the next {days} days")
            return
        click.echo(renewal_table_text(due))
    finally:
        session.close()


# ============================================================================
# Direct Mode Implementation (Uses Services Directly)
# ============================================================================

def import_direct(database_url: str, file_path: str):
    click.echo(f"\n📁 Importing: {file_path}")

    session = open_session(database_url)
    try:
        service = PatentImportService(session, progress_callback=show_progress)
        result = service.import_file(file_path)
        click.echo()
        print_import_result(result.to_dict())
    finally:
        session.close()


# ============================================================================
# API Mode Implementation (Uses FastAPI Backend)
# ============================================================================

def _upload(url: str, file_path: str, timeout: int) -> requests.Response:
    with open(file_path, 'rb') as f:
        files = {'file': (Path(file_path).name, f, XLSX_MEDIA_TYPE)}
        return requests.post(url, files=files, timeout=timeout)


def import_via_api(api_url: str, file_path: str):
    """Upload and import synchronously."""
    click.echo(f"\n📤 Uploading {file_path} to {api_url}...")

    try:
        response = _upload(f"{api_url}/api/import/upload", file_path, timeout=300)
    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Network error: {e}", err=True)
        sys.exit(1)

    if response.status_code != 200:
        click.echo(f"❌ Upload failed ({response.status_code}): {response.text}", err=True)
        sys.exit(1)

    print_import_result(response.json())


def import_via_job(api_url: str, file_path: str):
    """Queue a background import and poll its status."""
    click.echo(f"\n📤 Uploading {file_path} to {api_url}...")

    try:
        response = _upload(f"{api_url}/api/import/jobs", file_path, timeout=60)
    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Network error: {e}", err=True)
        sys.exit(1)

    if response.status_code != 202:
        click.echo(f"❌ Upload failed ({response.status_code}): {response.text}", err=True)
        sys.exit(1)

    job_id = response.json()['job_id']
    click.echo(f"✓ Upload successful. Job ID: {job_id}")
    track_progress_polling(api_url, job_id)


def track_progress_polling(api_url: str, job_id: str, interval: float = 1.0):
    """Track import progress via REST API polling."""
    click.echo("⏱️  Polling for status updates...\n")

    last_percent = None

    while True:
        try:
            response = requests.get(f"{api_url}/api/import/job/{job_id}", timeout=10)
        except requests.exceptions.RequestException as e:
            click.echo(f"\n❌ Network error: {e}", err=True)
            sys.exit(1)

        if response.status_code != 200:
            click.echo(f"\n❌ Error checking status: {response.text}", err=True)
            sys.exit(1)

        data = response.json()

        progress = data.get('progress')
        if progress and progress['percent'] != last_percent:
            show_progress(progress['stage'], progress['percent'], progress['message'])
            last_percent = progress['percent']

        if data['status'] in FINISHED_STATUSES:
            click.echo()
            if data['status'] == 'success':
                print_import_result(data.get('result') or {})
            else:
                error = data.get('error') or {}
                click.echo(f"\n❌ Import {data['status']}: {error.get('error', 'Unknown error')}", err=True)
                sys.exit(1)
            break

        time.sleep(interval)


if __name__ == '__main__':
    cli()
