"""
Export Service - Write patent records back out as Excel workbooks.

Two layouts are produced: the full database export used for backups, and a
shorter list export for a filtered selection of patents.
"""

import io
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy.orm import Session

from backend.models.schema import Patent

logger = logging.getLogger(__name__)

EXPORT_SHEET_NAME = 'Patents'
FULL_EXPORT_PREFIX = 'KLE-IPR_full_export'
LIST_EXPORT_PREFIX = 'KLE-IPR_export'

# (header, patent attribute)
FULL_EXPORT_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ('Application Number', 'application_number'),
    ('Title', 'title'),
    ('Inventors', 'inventors'),
    ('Applicants', 'applicants'),
    ('Filed Date', 'filed_date'),
    ('Published Date', 'published_date'),
    ('Granted Date', 'granted_date'),
    ('Status', 'status'),
    ('Patent Number', 'patent_number'),
    ('Renewal Due Date', 'renewal_due_date'),
    ('Renewal Fee', 'renewal_fee'),
    ('Google Drive Link', 'google_drive_link'),
    ('IP India URL', 'ipindia_status_url'),
    ('Last Checked', 'last_checked'),
    ('Created At', 'created_at'),
    ('Updated At', 'updated_at'),
)

LIST_EXPORT_COLUMNS: Tuple[Tuple[str, str], ...] = tuple(
    column for column in FULL_EXPORT_COLUMNS
    if column[1] not in ('renewal_fee', 'last_checked', 'created_at', 'updated_at')
)

EXPORT_HEADERS: List[str] = [header for header, _ in FULL_EXPORT_COLUMNS]


def export_filename(now: Optional[datetime] = None, prefix: str = FULL_EXPORT_PREFIX) -> str:
    """File name for an export taken at ``now``, e.g. KLE-IPR_full_export_2025-01-31.xlsx."""
    now = now or datetime.utcnow()
    return f"{prefix}_{now.strftime('%Y-%m-%d')}.xlsx"


def _export_value(value: Any) -> Any:
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def build_export_workbook(
    patents: Iterable[Patent],
    columns: Sequence[Tuple[str, str]] = FULL_EXPORT_COLUMNS
) -> Workbook:
    """Build a single-sheet workbook: bold header row, then one row per patent."""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = EXPORT_SHEET_NAME

    worksheet.append([header for header, _ in columns])
    for cell in worksheet[1]:
        cell.font = Font(bold=True)

    count = 0
    for patent in patents:
        row = []
        for _, attribute in columns:
            value = getattr(patent, attribute)
            if attribute == 'renewal_fee' and value is not None:
                value = float(value)
            row.append(_export_value(value))
        worksheet.append(row)
        # openpyxl turns any string starting with '=' into a formula
        for cell in worksheet[worksheet.max_row]:
            if cell.data_type == 'f':
                cell.data_type = 's'
        count += 1

    logger.debug(f"Built export workbook with {count} patents")
    return workbook


def workbook_to_bytes(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_patents(db_session: Session, now: Optional[datetime] = None) -> Tuple[str, bytes]:
    """Export every patent in the database. Returns (filename, xlsx bytes)."""
    patents = db_session.query(Patent).order_by(Patent.id).all()
    logger.info(f"Exporting {len(patents)} patents")
    workbook = build_export_workbook(patents)
    return export_filename(now), workbook_to_bytes(workbook)


def export_patent_list(patents: Sequence[Patent], now: Optional[datetime] = None) -> Tuple[str, bytes]:
    """Export an already filtered selection with the list layout."""
    logger.info(f"Exporting {len(patents)} filtered patents")
    workbook = build_export_workbook(patents, LIST_EXPORT_COLUMNS)
    return export_filename(now, LIST_EXPORT_PREFIX), workbook_to_bytes(workbook)
