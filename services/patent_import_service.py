"""
Patent Import Service - Framework-agnostic spreadsheet ingestion.

Reads the patent register workbook, maps its columns to the patent schema,
normalizes each row and reconciles it against existing records by
application number (insert or update in place).

Expected workbook shape: first sheet only; row 1 is a banner, row 2 holds
the headers, data starts on row 3.
"""

import io
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Sequence, Tuple, Union

import openpyxl
from openpyxl.utils.datetime import WINDOWS_EPOCH
from sqlalchemy.orm import Session

from backend.models.schema import Patent
from services.column_mapping import ColumnIndex, resolve_columns
from services.normalizers import (
    cell_text, extract_hyperlink, join_inventors, json_safe, optional_text, parse_date
)
from services.patent_store import PatentStore

logger = logging.getLogger(__name__)

# Default configuration (can be overridden)
DEFAULT_WORKBOOK_PATH = 'data/KLE-IPR.xlsx'
DEFAULT_STATUS = 'Filed'
IPINDIA_PORTAL_URL = 'https://ipindiaservices.gov.in/publicsearch'

BANNER_ROWS = 1
HEADER_ROW_INDEX = 1
FIRST_DATA_ROW_INDEX = 2
NO_DATA_MESSAGE = 'No data found in Excel file'

# Report row progress roughly this often
PROGRESS_EVERY_ROWS = 25


@dataclass
class ImportResult:
    """Outcome of one import run."""

    success: bool
    imported: int = 0
    errors: List[str] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    skipped: int = 0

    @classmethod
    def failure(cls, message: str) -> 'ImportResult':
        return cls(success=False, imported=0, errors=[message])

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RawMetadata:
    """Provenance kept alongside a patent for display and debugging."""

    sl_no: Any = None
    provisional: Any = None
    remarks: Any = None
    ip_agent: Any = None
    details: Any = None
    full_row: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PatentRow:
    """A normalized spreadsheet row, ready to be written to the store."""

    application_number: str
    title: str
    inventors: str
    applicants: str
    filed_date: Optional[str]
    published_date: Optional[str]
    granted_date: Optional[str]
    status: str
    renewal_due_date: Optional[str]
    ipindia_status_url: Optional[str]
    google_drive_link: Optional[str]
    patent_number: Optional[str]
    patent_certificate: Optional[str]
    raw_metadata: RawMetadata
    renewal_fee: Optional[float] = None
    last_checked: Optional[datetime] = None

    def to_fields(self, now: datetime) -> Dict[str, Any]:
        """Full field set for the store; both timestamps are stamped with ``now``."""
        fields = asdict(self)
        fields['raw_metadata'] = self.raw_metadata.to_dict()
        fields['created_at'] = now
        fields['updated_at'] = now
        return fields


@dataclass
class WorkbookGrid:
    """First worksheet of a workbook as values plus the underlying cells."""

    sheet_name: str
    rows: List[List[Any]]
    cells: List[Tuple[Any, ...]]
    epoch: datetime = WINDOWS_EPOCH


class PatentImportService:
    """
    Framework-agnostic patent spreadsheet importer.

    Rows are processed strictly in order and each row is committed before the
    next one starts, so a failing row never leaves a partial record behind and
    never stops the batch.
    """

    def __init__(
        self,
        db_session: Session,
        progress_callback: Optional[Callable[[str, float, str], None]] = None,
        default_workbook_path: str = DEFAULT_WORKBOOK_PATH,
        portal_url: str = IPINDIA_PORTAL_URL
    ):
        """
        Initialize patent import service.

        Args:
            db_session: SQLAlchemy database session
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
            default_workbook_path: Bundled workbook used by import_default_file()
            portal_url: Public search URL stored on every imported patent
        """
        self.session = db_session
        self.progress_callback = progress_callback or (lambda *args: None)
        self.default_workbook_path = default_workbook_path
        self.portal_url = portal_url
        self.store = PatentStore(db_session)

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)
        logger.info(f"Progress: {stage} ({percent:.1f}%) - {message}")

    def read_grid(self, source: Union[str, Path, BinaryIO]) -> WorkbookGrid:
        """
        Load the first worksheet of a workbook.

        The workbook is opened in normal (not read-only) mode because
        hyperlinks are only bound to cells in that mode.
        """
        workbook = openpyxl.load_workbook(source, data_only=True)
        try:
            worksheet = workbook.worksheets[0]
            cells = [
                tuple(row) for row in worksheet.iter_rows(
                    min_row=1, max_row=worksheet.max_row,
                    min_col=1, max_col=worksheet.max_column
                )
            ]
            rows = [[cell.value for cell in row] for row in cells]
            epoch = getattr(workbook, 'epoch', WINDOWS_EPOCH)
            return WorkbookGrid(sheet_name=worksheet.title, rows=rows, cells=cells, epoch=epoch)
        finally:
            workbook.close()

    def import_bytes(self, data: bytes, source_name: str = 'upload') -> ImportResult:
        """Import a workbook supplied as raw bytes (e.g. an HTTP upload)."""
        logger.info(f"Starting import of {source_name} ({len(data)} bytes)")
        self._emit_progress('reading', 5, f"Reading workbook {source_name}...")
        try:
            grid = self.read_grid(io.BytesIO(data))
        except Exception as e:
            logger.error(f"Could not read workbook {source_name}: {e}", exc_info=True)
            return ImportResult.failure(str(e) or 'Failed to parse Excel file')
        return self.import_grid(grid)

    def import_file(self, file_path: Union[str, Path]) -> ImportResult:
        """Import a workbook from disk."""
        logger.info(f"Starting import of {file_path}")
        self._emit_progress('reading', 5, f"Reading workbook {Path(file_path).name}...")
        try:
            grid = self.read_grid(file_path)
        except Exception as e:
            logger.error(f"Could not read workbook {file_path}: {e}", exc_info=True)
            return ImportResult.failure(str(e) or 'Failed to parse Excel file')
        return self.import_grid(grid)

    def import_default_file(self) -> ImportResult:
        """Import the bundled patent register through the same pipeline."""
        path = Path(self.default_workbook_path)
        if not path.is_file():
            logger.error(f"Default workbook not found at {path}")
            return ImportResult.failure(f"Failed to load Excel file: {path} not found")
        return self.import_file(path)

    def import_grid(self, grid: WorkbookGrid) -> ImportResult:
        """
        Map, normalize and upsert every data row of a parsed worksheet.

        Returns a failed result only when the sheet has fewer than two rows;
        row-level problems are collected as "Row <n>: <message>" where n is
        the physical spreadsheet row.
        """
        if len(grid.rows) < FIRST_DATA_ROW_INDEX:
            logger.warning(f"Sheet '{grid.sheet_name}' has {len(grid.rows)} rows, nothing to import")
            return ImportResult.failure(NO_DATA_MESSAGE)

        self._emit_progress('mapping', 10, 'Resolving header columns...')
        columns = resolve_columns(grid.rows[HEADER_ROW_INDEX])

        result = ImportResult(success=True)
        data_rows = grid.rows[FIRST_DATA_ROW_INDEX:]
        data_cells = grid.cells[FIRST_DATA_ROW_INDEX:]
        total_rows = len(data_rows)
        logger.info(f"Processing {total_rows} data rows from sheet '{grid.sheet_name}'")

        for data_index, row in enumerate(data_rows):
            sheet_row = data_index + FIRST_DATA_ROW_INDEX + 1
            cells = data_cells[data_index] if data_index < len(data_cells) else ()

            if data_index % PROGRESS_EVERY_ROWS == 0:
                progress = 10 + (85 * (data_index / max(total_rows, 1)))
                self._emit_progress('rows', progress, f"Processing row {sheet_row}/{total_rows + 2}")

            try:
                patent_row = self.build_patent_row(row, cells, columns, grid.epoch)
                if patent_row is None:
                    result.skipped += 1
                    continue

                _, created = self.upsert_patent(patent_row)
                self.session.commit()
            except Exception as e:
                self.session.rollback()
                message = str(e) or 'Unknown error'
                logger.warning(f"Row {sheet_row} failed: {message}")
                result.errors.append(f"Row {sheet_row}: {message}")
                continue

            result.imported += 1
            if created:
                result.created += 1
            else:
                result.updated += 1

        self._emit_progress(
            'complete', 100,
            f"Imported {result.imported} patents ({len(result.errors)} row errors)"
        )
        logger.info(
            f"Import finished: {result.imported} imported "
            f"({result.created} new, {result.updated} updated), "
            f"{result.skipped} blank rows skipped, {len(result.errors)} errors"
        )
        return result

    def build_patent_row(
        self,
        row: Sequence[Any],
        cells: Sequence[Any],
        columns: ColumnIndex,
        epoch: datetime = WINDOWS_EPOCH
    ) -> Optional[PatentRow]:
        """
        Normalize one data row. Returns None for rows without an application number.
        """
        application_number = cell_text(columns.value(row, 'application_number'))
        if not application_number:
            return None

        app_col = columns['application_number']
        app_cell = cells[app_col] if app_col < len(cells) else None

        def value(name: str) -> Any:
            return columns.value(row, name)

        return PatentRow(
            application_number=application_number,
            title=cell_text(value('title')),
            inventors=join_inventors(value('main_inventor'), value('other_inventors')),
            applicants=cell_text(value('applicants')),
            filed_date=parse_date(value('filed_date'), epoch),
            published_date=parse_date(value('published_date'), epoch),
            granted_date=parse_date(value('granted_date'), epoch),
            status=cell_text(value('status')) or DEFAULT_STATUS,
            renewal_due_date=parse_date(value('renewal_due_date'), epoch),
            ipindia_status_url=self.portal_url,
            google_drive_link=extract_hyperlink(app_cell),
            patent_number=optional_text(value('patent_number')),
            patent_certificate=optional_text(value('patent_certificate')),
            raw_metadata=RawMetadata(
                sl_no=json_safe(row[0]) if len(row) > 0 else None,
                provisional=json_safe(row[1]) if len(row) > 1 else None,
                remarks=json_safe(value('remarks')),
                ip_agent=json_safe(value('ip_agent')),
                details=json_safe(value('details')),
                full_row=[json_safe(v) for v in row]
            )
        )

    def upsert_patent(self, patent_row: PatentRow) -> Tuple[Patent, bool]:
        """
        Insert or overwrite the patent with this row's application number.

        An existing record keeps its id; every other field is replaced by
        the freshly parsed row. Returns (patent, created).
        """
        fields = patent_row.to_fields(datetime.utcnow())
        existing = self.store.find_by('application_number', patent_row.application_number)

        if existing is not None:
            patent = self.store.update(existing.id, fields)
            return patent, False

        patent = self.store.add(fields)
        return patent, True
