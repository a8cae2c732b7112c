"""
Cell value normalization for spreadsheet imports.

Best-effort normalization: unparseable input becomes absence (None or ''),
never a hard failure. Renewal calculations downstream expect nullable dates,
so a bad date cell must not sink the whole row.
"""

import logging
import math
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

from dateutil import parser as date_parser
from openpyxl.utils.datetime import from_excel, WINDOWS_EPOCH

logger = logging.getLogger(__name__)

ISO_DATE_FORMAT = '%Y-%m-%d'

# Missing components of a partial date string ("March 2021") fill from here
_PARTIAL_DATE_DEFAULT = datetime(1970, 1, 1)


def parse_date(value: Any, epoch: datetime = WINDOWS_EPOCH,
               dayfirst: bool = False) -> Optional[str]:
    """
    Normalize a date cell to ``YYYY-MM-DD``.

    Accepts date/datetime objects (openpyxl decodes date-formatted cells),
    date strings, and numeric spreadsheet serials decoded against the
    workbook's epoch. Anything else yields None.
    """
    if not value:
        return None

    if isinstance(value, datetime):
        return value.strftime(ISO_DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(ISO_DATE_FORMAT)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = date_parser.parse(text, default=_PARTIAL_DATE_DEFAULT, dayfirst=dayfirst)
        except (ValueError, OverflowError) as e:
            logger.debug(f"Unparseable date string {text!r}: {e}")
            return None
        return parsed.strftime(ISO_DATE_FORMAT)

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        serial = float(value)
        if not math.isfinite(serial) or serial < 0:
            return None
        try:
            converted = from_excel(serial, epoch=epoch)
        except (ValueError, OverflowError) as e:
            logger.debug(f"Date serial {value!r} out of range: {e}")
            return None
        if isinstance(converted, (datetime, date)):
            return converted.strftime(ISO_DATE_FORMAT)
        return None

    return None


def cell_text(value: Any) -> str:
    """Render a cell value as trimmed text; empty cells give ''."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.strftime(ISO_DATE_FORMAT)
        return value.isoformat()
    if isinstance(value, date):
        return value.strftime(ISO_DATE_FORMAT)
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    """Like cell_text, but None when the result is empty."""
    return cell_text(value) or None


def join_inventors(main_inventor: Any, other_inventors: Any) -> str:
    """Primary inventor followed by the secondary inventors cell, when present."""
    parts = [cell_text(main_inventor), cell_text(other_inventors)]
    return ', '.join(part for part in parts if part)


def extract_hyperlink(cell: Any) -> Optional[str]:
    """Return the external target of a cell's hyperlink, if it has one."""
    if cell is None:
        return None
    hyperlink = getattr(cell, 'hyperlink', None)
    if hyperlink is None:
        return None
    target = getattr(hyperlink, 'target', None)
    return target or None


def json_safe(value: Any) -> Any:
    """Convert a raw cell value into something JSON can store."""
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return str(value)
