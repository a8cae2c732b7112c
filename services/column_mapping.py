"""
Column mapping for the patent register spreadsheet.

The register has drifted across revisions: headers get renamed, wrapped onto
two lines, or go missing entirely. Every semantic field therefore carries the
header spellings it accepts plus a fixed fallback column, and the mapping is
resolved once per workbook into a ColumnIndex.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnSpec:
    """A semantic field with its accepted headers and fallback column (0-based)."""

    field: str
    aliases: Tuple[str, ...]
    fallback: int


COLUMN_SPECS: Tuple[ColumnSpec, ...] = (
    ColumnSpec('application_number', ('application no', 'application number'), 2),
    ColumnSpec('title', ('invention title',), 10),
    ColumnSpec('main_inventor', ('main innovator',), 13),
    ColumnSpec('other_inventors', ('other innovators',), 14),
    ColumnSpec('applicants', ('applicant',), 12),
    ColumnSpec('filed_date', ('application date',), 3),
    ColumnSpec('published_date', ('publication date',), 5),
    ColumnSpec('granted_date', ('grant date',), 8),
    ColumnSpec('status', ('status',), 4),
    # Some revisions wrap the header as "Renewal<newline>Date"
    ColumnSpec('renewal_due_date', ('renewal\ndate', 'renewal date'), 9),
    ColumnSpec('patent_number', ('patent number',), 6),
    ColumnSpec('patent_certificate', ('patent certificate view/download',), 7),
    ColumnSpec('remarks', ('remarks',), 16),
    ColumnSpec('ip_agent', ('ip agent',), 15),
    ColumnSpec('details', ('details of ip in brief',), 11),
)


def normalize_header(value: Any) -> str:
    """Lower-case and trim a header cell. Empty cells normalize to ''."""
    if value is None:
        return ''
    return str(value).strip().lower()


def build_header_map(headers: Iterable[Any]) -> Dict[str, int]:
    """
    Map normalized header text to its 0-based column index.

    When a header text repeats, the rightmost column wins.
    """
    header_map = {}
    for idx, header in enumerate(headers):
        header_map[normalize_header(header)] = idx
    return header_map


class ColumnIndex:
    """Resolved field -> column index table for one workbook."""

    def __init__(self, indexes: Dict[str, int], matched: Dict[str, Optional[str]]):
        self._indexes = indexes
        self.matched = matched

    def __getitem__(self, field: str) -> int:
        return self._indexes[field]

    def __contains__(self, field: str) -> bool:
        return field in self._indexes

    def value(self, row: Sequence[Any], field: str) -> Any:
        """Return the raw value of ``field`` in ``row``; None past the row's end."""
        idx = self._indexes[field]
        if idx < len(row):
            return row[idx]
        return None

    def fallback_fields(self) -> Tuple[str, ...]:
        """Fields resolved by position rather than by header."""
        return tuple(f for f, header in self.matched.items() if header is None)


def resolve_columns(headers: Iterable[Any]) -> ColumnIndex:
    """
    Resolve every field in COLUMN_SPECS against a header row.

    The first accepted header present in the row wins; otherwise the
    field's fixed fallback column is used.
    """
    header_map = build_header_map(headers)
    indexes = {}
    matched = {}

    for spec in COLUMN_SPECS:
        for alias in spec.aliases:
            if alias in header_map:
                indexes[spec.field] = header_map[alias]
                matched[spec.field] = alias
                break
        else:
            indexes[spec.field] = spec.fallback
            matched[spec.field] = None

    column_index = ColumnIndex(indexes, matched)
    fallbacks = column_index.fallback_fields()
    if fallbacks:
        logger.debug(f"Using fallback columns for: {', '.join(fallbacks)}")
    return column_index
