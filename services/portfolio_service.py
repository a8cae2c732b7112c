"""
Portfolio Service - Dashboard counters and patent list queries.

Everything here is read-only. Dates on patents are ISO strings, so all
renewal arithmetic is done on whole days relative to a caller-supplied
``today`` (defaulting to the current local date).
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from backend.models.schema import Patent, RenewalPayment
from services.normalizers import parse_date

logger = logging.getLogger(__name__)

DATE_FIELDS = ('filed_date', 'renewal_due_date')
DUE_WINDOWS = ('30', '60', '90', 'overdue')
RECENT_PATENTS_LIMIT = 10


def status_category(status: Optional[str]) -> str:
    """Bucket a free-text status for display."""
    normalized = (status or '').lower()

    if 'granted' in normalized:
        return 'granted'
    if 'examination' in normalized or 'ae' in normalized:
        return 'examination'
    if 'filed' in normalized or 'published' in normalized:
        return 'filed'
    if any(word in normalized for word in ('abandoned', 'ceased', 'withdrawn', 'expired')):
        return 'inactive'
    if 'renewal' in normalized:
        return 'renewal'
    return 'other'


def to_date(raw: Optional[str]) -> Optional[date]:
    """Parse a stored date string; None when missing or unparseable."""
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        normalized = parse_date(raw)
        return date.fromisoformat(normalized) if normalized else None


def days_until(raw: Optional[str], today: Optional[date] = None) -> Optional[int]:
    """Whole days from ``today`` to the given date (negative when past)."""
    target = to_date(raw)
    if target is None:
        return None
    today = today or date.today()
    return (target - today).days


@dataclass
class PatentFilter:
    """List view filters. Empty fields do not filter."""

    search: Optional[str] = None
    status: Optional[str] = None
    date_field: str = 'filed_date'
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    year: Optional[int] = None
    due: Optional[str] = None

    def __post_init__(self):
        if self.date_field not in DATE_FIELDS:
            raise ValueError(f"date_field must be one of {', '.join(DATE_FIELDS)}")


def _matches_due(patent: Patent, due: str, today: date) -> bool:
    days = days_until(patent.renewal_due_date, today)
    if days is None:
        return False
    if due == 'overdue':
        return days < 0
    try:
        window = int(due)
    except ValueError:
        return False
    return 0 < days <= window


def _matches_dates(patent: Patent, flt: PatentFilter) -> bool:
    value = to_date(getattr(patent, flt.date_field))
    if value is None:
        return False

    if flt.year:
        return value.year == flt.year

    lower = to_date(flt.from_date)
    upper = to_date(flt.to_date)
    if flt.from_date and lower is None:
        return False
    if flt.to_date and upper is None:
        return False
    if lower and value < lower:
        return False
    if upper and value > upper:
        return False
    return True


def _matches_search(patent: Patent, term: str) -> bool:
    haystacks = (patent.application_number, patent.title, patent.inventors, patent.applicants)
    return any(term in (text or '').lower() for text in haystacks)


def filter_patents(
    patents: Iterable[Patent],
    flt: PatentFilter,
    today: Optional[date] = None
) -> List[Patent]:
    """Apply due window, date range/year, text search and status filters in that order."""
    today = today or date.today()
    filtered = list(patents)

    if flt.due:
        filtered = [p for p in filtered if _matches_due(p, flt.due, today)]

    if flt.from_date or flt.to_date or flt.year:
        filtered = [p for p in filtered if _matches_dates(p, flt)]

    if flt.search and flt.search.strip():
        term = flt.search.strip().lower()
        filtered = [p for p in filtered if _matches_search(p, term)]

    if flt.status and flt.status.strip().lower() != 'all':
        wanted = flt.status.strip().lower()
        filtered = [p for p in filtered if (p.status or '').strip().lower() == wanted]

    return filtered


def sort_by_filed_date(patents: Iterable[Patent]) -> List[Patent]:
    """Newest filing first; patents without a filing date go last."""
    return sorted(patents, key=lambda p: to_date(p.filed_date) or date.min, reverse=True)


def list_patents(
    db_session: Session,
    flt: Optional[PatentFilter] = None,
    today: Optional[date] = None
) -> List[Patent]:
    patents = sort_by_filed_date(db_session.query(Patent).all())
    if flt is None:
        return patents
    return filter_patents(patents, flt, today)


def renewals_due_within(
    patents: Iterable[Patent],
    days: int,
    today: Optional[date] = None
) -> List[Patent]:
    """Patents whose renewal falls 1..days days from today."""
    today = today or date.today()
    due = []
    for patent in patents:
        remaining = days_until(patent.renewal_due_date, today)
        if remaining is not None and 0 < remaining <= days:
            due.append(patent)
    return due


def unique_statuses(patents: Iterable[Patent]) -> List[str]:
    """Distinct trimmed statuses in first-seen order."""
    seen = []
    for patent in patents:
        status = (patent.status or '').strip()
        if status and status not in seen:
            seen.append(status)
    return seen


def renewal_table_text(patents: Sequence[Patent]) -> str:
    """Plain-text table of upcoming renewals for pasting into mail or chat."""
    if not patents:
        return ''

    headers = ['Application No', 'Title', 'Renewal Date', 'Applicants']
    rows = [
        [p.application_number or '', p.title or '', p.renewal_due_date or '', p.applicants or '']
        for p in patents
    ]
    widths = [
        max([len(headers[i])] + [len(row[i]) for row in rows])
        for i in range(len(headers))
    ]

    lines = [
        ' | '.join(h.ljust(widths[i]) for i, h in enumerate(headers)),
        '-|-'.join('-' * w for w in widths),
    ]
    for row in rows:
        lines.append(' | '.join(value.ljust(widths[i]) for i, value in enumerate(row)))
    return '\n'.join(lines)


def dashboard_stats(db_session: Session, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Portfolio counters for the dashboard.

    Renewal buckets are 0-30, 31-60 and 61-90 days out; a renewal due
    today counts in the first bucket.
    """
    today = today or date.today()
    patents = db_session.query(Patent).all()

    def status_has(patent: Patent, *words: str) -> bool:
        status = (patent.status or '').lower()
        return any(word in status for word in words)

    due_30 = due_60 = due_90 = overdue = 0
    for patent in patents:
        days = days_until(patent.renewal_due_date, today)
        if days is None:
            continue
        if days < 0:
            overdue += 1
        elif days <= 30:
            due_30 += 1
        elif days <= 60:
            due_60 += 1
        elif days <= 90:
            due_90 += 1

    recent = sorted(patents, key=lambda p: p.updated_at, reverse=True)[:RECENT_PATENTS_LIMIT]

    stats = {
        'total_patents': len(patents),
        'granted': sum(1 for p in patents if status_has(p, 'granted')),
        'under_examination': sum(1 for p in patents if status_has(p, 'examination', 'ae')),
        'abandoned': sum(1 for p in patents if status_has(p, 'abandoned', 'ceased', 'expired')),
        'renewals_due_30': due_30,
        'renewals_due_60': due_60,
        'renewals_due_90': due_90,
        'renewals_overdue': overdue,
        'total_payments': db_session.query(RenewalPayment).count(),
        'recent_patents': recent,
    }
    logger.debug(f"Dashboard stats computed for {len(patents)} patents")
    return stats
