"""
Patent store - table-style access to patent records.

Thin wrapper over a SQLAlchemy session exposing the operations the importer
and the API need: insert with a generated id, update by id, delete by id and
equality lookup on a named column.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from backend.models.schema import Patent, PATENT_FIELDS

logger = logging.getLogger(__name__)


class PatentNotFoundError(LookupError):
    """Raised when a patent id does not exist."""

    def __init__(self, patent_id: int):
        super().__init__(f"Patent {patent_id} not found")
        self.patent_id = patent_id


class PatentStore:
    """Table-like store for Patent rows keyed by auto-increment id."""

    def __init__(self, db_session: Session):
        self.session = db_session

    def get(self, patent_id: int) -> Optional[Patent]:
        return self.session.get(Patent, patent_id)

    def find_by(self, field: str, value: Any) -> Optional[Patent]:
        """First patent whose ``field`` equals ``value`` (lowest id first)."""
        if field not in PATENT_FIELDS and field != 'id':
            raise ValueError(f"Unknown patent field: {field}")
        column = getattr(Patent, field)
        return self.session.query(Patent).filter(column == value).order_by(Patent.id).first()

    def all(self) -> List[Patent]:
        return self.session.query(Patent).order_by(Patent.id).all()

    def count(self) -> int:
        return self.session.query(Patent).count()

    def add(self, fields: Dict[str, Any]) -> Patent:
        """Insert a new patent and flush so its id is assigned."""
        patent = Patent(**self._known_fields(fields))
        self.session.add(patent)
        self.session.flush()
        logger.debug(f"Inserted patent {patent.id} ({patent.application_number})")
        return patent

    def update(self, patent_id: int, fields: Dict[str, Any]) -> Patent:
        """
        Replace the given fields of an existing patent.

        Passing the full field set replaces the record; passing a subset is a
        partial update. ``updated_at`` is stamped unless supplied.
        """
        patent = self.get(patent_id)
        if patent is None:
            raise PatentNotFoundError(patent_id)

        values = self._known_fields(fields)
        values.setdefault('updated_at', datetime.utcnow())
        for key, value in values.items():
            setattr(patent, key, value)

        self.session.flush()
        logger.debug(f"Updated patent {patent.id} ({len(values)} fields)")
        return patent

    def delete(self, patent_id: int) -> bool:
        patent = self.get(patent_id)
        if patent is None:
            return False
        self.session.delete(patent)
        self.session.flush()
        logger.info(f"Deleted patent {patent_id}")
        return True

    @staticmethod
    def _known_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(fields) - set(PATENT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown patent fields: {', '.join(sorted(unknown))}")
        return dict(fields)
