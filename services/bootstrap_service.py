"""
Bootstrap Service - First-run database setup.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from services.patent_import_service import PatentImportService
from services.patent_store import PatentStore

logger = logging.getLogger(__name__)


def initialize_database(
    db_session: Session,
    import_service: Optional[PatentImportService] = None
) -> bool:
    """
    Seed an empty patents table from the bundled register.

    A failed seed import is logged and tolerated; only an unexpected
    exception makes initialization report False.
    """
    try:
        patent_count = PatentStore(db_session).count()
        if patent_count > 0:
            logger.info(f"Database already holds {patent_count} patents, skipping seed import")
            return True

        logger.info("Importing patents from bundled Excel file...")
        service = import_service or PatentImportService(db_session)
        result = service.import_default_file()

        if result.success:
            logger.info(f"Successfully imported {result.imported} patents")
        else:
            logger.error(f"Failed to import patents: {result.errors}")
        return True

    except Exception as e:
        logger.error(f"Database initialization error: {e}", exc_info=True)
        return False
