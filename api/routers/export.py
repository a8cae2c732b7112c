"""
Export router - Download patents as Excel workbooks.
"""

import io
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from api.dependencies import get_db
from api.routers.patents import build_filter
from services.export_service import export_patents, export_patent_list
from services.portfolio_service import PatentFilter, list_patents

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/export', tags=['export'])

XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _xlsx_response(filename: str, content: bytes) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={'Content-Disposition': f'attachment; filename="{filename}"'}
    )


@router.get('')
async def export_all(db: Session = Depends(get_db)):
    """
    Download the whole database as a workbook.

    **Example:**
    ```bash
    curl -OJ http://localhost:8000/api/export
    ```
    """
    filename, content = export_patents(db)
    logger.info(f"Full export generated: {filename} ({len(content)} bytes)")
    return _xlsx_response(filename, content)


@router.get('/filtered')
async def export_filtered(
    flt: PatentFilter = Depends(build_filter),
    db: Session = Depends(get_db)
):
    """Download the patents matching the list filters, in list order."""
    filename, content = export_patent_list(list_patents(db, flt))
    logger.info(f"Filtered export generated: {filename} ({len(content)} bytes)")
    return _xlsx_response(filename, content)
