"""
Import router - Patent workbook uploads and background import jobs.

Uploads are imported synchronously by default and the result is returned
directly; large registers can instead be queued as a Celery job and tracked
by job id.
"""

import os
import logging
import tempfile
import json
from pathlib import Path
from typing import Optional
from uuid import uuid4

import redis
from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from api.config import settings, ensure_temp_dir
from api.dependencies import get_db, get_current_user, verify_file_extension, verify_file_size
from api.schemas.import_schema import ImportResultResponse, ImportStartResponse
from api.schemas.job_schema import JobStatusResponse, JobProgressResponse, JobListResponse, JobListItem
from backend.models.job import JobRun, JobType, JobStatus
from services.patent_import_service import PatentImportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/import', tags=['import'])

# Redis client for progress tracking
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


def get_import_service(db: Session = Depends(get_db)) -> PatentImportService:
    return PatentImportService(
        db_session=db,
        default_workbook_path=settings.DEFAULT_WORKBOOK_PATH,
        portal_url=settings.IPINDIA_PORTAL_URL
    )


@router.post('/upload', response_model=ImportResultResponse)
def upload_workbook(
    file: UploadFile = File(..., description="Patent register workbook (.xlsx or .xlsm)"),
    service: PatentImportService = Depends(get_import_service),
    current_user: str = Depends(get_current_user)
):
    """
    Upload a patent register and import it immediately.

    Rows are upserted by application number. The response reports how many
    rows were written and any row-level errors; `success` is false only when
    the workbook could not be read or contained no data.

    Declared sync so FastAPI runs the row-by-row import in its threadpool.
    """
    logger.info(f"Upload request from {current_user}: {file.filename}")

    verify_file_extension(file.filename)
    content = file.file.read()
    verify_file_size(len(content))

    result = service.import_bytes(content, source_name=file.filename)
    if result.errors:
        logger.warning(f"Import of {file.filename} reported {len(result.errors)} errors")

    return ImportResultResponse(**result.to_dict())


@router.post('/default', response_model=ImportResultResponse)
def import_default_workbook(
    service: PatentImportService = Depends(get_import_service),
    current_user: str = Depends(get_current_user)
):
    """Re-import the bundled patent register."""
    logger.info(f"Default workbook import requested by {current_user}")
    result = service.import_default_file()
    return ImportResultResponse(**result.to_dict())


@router.post('/jobs', response_model=ImportStartResponse, status_code=status.HTTP_202_ACCEPTED)
async def queue_import_job(
    file: UploadFile = File(..., description="Patent register workbook (.xlsx or .xlsm)"),
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    """
    Upload a workbook and import it in the background.

    Poll GET /api/import/job/{job_id} for progress and the final result.
    """
    from tasks.import_tasks import import_patent_workbook

    logger.info(f"Background import request from {current_user}: {file.filename}")
    verify_file_extension(file.filename)

    temp_file = None
    try:
        ensure_temp_dir()
        fd, temp_path = tempfile.mkstemp(
            suffix=Path(file.filename).suffix,
            dir=settings.TEMP_UPLOAD_DIR
        )
        temp_file = temp_path

        content = await file.read()
        with os.fdopen(fd, 'wb') as tmp:
            tmp.write(content)

        verify_file_size(len(content))
        logger.info(f"File saved to {temp_path} ({len(content) / 1024 / 1024:.2f} MB)")

        # The job row must exist before the worker can report progress against it
        job_id = str(uuid4())
        job_run = JobRun(
            job_id=job_id,
            job_type=JobType.IMPORT.value,
            status=JobStatus.PENDING.value,
            params={
                'filename': file.filename,
                'file_size_mb': round(len(content) / 1024 / 1024, 2)
            },
            created_by=current_user
        )
        db.add(job_run)
        db.commit()

        import_patent_workbook.apply_async(args=[temp_path], task_id=job_id)
        logger.info(f"Started import task {job_id} for file: {file.filename}")

        return ImportStartResponse(
            job_id=job_id,
            message="Patent import job started",
            status_url=f"{settings.API_PREFIX}/import/job/{job_id}"
        )

    except HTTPException:
        if temp_file and os.path.exists(temp_file):
            os.unlink(temp_file)
        raise

    except Exception as e:
        if temp_file and os.path.exists(temp_file):
            os.unlink(temp_file)

        logger.error(f"Upload failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Upload failed: {str(e)}"
        )


@router.get('/job/{job_id}', response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    db: Session = Depends(get_db)
):
    """
    Get current status of an import job.

    Progress comes from Redis while the job is live and falls back to the
    last stored progress row.
    """
    job_run = db.query(JobRun).filter_by(job_id=job_id).first()

    if not job_run:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found"
        )

    progress = None
    try:
        progress_data = redis_client.get(f'job_progress:{job_id}')
        if progress_data:
            progress = JobProgressResponse(**json.loads(progress_data))
    except Exception as e:
        logger.warning(f"Could not fetch progress from Redis for {job_id}: {e}")

    if not progress and job_run.progress:
        latest_progress = job_run.progress[-1]
        progress = JobProgressResponse(
            stage=latest_progress.stage,
            percent=float(latest_progress.percent),
            message=latest_progress.message or "",
            timestamp=latest_progress.timestamp
        )

    return JobStatusResponse(
        job_id=job_run.job_id,
        job_type=job_run.job_type,
        status=job_run.status,
        created_at=job_run.created_at,
        started_at=job_run.started_at,
        completed_at=job_run.completed_at,
        progress=progress,
        result=job_run.result,
        error=job_run.error,
        created_by=job_run.created_by
    )


@router.get('/jobs', response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    status: Optional[str] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db)
):
    """List import jobs, newest first."""
    query = db.query(JobRun)

    if status:
        query = query.filter_by(status=status)

    total = query.count()

    jobs = query.order_by(JobRun.created_at.desc())\
        .offset((page - 1) * page_size)\
        .limit(page_size)\
        .all()

    total_pages = (total + page_size - 1) // page_size

    return JobListResponse(
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        items=[JobListItem.model_validate(job) for job in jobs]
    )
