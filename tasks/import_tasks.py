"""
Import background tasks.

This module defines Celery tasks for patent workbook imports with progress tracking.
"""

import os
import json
import logging
import traceback
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
import redis

from celery import Task
from sqlalchemy.orm import Session

from tasks.celery_app import celery_app
from services.patent_import_service import PatentImportService
from backend.database import create_db_engine, create_session_factory
from backend.models.job import JobRun, JobProgress, JobStatus, FINISHED_STATUSES

logger = logging.getLogger(__name__)

# Database configuration
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///ipr_tracker.db')
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
TEMP_UPLOAD_DIR = os.getenv('TEMP_UPLOAD_DIR', '/tmp/ipr_uploads')
DEFAULT_WORKBOOK_PATH = os.getenv('DEFAULT_WORKBOOK_PATH', 'data/KLE-IPR.xlsx')
PROGRESS_CACHE_EXPIRY = int(os.getenv('PROGRESS_CACHE_EXPIRY', '3600'))

# Create Redis client
redis_client = redis.Redis.from_url(REDIS_URL, decode_responses=True)

# Create database engine and session factory
engine = create_db_engine(DATABASE_URL)
SessionLocal = create_session_factory(engine)


def get_db_session() -> Session:
    """Get database session."""
    return SessionLocal()


class ImportTask(Task):
    """
    Base task class with progress tracking.

    Progress goes to Redis for live polling and to the job_progress table
    for history; either write may fail without affecting the other.
    """

    def on_progress(self, stage: str, percent: float, message: str):
        """
        Update job progress in Redis and database.

        Args:
            stage: Current stage (e.g., 'reading', 'rows')
            percent: Progress percentage (0-100)
            message: Human-readable progress message
        """
        job_id = self.request.id

        progress_data = {
            'stage': stage,
            'percent': float(percent),
            'message': message,
            'timestamp': datetime.utcnow().isoformat()
        }

        try:
            redis_client.setex(
                f'job_progress:{job_id}',
                PROGRESS_CACHE_EXPIRY,
                json.dumps(progress_data)
            )
        except Exception as e:
            logger.warning(f"Could not cache progress for {job_id} in Redis: {e}")

        try:
            with get_db_session() as session:
                session.add(JobProgress(
                    job_id=job_id,
                    stage=stage,
                    percent=percent,
                    message=message
                ))
                session.commit()
        except Exception as e:
            logger.error(f"Error storing progress for {job_id}: {e}")

        logger.debug(f"Progress updated: {job_id} - {stage} ({percent}%)")

    def get_job_status(self, job_id: str) -> Optional[str]:
        with get_db_session() as session:
            job_run = session.query(JobRun).filter_by(job_id=job_id).first()
            return job_run.status if job_run else None

    def update_job_status(self, job_id: str, status: JobStatus, **kwargs):
        """
        Update job status in database.

        Args:
            job_id: Job ID
            status: New status
            **kwargs: Additional fields to update (result, error, etc.)
        """
        try:
            with get_db_session() as session:
                job_run = session.query(JobRun).filter_by(job_id=job_id).first()
                if job_run:
                    job_run.status = status.value

                    for key, value in kwargs.items():
                        if hasattr(job_run, key):
                            setattr(job_run, key, value)

                    session.commit()
                    logger.info(f"Job {job_id} status updated to {status.value}")
                else:
                    logger.warning(f"Job {job_id} not found in database")
        except Exception as e:
            logger.error(f"Error updating job status for {job_id}: {e}")


def _remove_temp_upload(file_path: str):
    """Delete an uploaded workbook once the worker is done with it."""
    if not os.path.abspath(file_path).startswith(os.path.abspath(TEMP_UPLOAD_DIR)):
        return
    try:
        os.remove(file_path)
        logger.info(f"Cleaned up temporary file: {file_path}")
    except OSError as e:
        logger.warning(f"Could not remove temp file {file_path}: {e}")


@celery_app.task(base=ImportTask, bind=True, name='tasks.import_tasks.import_patent_workbook')
def import_patent_workbook(self, file_path: str) -> Dict[str, Any]:
    """
    Background task to import a patent register workbook.

    An import runs to completion or failure. With late acks a worker crash
    redelivers the message, so a job that already finished is left as it is.

    Args:
        file_path: Path to the uploaded workbook

    Returns:
        Import result dictionary: {'success', 'imported', 'errors', ...}
    """
    job_id = self.request.id
    logger.info(f"Starting import task {job_id} for file: {file_path}")

    try:
        current_status = self.get_job_status(job_id)
        if current_status in FINISHED_STATUSES:
            logger.warning(f"Job {job_id} already {current_status}, not importing again")
            return {'success': current_status == JobStatus.SUCCESS.value, 'skipped_job': True}

        self.update_job_status(
            job_id=job_id,
            status=JobStatus.PROCESSING,
            started_at=datetime.utcnow()
        )

        with get_db_session() as session:
            service = PatentImportService(
                db_session=session,
                progress_callback=self.on_progress,
                default_workbook_path=DEFAULT_WORKBOOK_PATH
            )
            result = service.import_file(file_path).to_dict()

        if not result['success']:
            raise RuntimeError(f"Import failed: {'; '.join(result['errors']) or 'Unknown error'}")

        self.update_job_status(
            job_id=job_id,
            status=JobStatus.SUCCESS,
            completed_at=datetime.utcnow(),
            result=result
        )

        logger.info(f"Import task {job_id} completed: {result['imported']} patents imported")
        return result

    except Exception as e:
        error_details = {
            'error': str(e),
            'traceback': traceback.format_exc(),
            'file_path': file_path
        }

        logger.error(f"Import task {job_id} failed: {e}", exc_info=True)

        self.update_job_status(
            job_id=job_id,
            status=JobStatus.FAILED,
            completed_at=datetime.utcnow(),
            error=error_details
        )

        self.on_progress('failed', 0, f"Import failed: {str(e)}")

        # Re-raise for Celery to handle
        raise

    finally:
        _remove_temp_upload(file_path)


@celery_app.task(name='tasks.import_tasks.cleanup_old_jobs')
def cleanup_old_jobs(days_to_keep: int = 30) -> Dict[str, Any]:
    """
    Clean up finished job records and their progress entries.

    Args:
        days_to_keep: Number of days to keep job records

    Returns:
        Dictionary with cleanup statistics
    """
    logger.info(f"Starting cleanup of jobs older than {days_to_keep} days")

    try:
        with get_db_session() as session:
            cutoff_date = datetime.utcnow() - timedelta(days=days_to_keep)

            deleted_progress = session.query(JobProgress).filter(
                JobProgress.timestamp < cutoff_date
            ).delete(synchronize_session=False)

            deleted_jobs = session.query(JobRun).filter(
                JobRun.completed_at < cutoff_date,
                JobRun.status.in_(FINISHED_STATUSES)
            ).delete(synchronize_session=False)

            session.commit()

            logger.info(f"Cleanup complete: {deleted_jobs} jobs, {deleted_progress} progress entries deleted")

            return {
                'deleted_jobs': deleted_jobs,
                'deleted_progress': deleted_progress,
                'cutoff_date': cutoff_date.isoformat()
            }

    except Exception as e:
        logger.error(f"Error during cleanup: {e}", exc_info=True)
        return {
            'error': str(e),
            'deleted_jobs': 0,
            'deleted_progress': 0
        }
