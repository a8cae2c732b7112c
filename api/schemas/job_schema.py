"""
Schemas for polling queued imports.
"""

from typing import Optional, Dict, Any, List
from datetime import datetime

from pydantic import BaseModel, Field

from backend.models.job import JobStatus, JobType


class JobProgressResponse(BaseModel):
    """Latest progress callback of an import job."""

    stage: str = Field(..., description="reading, mapping, rows, complete or failed")
    percent: float = Field(..., ge=0, le=100)
    message: str
    timestamp: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "stage": "rows",
                "percent": 64.0,
                "message": "Processing row 120/182",
                "timestamp": "2025-10-15T12:30:45Z"
            }
        }


class JobStatusResponse(BaseModel):
    """State of a queued import; `result` holds the import counts once it succeeds."""

    job_id: str
    job_type: JobType
    status: JobStatus
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    progress: Optional[JobProgressResponse] = None
    result: Optional[Dict[str, Any]] = Field(None, description="success, imported, errors, created, updated, skipped")
    error: Optional[Dict[str, Any]] = Field(None, description="Fatal message of a failed import")
    created_by: Optional[str] = None


class JobListItem(BaseModel):
    job_id: str
    status: JobStatus
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobListResponse(BaseModel):
    """Import jobs, newest first."""

    total: int
    page: int
    page_size: int
    total_pages: int
    items: List[JobListItem]
