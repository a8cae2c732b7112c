"""
Import-related Pydantic schemas.

This module contains schemas for spreadsheet import requests and responses.
"""

from typing import List
from pydantic import BaseModel, Field


class ImportResultResponse(BaseModel):
    """Outcome of a synchronous import."""

    success: bool = Field(..., description="False only when the workbook could not be read or had no data")
    imported: int = Field(..., description="Rows written (inserted or updated)")
    errors: List[str] = Field(default_factory=list, description="Row-level warnings or the fatal message")
    created: int = Field(0, description="New patents inserted")
    updated: int = Field(0, description="Existing patents overwritten")
    skipped: int = Field(0, description="Rows skipped for a blank application number")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "imported": 182,
                "errors": ["Row 57: value too long for type character varying(64)"],
                "created": 12,
                "updated": 170,
                "skipped": 3
            }
        }


class ImportStartResponse(BaseModel):
    """Response when a background import is queued."""

    job_id: str = Field(..., description="Id to poll for progress")
    message: str = Field(default="Patent import job started")
    status_url: str = Field(..., description="URL to check job status")

    class Config:
        json_schema_extra = {
            "example": {
                "job_id": "abc-123-def-456",
                "message": "Patent import job started",
                "status_url": "/api/import/job/abc-123-def-456"
            }
        }
