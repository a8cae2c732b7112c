"""
Patent-related Pydantic schemas.

This module contains schemas for patent listing, detail, editing and the
portfolio dashboard.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from services.portfolio_service import status_category


class PatentListItem(BaseModel):
    """Patent row for list responses."""

    id: int = Field(..., description="Patent ID")
    application_number: str = Field(..., description="Application number (natural key)")
    title: str = Field('', description="Invention title")
    inventors: str = Field('', description="Inventors, primary first")
    applicants: str = Field('', description="Applicants")
    filed_date: Optional[str] = Field(None, description="Filing date (YYYY-MM-DD)")
    status: str = Field(..., description="Prosecution status")
    status_category: str = Field(..., description="Status bucket: granted, examination, filed, inactive, renewal, other")
    renewal_due_date: Optional[str] = Field(None, description="Next renewal date (YYYY-MM-DD)")
    google_drive_link: Optional[str] = Field(None, description="Document folder link")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 12,
                "application_number": "202011012345",
                "title": "Low-cost water purification membrane",
                "inventors": "A. Kumar, S. Patil",
                "applicants": "KLE Technological University",
                "filed_date": "2020-03-21",
                "status": "Granted",
                "status_category": "granted",
                "renewal_due_date": "2026-03-21",
                "google_drive_link": "https://drive.google.com/drive/folders/abc"
            }
        }

    @classmethod
    def from_orm_with_category(cls, patent):
        """Create from ORM patent with the derived status bucket."""
        return cls(
            id=patent.id,
            application_number=patent.application_number,
            title=patent.title or '',
            inventors=patent.inventors or '',
            applicants=patent.applicants or '',
            filed_date=patent.filed_date,
            status=patent.status,
            status_category=status_category(patent.status),
            renewal_due_date=patent.renewal_due_date,
            google_drive_link=patent.google_drive_link
        )


class PatentDetail(BaseModel):
    """Full patent record."""

    id: int
    application_number: str
    title: str
    inventors: str
    applicants: str
    filed_date: Optional[str]
    published_date: Optional[str]
    granted_date: Optional[str]
    status: str
    renewal_due_date: Optional[str]
    renewal_fee: Optional[float]
    last_checked: Optional[datetime]
    ipindia_status_url: Optional[str]
    google_drive_link: Optional[str]
    patent_number: Optional[str]
    patent_certificate: Optional[str]
    raw_metadata: Dict[str, Any] = Field(default_factory=dict, description="Source row provenance")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PatentListResponse(BaseModel):
    """Paginated list of patents."""

    total: int = Field(..., description="Total patents matching the filters")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Total number of pages")
    items: List[PatentListItem] = Field(..., description="Patents in current page")


class PatentUpdateRequest(BaseModel):
    """Partial update of a patent. Omitted fields are left unchanged."""

    title: Optional[str] = None
    inventors: Optional[str] = None
    applicants: Optional[str] = None
    filed_date: Optional[str] = None
    published_date: Optional[str] = None
    granted_date: Optional[str] = None
    status: Optional[str] = Field(None, min_length=1, max_length=255)
    renewal_due_date: Optional[str] = None
    renewal_fee: Optional[float] = Field(None, ge=0)
    google_drive_link: Optional[str] = None
    patent_number: Optional[str] = None
    patent_certificate: Optional[str] = None


class DashboardStatsResponse(BaseModel):
    """Portfolio counters for the dashboard."""

    total_patents: int
    granted: int
    under_examination: int
    abandoned: int
    renewals_due_30: int = Field(..., description="Renewals due in 0-30 days")
    renewals_due_60: int = Field(..., description="Renewals due in 31-60 days")
    renewals_due_90: int = Field(..., description="Renewals due in 61-90 days")
    renewals_overdue: int = Field(..., description="Renewal date already passed")
    total_payments: int
    recent_patents: List[PatentListItem] = Field(default_factory=list, description="Most recently updated")


class RenewalTableResponse(BaseModel):
    """Upcoming renewals as records and as a pasteable text table."""

    days: int
    count: int
    items: List[PatentListItem]
    table_text: str
