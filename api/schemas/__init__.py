"""
Pydantic schemas for request/response validation.

This package contains all Pydantic models used for API request validation
and response serialization.
"""

from api.schemas.common import ErrorResponse, SuccessResponse, HealthCheckResponse
from api.schemas.job_schema import (
    JobProgressResponse, JobStatusResponse, JobListItem, JobListResponse
)
from api.schemas.import_schema import ImportResultResponse, ImportStartResponse
from api.schemas.patent_schema import (
    PatentListItem, PatentDetail, PatentListResponse, PatentUpdateRequest,
    DashboardStatsResponse, RenewalTableResponse
)
from api.schemas.payment_schema import PaymentCreateRequest, PaymentUpdateRequest, PaymentResponse

__all__ = [
    # Common
    'ErrorResponse',
    'SuccessResponse',
    'HealthCheckResponse',

    # Job
    'JobProgressResponse',
    'JobStatusResponse',
    'JobListItem',
    'JobListResponse',

    # Import
    'ImportResultResponse',
    'ImportStartResponse',

    # Patent
    'PatentListItem',
    'PatentDetail',
    'PatentListResponse',
    'PatentUpdateRequest',
    'DashboardStatsResponse',
    'RenewalTableResponse',

    # Payment
    'PaymentCreateRequest',
    'PaymentUpdateRequest',
    'PaymentResponse',
]
