"""
Patents router - Portfolio listing, dashboard, editing and renewal payments.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from api.dependencies import get_db, get_current_user
from api.schemas.common import SuccessResponse
from api.schemas.patent_schema import (
    PatentListItem, PatentDetail, PatentListResponse, PatentUpdateRequest,
    DashboardStatsResponse, RenewalTableResponse
)
from api.schemas.payment_schema import PaymentCreateRequest, PaymentUpdateRequest, PaymentResponse
from backend.models.schema import Patent
from services.normalizers import parse_date
from services.patent_store import PatentStore, PatentNotFoundError
from services.portfolio_service import (
    PatentFilter, list_patents as query_patents, dashboard_stats, renewals_due_within,
    renewal_table_text, unique_statuses, sort_by_filed_date
)
from services.renewal_service import RenewalService, PaymentNotFoundError, PaymentValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=['patents'])

EDITABLE_DATE_FIELDS = ('filed_date', 'published_date', 'granted_date', 'renewal_due_date')
# NOT NULL columns; null in a PATCH body is rejected rather than stored
REQUIRED_TEXT_FIELDS = ('title', 'inventors', 'applicants', 'status')


def build_filter(
    search: Optional[str] = Query(None, description="Match application number, title, inventors or applicants"),
    status_filter: Optional[str] = Query(None, alias='status', description="Exact status, or 'all'"),
    date_field: str = Query('filed_date', description="filed_date or renewal_due_date"),
    from_date: Optional[str] = Query(None, description="Inclusive lower bound (YYYY-MM-DD)"),
    to_date: Optional[str] = Query(None, description="Inclusive upper bound (YYYY-MM-DD)"),
    year: Optional[int] = Query(None, ge=1900, le=2200, description="Calendar year of date_field"),
    due: Optional[str] = Query(None, description="Renewal window: 30, 60, 90 or overdue")
) -> PatentFilter:
    try:
        return PatentFilter(
            search=search,
            status=status_filter,
            date_field=date_field,
            from_date=from_date,
            to_date=to_date,
            year=year,
            due=due
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


def _get_patent_or_404(db: Session, patent_id: int) -> Patent:
    patent = PatentStore(db).get(patent_id)
    if not patent:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Patent {patent_id} not found"
        )
    return patent


@router.get('/patents', response_model=PatentListResponse)
async def list_patents(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=500, description="Items per page"),
    flt: PatentFilter = Depends(build_filter),
    db: Session = Depends(get_db)
):
    """
    List patents, newest filing first.

    **Example:**
    ```bash
    curl "http://localhost:8000/api/patents?due=90&search=membrane"
    ```
    """
    patents = query_patents(db, flt)
    total = len(patents)
    start = (page - 1) * page_size
    total_pages = (total + page_size - 1) // page_size

    return PatentListResponse(
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        items=[PatentListItem.from_orm_with_category(p) for p in patents[start:start + page_size]]
    )


@router.get('/patents/stats', response_model=DashboardStatsResponse)
async def get_dashboard_stats(db: Session = Depends(get_db)):
    """Portfolio counters and the most recently updated patents."""
    stats = dashboard_stats(db)
    stats['recent_patents'] = [PatentListItem.from_orm_with_category(p) for p in stats['recent_patents']]
    return DashboardStatsResponse(**stats)


@router.get('/patents/statuses', response_model=List[str])
async def get_statuses(db: Session = Depends(get_db)):
    """Distinct statuses for the status filter dropdown."""
    return unique_statuses(sort_by_filed_date(PatentStore(db).all()))


@router.get('/patents/renewals', response_model=RenewalTableResponse)
async def get_upcoming_renewals(
    days: int = Query(30, ge=1, le=3650, description="Look-ahead window in days"),
    db: Session = Depends(get_db)
):
    """Renewals due within the next `days` days, with a copyable text table."""
    due = renewals_due_within(sort_by_filed_date(PatentStore(db).all()), days)
    return RenewalTableResponse(
        days=days,
        count=len(due),
        items=[PatentListItem.from_orm_with_category(p) for p in due],
        table_text=renewal_table_text(due)
    )


@router.get('/patents/{patent_id}', response_model=PatentDetail)
async def get_patent(patent_id: int, db: Session = Depends(get_db)):
    return PatentDetail.model_validate(_get_patent_or_404(db, patent_id))


@router.patch('/patents/{patent_id}', response_model=PatentDetail)
async def update_patent(
    patent_id: int,
    request: PatentUpdateRequest,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    """
    Edit a patent. Only the fields present in the body change.

    Date fields accept any recognizable date and are stored as YYYY-MM-DD;
    an empty string clears the date.
    """
    fields = request.model_dump(exclude_unset=True)

    nulled = [name for name in REQUIRED_TEXT_FIELDS if name in fields and fields[name] is None]
    if nulled:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Cannot set {', '.join(nulled)} to null"
        )

    for name in EDITABLE_DATE_FIELDS:
        if name in fields and fields[name]:
            normalized = parse_date(fields[name])
            if normalized is None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"Invalid date for {name}: {fields[name]!r}"
                )
            fields[name] = normalized
        elif name in fields:
            fields[name] = None

    if fields.get('status') is not None:
        fields['status'] = fields['status'].strip()

    try:
        patent = PatentStore(db).update(patent_id, fields)
        db.commit()
    except PatentNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.info(f"Patent {patent_id} updated by {current_user}: {', '.join(sorted(fields))}")
    return PatentDetail.model_validate(patent)


@router.delete('/patents/{patent_id}', response_model=SuccessResponse)
async def delete_patent(
    patent_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    """Delete a patent together with its payment history."""
    patent = _get_patent_or_404(db, patent_id)
    application_number = patent.application_number

    PatentStore(db).delete(patent_id)
    db.commit()

    logger.info(f"Patent {patent_id} ({application_number}) deleted by {current_user}")
    return SuccessResponse(
        success=True,
        message=f"Patent {application_number} deleted",
        data={'id': patent_id}
    )


# Renewal payments

@router.get('/patents/{patent_id}/payments', response_model=List[PaymentResponse])
async def list_payments(patent_id: int, db: Session = Depends(get_db)):
    _get_patent_or_404(db, patent_id)
    payments = RenewalService(db).list_payments(patent_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.post('/patents/{patent_id}/payments', response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def add_payment(
    patent_id: int,
    request: PaymentCreateRequest,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    """Record a renewal fee payment."""
    try:
        payment = RenewalService(db).add_payment(
            patent_id,
            payment_date=request.payment_date,
            amount=request.amount,
            payment_method=request.payment_method,
            notes=request.notes
        )
    except PatentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PaymentValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    logger.info(f"Payment {payment.id} added to patent {patent_id} by {current_user}")
    return PaymentResponse.model_validate(payment)


@router.patch('/payments/{payment_id}', response_model=PaymentResponse)
async def update_payment(
    payment_id: int,
    request: PaymentUpdateRequest,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    try:
        payment = RenewalService(db).update_payment(payment_id, **request.model_dump(exclude_unset=True))
    except PaymentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PaymentValidationError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return PaymentResponse.model_validate(payment)


@router.delete('/payments/{payment_id}', status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    try:
        RenewalService(db).delete_payment(payment_id)
    except PaymentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.info(f"Payment {payment_id} deleted by {current_user}")
    return None
