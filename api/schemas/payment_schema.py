"""
Renewal payment Pydantic schemas.
"""

from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime


class PaymentCreateRequest(BaseModel):
    """New renewal payment."""

    payment_date: str = Field(..., min_length=1, description="Payment date (YYYY-MM-DD)")
    amount: float = Field(..., ge=0, description="Amount paid")
    payment_method: str = Field(..., min_length=1, max_length=255, description="e.g. NEFT, cheque")
    notes: str = Field('', description="Free-text notes")

    class Config:
        json_schema_extra = {
            "example": {
                "payment_date": "2025-03-10",
                "amount": 4400,
                "payment_method": "NEFT",
                "notes": "5th year renewal"
            }
        }


class PaymentUpdateRequest(BaseModel):
    """Partial payment update."""

    payment_date: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)
    payment_method: Optional[str] = Field(None, min_length=1, max_length=255)
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    """Stored renewal payment."""

    id: int
    patent_id: int
    payment_date: str
    amount: float
    payment_method: str
    notes: str
    created_at: datetime

    class Config:
        from_attributes = True
