"""
Renewal Service - Renewal fee payments recorded against patents.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from backend.models.schema import Patent, RenewalPayment
from services.normalizers import parse_date
from services.patent_store import PatentNotFoundError

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('payment_date', 'amount', 'payment_method', 'notes')


class PaymentValidationError(ValueError):
    """Raised when a payment is missing required data or has a bad amount."""


class PaymentNotFoundError(LookupError):
    """Raised when a payment id does not exist."""

    def __init__(self, payment_id: int):
        super().__init__(f"Payment {payment_id} not found")
        self.payment_id = payment_id


def _clean_amount(amount: Any) -> Decimal:
    if amount is None or amount == '':
        raise PaymentValidationError('Amount is required')
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise PaymentValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value < 0:
        raise PaymentValidationError('Amount must be a non-negative number')
    return value


def _clean_date(payment_date: Any) -> str:
    if not payment_date:
        raise PaymentValidationError('Payment date is required')
    normalized = parse_date(payment_date)
    if normalized is None:
        raise PaymentValidationError(f"Invalid payment date: {payment_date!r}")
    return normalized


def _clean_method(payment_method: Optional[str]) -> str:
    method = (payment_method or '').strip()
    if not method:
        raise PaymentValidationError('Payment method is required')
    return method


class RenewalService:
    """Create, edit and list renewal payments."""

    def __init__(self, db_session: Session):
        self.session = db_session

    def _get_payment(self, payment_id: int) -> RenewalPayment:
        payment = self.session.get(RenewalPayment, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    def list_payments(self, patent_id: int) -> List[RenewalPayment]:
        return (
            self.session.query(RenewalPayment)
            .filter(RenewalPayment.patent_id == patent_id)
            .order_by(RenewalPayment.payment_date, RenewalPayment.id)
            .all()
        )

    def add_payment(
        self,
        patent_id: int,
        payment_date: Any,
        amount: Any,
        payment_method: str,
        notes: str = ''
    ) -> RenewalPayment:
        if self.session.get(Patent, patent_id) is None:
            raise PatentNotFoundError(patent_id)

        payment = RenewalPayment(
            patent_id=patent_id,
            payment_date=_clean_date(payment_date),
            amount=_clean_amount(amount),
            payment_method=_clean_method(payment_method),
            notes=notes or ''
        )
        self.session.add(payment)
        self.session.commit()
        logger.info(f"Recorded payment {payment.id} of {payment.amount} for patent {patent_id}")
        return payment

    def update_payment(self, payment_id: int, **fields: Any) -> RenewalPayment:
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise PaymentValidationError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        payment = self._get_payment(payment_id)
        if 'payment_date' in fields:
            payment.payment_date = _clean_date(fields['payment_date'])
        if 'amount' in fields:
            payment.amount = _clean_amount(fields['amount'])
        if 'payment_method' in fields:
            payment.payment_method = _clean_method(fields['payment_method'])
        if 'notes' in fields:
            payment.notes = fields['notes'] or ''

        self.session.commit()
        logger.info(f"Updated payment {payment_id}")
        return payment

    def delete_payment(self, payment_id: int) -> None:
        payment = self._get_payment(payment_id)
        self.session.delete(payment)
        self.session.commit()
        logger.info(f"Deleted payment {payment_id}")
