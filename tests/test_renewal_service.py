"""
Tests for renewal payment recording.
"""

from decimal import Decimal

import pytest

from backend.models.schema import RenewalPayment
from services.patent_store import PatentStore, PatentNotFoundError
from services.renewal_service import RenewalService, PaymentNotFoundError, PaymentValidationError


@pytest.fixture
def patent(session):
    patent = PatentStore(session).add({'application_number': 'IN200', 'raw_metadata': {}})
    session.commit()
    return patent


class TestPayments:

    def test_add_and_list(self, session, patent):
        service = RenewalService(session)
        service.add_payment(patent.id, '2025-03-10', 4400, 'NEFT', notes='Year 5')
        service.add_payment(patent.id, '03/10/2024', '4000.50', ' Cheque ')

        payments = service.list_payments(patent.id)

        assert [p.payment_date for p in payments] == ['2024-03-10', '2025-03-10']
        assert payments[0].amount == Decimal('4000.50')
        assert payments[0].payment_method == 'Cheque'
        assert payments[1].notes == 'Year 5'

    def test_unknown_patent(self, session):
        with pytest.raises(PatentNotFoundError):
            RenewalService(session).add_payment(999, '2025-03-10', 100, 'NEFT')

    @pytest.mark.parametrize('payment_date,amount,method', [
        ('', 100, 'NEFT'),
        ('not a date', 100, 'NEFT'),
        ('2025-03-10', -1, 'NEFT'),
        ('2025-03-10', 'ten', 'NEFT'),
        ('2025-03-10', None, 'NEFT'),
        ('2025-03-10', 100, '   '),
    ])
    def test_validation(self, session, patent, payment_date, amount, method):
        with pytest.raises(PaymentValidationError):
            RenewalService(session).add_payment(patent.id, payment_date, amount, method)
        assert session.query(RenewalPayment).count() == 0

    def test_update_and_delete(self, session, patent):
        service = RenewalService(session)
        payment = service.add_payment(patent.id, '2025-03-10', 4400, 'NEFT')

        updated = service.update_payment(payment.id, amount=5000, notes='corrected')
        assert updated.amount == Decimal('5000')
        assert updated.notes == 'corrected'

        with pytest.raises(PaymentValidationError):
            service.update_payment(payment.id, patent_id=1)

        service.delete_payment(payment.id)
        assert service.list_payments(patent.id) == []

        with pytest.raises(PaymentNotFoundError):
            service.delete_payment(payment.id)

    def test_payments_removed_with_patent(self, session, patent):
        RenewalService(session).add_payment(patent.id, '2025-03-10', 4400, 'NEFT')

        PatentStore(session).delete(patent.id)
        session.commit()

        assert session.query(RenewalPayment).count() == 0
