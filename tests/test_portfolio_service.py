"""
Tests for portfolio queries, dashboard counters and exports.
"""

from datetime import date, datetime, timedelta

import pytest
from openpyxl import load_workbook
import io

from services.export_service import (
    EXPORT_HEADERS, LIST_EXPORT_COLUMNS, export_filename, export_patents, export_patent_list
)
from services.patent_store import PatentStore, PatentNotFoundError
from services.portfolio_service import (
    PatentFilter, dashboard_stats, days_until, filter_patents, list_patents,
    renewal_table_text, renewals_due_within, status_category, unique_statuses
)
from services.renewal_service import RenewalService

TODAY = date(2025, 1, 15)


def iso(days_from_today):
    return (TODAY + timedelta(days=days_from_today)).isoformat()


@pytest.fixture
def portfolio(session):
    """A small portfolio with renewals spread around TODAY."""
    store = PatentStore(session)
    rows = [
        dict(application_number='IN100', title='Solar dryer', status='Granted',
             filed_date='2018-04-01', renewal_due_date=iso(0), applicants='KLE Tech'),
        dict(application_number='IN101', title='Water membrane', status='Granted',
             filed_date='2020-03-21', renewal_due_date=iso(20), inventors='A. Kumar'),
        dict(application_number='IN102', title='Drone imagery', status='AE',
             filed_date='2021-01-01', renewal_due_date=iso(45)),
        dict(application_number='IN103', title='Smart helmet', status='Filed',
             filed_date='2022-06-30', renewal_due_date=iso(75)),
        dict(application_number='IN104', title='Old idea', status='Abandoned',
             filed_date='2015-02-02', renewal_due_date=iso(-10)),
        dict(application_number='IN105', title='No dates', status='Published'),
    ]
    for offset, fields in enumerate(rows):
        fields.setdefault('raw_metadata', {})
        fields['updated_at'] = datetime(2025, 1, 1) + timedelta(hours=offset)
        store.add(fields)
    session.commit()
    return store.all()


class TestStatusAndDates:

    @pytest.mark.parametrize('status,category', [
        ('Granted', 'granted'),
        ('Under Examination', 'examination'),
        ('AE', 'examination'),
        ('Filed', 'filed'),
        ('Published', 'filed'),
        ('Ceased', 'inactive'),
        ('Renewal pending', 'renewal'),
        ('', 'other'),
        (None, 'other'),
    ])
    def test_status_category(self, status, category):
        assert status_category(status) == category

    def test_days_until(self):
        assert days_until(iso(5), TODAY) == 5
        assert days_until(iso(-3), TODAY) == -3
        assert days_until(None, TODAY) is None
        assert days_until('garbage', TODAY) is None


class TestFilters:

    def test_list_sorted_by_filed_date(self, session, portfolio):
        numbers = [p.application_number for p in list_patents(session)]
        assert numbers == ['IN103', 'IN102', 'IN101', 'IN100', 'IN104', 'IN105']

    def test_due_window_excludes_today(self, portfolio):
        due = filter_patents(portfolio, PatentFilter(due='30'), TODAY)
        assert [p.application_number for p in due] == ['IN101']

    def test_due_overdue(self, portfolio):
        due = filter_patents(portfolio, PatentFilter(due='overdue'), TODAY)
        assert [p.application_number for p in due] == ['IN104']

    def test_year_filter(self, portfolio):
        found = filter_patents(portfolio, PatentFilter(year=2021), TODAY)
        assert [p.application_number for p in found] == ['IN102']

    def test_date_range_on_renewal_field(self, portfolio):
        flt = PatentFilter(date_field='renewal_due_date', from_date=iso(1), to_date=iso(60))
        found = filter_patents(portfolio, flt, TODAY)
        assert {p.application_number for p in found} == {'IN101', 'IN102'}

    def test_search_and_status(self, portfolio):
        found = filter_patents(portfolio, PatentFilter(search='kumar'), TODAY)
        assert [p.application_number for p in found] == ['IN101']

        found = filter_patents(portfolio, PatentFilter(status='granted'), TODAY)
        assert {p.application_number for p in found} == {'IN100', 'IN101'}

        assert len(filter_patents(portfolio, PatentFilter(status='all'), TODAY)) == len(portfolio)

    def test_bad_date_field(self):
        with pytest.raises(ValueError):
            PatentFilter(date_field='granted_date')

    def test_unique_statuses(self, portfolio):
        assert unique_statuses(portfolio) == ['Granted', 'AE', 'Filed', 'Abandoned', 'Published']


class TestRenewals:

    def test_renewals_due_within(self, portfolio):
        due = renewals_due_within(portfolio, 60, TODAY)
        assert [p.application_number for p in due] == ['IN101', 'IN102']

    def test_renewal_table_text(self, portfolio):
        text = renewal_table_text(renewals_due_within(portfolio, 30, TODAY))
        lines = text.splitlines()

        assert lines[0].startswith('Application No')
        assert 'IN101' in lines[2]
        assert 'Water membrane' in lines[2]
        assert renewal_table_text([]) == ''


class TestDashboard:

    def test_counters(self, session, portfolio):
        patent_id = portfolio[0].id
        RenewalService(session).add_payment(patent_id, '2025-01-10', 4400, 'NEFT')

        stats = dashboard_stats(session, TODAY)

        assert stats['total_patents'] == 6
        assert stats['granted'] == 2
        assert stats['under_examination'] == 1
        assert stats['abandoned'] == 1
        assert stats['renewals_due_30'] == 2
        assert stats['renewals_due_60'] == 1
        assert stats['renewals_due_90'] == 1
        assert stats['renewals_overdue'] == 1
        assert stats['total_payments'] == 1

    def test_recent_patents(self, session, portfolio):
        recent = dashboard_stats(session, TODAY)['recent_patents']
        assert [p.application_number for p in recent][:2] == ['IN105', 'IN104']


class TestStore:

    def test_update_and_delete(self, session, portfolio):
        store = PatentStore(session)
        patent = store.update(portfolio[0].id, {'status': 'Ceased'})
        assert patent.status == 'Ceased'

        assert store.delete(patent.id) is True
        assert store.delete(patent.id) is False

        with pytest.raises(PatentNotFoundError):
            store.update(patent.id, {'status': 'Granted'})

    def test_unknown_field(self, session):
        with pytest.raises(ValueError):
            PatentStore(session).find_by('colour', 'red')


class TestExport:

    def test_full_export(self, session, portfolio):
        filename, content = export_patents(session, now=datetime(2025, 1, 31))
        worksheet = load_workbook(io.BytesIO(content)).active
        rows = list(worksheet.iter_rows(values_only=True))

        assert filename == 'KLE-IPR_full_export_2025-01-31.xlsx'
        assert worksheet.title == 'Patents'
        assert list(rows[0]) == EXPORT_HEADERS
        assert worksheet['A1'].font.bold is True
        assert len(rows) == 7
        assert rows[1][0] == 'IN100'

    def test_list_export(self, portfolio):
        filename, content = export_patent_list(portfolio[:2], now=datetime(2025, 1, 31))
        rows = list(load_workbook(io.BytesIO(content)).active.iter_rows(values_only=True))

        assert filename == 'KLE-IPR_export_2025-01-31.xlsx'
        assert list(rows[0]) == [
            'Application Number', 'Title', 'Inventors', 'Applicants', 'Filed Date',
            'Published Date', 'Granted Date', 'Status', 'Patent Number',
            'Renewal Due Date', 'Google Drive Link', 'IP India URL'
        ]
        assert len(rows) == 3
        assert len(LIST_EXPORT_COLUMNS) == 12

    def test_formula_like_text_exported_as_text(self, session):
        store = PatentStore(session)
        store.add(dict(application_number='IN200', title='=1+1', inventors='=HYPERLINK("http://x.example")',
                       status='Filed', raw_metadata={}))
        session.commit()

        _, content = export_patents(session, now=datetime(2025, 1, 31))
        worksheet = load_workbook(io.BytesIO(content)).active
        title = worksheet.cell(row=2, column=EXPORT_HEADERS.index('Title') + 1)
        inventors = worksheet.cell(row=2, column=EXPORT_HEADERS.index('Inventors') + 1)

        assert title.data_type == 's'
        assert title.value == '=1+1'
        assert inventors.data_type == 's'
        assert inventors.value == '=HYPERLINK("http://x.example")'

    def test_export_filename_default(self):
        assert export_filename().startswith('KLE-IPR_full_export_')
