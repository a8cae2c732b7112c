"""
Tests for the patent register importer.

Tests cover workbook reading, row normalization, upsert by application
number and row-level error collection.
"""

import pytest

from backend.models.schema import Patent
from services.patent_import_service import (
    PatentImportService, ImportResult, IPINDIA_PORTAL_URL, NO_DATA_MESSAGE
)


def patents_by_number(session):
    return {p.application_number: p for p in session.query(Patent).all()}


class TestImportBasics:
    """Importing a well-formed register."""

    def test_imports_every_row(self, session, make_register, sample_rows):
        path = make_register(sample_rows)

        result = PatentImportService(session).import_file(path)

        assert result.success is True
        assert result.imported == 3
        assert result.created == 3
        assert result.errors == []
        assert session.query(Patent).count() == 3

    def test_row_fields_are_normalized(self, session, make_register, sample_rows):
        PatentImportService(session).import_file(make_register(sample_rows))
        patent = patents_by_number(session)['202011012345']

        assert patent.title == 'Low-cost water purification membrane'
        assert patent.inventors == 'A. Kumar, S. Patil, R. Desai'
        assert patent.applicants == 'KLE Technological University'
        assert patent.filed_date == '2020-03-21'
        assert patent.published_date == '2021-09-24'
        assert patent.granted_date == '2022-11-02'
        assert patent.renewal_due_date == '2026-03-21'
        assert patent.status == 'Granted'
        assert patent.patent_number == '412345'
        assert patent.ipindia_status_url == IPINDIA_PORTAL_URL
        assert patent.renewal_fee is None
        assert patent.last_checked is None

    def test_raw_metadata_keeps_provenance(self, session, make_register, sample_rows):
        PatentImportService(session).import_file(make_register(sample_rows))
        metadata = patents_by_number(session)['202011012345'].raw_metadata

        assert metadata['sl_no'] == 1
        assert metadata['provisional'] == 'No'
        assert metadata['remarks'] == 'Renewal paid for year 5'
        assert metadata['ip_agent'] == 'Lex IP'
        assert metadata['details'] == 'Graphene oxide membrane'
        assert metadata['full_row'][2] == '202011012345'

    def test_hyperlink_becomes_drive_link(self, session, make_register, sample_rows):
        PatentImportService(session).import_file(make_register(sample_rows))
        patents = patents_by_number(session)

        assert patents['202011012345'].google_drive_link == 'https://drive.example/doc1'
        assert patents['202141054321'].google_drive_link is None

    def test_blank_status_defaults_to_filed(self, session, make_register, sample_rows):
        PatentImportService(session).import_file(make_register(sample_rows))

        assert patents_by_number(session)['202241000777'].status == 'Filed'

    def test_inventors_without_secondary(self, session, make_register, sample_rows):
        PatentImportService(session).import_file(make_register(sample_rows))

        assert patents_by_number(session)['202141054321'].inventors == 'M. Rao'

    def test_import_bytes(self, session, make_register, sample_rows):
        data = make_register(sample_rows).read_bytes()

        result = PatentImportService(session).import_bytes(data, source_name='upload.xlsx')

        assert result.success is True
        assert result.imported == 3

    def test_progress_callback(self, session, make_register, sample_rows):
        events = []
        service = PatentImportService(session, progress_callback=lambda *args: events.append(args))

        service.import_file(make_register(sample_rows))

        stages = [stage for stage, _, _ in events]
        assert stages[0] == 'reading'
        assert stages[-1] == 'complete'
        assert events[-1][1] == 100


class TestDates:
    """Date cells in their different spreadsheet encodings."""

    def test_serial_and_iso_text_are_equal(self, session, make_register):
        service = PatentImportService(session)
        service.import_file(make_register([{'application_number': 'IN001', 'filed_date': 43831}]))
        from_serial = patents_by_number(session)['IN001'].filed_date

        service.import_file(make_register([{'application_number': 'IN001', 'filed_date': '2020-01-01'}]))
        session.expire_all()
        from_text = patents_by_number(session)['IN001'].filed_date

        assert from_serial == '2020-01-01'
        assert from_text == from_serial

    def test_date_formatted_cell(self, session, make_register):
        from datetime import datetime
        PatentImportService(session).import_file(
            make_register([{'application_number': 'IN002', 'granted_date': datetime(2023, 7, 14)}])
        )

        assert patents_by_number(session)['IN002'].granted_date == '2023-07-14'

    def test_unparseable_date_is_dropped(self, session, make_register):
        result = PatentImportService(session).import_file(
            make_register([{'application_number': 'IN003', 'filed_date': 'pending'}])
        )

        assert result.imported == 1
        assert patents_by_number(session)['IN003'].filed_date is None


class TestUpsert:
    """Reconciliation by application number."""

    def test_reimport_is_idempotent(self, session, make_register, sample_rows):
        path = make_register(sample_rows)
        service = PatentImportService(session)

        service.import_file(path)
        ids_before = {n: p.id for n, p in patents_by_number(session).items()}
        second = service.import_file(path)

        assert second.success is True
        assert second.created == 0
        assert second.updated == 3
        assert session.query(Patent).count() == 3
        assert {n: p.id for n, p in patents_by_number(session).items()} == ids_before

    def test_status_change_updates_in_place(self, session, make_register):
        service = PatentImportService(session)
        service.import_file(make_register([{'application_number': 'IN001', 'status': 'Filed'}]))
        original_id = patents_by_number(session)['IN001'].id

        service.import_file(make_register([{'application_number': 'IN001', 'status': 'Granted'}]))
        session.expire_all()
        patents = session.query(Patent).filter_by(application_number='IN001').all()

        assert len(patents) == 1
        assert patents[0].id == original_id
        assert patents[0].status == 'Granted'

    def test_update_overwrites_every_field(self, session, make_register):
        service = PatentImportService(session)
        service.import_file(make_register([
            {'application_number': 'IN005', 'title': 'Old title', 'patent_number': '999', 'link': 'https://drive.example/a'}
        ]))

        service.import_file(make_register([{'application_number': 'IN005', 'title': 'New title'}]))
        session.expire_all()
        patent = patents_by_number(session)['IN005']

        assert patent.title == 'New title'
        assert patent.patent_number is None
        assert patent.google_drive_link is None

    def test_duplicate_rows_in_one_workbook(self, session, make_register):
        result = PatentImportService(session).import_file(make_register([
            {'application_number': 'IN007', 'title': 'First'},
            {'application_number': 'IN007', 'title': 'Second'},
        ]))

        assert result.imported == 2
        assert result.created == 1
        assert result.updated == 1
        assert session.query(Patent).count() == 1
        assert patents_by_number(session)['IN007'].title == 'Second'


class TestRowHandling:
    """Skipped rows, bad rows and odd layouts."""

    def test_blank_application_number_is_skipped(self, session, make_register):
        result = PatentImportService(session).import_file(make_register([
            {'application_number': 'IN010', 'title': 'Kept'},
            {'application_number': None, 'title': 'No number'},
            {'application_number': '   ', 'title': 'Whitespace number'},
        ]))

        assert result.success is True
        assert result.imported == 1
        assert result.skipped == 2
        assert result.errors == []
        assert session.query(Patent).count() == 1

    def test_missing_title_still_imports(self, session, make_register):
        result = PatentImportService(session).import_file(
            make_register([{'application_number': 'IN011', 'status': 'AE'}])
        )

        assert result.imported == 1
        assert patents_by_number(session)['IN011'].title == ''

    def test_failing_row_does_not_stop_batch(self, session, make_register, monkeypatch):
        service = PatentImportService(session)
        original = service.upsert_patent

        def flaky_upsert(patent_row):
            if patent_row.application_number == 'BAD':
                raise ValueError('boom')
            return original(patent_row)

        monkeypatch.setattr(service, 'upsert_patent', flaky_upsert)

        result = service.import_file(make_register([
            {'application_number': 'IN020'},
            {'application_number': 'BAD'},
            {'application_number': 'IN021'},
        ]))

        assert result.success is True
        assert result.imported == 2
        # Second data row sits on spreadsheet row 4 (banner, headers, first row)
        assert result.errors == ['Row 4: boom']
        assert set(patents_by_number(session)) == {'IN020', 'IN021'}

    def test_headers_resolved_by_name(self, session, make_register):
        headers = ['Application Number', 'Invention Title', 'Status', 'Application Date', 'Applicant', 'Main Innovator']
        result = PatentImportService(session).import_file(make_register(
            [['IN030', 'Reordered columns', 'Granted', '2019-05-06', 'KLE Tech', 'Priya Shah']],
            headers=headers
        ))

        patent = patents_by_number(session)['IN030']
        assert result.imported == 1
        assert patent.title == 'Reordered columns'
        assert patent.status == 'Granted'
        assert patent.filed_date == '2019-05-06'
        assert patent.applicants == 'KLE Tech'
        assert patent.inventors == 'Priya Shah'

    def test_headers_only_sheet_imports_nothing(self, session, make_register):
        """
        Only a sheet with fewer than two rows is "No data found"; banner plus
        header is a successful import of zero rows.
        """
        result = PatentImportService(session).import_file(make_register([]))

        assert result.success is True
        assert result.imported == 0
        assert result.errors == []
        assert session.query(Patent).count() == 0


class TestFailures:
    """Whole-import failures."""

    def test_banner_only_sheet_fails(self, session, make_register):
        result = PatentImportService(session).import_file(make_register([], headers=False))

        assert result == ImportResult(success=False, imported=0, errors=[NO_DATA_MESSAGE])

    def test_unreadable_bytes_fail(self, session):
        result = PatentImportService(session).import_bytes(b'this is not a workbook', 'junk.xlsx')

        assert result.success is False
        assert result.imported == 0
        assert len(result.errors) == 1
        assert session.query(Patent).count() == 0

    def test_missing_default_file(self, session, tmp_path):
        missing = tmp_path / 'KLE-IPR.xlsx'
        service = PatentImportService(session, default_workbook_path=str(missing))

        result = service.import_default_file()

        assert result.success is False
        assert result.errors == [f"Failed to load Excel file: {missing} not found"]

    def test_default_file_uses_same_pipeline(self, session, make_register, sample_rows):
        path = make_register(sample_rows, name='KLE-IPR.xlsx')
        service = PatentImportService(session, default_workbook_path=str(path))

        result = service.import_default_file()

        assert result.success is True
        assert result.imported == 3
