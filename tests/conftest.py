"""
Pytest configuration and fixtures for patent tracker tests.
"""

import os

# Keep the API from writing a log file during tests
os.environ.setdefault('LOG_FILE', '')

import pytest
from openpyxl import Workbook

from backend.database import create_db_engine, create_session_factory
from backend.models import Base

# Register layout in fallback-column order, so positional and header
# resolution agree for the default fixture
REGISTER_HEADERS = [
    'Sl No', 'Provisional', 'Application No', 'Application Date', 'Status',
    'Publication Date', 'Patent Number', 'Patent Certificate View/Download',
    'Grant Date', 'Renewal\nDate', 'Invention Title', 'Details of IP in brief',
    'Applicant', 'Main Innovator', 'Other Innovators', 'IP Agent', 'Remarks'
]

FIELD_COLUMNS = {
    'sl_no': 0,
    'provisional': 1,
    'application_number': 2,
    'filed_date': 3,
    'status': 4,
    'published_date': 5,
    'patent_number': 6,
    'patent_certificate': 7,
    'granted_date': 8,
    'renewal_due_date': 9,
    'title': 10,
    'details': 11,
    'applicants': 12,
    'main_inventor': 13,
    'other_inventors': 14,
    'ip_agent': 15,
    'remarks': 16,
}


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    eng = create_db_engine('sqlite://')
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def session(session_factory):
    """Create a new database session for a test."""
    sess = session_factory()
    yield sess
    sess.close()


def register_row(**fields):
    """Build a data row in register layout from field names."""
    row = [None] * len(REGISTER_HEADERS)
    for name, value in fields.items():
        row[FIELD_COLUMNS[name]] = value
    return row


@pytest.fixture
def make_register(tmp_path):
    """
    Write a patent register workbook and return its path.

    Rows are dicts of field name -> cell value (a 'link' key becomes a
    hyperlink on the application number cell) or plain lists written as-is.
    """
    counter = {'n': 0}

    def _make(rows, headers=None, banner='KLE Technological University - IPR Register', name=None):
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = 'IPR'
        worksheet.append([banner])
        if headers is not False:
            worksheet.append(list(headers if headers is not None else REGISTER_HEADERS))

        for data in rows:
            if isinstance(data, list):
                worksheet.append(data)
                continue
            data = dict(data)
            link = data.pop('link', None)
            worksheet.append(register_row(**data))
            if link:
                worksheet.cell(row=worksheet.max_row, column=FIELD_COLUMNS['application_number'] + 1).hyperlink = link

        counter['n'] += 1
        path = tmp_path / (name or f"register_{counter['n']}.xlsx")
        workbook.save(path)
        return path

    return _make


@pytest.fixture
def sample_rows():
    """Three realistic register rows."""
    return [
        {
            'sl_no': 1,
            'provisional': 'No',
            'application_number': '202011012345',
            'filed_date': '2020-03-21',
            'status': 'Granted',
            'published_date': '2021-09-24',
            'patent_number': '412345',
            'granted_date': '2022-11-02',
            'renewal_due_date': '2026-03-21',
            'title': 'Low-cost water purification membrane',
            'details': 'Graphene oxide membrane',
            'applicants': 'KLE Technological University',
            'main_inventor': 'A. Kumar',
            'other_inventors': 'S. Patil, R. Desai',
            'ip_agent': 'Lex IP',
            'remarks': 'Renewal paid for year 5',
            'link': 'https://drive.example/doc1',
        },
        {
            'sl_no': 2,
            'application_number': '202141054321',
            'filed_date': 44197,
            'status': 'AE',
            'title': 'Crop disease detection using drone imagery',
            'applicants': 'KLE Technological University',
            'main_inventor': 'M. Rao',
        },
        {
            'sl_no': 3,
            'application_number': '202241000777',
            'status': '',
            'title': 'Smart helmet',
            'main_inventor': 'P. Joshi',
        },
    ]
