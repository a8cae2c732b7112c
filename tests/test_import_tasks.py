"""
Tests for the Celery import worker, run eagerly with Task.apply().
"""

import json
from datetime import datetime, timedelta

import pytest
import redis
from sqlalchemy.exc import IntegrityError

from backend.models.job import JobRun, JobProgress
from backend.models.schema import Patent
from tasks import import_tasks


class FakeRedis:
    """Records setex calls; optionally behaves like an unreachable server."""

    def __init__(self, down=False):
        self.down = down
        self.values = {}

    def setex(self, key, ttl, value):
        if self.down:
            raise redis.ConnectionError('Error 111 connecting to localhost:6379')
        self.values[key] = json.loads(value)


@pytest.fixture
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(import_tasks, 'redis_client', client)
    return client


@pytest.fixture
def worker_db(monkeypatch, session_factory, tmp_path, fake_redis):
    """Point the worker at the test database and treat tmp_path as the upload dir."""
    monkeypatch.setattr(import_tasks, 'SessionLocal', session_factory)
    monkeypatch.setattr(import_tasks, 'TEMP_UPLOAD_DIR', str(tmp_path))
    return session_factory


def queue_job(session_factory, job_id='job-1', **fields):
    with session_factory() as session:
        session.add(JobRun(job_id=job_id, job_type='import', params={'filename': 'KLE-IPR.xlsx'}, **fields))
        session.commit()


def load_job(session_factory, job_id='job-1'):
    with session_factory() as session:
        job = session.query(JobRun).filter_by(job_id=job_id).one()
        stages = [p.stage for p in job.progress]
        return job.status, job.result, job.error, stages


def run_import(path, job_id='job-1'):
    return import_tasks.import_patent_workbook.apply(args=[str(path)], task_id=job_id)


class TestImportTask:

    def test_successful_import(self, worker_db, fake_redis, make_register, sample_rows):
        queue_job(worker_db)
        path = make_register(sample_rows)

        outcome = run_import(path)

        status, result, error, stages = load_job(worker_db)
        assert outcome.successful()
        assert status == 'success'
        assert result['imported'] == 3
        assert result['created'] == 3
        assert error is None
        assert stages[0] == 'reading'
        assert stages[-1] == 'complete'
        assert fake_redis.values['job_progress:job-1']['stage'] == 'complete'

        with worker_db() as session:
            assert session.query(Patent).count() == 3
            started, completed = session.query(JobRun.started_at, JobRun.completed_at).one()
            assert started is not None and completed >= started

    def test_banner_only_workbook_fails_job(self, worker_db, make_register):
        queue_job(worker_db)
        path = make_register([], headers=False)

        outcome = run_import(path)

        status, result, error, stages = load_job(worker_db)
        assert outcome.failed()
        assert status == 'failed'
        assert result is None
        assert 'No data found in Excel file' in error['error']
        assert stages[-1] == 'failed'

    def test_upload_removed_after_failure(self, worker_db, tmp_path):
        queue_job(worker_db)
        upload = tmp_path / 'upload.xlsx'
        upload.write_bytes(b'not a workbook')

        outcome = run_import(upload)

        assert outcome.failed()
        assert not upload.exists()
        assert load_job(worker_db)[0] == 'failed'

    def test_upload_removed_after_success(self, worker_db, make_register, sample_rows):
        queue_job(worker_db)
        path = make_register(sample_rows)

        run_import(path)

        assert not path.exists()

    def test_finished_job_is_not_imported_again(self, worker_db, make_register, sample_rows):
        queue_job(worker_db, status='success', result={'success': True, 'imported': 7, 'errors': []})
        path = make_register(sample_rows)

        run_import(path)

        status, result, _, stages = load_job(worker_db)
        assert status == 'success'
        assert result['imported'] == 7
        assert stages == []
        with worker_db() as session:
            assert session.query(Patent).count() == 0

    def test_progress_history_kept_when_redis_is_down(self, worker_db, monkeypatch, make_register, sample_rows):
        monkeypatch.setattr(import_tasks, 'redis_client', FakeRedis(down=True))
        queue_job(worker_db)

        outcome = run_import(make_register(sample_rows))

        status, _, _, stages = load_job(worker_db)
        assert outcome.successful()
        assert status == 'success'
        assert 'rows' in stages
        assert stages[-1] == 'complete'

    def test_cancelled_is_not_a_job_status(self, worker_db):
        with pytest.raises(IntegrityError):
            queue_job(worker_db, status='cancelled')


class TestCleanup:

    def test_removes_only_old_finished_jobs(self, worker_db):
        old = datetime.utcnow() - timedelta(days=45)
        recent = datetime.utcnow() - timedelta(days=2)
        queue_job(worker_db, 'old-done', status='success', completed_at=old)
        queue_job(worker_db, 'old-failed', status='failed', completed_at=old)
        queue_job(worker_db, 'recent-done', status='success', completed_at=recent)
        queue_job(worker_db, 'stuck', status='processing')
        with worker_db() as session:
            session.add(JobProgress(job_id='old-done', stage='complete', percent=100, timestamp=old))
            session.add(JobProgress(job_id='recent-done', stage='complete', percent=100, timestamp=recent))
            session.commit()

        stats = import_tasks.cleanup_old_jobs(30)

        assert stats['deleted_jobs'] == 2
        assert stats['deleted_progress'] == 1
        with worker_db() as session:
            remaining = {job.job_id for job in session.query(JobRun)}
            assert remaining == {'recent-done', 'stuck'}
            assert session.query(JobProgress).count() == 1
