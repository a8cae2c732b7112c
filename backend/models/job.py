"""
Background import bookkeeping.

A queued upload gets a `JobRun` row before the worker starts; the worker
appends `JobProgress` rows as it walks the register and stores the
`ImportResult` (or the failure) on the run when it is done.
"""

from enum import Enum
from sqlalchemy import (
    Column, Integer, String, TIMESTAMP, ForeignKey, Numeric, Text,
    CheckConstraint, Index, text
)
from sqlalchemy.orm import relationship

from backend.models.schema import Base, JSONType


class JobStatus(str, Enum):
    """pending -> processing -> success | failed; imports are never cancelled."""
    PENDING = 'pending'
    PROCESSING = 'processing'
    SUCCESS = 'success'
    FAILED = 'failed'


FINISHED_STATUSES = (JobStatus.SUCCESS.value, JobStatus.FAILED.value)


class JobType(str, Enum):
    IMPORT = 'import'


class JobRun(Base):
    """One queued patent register import."""

    __tablename__ = 'job_runs'
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'success', 'failed')",
            name='job_runs_status_check'
        ),
        CheckConstraint("job_type IN ('import')", name='job_runs_job_type_check'),
        Index('idx_job_runs_status', 'status'),
        Index('idx_job_runs_created_at', 'created_at'),
        {'comment': 'Queued patent register imports'}
    )

    job_id = Column(String(255), primary_key=True, comment='Celery task id, assigned by the API')
    job_type = Column(String(50), nullable=False, default=JobType.IMPORT.value)
    status = Column(String(20), nullable=False, server_default='pending')
    created_at = Column(TIMESTAMP, server_default=text('CURRENT_TIMESTAMP'), nullable=False)
    started_at = Column(TIMESTAMP, nullable=True)
    completed_at = Column(TIMESTAMP, nullable=True)

    # Upload filename and size
    params = Column(JSONType, nullable=False, default=dict)
    # ImportResult.to_dict() of a finished import
    result = Column(JSONType, nullable=True)
    error = Column(JSONType, nullable=True, comment='Fatal message and traceback of a failed import')
    created_by = Column(String(255), nullable=True, comment='API key owner that queued the upload')

    progress = relationship(
        'JobProgress',
        back_populates='job',
        cascade='all, delete-orphan',
        order_by='JobProgress.id'
    )

    def __repr__(self):
        return f"<JobRun(job_id='{self.job_id}', status='{self.status}')>"


class JobProgress(Base):
    """A progress callback from the importer, kept after Redis expires it."""

    __tablename__ = 'job_progress'
    __table_args__ = (
        Index('idx_job_progress_job_id', 'job_id'),
        Index('idx_job_progress_timestamp', 'timestamp'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(
        String(255),
        ForeignKey('job_runs.job_id', ondelete='CASCADE'),
        nullable=False
    )
    stage = Column(String(50), nullable=False, comment='reading, mapping, rows, complete or failed')
    percent = Column(Numeric(5, 2), nullable=False)
    message = Column(Text, nullable=True)
    timestamp = Column(TIMESTAMP, server_default=text('CURRENT_TIMESTAMP'), nullable=False)

    job = relationship('JobRun', back_populates='progress')

    def __repr__(self):
        return f"<JobProgress(job_id='{self.job_id}', stage='{self.stage}', percent={self.percent})>"
