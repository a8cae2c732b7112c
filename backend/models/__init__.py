"""Models package for the patent portfolio tracker."""
from backend.models.schema import Base, Patent, RenewalPayment, ChangeLog
from backend.models.job import JobRun, JobProgress, JobStatus, JobType

__all__ = [
    'Base', 'Patent', 'RenewalPayment', 'ChangeLog',
    'JobRun', 'JobProgress', 'JobStatus', 'JobType'
]
