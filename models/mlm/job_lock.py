# models/mlm/job_lock.py
"""
JobLock model - single-flight lock row per job name.
"""
from sqlalchemy import Column, String
from models.base import Base, UtcDateTime, utcNow


class JobLock(Base):
    __tablename__ = 'job_locks'

    jobName = Column(String, primary_key=True)
    owner = Column(String, nullable=True)
    lockedAt = Column(UtcDateTime, default=utcNow, nullable=False)

    def __repr__(self):
        return f"<JobLock(job={self.jobName}, owner={self.owner}, at={self.lockedAt})>"
