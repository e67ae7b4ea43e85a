# models/mlm/execution_log.py
"""
ExecutionLog model - one record per scheduled job run.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Text
from models.base import Base, UtcDateTime, utcNow


class ExecutionLog(Base):
    __tablename__ = 'cron_logs'

    logID = Column(Integer, primary_key=True, autoincrement=True)
    jobName = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)  # success, failed
    message = Column(Text, nullable=False)
    timestamp = Column(UtcDateTime, default=utcNow, index=True)

    stakesProcessed = Column(Integer, default=0)
    stakesExpired = Column(Integer, default=0)
    stakesSkipped = Column(Integer, default=0)  # Already paid for this day
    totalYieldDistributed = Column(DECIMAL(18, 8), default=0)
    totalCommissionsDistributed = Column(DECIMAL(18, 8), default=0)
    executionTimeMs = Column(Integer, nullable=True)

    details = Column(Text, nullable=True)  # Collected per-stake errors or traceback

    def __repr__(self):
        return f"<ExecutionLog(job={self.jobName}, status={self.status}, at={self.timestamp})>"
