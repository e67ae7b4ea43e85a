# models/mlm/__init__.py
"""
Compensation engine bookkeeping models.
"""

from models.mlm.rank_history import RankHistory
from models.mlm.execution_log import ExecutionLog
from models.mlm.job_lock import JobLock

__all__ = [
    'RankHistory',
    'ExecutionLog',
    'JobLock',
]
