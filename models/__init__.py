# models/__init__.py
"""
Database models for the staking engine.
Import all models here for easy access.
"""

# Base and mixins
from models.base import Base, AuditMixin, UtcDateTime

# Core models
from models.account import Account
from models.stake import Stake, StakeYieldRecord
from models.transaction import Transaction
from models.commission_history import CommissionHistory
from models.notification import Notification
from models.config_entry import ConfigEntry
from models.swap_request import SwapRequest

# Engine bookkeeping
from models.mlm.rank_history import RankHistory
from models.mlm.execution_log import ExecutionLog
from models.mlm.job_lock import JobLock

__all__ = [
    # Base
    'Base',
    'AuditMixin',
    'UtcDateTime',

    # Core
    'Account',
    'Stake',
    'StakeYieldRecord',
    'Transaction',
    'CommissionHistory',
    'Notification',
    'ConfigEntry',
    'SwapRequest',

    # Engine
    'RankHistory',
    'ExecutionLog',
    'JobLock',
]
