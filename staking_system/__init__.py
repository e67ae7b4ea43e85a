# staking_system/__init__.py
"""
Staking compensation engine - daily yield, team volume, ranks and commissions.
"""

# Services
from staking_system.services.account_service import AccountService
from staking_system.services.brank_service import BRankService
from staking_system.services.config_service import ConfigService, ConfigKeys
from staking_system.services.currency_service import CurrencyService
from staking_system.services.distribution_service import DistributionService
from staking_system.services.ledger_service import LedgerService
from staking_system.services.notification_service import NotificationService
from staking_system.services.rank_service import RankService
from staking_system.services.referral_service import ReferralService
from staking_system.services.report_service import ReportService
from staking_system.services.stake_service import StakeService
from staking_system.services.unilevel_service import UnilevelService
from staking_system.services.upline_service import UplineService
from staking_system.services.volume_service import VolumeService

# Configuration
from staking_system.config.ranks import Rank, DEFAULT_RANK_RULES
from staking_system.config.settings import EngineSnapshot, RankRule, RankRuleTable

# Errors
from staking_system.errors import StakingError, ErrorCodes

# Utilities
from staking_system.utils.time_machine import timeMachine

# Events
from staking_system.events.event_bus import eventBus, StakingEvents

__all__ = [
    # Services
    'AccountService',
    'BRankService',
    'ConfigService',
    'ConfigKeys',
    'CurrencyService',
    'DistributionService',
    'LedgerService',
    'NotificationService',
    'RankService',
    'ReferralService',
    'ReportService',
    'StakeService',
    'UnilevelService',
    'UplineService',
    'VolumeService',

    # Config
    'Rank',
    'DEFAULT_RANK_RULES',
    'EngineSnapshot',
    'RankRule',
    'RankRuleTable',

    # Errors
    'StakingError',
    'ErrorCodes',

    # Utils
    'timeMachine',

    # Events
    'eventBus',
    'StakingEvents',
]
