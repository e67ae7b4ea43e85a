# staking_system/services/config_service.py
"""
Business configuration stored in the configs table.
"""
from decimal import Decimal
from typing import Any, Dict
from sqlalchemy.orm import Session
import logging

from models import ConfigEntry
from staking_system.config.ranks import (
    DEFAULT_RANK_RULES, DEFAULT_STAKING_CYCLES, DEFAULT_REFERRAL_RATES,
    MIN_STAKE_AMOUNT, MIN_WITHDRAWAL_AMOUNT, POINTS_CONVERSION_RATE, POINTS_MIN_SWAP_AMOUNT
)
from staking_system.config.settings import EngineSnapshot, RankRuleTable, StakingCycle, toDecimal

logger = logging.getLogger(__name__)


class ConfigKeys:
    RANK_RULES = "rank_rules"
    STAKING_CYCLES = "staking_cycles"
    REFERRAL_RATES = "referral_rates"

    POINTS_ENABLED = "points_enabled"
    POINTS_CONVERSION_RATE = "points_conversion_rate"
    POINTS_MIN_SWAP_AMOUNT = "points_min_swap_amount"

    STAKING_PAUSED = "staking_paused"
    WITHDRAWALS_PAUSED = "withdrawals_paused"
    REFERRAL_BONUSES_ENABLED = "referral_bonuses_enabled"
    DISTRIBUTION_PAUSED = "distribution_paused"

    MIN_STAKE_AMOUNT = "min_stake_amount"
    MIN_WITHDRAWAL_AMOUNT = "min_withdrawal_amount"


DEFAULT_CONFIG = {
    ConfigKeys.RANK_RULES: DEFAULT_RANK_RULES,
    ConfigKeys.STAKING_CYCLES: DEFAULT_STAKING_CYCLES,
    ConfigKeys.REFERRAL_RATES: {str(level): str(rate) for level, rate in DEFAULT_REFERRAL_RATES.items()},
    ConfigKeys.POINTS_ENABLED: False,
    ConfigKeys.POINTS_CONVERSION_RATE: str(POINTS_CONVERSION_RATE),
    ConfigKeys.POINTS_MIN_SWAP_AMOUNT: str(POINTS_MIN_SWAP_AMOUNT),
    ConfigKeys.STAKING_PAUSED: False,
    ConfigKeys.WITHDRAWALS_PAUSED: False,
    ConfigKeys.REFERRAL_BONUSES_ENABLED: True,
    ConfigKeys.DISTRIBUTION_PAUSED: False,
    ConfigKeys.MIN_STAKE_AMOUNT: str(MIN_STAKE_AMOUNT),
    ConfigKeys.MIN_WITHDRAWAL_AMOUNT: str(MIN_WITHDRAWAL_AMOUNT),
}


class ConfigService:
    """Read/write access to business settings and the per-run snapshot."""

    def __init__(self, session: Session):
        self.session = session

    async def get(self, key: str, default: Any = None) -> Any:
        entry = self.session.query(ConfigEntry).filter_by(key=key).first()
        if entry is None or entry.value is None:
            return default if default is not None else DEFAULT_CONFIG.get(key)
        return entry.value

    async def set(self, key: str, value: Any) -> ConfigEntry:
        if isinstance(value, Decimal):
            value = str(value)

        entry = self.session.query(ConfigEntry).filter_by(key=key).first()
        if entry:
            entry.value = value
        else:
            entry = ConfigEntry(key=key, value=value)
            self.session.add(entry)

        self.session.flush()
        logger.info(f"Config {key} set to {value}")
        return entry

    async def getFlag(self, key: str) -> bool:
        return bool(await self.get(key))

    async def getDecimal(self, key: str) -> Decimal:
        return toDecimal(await self.get(key), key)

    async def initializeDefaults(self) -> int:
        """Seed missing keys. Existing values are left untouched."""
        created = 0
        for key, value in DEFAULT_CONFIG.items():
            exists = self.session.query(ConfigEntry).filter_by(key=key).first()
            if exists:
                continue
            self.session.add(ConfigEntry(key=key, value=value))
            created += 1

        self.session.flush()
        if created:
            logger.info(f"Seeded {created} default config entries")
        return created

    async def getRankRules(self) -> RankRuleTable:
        return RankRuleTable.fromConfig(await self.get(ConfigKeys.RANK_RULES))

    async def setRankRules(self, rules: list) -> RankRuleTable:
        """Validate before storing so a broken table never reaches a run."""
        table = RankRuleTable.fromConfig(rules)
        await self.set(ConfigKeys.RANK_RULES, table.toConfig())
        return table

    async def getReferralRates(self) -> Dict[int, Decimal]:
        raw = await self.get(ConfigKeys.REFERRAL_RATES) or {}
        return {int(level): toDecimal(rate, f"referral rate L{level}") for level, rate in raw.items()}

    async def getSnapshot(self) -> EngineSnapshot:
        """Capture configuration once; every cascade of a run uses the same view."""
        rawCycles = await self.get(ConfigKeys.STAKING_CYCLES) or []

        snapshot = EngineSnapshot(
            rankRules=await self.getRankRules(),
            stakingCycles=tuple(StakingCycle.fromDict(item) for item in rawCycles),
            referralRates=await self.getReferralRates(),
            pointsEnabled=await self.getFlag(ConfigKeys.POINTS_ENABLED),
            pointsConversionRate=await self.getDecimal(ConfigKeys.POINTS_CONVERSION_RATE),
            pointsMinSwapAmount=await self.getDecimal(ConfigKeys.POINTS_MIN_SWAP_AMOUNT),
            stakingPaused=await self.getFlag(ConfigKeys.STAKING_PAUSED),
            withdrawalsPaused=await self.getFlag(ConfigKeys.WITHDRAWALS_PAUSED),
            referralBonusesEnabled=await self.getFlag(ConfigKeys.REFERRAL_BONUSES_ENABLED),
            distributionPaused=await self.getFlag(ConfigKeys.DISTRIBUTION_PAUSED),
            minStakeAmount=await self.getDecimal(ConfigKeys.MIN_STAKE_AMOUNT),
            minWithdrawalAmount=await self.getDecimal(ConfigKeys.MIN_WITHDRAWAL_AMOUNT),
        )

        logger.debug(
            f"Config snapshot taken: points={snapshot.pointsEnabled}, "
            f"paused={snapshot.distributionPaused}"
        )
        return snapshot
