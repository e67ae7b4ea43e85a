# staking_system/config/settings.py
"""
Typed views over the configuration store.
EngineSnapshot is captured once per distribution run and never mutated.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from staking_system.config.ranks import (
    LOWEST_RANK, DEFAULT_REFERRAL_RATES, MIN_STAKE_AMOUNT, MIN_WITHDRAWAL_AMOUNT,
    POINTS_CONVERSION_RATE, POINTS_MIN_SWAP_AMOUNT
)
from staking_system.errors import StakingError, ErrorCodes


def toDecimal(value, fieldName: str = "value") -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise StakingError(ErrorCodes.INVALID_CONFIG, f"Invalid number for {fieldName}: {value!r}")


@dataclass(frozen=True)
class RankRule:
    rank: str
    minTeamVolume: Decimal
    minDirectReferrals: int
    requiredRankDirects: Optional[Tuple[int, str]]  # (count, rank) or None
    commissionRate: Decimal  # %
    cappingMultiplier: Decimal

    @classmethod
    def fromDict(cls, data: Dict) -> "RankRule":
        if not data.get("rank"):
            raise StakingError(ErrorCodes.INVALID_RANK_CONFIG, "Rank rule without a rank id")

        required = data.get("requiredRankDirects")
        requiredTuple = None
        if required and int(required.get("count", 0)) > 0:
            requiredTuple = (int(required["count"]), str(required["rank"]))

        return cls(
            rank=str(data["rank"]),
            minTeamVolume=toDecimal(data.get("minTeamVolume", 0), "minTeamVolume"),
            minDirectReferrals=int(data.get("minDirectReferrals", 0)),
            requiredRankDirects=requiredTuple,
            commissionRate=toDecimal(data.get("commissionRate", 0), "commissionRate"),
            cappingMultiplier=toDecimal(data.get("cappingMultiplier", 0), "cappingMultiplier"),
        )

    def toDict(self) -> Dict:
        return {
            "rank": self.rank,
            "minTeamVolume": str(self.minTeamVolume),
            "minDirectReferrals": self.minDirectReferrals,
            "requiredRankDirects": (
                {"count": self.requiredRankDirects[0], "rank": self.requiredRankDirects[1]}
                if self.requiredRankDirects else None
            ),
            "commissionRate": str(self.commissionRate),
            "cappingMultiplier": str(self.cappingMultiplier),
        }


class RankRuleTable:
    """Ordered rank rules, easiest first. The lowest tier has no rule."""

    def __init__(self, rules: List[RankRule], lowestRank: str = LOWEST_RANK):
        self.lowestRank = lowestRank
        self._rules = list(rules)
        self._tiers = [lowestRank] + [rule.rank for rule in self._rules]

        if len(set(self._tiers)) != len(self._tiers):
            raise StakingError(ErrorCodes.INVALID_RANK_CONFIG, "Duplicate rank ids in rank rules")

        for rule in self._rules:
            if rule.requiredRankDirects and rule.requiredRankDirects[1] not in self._tiers:
                raise StakingError(
                    ErrorCodes.INVALID_RANK_CONFIG,
                    f"Rank {rule.rank} requires unknown rank {rule.requiredRankDirects[1]}"
                )

    @classmethod
    def fromConfig(cls, rawRules: List[Dict]) -> "RankRuleTable":
        return cls([RankRule.fromDict(item) for item in rawRules or []])

    @property
    def rules(self) -> List[RankRule]:
        return list(self._rules)

    @property
    def tiers(self) -> List[str]:
        return list(self._tiers)

    def hardestFirst(self) -> List[RankRule]:
        return list(reversed(self._rules))

    def weight(self, rank: Optional[str]) -> int:
        """Position of a tier; unknown tiers weigh as the lowest."""
        try:
            return self._tiers.index(rank)
        except ValueError:
            return 0

    def compare(self, rank1: str, rank2: str) -> int:
        """Returns: -1 if rank1 < rank2, 0 if equal, 1 if rank1 > rank2"""
        value1 = self.weight(rank1)
        value2 = self.weight(rank2)
        return (value1 > value2) - (value1 < value2)

    def findRule(self, rank: str) -> Optional[RankRule]:
        for rule in self._rules:
            if rule.rank == rank:
                return rule
        return None

    def getRule(self, rank: str) -> RankRule:
        rule = self.findRule(rank)
        if not rule:
            raise StakingError(ErrorCodes.RANK_NOT_FOUND, f"No rank rule for {rank}")
        return rule

    def toConfig(self) -> List[Dict]:
        return [rule.toDict() for rule in self._rules]


@dataclass(frozen=True)
class StakingCycle:
    days: int
    dailyRate: Decimal  # %

    @classmethod
    def fromDict(cls, data: Dict) -> "StakingCycle":
        return cls(days=int(data["days"]), dailyRate=toDecimal(data["dailyRate"], "dailyRate"))


@dataclass(frozen=True)
class EngineSnapshot:
    """Configuration as seen by one distribution run."""
    rankRules: RankRuleTable
    stakingCycles: Tuple[StakingCycle, ...] = ()
    referralRates: Dict[int, Decimal] = field(default_factory=lambda: dict(DEFAULT_REFERRAL_RATES))

    # Currency abstraction
    pointsEnabled: bool = False
    pointsConversionRate: Decimal = POINTS_CONVERSION_RATE
    pointsMinSwapAmount: Decimal = POINTS_MIN_SWAP_AMOUNT

    # Global flags
    stakingPaused: bool = False
    withdrawalsPaused: bool = False
    referralBonusesEnabled: bool = True
    distributionPaused: bool = False

    minStakeAmount: Decimal = MIN_STAKE_AMOUNT
    minWithdrawalAmount: Decimal = MIN_WITHDRAWAL_AMOUNT

    def findCycle(self, days: int) -> Optional[StakingCycle]:
        for cycle in self.stakingCycles:
            if cycle.days == days:
                return cycle
        return None
