# staking_system/config/ranks.py
"""
Rank tiers, commission tables and staking defaults.
"""
from enum import Enum
from decimal import Decimal


class Rank(Enum):
    B0 = "B0"
    B1 = "B1"
    B2 = "B2"
    B3 = "B3"
    B4 = "B4"
    B5 = "B5"
    B6 = "B6"
    B7 = "B7"
    B8 = "B8"
    B9 = "B9"


LOWEST_RANK = Rank.B0.value

# Easiest first. B0 has no rule: it is what an account holds when nothing else is met.
DEFAULT_RANK_RULES = [
    {
        "rank": Rank.B1.value,
        "minTeamVolume": "3000",
        "minDirectReferrals": 5,
        "requiredRankDirects": None,
        "commissionRate": "20",  # % of a direct's daily yield
        "cappingMultiplier": "2",
    },
    {
        "rank": Rank.B2.value,
        "minTeamVolume": "10000",
        "minDirectReferrals": 5,
        "requiredRankDirects": {"count": 2, "rank": Rank.B1.value},
        "commissionRate": "25",
        "cappingMultiplier": "2",
    },
    {
        "rank": Rank.B3.value,
        "minTeamVolume": "30000",
        "minDirectReferrals": 5,
        "requiredRankDirects": {"count": 2, "rank": Rank.B2.value},
        "commissionRate": "30",
        "cappingMultiplier": "2",
    },
    {
        "rank": Rank.B4.value,
        "minTeamVolume": "100000",
        "minDirectReferrals": 5,
        "requiredRankDirects": {"count": 2, "rank": Rank.B3.value},
        "commissionRate": "35",
        "cappingMultiplier": "3",
    },
    {
        "rank": Rank.B5.value,
        "minTeamVolume": "300000",
        "minDirectReferrals": 5,
        "requiredRankDirects": {"count": 2, "rank": Rank.B4.value},
        "commissionRate": "40",
        "cappingMultiplier": "3",
    },
    {
        "rank": Rank.B6.value,
        "minTeamVolume": "1000000",
        "minDirectReferrals": 5,
        "requiredRankDirects": {"count": 2, "rank": Rank.B5.value},
        "commissionRate": "45",
        "cappingMultiplier": "3",
    },
    {
        "rank": Rank.B7.value,
        "minTeamVolume": "3000000",
        "minDirectReferrals": 5,
        "requiredRankDirects": {"count": 2, "rank": Rank.B6.value},
        "commissionRate": "50",
        "cappingMultiplier": "5",
    },
    {
        "rank": Rank.B8.value,
        "minTeamVolume": "10000000",
        "minDirectReferrals": 5,
        "requiredRankDirects": {"count": 2, "rank": Rank.B7.value},
        "commissionRate": "55",
        "cappingMultiplier": "5",
    },
    {
        "rank": Rank.B9.value,
        "minTeamVolume": "30000000",
        "minDirectReferrals": 5,
        "requiredRankDirects": {"count": 2, "rank": Rank.B8.value},
        "commissionRate": "60",
        "cappingMultiplier": "5",
    },
]

DEFAULT_STAKING_CYCLES = [
    {"days": 7, "dailyRate": "0.45"},
    {"days": 30, "dailyRate": "0.60"},
    {"days": 90, "dailyRate": "0.75"},
    {"days": 360, "dailyRate": "1.00"},
]

# L1 / L2 referral bonus, % of the staker's daily yield
DEFAULT_REFERRAL_RATES = {
    1: Decimal("15"),
    2: Decimal("10"),
}

# Unilevel, % of the staker's daily yield per upline level (16% total)
UNILEVEL_RATES = {
    1: Decimal("3"),
    2: Decimal("2"),
    3: Decimal("1"),
    4: Decimal("1"),
    5: Decimal("1"),
    6: Decimal("1"),
    7: Decimal("1"),
    8: Decimal("1"),
    9: Decimal("2"),
    10: Decimal("3"),
}
UNILEVEL_MAX_LEVELS = 10
LEVELS_PER_ACTIVE_DIRECT = 2

# Constants
MIN_STAKE_AMOUNT = Decimal("100")
MIN_WITHDRAWAL_AMOUNT = Decimal("50")
POINTS_CONVERSION_RATE = Decimal("1.0")
POINTS_MIN_SWAP_AMOUNT = Decimal("1.0")

# Balance comparison tolerance (after rounding to 2 decimals)
BALANCE_EPSILON = Decimal("0.001")
