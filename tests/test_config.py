"""
Tests for the configuration store and rank rule table.
"""

from decimal import Decimal

import pytest

from models import ConfigEntry
from staking_system.config.ranks import Rank, DEFAULT_RANK_RULES
from staking_system.config.settings import RankRuleTable
from staking_system.errors import StakingError, ErrorCodes
from staking_system.services.config_service import ConfigService, ConfigKeys, DEFAULT_CONFIG


class TestConfigService:

    @pytest.mark.asyncio
    async def test_defaults_without_rows(self, session):
        snapshot = await ConfigService(session).getSnapshot()

        assert snapshot.pointsEnabled is False
        assert snapshot.referralBonusesEnabled is True
        assert snapshot.distributionPaused is False
        assert snapshot.minStakeAmount == Decimal("100")
        assert snapshot.referralRates == {1: Decimal("15"), 2: Decimal("10")}
        assert snapshot.findCycle(30).dailyRate == Decimal("0.60")
        assert snapshot.findCycle(45) is None
        assert snapshot.rankRules.tiers[0] == "B0"
        assert snapshot.rankRules.tiers[-1] == "B9"

    @pytest.mark.asyncio
    async def test_initialize_defaults_is_idempotent(self, session):
        service = ConfigService(session)

        created = await service.initializeDefaults()
        assert created == len(DEFAULT_CONFIG)
        assert await service.initializeDefaults() == 0
        assert session.query(ConfigEntry).count() == len(DEFAULT_CONFIG)

    @pytest.mark.asyncio
    async def test_initialize_keeps_existing_values(self, session):
        service = ConfigService(session)
        await service.set(ConfigKeys.STAKING_PAUSED, True)

        await service.initializeDefaults()

        assert await service.getFlag(ConfigKeys.STAKING_PAUSED) is True

    @pytest.mark.asyncio
    async def test_snapshot_is_immutable(self, session):
        snapshot = await ConfigService(session).getSnapshot()

        with pytest.raises(AttributeError):
            snapshot.pointsEnabled = True

    @pytest.mark.asyncio
    async def test_set_rank_rules_validates(self, session):
        broken = [dict(rule) for rule in DEFAULT_RANK_RULES]
        broken[1]["requiredRankDirects"] = {"count": 2, "rank": "X9"}

        with pytest.raises(StakingError) as exc:
            await ConfigService(session).setRankRules(broken)
        assert exc.value.code == ErrorCodes.INVALID_RANK_CONFIG


class TestRankRuleTable:

    def test_hardest_first_order(self):
        table = RankRuleTable.fromConfig(DEFAULT_RANK_RULES)
        assert [rule.rank for rule in table.hardestFirst()][:2] == ["B9", "B8"]

    def test_weights_and_compare(self):
        table = RankRuleTable.fromConfig(DEFAULT_RANK_RULES)
        assert table.weight("B0") == 0
        assert table.weight("B3") == 3
        assert table.weight("unknown") == 0
        assert table.compare("B2", "B1") == 1
        assert table.compare("B1", "B1") == 0
        assert table.compare("B0", "B4") == -1

    def test_duplicate_rank_rejected(self):
        rules = [dict(DEFAULT_RANK_RULES[0]), dict(DEFAULT_RANK_RULES[0])]
        with pytest.raises(StakingError) as exc:
            RankRuleTable.fromConfig(rules)
        assert exc.value.code == ErrorCodes.INVALID_RANK_CONFIG

    def test_get_rule_for_lowest_tier_raises(self):
        table = RankRuleTable.fromConfig(DEFAULT_RANK_RULES)
        assert table.findRule("B0") is None
        with pytest.raises(StakingError) as exc:
            table.getRule("B0")
        assert exc.value.code == ErrorCodes.RANK_NOT_FOUND

    def test_rule_values(self):
        rule = RankRuleTable.fromConfig(DEFAULT_RANK_RULES).getRule("B4")
        assert rule.minTeamVolume == Decimal("100000")
        assert rule.requiredRankDirects == (2, "B3")
        assert rule.commissionRate == Decimal("35")
        assert rule.cappingMultiplier == Decimal("3")


class TestStakingError:

    def test_default_message_and_dict(self):
        error = StakingError(ErrorCodes.INSUFFICIENT_BALANCE)

        assert str(error) == "Insufficient balance."
        assert error.toDict() == {"success": False, "code": "INSUFFICIENT_BALANCE", "error": "Insufficient balance."}

    def test_caught_error_is_not_logged(self, caplog):
        with caplog.at_level("DEBUG"):
            try:
                raise StakingError(ErrorCodes.BELOW_MINIMUM, "Minimum stake amount is $100.00")
            except StakingError as e:
                assert e.code == ErrorCodes.BELOW_MINIMUM

        assert caplog.records == []


class TestDefaultRanks:

    def test_default_tiers_follow_rank_enum(self):
        table = RankRuleTable.fromConfig(DEFAULT_RANK_RULES)

        assert table.tiers == [rank.value for rank in Rank]
        assert table.getRule(Rank.B2.value).requiredRankDirects == (2, Rank.B1.value)
