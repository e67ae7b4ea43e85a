"""
Tests for the daily distribution run: yield, commission cascade,
expiry, idempotency and single-flight locking.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

import config
from models import Account, Stake, StakeYieldRecord, ExecutionLog, JobLock, Transaction
from staking_system.services.config_service import ConfigService, ConfigKeys
from staking_system.services.currency_service import CurrencyService
from staking_system.services.distribution_service import DistributionService
from staking_system.services.ledger_service import LedgerService
from staking_system.services.stake_service import StakeService
from staking_system.utils.time_machine import timeMachine

TEST_CYCLES = [
    {"days": 7, "dailyRate": "0.45"},
    {"days": 30, "dailyRate": "1.00"},
]


async def _fundAndStake(session, account, amount="100", cycleDays=30):
    await LedgerService(session).deposit(account.accountID, Decimal(amount))
    result = await StakeService(session).createStake(account.accountID, Decimal(amount), cycleDays)
    return result["stakeId"]


def _wallet(session, account):
    return session.query(Account).filter_by(accountID=account.accountID).one().walletBalance


@pytest.fixture
def abc(session, makeAccount):
    """A sponsors B, B sponsors C. B and C each stake 100 at 1% a day for 30 days."""
    async def _build():
        await ConfigService(session).set(ConfigKeys.STAKING_CYCLES, TEST_CYCLES)
        a = makeAccount("A")
        b = makeAccount("B", referrer=a)
        c = makeAccount("C", referrer=b)
        await _fundAndStake(session, b)
        await _fundAndStake(session, c)
        timeMachine.advanceTime(days=1)
        return a, b, c
    return _build


class TestDailyCascade:

    @pytest.mark.asyncio
    async def test_three_level_scenario(self, session, abc):
        a, b, c = await abc()

        result = await DistributionService(session).distributeDailyRewards()

        assert result["success"] is True
        assert result["stakesProcessed"] == 2
        assert result["errors"] == []
        assert result["totalYieldDistributed"] == Decimal("2")
        assert result["totalCommissionsDistributed"] == Decimal("0.48")

        assert _wallet(session, c) == Decimal("1.00")
        assert _wallet(session, b) == Decimal("1.18")
        assert _wallet(session, a) == Decimal("0.30")

        assert session.query(Transaction).filter_by(transactionType="commission_rank").count() == 0

    @pytest.mark.asyncio
    async def test_commission_types(self, session, abc):
        a, b, c = await abc()

        await DistributionService(session).distributeDailyRewards()

        rows = session.query(Transaction).filter_by(accountID=a.accountID).all()
        byType = {}
        for row in rows:
            byType[row.transactionType] = byType.get(row.transactionType, Decimal("0")) + row.amount

        assert byType == {
            "commission_direct": Decimal("0.15"),
            "commission_indirect": Decimal("0.10"),
            "commission_unilevel": Decimal("0.05"),
        }

    @pytest.mark.asyncio
    async def test_ledger_matches_balances(self, session, abc):
        accounts = await abc()

        await DistributionService(session).distributeDailyRewards()

        ledger = LedgerService(session)
        for account in accounts:
            assert (await ledger.reconcile(account.accountID))["matches"] is True

    @pytest.mark.asyncio
    async def test_marker_and_log_written(self, session, abc):
        await abc()

        await DistributionService(session).distributeDailyRewards()

        markers = session.query(StakeYieldRecord).all()
        assert len(markers) == 2
        assert {marker.yieldDate for marker in markers} == {"2025-01-16"}

        log = session.query(ExecutionLog).one()
        assert log.status == "success"
        assert log.stakesProcessed == 2
        assert log.jobName == config.DISTRIBUTION_JOB_NAME
        assert session.query(JobLock).count() == 0

        stake = session.query(Stake).first()
        assert stake.lastYieldDate == timeMachine.now

    @pytest.mark.asyncio
    async def test_points_mode(self, session, abc):
        a, b, c = await abc()
        await CurrencyService(session).togglePointsSystem(True)

        await DistributionService(session).distributeDailyRewards()

        account = session.query(Account).filter_by(accountID=c.accountID).one()
        assert account.pointsBalance == Decimal("1.00")
        assert account.walletBalance == Decimal("0")
        assert session.query(Transaction).filter_by(transactionType="yield", currency="wallet").count() == 0

    @pytest.mark.asyncio
    async def test_referral_bonuses_disabled(self, session, abc):
        a, b, c = await abc()
        await ConfigService(session).set(ConfigKeys.REFERRAL_BONUSES_ENABLED, False)

        await DistributionService(session).distributeDailyRewards()

        assert _wallet(session, a) == Decimal("0.05")
        assert _wallet(session, b) == Decimal("1.03")


class TestIdempotency:

    @pytest.mark.asyncio
    async def test_second_run_same_day_pays_nothing(self, session, abc):
        a, b, c = await abc()
        service = DistributionService(session)
        await service.distributeDailyRewards()

        result = await service.distributeDailyRewards()

        assert result["stakesProcessed"] == 0
        assert result["stakesSkipped"] == 2
        assert _wallet(session, b) == Decimal("1.18")
        assert session.query(ExecutionLog).count() == 2

    @pytest.mark.asyncio
    async def test_next_day_pays_again(self, session, abc):
        a, b, c = await abc()
        await DistributionService(session).distributeDailyRewards()

        timeMachine.advanceTime(days=1)
        result = await DistributionService(session).distributeDailyRewards()

        assert result["stakesProcessed"] == 2
        assert _wallet(session, b) == Decimal("2.36")

    @pytest.mark.asyncio
    async def test_failed_stake_is_isolated_and_retried(self, session, abc):
        a, b, c = await abc()
        service = DistributionService(session)
        original = service.bRankService.distributeRankBonus

        async def failing(stake, dailyYield, snapshot):
            if stake.accountID == b.accountID:
                raise RuntimeError("boom")
            return await original(stake, dailyYield, snapshot)

        service.bRankService.distributeRankBonus = failing
        result = await service.distributeDailyRewards()

        assert result["stakesProcessed"] == 1
        assert len(result["errors"]) == 1
        assert "boom" in result["errors"][0]
        # Only the commission from C's stake survived
        assert _wallet(session, b) == Decimal("0.18")
        assert "boom" in session.query(ExecutionLog).one().details

        retry = await DistributionService(session).distributeDailyRewards()

        assert retry["stakesProcessed"] == 1
        assert retry["stakesSkipped"] == 1
        assert _wallet(session, b) == Decimal("1.18")


class TestExpiry:

    @pytest.mark.asyncio
    async def test_last_day_pays_then_expires(self, session, makeAccount):
        await ConfigService(session).set(ConfigKeys.STAKING_CYCLES, TEST_CYCLES)
        sponsor = makeAccount("sponsor")
        staker = makeAccount("staker", referrer=sponsor)
        stakeId = await _fundAndStake(session, staker, amount="200", cycleDays=7)

        timeMachine.advanceTime(days=7)
        lastDay = await DistributionService(session).distributeDailyRewards()
        assert lastDay["stakesProcessed"] == 1
        assert _wallet(session, staker) == Decimal("0.90")

        timeMachine.advanceTime(days=1)
        result = await DistributionService(session).distributeDailyRewards()

        assert result["stakesExpired"] == 1
        assert result["stakesProcessed"] == 0

        stake = session.query(Stake).filter_by(stakeID=stakeId).one()
        assert stake.status == Stake.STATUS_COMPLETED
        assert stake.completedAt == timeMachine.now

        # No yield on the expiry day and the principal is not returned
        assert _wallet(session, staker) == Decimal("0.90")

        staker = session.query(Account).filter_by(accountID=staker.accountID).one()
        sponsor = session.query(Account).filter_by(accountID=sponsor.accountID).one()
        assert staker.teamVolume == Decimal("0")
        assert sponsor.teamVolume == Decimal("0")
        assert sponsor.activeDirectReferrals == 0
        assert sponsor.unlockedLevels == 0

    @pytest.mark.asyncio
    async def test_completed_stake_is_not_revisited(self, session, makeAccount):
        await ConfigService(session).set(ConfigKeys.STAKING_CYCLES, TEST_CYCLES)
        staker = makeAccount("staker")
        await _fundAndStake(session, staker, cycleDays=7)

        timeMachine.advanceTime(days=8)
        await DistributionService(session).distributeDailyRewards()
        timeMachine.advanceTime(days=1)
        result = await DistributionService(session).distributeDailyRewards()

        assert result["stakesExpired"] == 0
        assert result["stakesProcessed"] == 0
        assert session.query(Account).filter_by(accountID=staker.accountID).one().teamVolume == Decimal("0")


class TestRunControl:

    @pytest.mark.asyncio
    async def test_paused_distribution(self, session, abc):
        await abc()
        await ConfigService(session).set(ConfigKeys.DISTRIBUTION_PAUSED, True)

        result = await DistributionService(session).distributeDailyRewards()

        assert result["paused"] is True
        assert session.query(StakeYieldRecord).count() == 0
        assert session.query(ExecutionLog).one().status == "success"

    @pytest.mark.asyncio
    async def test_concurrent_run_rejected(self, session, abc):
        await abc()
        session.add(JobLock(jobName=config.DISTRIBUTION_JOB_NAME, owner="other-host", lockedAt=timeMachine.now))
        session.commit()

        result = await DistributionService(session).distributeDailyRewards()

        assert result["success"] is False
        assert session.query(StakeYieldRecord).count() == 0
        assert session.query(ExecutionLog).one().status == "failed"
        assert session.query(JobLock).one().owner == "other-host"

    @pytest.mark.asyncio
    async def test_stale_lock_taken_over(self, session, abc):
        await abc()
        staleAt = timeMachine.now - timedelta(seconds=config.JOB_LOCK_TIMEOUT_SECONDS + 60)
        session.add(JobLock(jobName=config.DISTRIBUTION_JOB_NAME, owner="crashed-host", lockedAt=staleAt))
        session.commit()

        result = await DistributionService(session).distributeDailyRewards()

        assert result["success"] is True
        assert result["stakesProcessed"] == 2
        assert session.query(JobLock).count() == 0

    @pytest.mark.asyncio
    async def test_run_failure_is_logged_and_raised(self, session, abc):
        await abc()
        service = DistributionService(session)

        async def broken():
            raise RuntimeError("storage unavailable")

        service.configService.getSnapshot = broken

        with pytest.raises(RuntimeError):
            await service.distributeDailyRewards()

        log = session.query(ExecutionLog).one()
        assert log.status == "failed"
        assert log.message == "storage unavailable"
        assert session.query(JobLock).count() == 0
