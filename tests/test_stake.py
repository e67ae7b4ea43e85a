"""
Tests for stake creation.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from models import Stake, Transaction
from staking_system.errors import StakingError, ErrorCodes
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.services.config_service import ConfigService, ConfigKeys
from staking_system.services.ledger_service import LedgerService
from staking_system.services.stake_service import StakeService
from staking_system.utils.time_machine import timeMachine


@pytest.fixture
def funded(session, makeAccount):
    async def _funded(amount="1000", referrer=None):
        account = makeAccount(referrer=referrer)
        await LedgerService(session).deposit(account.accountID, Decimal(amount))
        return account
    return _funded


class TestCreateStake:

    @pytest.mark.asyncio
    async def test_creates_active_stake(self, session, makeAccount, funded):
        sponsor = makeAccount("sponsor")
        account = await funded(referrer=sponsor)

        result = await StakeService(session).createStake(account.accountID, Decimal("500"), 30)

        stake = session.query(Stake).filter_by(stakeID=result["stakeId"]).one()
        assert stake.status == Stake.STATUS_ACTIVE
        assert stake.dailyRate == Decimal("0.60")
        assert stake.endDate == timeMachine.now + timedelta(days=30)
        assert stake.lastYieldDate == stake.startDate

        assert account.walletBalance == Decimal("500")
        assert account.teamVolume == Decimal("500")
        assert sponsor.teamVolume == Decimal("500")
        assert sponsor.activeDirectReferrals == 1
        assert sponsor.unlockedLevels == 2

        debit = session.query(Transaction).filter_by(transactionType="stake").one()
        assert debit.amount == Decimal("-500")
        assert debit.stakeID == stake.stakeID

    @pytest.mark.asyncio
    async def test_emits_event(self, session, funded):
        received = []
        eventBus.subscribe(StakingEvents.STAKE_CREATED, received.append)
        account = await funded()

        await StakeService(session).createStake(account.accountID, Decimal("100"), 7)

        assert received[0]["cycleDays"] == 7

    @pytest.mark.asyncio
    async def test_below_minimum(self, session, funded):
        account = await funded()

        with pytest.raises(StakingError) as exc:
            await StakeService(session).createStake(account.accountID, Decimal("50"), 30)
        assert exc.value.code == ErrorCodes.BELOW_MINIMUM

    @pytest.mark.asyncio
    async def test_invalid_amount(self, session, funded):
        account = await funded()

        with pytest.raises(StakingError) as exc:
            await StakeService(session).createStake(account.accountID, Decimal("-100"), 30)
        assert exc.value.code == ErrorCodes.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_unknown_cycle(self, session, funded):
        account = await funded()

        with pytest.raises(StakingError) as exc:
            await StakeService(session).createStake(account.accountID, Decimal("100"), 45)
        assert exc.value.code == ErrorCodes.INVALID_CYCLE

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, session, funded):
        account = await funded(amount="150")

        with pytest.raises(StakingError) as exc:
            await StakeService(session).createStake(account.accountID, Decimal("200"), 30)
        assert exc.value.code == ErrorCodes.INSUFFICIENT_BALANCE
        assert session.query(Stake).count() == 0

    @pytest.mark.asyncio
    async def test_balance_within_tolerance_stakes_what_was_paid(self, session, makeAccount, funded):
        sponsor = makeAccount("sponsor")
        account = await funded(amount="99.995", referrer=sponsor)

        result = await StakeService(session).createStake(account.accountID, Decimal("100"), 30)

        stake = session.query(Stake).filter_by(stakeID=result["stakeId"]).one()
        assert stake.amount == Decimal("99.995")
        assert result["amount"] == Decimal("99.995")
        assert account.walletBalance == Decimal("0")
        assert account.teamVolume == Decimal("99.995")
        assert sponsor.teamVolume == Decimal("99.995")

        debit = session.query(Transaction).filter_by(transactionType="stake").one()
        assert debit.amount == Decimal("-99.995")

    @pytest.mark.asyncio
    async def test_staking_paused(self, session, funded):
        account = await funded()
        await ConfigService(session).set(ConfigKeys.STAKING_PAUSED, True)

        with pytest.raises(StakingError) as exc:
            await StakeService(session).createStake(account.accountID, Decimal("100"), 30)
        assert exc.value.code == ErrorCodes.STAKING_PAUSED

    @pytest.mark.asyncio
    async def test_active_stake_total(self, session, funded):
        account = await funded()
        service = StakeService(session)
        await service.createStake(account.accountID, Decimal("100"), 7)
        await service.createStake(account.accountID, Decimal("250"), 90)

        assert await service.getActiveStakeTotal(account.accountID) == Decimal("350")
        assert len(await service.getActiveStakes(account.accountID)) == 2
