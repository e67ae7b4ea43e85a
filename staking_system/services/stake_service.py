# staking_system/services/stake_service.py
"""
Stake purchase. A stake locks principal for a cycle; the principal
counts towards team volume until the stake completes.
"""
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List
from sqlalchemy.orm import Session
from sqlalchemy import func
import logging

from models import Account, Stake
from staking_system.errors import StakingError, ErrorCodes
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.money import toMoney, hasSufficientBalance
from staking_system.utils.time_machine import timeMachine
from staking_system.services.config_service import ConfigService
from staking_system.services.ledger_service import LedgerService, CURRENCY_WALLET
from staking_system.services.notification_service import NotificationService
from staking_system.services.unilevel_service import UnilevelService
from staking_system.services.volume_service import VolumeService

logger = logging.getLogger(__name__)


class StakeService:
    """Creates stakes and answers principal queries."""

    def __init__(self, session: Session):
        self.session = session
        self.configService = ConfigService(session)
        self.ledger = LedgerService(session)
        self.notificationService = NotificationService(session)

    async def createStake(self, accountId: int, amount: Decimal, cycleDays: int) -> Dict:
        snapshot = await self.configService.getSnapshot()

        if snapshot.stakingPaused:
            raise StakingError(ErrorCodes.STAKING_PAUSED)

        amount = toMoney(amount)
        if amount <= 0:
            raise StakingError(ErrorCodes.INVALID_AMOUNT)

        if amount < snapshot.minStakeAmount:
            raise StakingError(ErrorCodes.BELOW_MINIMUM, f"Minimum stake amount is ${snapshot.minStakeAmount:.2f}")

        cycle = snapshot.findCycle(cycleDays)
        if not cycle:
            raise StakingError(ErrorCodes.INVALID_CYCLE, f"No staking cycle of {cycleDays} days")

        account = self.session.query(Account).filter_by(accountID=accountId).first()
        if not account:
            raise StakingError(ErrorCodes.ACCOUNT_NOT_FOUND)

        if not hasSufficientBalance(account.walletBalance, amount):
            raise StakingError(ErrorCodes.INSUFFICIENT_BALANCE)

        # Within the tolerance the whole balance is staked; principal equals the debit
        amount = min(amount, toMoney(account.walletBalance))

        try:
            now = timeMachine.now
            stake = Stake(
                accountID=accountId,
                amount=amount,
                cycleDays=cycle.days,
                dailyRate=cycle.dailyRate,
                startDate=now,
                endDate=now + timedelta(days=cycle.days),
                status=Stake.STATUS_ACTIVE,
                lastYieldDate=now,
                createdAt=now,
                updatedAt=now
            )
            self.session.add(stake)
            self.session.flush()

            await self.ledger.post(
                accountId, -amount, CURRENCY_WALLET, "stake",
                stakeId=stake.stakeID,
                description=f"Staked ${amount:.2f} for {cycle.days} days"
            )

            await VolumeService(self.session, snapshot.rankRules).applyVolumeDelta(accountId, amount)
            await UnilevelService(self.session).updateActiveDirects(account.referrerID)

            await self.notificationService.notify(
                accountId, "stake", "Stake Created",
                f"You staked ${amount:.2f} for {cycle.days} days at {cycle.dailyRate}% daily.",
                icon="📈", data={"stakeId": stake.stakeID, "amount": amount, "cycleDays": cycle.days}
            )

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        await eventBus.emit(StakingEvents.STAKE_CREATED, {
            "stakeId": stake.stakeID,
            "accountId": accountId,
            "amount": amount,
            "cycleDays": cycle.days
        })

        logger.info(f"Account {accountId} created stake {stake.stakeID}: {amount} for {cycle.days} days")
        return {
            "success": True,
            "stakeId": stake.stakeID,
            "amount": amount,
            "dailyRate": cycle.dailyRate,
            "endDate": stake.endDate
        }

    async def getActiveStakes(self, accountId: int) -> List[Stake]:
        return self.session.query(Stake).filter_by(
            accountID=accountId,
            status=Stake.STATUS_ACTIVE
        ).all()

    async def getActiveStakeTotal(self, accountId: int) -> Decimal:
        """Principal currently locked in active stakes."""
        total = self.session.query(func.sum(Stake.amount)).filter(
            Stake.accountID == accountId,
            Stake.status == Stake.STATUS_ACTIVE
        ).scalar()
        return toMoney(total or 0)
