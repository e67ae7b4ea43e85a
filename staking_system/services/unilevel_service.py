# staking_system/services/unilevel_service.py
"""
Unilevel commissions with progressive level unlock.
Each direct referral holding an active stake unlocks two levels, up to ten.
"""
from decimal import Decimal
from typing import Dict, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func, distinct
import logging

from models import Account, Stake, CommissionHistory
from staking_system.config.ranks import UNILEVEL_RATES, UNILEVEL_MAX_LEVELS, LEVELS_PER_ACTIVE_DIRECT
from staking_system.config.settings import EngineSnapshot
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.money import toMoney, percentOf
from staking_system.utils.time_machine import timeMachine
from staking_system.services.currency_service import CurrencyService
from staking_system.services.upline_service import UplineService

logger = logging.getLogger(__name__)


class UnilevelService:
    """Unlock bookkeeping and unilevel commission payout."""

    def __init__(self, session: Session):
        self.session = session
        self.currencyService = CurrencyService(session)
        self.uplineService = UplineService(session)

    async def calculateActiveDirects(self, accountId: int) -> int:
        """Direct referrals with at least one active stake."""
        return self.session.query(func.count(distinct(Stake.accountID))).select_from(Stake).join(
            Account, Account.accountID == Stake.accountID
        ).filter(
            Account.referrerID == accountId,
            Stake.status == Stake.STATUS_ACTIVE
        ).scalar() or 0

    @staticmethod
    def calculateUnlockedLevels(activeDirects: int) -> int:
        return max(0, min(activeDirects * LEVELS_PER_ACTIVE_DIRECT, UNILEVEL_MAX_LEVELS))

    async def updateActiveDirects(self, accountId: Optional[int]) -> Optional[Dict]:
        """Persist active directs and unlocked levels; called on stake creation and expiry."""
        if accountId is None:
            return None

        account = self.session.query(Account).filter_by(accountID=accountId).first()
        if not account:
            return None

        activeDirects = await self.calculateActiveDirects(accountId)
        self._storeUnlock(account, activeDirects)

        return {
            "accountId": accountId,
            "activeDirects": account.activeDirectReferrals,
            "unlockedLevels": account.unlockedLevels
        }

    def _storeUnlock(self, account: Account, activeDirects: int):
        unlockedLevels = self.calculateUnlockedLevels(activeDirects)

        if account.unlockedLevels != unlockedLevels:
            logger.info(
                f"Account {account.accountID} unlocked levels "
                f"{account.unlockedLevels} -> {unlockedLevels} ({activeDirects} active directs)"
            )

        account.activeDirectReferrals = activeDirects
        account.unlockedLevels = unlockedLevels
        account.lastUnlockUpdate = timeMachine.now

    async def initializeUnilevelData(self) -> Dict[str, int]:
        """Backfill unlock data for every account."""
        results = {"processed": 0, "updated": 0}

        for account in self.session.query(Account).all():
            before = (account.activeDirectReferrals, account.unlockedLevels)
            self._storeUnlock(account, await self.calculateActiveDirects(account.accountID))

            results["processed"] += 1
            if before != (account.activeDirectReferrals, account.unlockedLevels):
                results["updated"] += 1

        self.session.commit()
        logger.info(f"Unilevel backfill: processed={results['processed']}, updated={results['updated']}")
        return results

    async def distributeUnilevelCommissions(
            self,
            stake: Stake,
            dailyYield: Decimal,
            snapshot: EngineSnapshot
    ) -> Dict:
        """
        Pay every upline level the stake's yield reaches.
        Unlock state is recomputed per ancestor; a locked level earns nothing.
        """
        results = {"paid": 0, "skipped": 0, "total": Decimal("0")}

        upline = await self.uplineService.findUpline(stake.accountID, UNILEVEL_MAX_LEVELS)
        buckets = timeMachine.reportingBuckets()

        for ancestor, level in upline:
            rate = UNILEVEL_RATES.get(level)
            if rate is None:
                continue

            self._storeUnlock(ancestor, await self.calculateActiveDirects(ancestor.accountID))
            if level > ancestor.unlockedLevels:
                results["skipped"] += 1
                continue

            commission = percentOf(dailyYield, rate)
            if commission <= 0:
                continue

            await self.currencyService.creditReward(
                ancestor.accountID, commission, "commission_unilevel", snapshot,
                stakeId=stake.stakeID,
                sourceAccountId=stake.accountID,
                commissionLevel=level,
                commissionRate=rate,
                description=f"Unilevel L{level} commission ({rate}%) from account {stake.accountID}"
            )

            self.session.add(CommissionHistory(
                accountID=ancestor.accountID,
                sourceAccountID=stake.accountID,
                sourceStakeID=stake.stakeID,
                level=level,
                rate=rate,
                yieldAmount=toMoney(dailyYield),
                commissionAmount=commission,
                timestamp=timeMachine.now,
                **buckets
            ))

            results["paid"] += 1
            results["total"] += commission

            await eventBus.emit(StakingEvents.COMMISSION_PAID, {
                "accountId": ancestor.accountID,
                "sourceAccountId": stake.accountID,
                "stakeId": stake.stakeID,
                "type": "commission_unilevel",
                "level": level,
                "amount": commission
            })

        self.session.flush()

        if results["paid"]:
            logger.debug(
                f"Unilevel for stake {stake.stakeID}: paid {results['paid']} levels, "
                f"skipped {results['skipped']}, total {results['total']}"
            )
        return results
