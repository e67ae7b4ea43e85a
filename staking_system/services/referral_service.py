# staking_system/services/referral_service.py
"""
L1/L2 referral bonus: a fixed share of every daily yield goes to the
staker's first two sponsors, regardless of their rank.
"""
from decimal import Decimal
from typing import Dict
from sqlalchemy.orm import Session
import logging

from models import Stake
from staking_system.config.settings import EngineSnapshot
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.money import percentOf
from staking_system.services.currency_service import CurrencyService
from staking_system.services.notification_service import NotificationService
from staking_system.services.upline_service import UplineService

logger = logging.getLogger(__name__)

REFERRAL_TRANSACTION_TYPES = {
    1: "commission_direct",
    2: "commission_indirect",
}


class ReferralService:

    def __init__(self, session: Session):
        self.session = session
        self.currencyService = CurrencyService(session)
        self.notificationService = NotificationService(session)
        self.uplineService = UplineService(session)

    async def distributeReferralBonuses(
            self,
            stake: Stake,
            dailyYield: Decimal,
            snapshot: EngineSnapshot
    ) -> Dict:
        results = {"paid": 0, "total": Decimal("0")}

        if not snapshot.referralBonusesEnabled:
            return results

        maxLevel = max(snapshot.referralRates) if snapshot.referralRates else 0
        upline = await self.uplineService.findUpline(stake.accountID, maxLevel)
        staker = stake.account
        currency = self.currencyService.rewardCurrency(snapshot)

        for referrer, level in upline:
            rate = snapshot.referralRates.get(level)
            if not rate:
                continue

            commission = percentOf(dailyYield, rate)
            if commission <= 0:
                continue

            transactionType = REFERRAL_TRANSACTION_TYPES.get(level, "commission_indirect")
            await self.currencyService.creditReward(
                referrer.accountID, commission, transactionType, snapshot,
                stakeId=stake.stakeID,
                sourceAccountId=stake.accountID,
                commissionLevel=level,
                commissionRate=rate,
                description=f"L{level} Referral Bonus from {staker.name}'s stake"
            )

            await self.notificationService.notify(
                referrer.accountID, "commission", f"L{level} Commission Earned",
                f"You earned {commission:.2f} {currency} commission from {staker.name}'s stake!",
                icon="🎁",
                data={"amount": commission, "level": level, "fromAccountId": stake.accountID, "currency": currency}
            )

            await eventBus.emit(StakingEvents.COMMISSION_PAID, {
                "accountId": referrer.accountID,
                "sourceAccountId": stake.accountID,
                "stakeId": stake.stakeID,
                "type": transactionType,
                "level": level,
                "amount": commission
            })

            results["paid"] += 1
            results["total"] += commission

        return results
