# staking_system/services/brank_service.py
"""
B-Rank bonus with dynamic capping.

The direct sponsor of a staker earns its rank's commission rate on the
staker's daily yield. Lifetime bonus is capped at
active stake principal * rank capping multiplier, so the cap grows and
shrinks with the sponsor's own stakes. Nothing is clawed back.
"""
from decimal import Decimal
from typing import Dict, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
import logging

from models import Account, Stake, Transaction
from staking_system.config.settings import EngineSnapshot
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.money import toMoney, percentOf
from staking_system.services.config_service import ConfigService
from staking_system.services.currency_service import CurrencyService
from staking_system.services.notification_service import NotificationService
from staking_system.services.stake_service import StakeService

logger = logging.getLogger(__name__)


class BRankService:
    """Rank bonus payout under a per-account lifetime cap."""

    def __init__(self, session: Session):
        self.session = session
        self.currencyService = CurrencyService(session)
        self.notificationService = NotificationService(session)
        self.stakeService = StakeService(session)

    async def distributeRankBonus(
            self,
            stake: Stake,
            dailyYield: Decimal,
            snapshot: EngineSnapshot
    ) -> Decimal:
        """Pay the staker's direct sponsor. Returns the amount actually paid."""
        staker = stake.account
        if not staker or staker.referrerID is None:
            return Decimal("0")

        sponsor = self.session.query(Account).filter_by(accountID=staker.referrerID).first()
        if not sponsor:
            return Decimal("0")

        rules = snapshot.rankRules
        if not sponsor.rank or sponsor.rank == rules.lowestRank:
            return Decimal("0")

        rule = rules.findRule(sponsor.rank)
        if not rule:
            logger.warning(f"No rank rule for {sponsor.rank} of account {sponsor.accountID}, rank bonus skipped")
            return Decimal("0")

        activeStake = await self.stakeService.getActiveStakeTotal(sponsor.accountID)
        currentCap = toMoney(activeStake * rule.cappingMultiplier)
        totalReceived = toMoney(sponsor.totalBRankBonusReceived)
        remainingCap = currentCap - totalReceived
        currency = self.currencyService.rewardCurrency(snapshot)

        if remainingCap <= 0:
            if not sponsor.bRankCapNotified:
                await self._notifyCapReached(sponsor, currentCap, totalReceived, activeStake, rule.cappingMultiplier, currency)
            logger.debug(f"Account {sponsor.accountID} at rank bonus cap {currentCap}, nothing paid")
            return Decimal("0")

        # Cap has room again (new stake or rank change)
        sponsor.bRankCapNotified = False

        calculatedBonus = percentOf(dailyYield, rule.commissionRate)
        actualBonus = min(calculatedBonus, remainingCap)
        if actualBonus <= 0:
            return Decimal("0")

        await self.currencyService.creditReward(
            sponsor.accountID, actualBonus, "commission_rank", snapshot,
            stakeId=stake.stakeID,
            sourceAccountId=staker.accountID,
            commissionLevel=1,
            commissionRate=rule.commissionRate,
            description=f"{sponsor.rank} Rank Bonus from {staker.name}'s stake"
        )

        newTotalReceived = totalReceived + actualBonus
        newRemainingCap = currentCap - newTotalReceived
        sponsor.totalBRankBonusReceived = newTotalReceived

        if newRemainingCap <= 0:
            await self._notifyCapReached(sponsor, currentCap, newTotalReceived, activeStake, rule.cappingMultiplier, currency)
        elif actualBonus < calculatedBonus:
            await self.notificationService.notify(
                sponsor.accountID, "system", "B-Rank Bonus Partially Capped",
                f"Your {sponsor.rank} bonus was capped. You have {newRemainingCap:.2f} {currency} remaining "
                f"before reaching your cap of {currentCap:.2f} {currency}.",
                icon="ℹ️",
                data={
                    "calculatedBonus": calculatedBonus,
                    "actualBonus": actualBonus,
                    "remainingCap": newRemainingCap,
                    "cap": currentCap,
                    "currency": currency
                }
            )
        else:
            await self.notificationService.notify(
                sponsor.accountID, "commission", f"{sponsor.rank} Rank Bonus Earned",
                f"You earned {actualBonus:.2f} {currency} from {staker.name}'s stake!",
                icon="🎁",
                data={"amount": actualBonus, "rank": sponsor.rank, "fromAccountId": staker.accountID, "currency": currency}
            )

        await eventBus.emit(StakingEvents.RANK_BONUS_PAID, {
            "accountId": sponsor.accountID,
            "sourceAccountId": staker.accountID,
            "stakeId": stake.stakeID,
            "rank": sponsor.rank,
            "amount": actualBonus,
            "remainingCap": newRemainingCap
        })

        logger.debug(
            f"Rank bonus {actualBonus} to account {sponsor.accountID} "
            f"(nominal {calculatedBonus}, remaining cap {newRemainingCap})"
        )
        return actualBonus

    async def _notifyCapReached(
            self,
            sponsor: Account,
            currentCap: Decimal,
            totalReceived: Decimal,
            activeStake: Decimal,
            multiplier: Decimal,
            currency: str
    ):
        sponsor.bRankCapNotified = True

        await self.notificationService.notify(
            sponsor.accountID, "system", "B-Rank Bonus Cap Reached",
            f"You've reached your {sponsor.rank} bonus cap of {currentCap:.2f} {currency}. "
            f"Stake more to increase your cap and continue earning bonuses!",
            icon="ℹ️",
            data={
                "cap": currentCap,
                "totalReceived": totalReceived,
                "totalActiveStake": activeStake,
                "cappingMultiplier": multiplier,
                "currency": currency
            }
        )

        await eventBus.emit(StakingEvents.RANK_BONUS_CAP_REACHED, {
            "accountId": sponsor.accountID,
            "cap": currentCap,
            "totalReceived": totalReceived
        })

    async def getCapInfo(self, accountId: int) -> Optional[Dict]:
        account = self.session.query(Account).filter_by(accountID=accountId).first()
        if not account:
            return None

        rules = await ConfigService(self.session).getRankRules()
        rule = rules.findRule(account.rank)
        multiplier = rule.cappingMultiplier if rule else Decimal("0")

        activeStake = await self.stakeService.getActiveStakeTotal(accountId)
        currentCap = toMoney(activeStake * multiplier)
        totalReceived = toMoney(account.totalBRankBonusReceived)
        remainingCap = max(Decimal("0"), currentCap - totalReceived)

        return {
            "accountId": accountId,
            "rank": account.rank,
            "totalActiveStake": activeStake,
            "cappingMultiplier": multiplier,
            "currentCap": currentCap,
            "totalReceived": totalReceived,
            "remainingCap": remainingCap,
            "isCapReached": rule is not None and remainingCap <= 0
        }

    async def initializeBRankCapping(self) -> Dict[str, int]:
        """Backfill lifetime rank bonus totals from the ledger."""
        results = {"processed": 0, "updated": 0}

        totals = dict(
            self.session.query(Transaction.accountID, func.sum(Transaction.amount)).filter(
                Transaction.transactionType == "commission_rank"
            ).group_by(Transaction.accountID).all()
        )

        for account in self.session.query(Account).all():
            results["processed"] += 1
            expected = toMoney(totals.get(account.accountID, 0))
            if toMoney(account.totalBRankBonusReceived) != expected:
                account.totalBRankBonusReceived = expected
                results["updated"] += 1

        self.session.commit()
        logger.info(f"Rank bonus backfill: processed={results['processed']}, updated={results['updated']}")
        return results
