# staking_system/services/rank_service.py
"""
Rank management service: derives each account's rank from team volume
and direct referral structure, and records every change.
"""
from decimal import Decimal
from typing import Optional, Dict, List
from sqlalchemy.orm import Session
import logging

import config
from models import Account, RankHistory
from staking_system.config.settings import RankRuleTable
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.time_machine import timeMachine
from staking_system.services.config_service import ConfigService
from staking_system.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class RankService:
    """Service for evaluating and updating account ranks."""

    def __init__(self, session: Session, rankRules: Optional[RankRuleTable] = None):
        self.session = session
        self.rankRules = rankRules
        self.notificationService = NotificationService(session)

    async def getRankRules(self) -> RankRuleTable:
        if self.rankRules is None:
            self.rankRules = await ConfigService(self.session).getRankRules()
        return self.rankRules

    def _getDirectReferrals(self, accountId: int) -> List[Account]:
        return self.session.query(Account).filter_by(referrerID=accountId).all()

    async def evaluateRank(self, account: Account) -> str:
        """
        Rank the account qualifies for right now. Nothing is persisted.
        Rules are tried hardest first; the first one met wins.
        """
        rules = await self.getRankRules()
        directs = self._getDirectReferrals(account.accountID)
        teamVolume = Decimal(str(account.teamVolume or 0))

        for rule in rules.hardestFirst():
            if teamVolume < rule.minTeamVolume:
                continue

            if len(directs) < rule.minDirectReferrals:
                continue

            if rule.requiredRankDirects:
                requiredCount, requiredRank = rule.requiredRankDirects
                requiredWeight = rules.weight(requiredRank)
                qualifiedDirects = sum(1 for direct in directs if rules.weight(direct.rank) >= requiredWeight)
                if qualifiedDirects < requiredCount:
                    continue

            return rule.rank

        return rules.lowestRank

    async def recomputeRank(self, accountId: int) -> List[Dict]:
        """
        Re-evaluate an account and, while ranks keep changing, its sponsors.
        Returns the list of changes made.
        """
        changes = []
        account = self.session.query(Account).filter_by(accountID=accountId).first()
        visited = set()
        depth = 0

        while account and account.accountID not in visited:
            if depth > config.MAX_TREE_DEPTH:
                logger.warning(
                    f"Rank propagation from account {accountId} stopped at depth {config.MAX_TREE_DEPTH}"
                )
                break
            visited.add(account.accountID)

            newRank = await self.evaluateRank(account)
            if newRank == account.rank:
                break

            changes.append(await self._applyRankChange(account, newRank))

            # A changed rank can change the sponsor's structure requirement
            if account.referrerID is None:
                break
            account = self.session.query(Account).filter_by(accountID=account.referrerID).first()
            depth += 1

        return changes

    async def _applyRankChange(self, account: Account, newRank: str) -> Dict:
        rules = await self.getRankRules()
        oldRank = account.rank or rules.lowestRank
        isUpgrade = rules.compare(newRank, oldRank) > 0
        directCount = len(self._getDirectReferrals(account.accountID))

        account.rank = newRank
        account.directReferralsCount = directCount

        history = RankHistory(
            accountID=account.accountID,
            previousRank=oldRank,
            newRank=newRank,
            teamVolume=account.teamVolume,
            directReferrals=directCount,
            qualificationMethod="promotion" if isUpgrade else "demotion",
            createdAt=timeMachine.now
        )
        self.session.add(history)
        self.session.flush()

        if isUpgrade:
            await self.notificationService.notify(
                account.accountID, "rank", "Rank Advancement!",
                f"Congratulations! You've been promoted to {newRank}!",
                icon="🏆", data={"oldRank": oldRank, "newRank": newRank, "isUpgrade": True}
            )
        else:
            await self.notificationService.notify(
                account.accountID, "rank", "Rank Update",
                f"Your rank has been updated to {newRank}.",
                icon="ℹ️", data={"oldRank": oldRank, "newRank": newRank, "isUpgrade": False}
            )

        await eventBus.emit(StakingEvents.RANK_CHANGED, {
            "accountId": account.accountID,
            "oldRank": oldRank,
            "newRank": newRank,
            "isUpgrade": isUpgrade
        })

        logger.info(f"Account {account.accountID} rank updated: {oldRank} -> {newRank}")
        return {"accountId": account.accountID, "oldRank": oldRank, "newRank": newRank}

    async def checkAllRanks(self) -> Dict[str, int]:
        """Recompute every account's rank (audit and repair)."""
        results = {
            "checked": 0,
            "updated": 0,
            "errors": 0
        }

        accounts = self.session.query(Account).order_by(Account.accountID.desc()).all()
        ranksBefore = {account.accountID: account.rank for account in accounts}

        for account in accounts:
            try:
                results["checked"] += 1
                await self.recomputeRank(account.accountID)
            except Exception as e:
                logger.error(f"Error checking rank for account {account.accountID}: {e}")
                results["errors"] += 1

        results["updated"] = sum(
            1 for account in accounts if account.rank != ranksBefore[account.accountID]
        )

        self.session.commit()

        logger.info(
            f"Rank check complete: checked={results['checked']}, "
            f"updated={results['updated']}, errors={results['errors']}"
        )

        return results
