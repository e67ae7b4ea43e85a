# staking_system/services/volume_service.py
"""
Team volume tracking: an account's team volume is its own active principal
plus that of its whole downline.
"""
from decimal import Decimal
from typing import List, Dict, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
import logging

import config
from models import Account, Stake
from staking_system.config.settings import RankRuleTable
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.money import toMoney
from staking_system.services.rank_service import RankService
from staking_system.services.upline_service import UplineService

logger = logging.getLogger(__name__)


class VolumeService:
    """Service for propagating team volume changes up the sponsor tree."""

    def __init__(self, session: Session, rankRules: Optional[RankRuleTable] = None):
        self.session = session
        self.rankService = RankService(session, rankRules)
        self.uplineService = UplineService(session)

    async def applyVolumeDelta(self, accountId: int, delta: Decimal) -> Dict:
        """
        Add delta to the account and every ancestor (floored at zero),
        then re-evaluate ranks bottom-up once the whole chain is written.
        """
        delta = toMoney(delta)
        chain = self._collectChain(accountId)
        if not chain:
            logger.warning(f"Volume update for unknown account {accountId}")
            return {"updated": 0, "rankChanges": []}

        for account in chain:
            newVolume = toMoney(account.teamVolume) + delta
            if newVolume < 0:
                logger.warning(
                    f"Team volume of account {account.accountID} would go negative "
                    f"({newVolume}), clamped to 0"
                )
                newVolume = toMoney(0)
            account.teamVolume = newVolume

        self.session.flush()

        logger.info(f"Applied volume delta {delta} from account {accountId} to {len(chain)} accounts")

        await eventBus.emit(StakingEvents.VOLUME_UPDATED, {
            "accountId": accountId,
            "delta": delta,
            "accountsUpdated": len(chain)
        })

        rankChanges = []
        for account in chain:
            rankChanges.extend(await self.rankService.recomputeRank(account.accountID))

        return {"updated": len(chain), "rankChanges": rankChanges}

    def _collectChain(self, accountId: int) -> List[Account]:
        """The account followed by its ancestors, bounded by MAX_TREE_DEPTH."""
        account = self.session.query(Account).filter_by(accountID=accountId).first()
        if not account:
            return []

        chain = [account]
        visited = {account.accountID}

        while account.referrerID is not None:
            if len(chain) > config.MAX_TREE_DEPTH:
                logger.warning(
                    f"Sponsor chain of account {accountId} deeper than {config.MAX_TREE_DEPTH}, "
                    f"volume propagation truncated"
                )
                break

            if account.referrerID in visited:
                logger.warning(
                    f"Cycle in sponsor tree at account {account.referrerID}, "
                    f"volume propagation truncated"
                )
                break

            referrer = self.session.query(Account).filter_by(accountID=account.referrerID).first()
            if not referrer:
                break

            chain.append(referrer)
            visited.add(referrer.accountID)
            account = referrer

        return chain

    async def recalculateTeamVolumes(self) -> Dict[str, int]:
        """
        Rebuild every team volume from active stakes (repair tool).
        Ranks are not touched; run RankService.checkAllRanks afterwards.
        """
        results = {"checked": 0, "corrected": 0}

        ownPrincipal = dict(
            self.session.query(Stake.accountID, func.sum(Stake.amount)).filter(
                Stake.status == Stake.STATUS_ACTIVE
            ).group_by(Stake.accountID).all()
        )

        for account in self.session.query(Account).all():
            results["checked"] += 1
            expected = toMoney(ownPrincipal.get(account.accountID, 0))

            downline = await self.uplineService.findDownline(account.accountID, config.MAX_TREE_DEPTH)
            for descendant, _ in downline:
                expected += toMoney(ownPrincipal.get(descendant.accountID, 0))

            if toMoney(account.teamVolume) != expected:
                logger.warning(
                    f"Team volume of account {account.accountID} corrected "
                    f"{account.teamVolume} -> {expected}"
                )
                account.teamVolume = expected
                results["corrected"] += 1

        self.session.commit()
        logger.info(f"Team volume rebuild: checked={results['checked']}, corrected={results['corrected']}")
        return results
