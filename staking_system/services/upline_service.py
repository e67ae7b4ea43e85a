# staking_system/services/upline_service.py
"""
Sponsor tree traversal: ancestors (upline) and descendants (downline).
"""
from typing import List, Tuple, Optional
from sqlalchemy.orm import Session
import logging

import config
from models import Account

logger = logging.getLogger(__name__)


class UplineService:
    """Read-only walks over the sponsor tree."""

    def __init__(self, session: Session):
        self.session = session

    async def findUpline(self, accountId: int, maxLevels: int = 10) -> List[Tuple[Account, int]]:
        """
        Ancestors as (account, level) pairs, level 1 being the direct sponsor.
        Stops at the root, at maxLevels or on a cycle.
        """
        result = []
        account = self.session.query(Account).filter_by(accountID=accountId).first()
        if not account:
            return result

        visited = {account.accountID}
        level = 1
        currentReferrerId: Optional[int] = account.referrerID

        while currentReferrerId is not None and level <= maxLevels:
            if currentReferrerId in visited:
                logger.warning(f"Cycle in sponsor tree at account {currentReferrerId}, upline of {accountId} truncated")
                break

            ancestor = self.session.query(Account).filter_by(accountID=currentReferrerId).first()
            if not ancestor:
                break

            result.append((ancestor, level))
            visited.add(ancestor.accountID)
            currentReferrerId = ancestor.referrerID
            level += 1

        return result

    async def findDownline(self, accountId: int, maxLevels: int = 10) -> List[Tuple[Account, int]]:
        """All descendants as (account, level) pairs in pre-order, down to maxLevels."""
        result = []
        maxLevels = min(maxLevels, config.MAX_TREE_DEPTH)
        if maxLevels < 1:
            return result

        visited = {accountId}
        stack = self._childrenOf(accountId, 1, visited)

        while stack:
            account, level = stack.pop()
            result.append((account, level))

            if level < maxLevels:
                stack.extend(self._childrenOf(account.accountID, level + 1, visited))

        return result

    def _childrenOf(self, accountId: int, level: int, visited: set) -> List[Tuple[Account, int]]:
        """Direct referrals, reversed so that popping yields them in id order."""
        children = self.session.query(Account).filter_by(
            referrerID=accountId
        ).order_by(Account.accountID).all()

        pending = []
        for child in children:
            if child.accountID in visited:
                logger.warning(f"Cycle in sponsor tree at account {child.accountID}")
                continue
            visited.add(child.accountID)
            pending.append((child, level))

        pending.reverse()
        return pending
