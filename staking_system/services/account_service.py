# staking_system/services/account_service.py
"""
Account registration and lookup.
"""
from typing import Optional
from sqlalchemy.orm import Session
import logging

from models import Account
from staking_system.errors import StakingError, ErrorCodes
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.time_machine import timeMachine
from staking_system.services.rank_service import RankService

logger = logging.getLogger(__name__)


class AccountService:
    """Creates sponsor tree nodes."""

    def __init__(self, session: Session):
        self.session = session
        self.rankService = RankService(session)

    async def getAccount(self, accountId: int) -> Account:
        account = self.session.query(Account).filter_by(accountID=accountId).first()
        if not account:
            raise StakingError(ErrorCodes.ACCOUNT_NOT_FOUND, f"Account {accountId} not found")
        return account

    async def registerAccount(
            self,
            name: str,
            email: Optional[str] = None,
            referrerId: Optional[int] = None
    ) -> Account:
        """Create an account under an optional sponsor. The sponsor can never change afterwards."""
        if not name:
            raise StakingError(ErrorCodes.VALIDATION_ERROR, "Account name is required")

        referrer = None
        if referrerId is not None:
            referrer = self.session.query(Account).filter_by(accountID=referrerId).first()
            if not referrer:
                raise StakingError(ErrorCodes.REFERRER_NOT_FOUND)

        rules = await self.rankService.getRankRules()
        now = timeMachine.now

        account = Account(
            name=name,
            email=email,
            referrerID=referrerId,
            rank=rules.lowestRank,
            createdAt=now,
            updatedAt=now
        )
        self.session.add(account)
        self.session.flush()

        if referrer:
            referrer.directReferralsCount = (referrer.directReferralsCount or 0) + 1
            # One more direct can complete the sponsor's requirements
            await self.rankService.recomputeRank(referrer.accountID)

        self.session.commit()

        await eventBus.emit(StakingEvents.ACCOUNT_REGISTERED, {
            "accountId": account.accountID,
            "referrerId": referrerId
        })

        logger.info(f"Registered account {account.accountID} under referrer {referrerId}")
        return account
