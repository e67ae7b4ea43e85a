"""
Tests for account registration.
"""

import pytest

from models import Account
from staking_system.errors import StakingError, ErrorCodes
from staking_system.services.account_service import AccountService


class TestRegisterAccount:

    @pytest.mark.asyncio
    async def test_root_account(self, session):
        account = await AccountService(session).registerAccount("root", "root@example.com")

        assert account.referrerID is None
        assert account.rank == "B0"
        assert account.walletBalance == 0
        assert account.teamVolume == 0

    @pytest.mark.asyncio
    async def test_referrer_direct_count(self, session):
        service = AccountService(session)
        sponsor = await service.registerAccount("sponsor")

        await service.registerAccount("first", referrerId=sponsor.accountID)
        await service.registerAccount("second", referrerId=sponsor.accountID)

        assert sponsor.directReferralsCount == 2
        assert len(sponsor.referrals) == 2

    @pytest.mark.asyncio
    async def test_unknown_referrer(self, session):
        with pytest.raises(StakingError) as exc:
            await AccountService(session).registerAccount("orphan", referrerId=42)
        assert exc.value.code == ErrorCodes.REFERRER_NOT_FOUND
        assert session.query(Account).count() == 0

    @pytest.mark.asyncio
    async def test_fifth_direct_completes_rank(self, session, makeAccount):
        sponsor = makeAccount(teamVolume="3000")
        session.commit()
        service = AccountService(session)

        for index in range(5):
            await service.registerAccount(f"direct{index}", referrerId=sponsor.accountID)

        assert sponsor.rank == "B1"

    @pytest.mark.asyncio
    async def test_get_account(self, session, makeAccount):
        account = makeAccount()

        assert (await AccountService(session).getAccount(account.accountID)).accountID == account.accountID
        with pytest.raises(StakingError) as exc:
            await AccountService(session).getAccount(999)
        assert exc.value.code == ErrorCodes.ACCOUNT_NOT_FOUND
