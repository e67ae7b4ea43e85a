# staking_system/services/ledger_service.py
"""
Currency ledger. Every balance change is an append-only Transaction row
and the materialized balance on Account moves with it.
"""
from decimal import Decimal
from typing import Dict, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
import logging

from models import Account, Transaction
from staking_system.errors import StakingError, ErrorCodes
from staking_system.utils.money import toMoney, hasSufficientBalance
from staking_system.utils.time_machine import timeMachine
from staking_system.services.config_service import ConfigService, ConfigKeys
from staking_system.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

CURRENCY_WALLET = "wallet"
CURRENCY_POINTS = "points"

BALANCE_FIELDS = {
    CURRENCY_WALLET: "walletBalance",
    CURRENCY_POINTS: "pointsBalance",
}


class LedgerService:
    """Posts ledger rows and keeps account balances in step."""

    def __init__(self, session: Session):
        self.session = session
        self.notificationService = NotificationService(session)

    def _getAccount(self, accountId: int) -> Account:
        account = self.session.query(Account).filter_by(accountID=accountId).first()
        if not account:
            raise StakingError(ErrorCodes.ACCOUNT_NOT_FOUND, f"Account {accountId} not found")
        return account

    async def post(
            self,
            accountId: int,
            amount: Decimal,
            currency: str,
            transactionType: str,
            stakeId: Optional[int] = None,
            referenceId: Optional[str] = None,
            commissionLevel: Optional[int] = None,
            commissionRate: Optional[Decimal] = None,
            sourceAccountId: Optional[int] = None,
            description: Optional[str] = None
    ) -> Transaction:
        """
        Append one signed ledger row and apply it to the balance.
        Debits that would take the balance below zero are rejected.
        """
        if currency not in BALANCE_FIELDS:
            raise StakingError(ErrorCodes.VALIDATION_ERROR, f"Unknown currency {currency}")

        account = self._getAccount(accountId)
        amount = toMoney(amount)
        balanceField = BALANCE_FIELDS[currency]

        newBalance = toMoney(getattr(account, balanceField)) + amount
        if newBalance < 0:
            raise StakingError(
                ErrorCodes.INSUFFICIENT_BALANCE,
                f"Account {accountId} {currency} balance too low for {-amount}"
            )

        setattr(account, balanceField, newBalance)

        transaction = Transaction(
            accountID=accountId,
            amount=amount,
            currency=currency,
            transactionType=transactionType,
            stakeID=stakeId,
            referenceID=referenceId,
            commissionLevel=commissionLevel,
            commissionRate=commissionRate,
            sourceAccountID=sourceAccountId,
            description=description,
            timestamp=timeMachine.now
        )
        self.session.add(transaction)
        self.session.flush()

        logger.debug(
            f"Posted {transactionType} {amount} {currency} to account {accountId}, "
            f"balance {newBalance}"
        )
        return transaction

    async def deposit(self, accountId: int, amount: Decimal, referenceId: Optional[str] = None) -> Dict:
        """Credit a confirmed external deposit to the wallet."""
        amount = toMoney(amount)
        if amount <= 0:
            raise StakingError(ErrorCodes.INVALID_AMOUNT)

        transaction = await self.post(
            accountId, amount, CURRENCY_WALLET, "deposit",
            referenceId=referenceId,
            description=f"Deposit of ${amount:.2f}"
        )

        await self.notificationService.notify(
            accountId, "deposit", "Deposit Confirmed",
            f"Your deposit of ${amount:.2f} has been credited.",
            icon="💰", data={"amount": amount, "transactionId": transaction.transactionID}
        )

        self.session.commit()
        logger.info(f"Deposit {amount} credited to account {accountId}")
        return {"success": True, "transactionId": transaction.transactionID, "amount": amount}

    async def withdraw(self, accountId: int, amount: Decimal, referenceId: Optional[str] = None) -> Dict:
        """Debit a withdrawal; on-chain execution happens outside the engine."""
        configService = ConfigService(self.session)
        if await configService.getFlag(ConfigKeys.WITHDRAWALS_PAUSED):
            raise StakingError(ErrorCodes.WITHDRAWALS_PAUSED)

        amount = toMoney(amount)
        if amount <= 0:
            raise StakingError(ErrorCodes.INVALID_AMOUNT)

        minimum = await configService.getDecimal(ConfigKeys.MIN_WITHDRAWAL_AMOUNT)
        if amount < minimum:
            raise StakingError(ErrorCodes.BELOW_MINIMUM, f"Minimum withdrawal is ${minimum:.2f}")

        account = self._getAccount(accountId)
        if not hasSufficientBalance(account.walletBalance, amount):
            raise StakingError(ErrorCodes.INSUFFICIENT_BALANCE)

        # Tolerance may accept a request a hair above the balance
        amount = min(amount, toMoney(account.walletBalance))

        transaction = await self.post(
            accountId, -amount, CURRENCY_WALLET, "withdrawal",
            referenceId=referenceId,
            description=f"Withdrawal of ${amount:.2f}"
        )

        await self.notificationService.notify(
            accountId, "withdrawal", "Withdrawal Requested",
            f"Your withdrawal of ${amount:.2f} is being processed.",
            icon="📤", data={"amount": amount, "transactionId": transaction.transactionID}
        )

        self.session.commit()
        logger.info(f"Withdrawal {amount} debited from account {accountId}")
        return {"success": True, "transactionId": transaction.transactionID, "amount": amount}

    async def getBalance(self, accountId: int, currency: str = CURRENCY_WALLET) -> Decimal:
        account = self._getAccount(accountId)
        return toMoney(getattr(account, BALANCE_FIELDS[currency]))

    async def getLedgerSum(self, accountId: int, currency: str = CURRENCY_WALLET) -> Decimal:
        total = self.session.query(func.sum(Transaction.amount)).filter(
            Transaction.accountID == accountId,
            Transaction.currency == currency
        ).scalar()
        return toMoney(total or 0)

    async def reconcile(self, accountId: int) -> Dict:
        """Compare materialized balances with ledger sums for both currencies."""
        result = {"accountId": accountId, "matches": True}

        for currency in BALANCE_FIELDS:
            balance = await self.getBalance(accountId, currency)
            ledgerSum = await self.getLedgerSum(accountId, currency)
            matches = balance == ledgerSum
            result[currency] = {"balance": balance, "ledger": ledgerSum, "matches": matches}

            if not matches:
                result["matches"] = False
                logger.warning(
                    f"Ledger mismatch for account {accountId} ({currency}): "
                    f"balance={balance}, ledger={ledgerSum}"
                )

        return result
