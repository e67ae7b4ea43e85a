# staking_system/services/currency_service.py
"""
Currency abstraction: engine rewards land in wallet or points
depending on the points toggle. Points can be swapped to wallet.
"""
from decimal import Decimal
from typing import Dict, Optional
from sqlalchemy.orm import Session
import logging

from models import Account, SwapRequest, Transaction
from staking_system.config.settings import EngineSnapshot
from staking_system.errors import StakingError, ErrorCodes
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.money import toMoney, roundToTwoDecimals, hasSufficientBalance
from staking_system.utils.time_machine import timeMachine
from staking_system.services.config_service import ConfigService, ConfigKeys
from staking_system.services.ledger_service import LedgerService, CURRENCY_WALLET, CURRENCY_POINTS
from staking_system.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class CurrencyService:
    """Routes reward credits and handles points conversion."""

    def __init__(self, session: Session):
        self.session = session
        self.ledger = LedgerService(session)
        self.configService = ConfigService(session)
        self.notificationService = NotificationService(session)

    @staticmethod
    def rewardCurrency(snapshot: EngineSnapshot) -> str:
        return CURRENCY_POINTS if snapshot.pointsEnabled else CURRENCY_WALLET

    async def creditReward(
            self,
            accountId: int,
            amount: Decimal,
            transactionType: str,
            snapshot: EngineSnapshot,
            stakeId: Optional[int] = None,
            sourceAccountId: Optional[int] = None,
            commissionLevel: Optional[int] = None,
            commissionRate: Optional[Decimal] = None,
            description: Optional[str] = None
    ) -> Optional[Transaction]:
        """
        Credit an engine reward. The amount is never changed by the toggle,
        only which balance receives it and the ledger row's currency.
        """
        amount = toMoney(amount)
        if amount <= 0:
            return None

        return await self.ledger.post(
            accountId, amount, self.rewardCurrency(snapshot), transactionType,
            stakeId=stakeId,
            commissionLevel=commissionLevel,
            commissionRate=commissionRate,
            sourceAccountId=sourceAccountId,
            description=description
        )

    async def getPointsConfig(self) -> Dict:
        return {
            "enabled": await self.configService.getFlag(ConfigKeys.POINTS_ENABLED),
            "conversionRate": await self.configService.getDecimal(ConfigKeys.POINTS_CONVERSION_RATE),
            "minSwapAmount": await self.configService.getDecimal(ConfigKeys.POINTS_MIN_SWAP_AMOUNT),
        }

    async def swapPointsToWallet(self, accountId: int, pointsAmount: Decimal) -> Dict:
        """Convert points into withdrawable wallet balance."""
        pointsConfig = await self.getPointsConfig()
        if not pointsConfig["enabled"]:
            raise StakingError(ErrorCodes.POINTS_DISABLED)

        pointsAmount = toMoney(pointsAmount)
        if pointsAmount <= 0:
            raise StakingError(ErrorCodes.INVALID_AMOUNT)

        if pointsAmount < pointsConfig["minSwapAmount"]:
            raise StakingError(
                ErrorCodes.BELOW_MINIMUM,
                f"Minimum swap amount is {pointsConfig['minSwapAmount']} points"
            )

        account = self.session.query(Account).filter_by(accountID=accountId).first()
        if not account:
            raise StakingError(ErrorCodes.ACCOUNT_NOT_FOUND)

        if not hasSufficientBalance(account.pointsBalance, pointsAmount):
            raise StakingError(
                ErrorCodes.INSUFFICIENT_BALANCE,
                f"Insufficient points balance. Available: {roundToTwoDecimals(account.pointsBalance)}"
            )

        conversionRate = pointsConfig["conversionRate"]
        if conversionRate <= 0:
            raise StakingError(ErrorCodes.INVALID_CONFIG, "Invalid conversion rate configured")

        # Tolerance may accept a request a hair above the balance
        pointsAmount = min(pointsAmount, toMoney(account.pointsBalance))
        walletAmount = toMoney(pointsAmount * conversionRate)

        swap = SwapRequest(
            accountID=accountId,
            pointsAmount=pointsAmount,
            walletAmount=walletAmount,
            conversionRate=conversionRate,
            status="completed",
            completedAt=timeMachine.now
        )
        self.session.add(swap)
        self.session.flush()

        await self.ledger.post(
            accountId, -pointsAmount, CURRENCY_POINTS, "points_swap",
            referenceId=str(swap.swapID),
            description=f"Swapped {pointsAmount} points to wallet"
        )
        await self.ledger.post(
            accountId, walletAmount, CURRENCY_WALLET, "points_swap",
            referenceId=str(swap.swapID),
            description=f"Received ${walletAmount:.2f} from points swap"
        )

        await self.notificationService.notify(
            accountId, "system", "Points Swap Completed",
            f"Successfully swapped {roundToTwoDecimals(pointsAmount)} points "
            f"to ${roundToTwoDecimals(walletAmount)}",
            icon="🔄",
            data={"swapId": swap.swapID, "pointsAmount": pointsAmount, "walletAmount": walletAmount}
        )

        await eventBus.emit(StakingEvents.POINTS_SWAPPED, {
            "accountId": accountId,
            "swapId": swap.swapID,
            "pointsAmount": pointsAmount,
            "walletAmount": walletAmount
        })

        self.session.commit()
        logger.info(f"Account {accountId} swapped {pointsAmount} points for {walletAmount} wallet")
        return {
            "success": True,
            "swapId": swap.swapID,
            "pointsAmount": pointsAmount,
            "walletAmount": walletAmount,
            "conversionRate": conversionRate
        }

    async def togglePointsSystem(self, enabled: Optional[bool] = None) -> Dict:
        """Flip (or set) the points toggle and tell every account."""
        current = await self.configService.getFlag(ConfigKeys.POINTS_ENABLED)
        newState = (not current) if enabled is None else bool(enabled)

        await self.configService.set(ConfigKeys.POINTS_ENABLED, newState)

        if newState:
            title = "Points System Activated"
            message = "Rewards are now credited as points. You can swap points to your wallet at any time."
        else:
            title = "Points System Deactivated"
            message = "Rewards are now credited directly to your wallet."

        notified = await self.notificationService.notifyAll("system", title, message, icon="🪙")

        self.session.commit()
        await eventBus.emit(StakingEvents.POINTS_TOGGLED, {"enabled": newState})

        logger.info(f"Points system {'enabled' if newState else 'disabled'}, {notified} accounts notified")
        return {"success": True, "enabled": newState, "notified": notified}

    async def updatePointsConfig(
            self,
            conversionRate: Optional[Decimal] = None,
            minSwapAmount: Optional[Decimal] = None
    ) -> Dict:
        if conversionRate is not None:
            conversionRate = Decimal(str(conversionRate))
            if conversionRate <= 0:
                raise StakingError(ErrorCodes.INVALID_CONFIG, "Conversion rate must be greater than 0")
            await self.configService.set(ConfigKeys.POINTS_CONVERSION_RATE, conversionRate)

        if minSwapAmount is not None:
            minSwapAmount = Decimal(str(minSwapAmount))
            if minSwapAmount < 0:
                raise StakingError(ErrorCodes.INVALID_CONFIG, "Minimum swap amount cannot be negative")
            await self.configService.set(ConfigKeys.POINTS_MIN_SWAP_AMOUNT, minSwapAmount)

        self.session.commit()
        return {"success": True, **await self.getPointsConfig()}
