# staking_system/services/report_service.py
"""
Read-only reports over commission history, stakes and points swaps.
"""
import calendar
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
import logging

from models import Account, CommissionHistory, Stake, SwapRequest
from staking_system.errors import StakingError, ErrorCodes
from staking_system.utils.money import toMoney
from staking_system.utils.time_machine import timeMachine
from staking_system.services.currency_service import CurrencyService

logger = logging.getLogger(__name__)

GROUP_BY_FIELDS = {
    "day": "date",
    "week": "week",
    "month": "month",
    "year": "year",
}

SUMMARY_PERIODS = ("today", "week", "month", "year", "all")
SUMMARY_LIMIT = 100


def _shiftMonths(day: date, months: int) -> date:
    """Same day N months earlier, clamped to the length of the target month."""
    monthIndex = day.year * 12 + day.month - 1 - months
    year, month = divmod(monthIndex, 12)
    month += 1
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


class ReportService:
    """Aggregates for dashboards and exports. Never writes."""

    def __init__(self, session: Session):
        self.session = session

    def _periodStart(self, period: str) -> Optional[str]:
        if period not in SUMMARY_PERIODS:
            raise StakingError(ErrorCodes.VALIDATION_ERROR, f"Unknown report period: {period}")

        today = timeMachine.now.date()
        if period == "today":
            start = today
        elif period == "week":
            start = today - timedelta(days=7)
        elif period == "month":
            start = _shiftMonths(today, 1)
        elif period == "year":
            start = _shiftMonths(today, 12)
        else:
            return None
        return start.strftime('%Y-%m-%d')

    async def getCommissionReport(
            self,
            accountId: Optional[int] = None,
            startDate: Optional[str] = None,
            endDate: Optional[str] = None,
            groupBy: Optional[str] = None
    ):
        """
        Unilevel commissions, optionally for one earner and a date range
        ("YYYY-MM-DD", both inclusive).

        Without groupBy returns the rows. With groupBy (day, week, month, year)
        returns one bucket per period, newest first:
        {period, totalCommission, count, byLevel}
        """
        if groupBy is not None and groupBy not in GROUP_BY_FIELDS:
            raise StakingError(ErrorCodes.VALIDATION_ERROR, f"Unknown grouping: {groupBy}")

        query = self.session.query(CommissionHistory)
        if accountId is not None:
            query = query.filter(CommissionHistory.accountID == accountId)
        if startDate:
            query = query.filter(CommissionHistory.date >= startDate)
        if endDate:
            query = query.filter(CommissionHistory.date <= endDate)

        commissions = query.order_by(CommissionHistory.historyID).all()

        if not groupBy:
            return commissions

        return self._groupCommissions(commissions, GROUP_BY_FIELDS[groupBy])

    @staticmethod
    def _groupCommissions(commissions: List[CommissionHistory], field: str) -> List[Dict]:
        grouped = {}

        for commission in commissions:
            key = str(getattr(commission, field))
            bucket = grouped.setdefault(key, {
                "period": key,
                "totalCommission": Decimal("0"),
                "count": 0,
                "byLevel": {}
            })

            amount = toMoney(commission.commissionAmount)
            bucket["totalCommission"] += amount
            bucket["count"] += 1
            bucket["byLevel"][commission.level] = bucket["byLevel"].get(commission.level, Decimal("0")) + amount

        return sorted(grouped.values(), key=lambda bucket: bucket["period"], reverse=True)

    async def getCommissionSummary(self, accountId: int, period: str = "all") -> Dict:
        """Totals and per-level breakdown of one earner's commissions over a trailing window."""
        startDate = self._periodStart(period)

        query = self.session.query(CommissionHistory).filter(CommissionHistory.accountID == accountId)
        if startDate:
            query = query.filter(CommissionHistory.date >= startDate)

        commissions = query.order_by(
            CommissionHistory.timestamp.desc(),
            CommissionHistory.historyID.desc()
        ).all()

        total = Decimal("0")
        byLevel = {}
        for commission in commissions:
            amount = toMoney(commission.commissionAmount)
            total += amount
            byLevel[commission.level] = byLevel.get(commission.level, Decimal("0")) + amount

        return {
            "period": period,
            "startDate": startDate,
            "totalCommission": total,
            "commissionCount": len(commissions),
            "byLevel": byLevel,
            "commissions": commissions[:SUMMARY_LIMIT]
        }

    async def getStakeReport(
            self,
            accountId: Optional[int] = None,
            status: str = "all",
            startDate: Optional[datetime] = None,
            endDate: Optional[datetime] = None
    ) -> Dict:
        """Stakes filtered by owner, status and start date, with totals."""
        if status not in ("all", Stake.STATUS_ACTIVE, Stake.STATUS_COMPLETED):
            raise StakingError(ErrorCodes.VALIDATION_ERROR, f"Unknown stake status: {status}")

        query = self.session.query(Stake)
        if accountId is not None:
            query = query.filter(Stake.accountID == accountId)
        if status != "all":
            query = query.filter(Stake.status == status)
        if startDate:
            query = query.filter(Stake.startDate >= startDate)
        if endDate:
            query = query.filter(Stake.startDate <= endDate)

        stakes = query.order_by(Stake.stakeID).all()
        active = [stake for stake in stakes if stake.status == Stake.STATUS_ACTIVE]
        completed = [stake for stake in stakes if stake.status == Stake.STATUS_COMPLETED]

        return {
            "stakes": stakes,
            "summary": {
                "total": len(stakes),
                "active": len(active),
                "completed": len(completed),
                "totalStaked": toMoney(sum((stake.amount for stake in stakes), Decimal("0"))),
                "totalActive": toMoney(sum((stake.amount for stake in active), Decimal("0"))),
            }
        }

    async def getSwapHistory(self, accountId: int) -> List[SwapRequest]:
        """Points swaps of one account, newest first."""
        return self.session.query(SwapRequest).filter_by(
            accountID=accountId
        ).order_by(SwapRequest.swapID.desc()).all()

    async def checkSwapReadiness(self, accountId: int) -> Dict:
        """Explains whether an account could swap points right now, and if not, why."""
        account = self.session.query(Account).filter_by(accountID=accountId).first()
        pointsConfig = await CurrencyService(self.session).getPointsConfig()

        balance = toMoney(account.pointsBalance) if account else Decimal("0")
        rate = pointsConfig["conversionRate"]

        issues = []
        if not account:
            issues.append("Account not found")
        if not pointsConfig["enabled"]:
            issues.append("Points system is disabled")
        if balance <= 0:
            issues.append("Account has no points balance")
        elif balance < pointsConfig["minSwapAmount"]:
            issues.append("Points balance is below the minimum swap amount")
        if rate <= 0:
            issues.append("Invalid conversion rate")

        return {
            "accountExists": account is not None,
            "pointsBalance": balance,
            "pointsEnabled": pointsConfig["enabled"],
            "conversionRate": rate,
            "minSwapAmount": pointsConfig["minSwapAmount"],
            "canSwap": not issues,
            "issues": issues
        }
