# staking_system/services/distribution_service.py
"""
Daily distribution: yield for every active stake and the commission
cascade that follows it. One run per day, one database transaction per
stake, and a per-stake-per-day marker so a retried run never pays twice.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging
import os
import socket
import time
import uuid

import config
from models import Stake, StakeYieldRecord, ExecutionLog, JobLock
from staking_system.config.settings import EngineSnapshot
from staking_system.events.event_bus import eventBus, StakingEvents
from staking_system.utils.money import toMoney, percentOf
from staking_system.utils.time_machine import timeMachine
from staking_system.services.brank_service import BRankService
from staking_system.services.config_service import ConfigService
from staking_system.services.currency_service import CurrencyService
from staking_system.services.notification_service import NotificationService
from staking_system.services.referral_service import ReferralService
from staking_system.services.unilevel_service import UnilevelService
from staking_system.services.volume_service import VolumeService

logger = logging.getLogger(__name__)

OUTCOME_PROCESSED = "processed"
OUTCOME_EXPIRED = "expired"
OUTCOME_SKIPPED = "skipped"


class DistributionService:
    """Daily yield and commission orchestrator."""

    def __init__(self, session: Session, jobName: Optional[str] = None):
        self.session = session
        self.jobName = jobName or config.DISTRIBUTION_JOB_NAME
        self.owner = f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"

        self.configService = ConfigService(session)
        self.currencyService = CurrencyService(session)
        self.notificationService = NotificationService(session)
        self.referralService = ReferralService(session)
        self.bRankService = BRankService(session)
        self.unilevelService = UnilevelService(session)

    async def distributeDailyRewards(self) -> Dict:
        """Main entry point, called once a day by the scheduler."""
        startTime = time.perf_counter()

        if not await self._acquireLock():
            message = f"Job {self.jobName} is already running"
            logger.warning(message)
            self._writeExecutionLog("failed", message, {}, startTime)
            self.session.commit()
            return {"success": False, "error": message}

        stats = {
            "stakesProcessed": 0,
            "stakesExpired": 0,
            "stakesSkipped": 0,
            "totalYieldDistributed": Decimal("0"),
            "totalCommissionsDistributed": Decimal("0"),
            "errors": []
        }

        try:
            snapshot = await self.configService.getSnapshot()

            if snapshot.distributionPaused:
                message = "Distribution paused, no stakes processed"
                logger.info(message)
                self._writeExecutionLog("success", message, stats, startTime)
                self.session.commit()
                return {"success": True, "paused": True, **stats}

            now = timeMachine.now
            today = timeMachine.today
            await eventBus.emit(StakingEvents.DISTRIBUTION_STARTED, {"date": today})

            stakeIds = [
                row[0] for row in self.session.query(Stake.stakeID).filter(
                    Stake.status == Stake.STATUS_ACTIVE
                ).order_by(Stake.stakeID).all()
            ]
            logger.info(f"Distribution for {today}: {len(stakeIds)} active stakes")

            for stakeId in stakeIds:
                try:
                    outcome, yieldAmount, commissions = await self.processStake(stakeId, snapshot, now, today)
                    self.session.commit()
                except Exception as e:
                    self.session.rollback()
                    logger.error(f"Error processing stake {stakeId}: {e}")
                    stats["errors"].append(f"Stake {stakeId}: {e}")
                    continue

                if outcome == OUTCOME_PROCESSED:
                    stats["stakesProcessed"] += 1
                    stats["totalYieldDistributed"] += yieldAmount
                    stats["totalCommissionsDistributed"] += commissions
                elif outcome == OUTCOME_EXPIRED:
                    stats["stakesExpired"] += 1
                else:
                    stats["stakesSkipped"] += 1

            message = (
                f"Processed {stats['stakesProcessed']} stakes, {stats['stakesExpired']} expired, "
                f"{stats['stakesSkipped']} skipped, {len(stats['errors'])} errors"
            )
            self._writeExecutionLog("success", message, stats, startTime)
            self.session.commit()

            logger.info(
                f"Distribution for {today} complete: {message}, "
                f"yield={stats['totalYieldDistributed']}, "
                f"commissions={stats['totalCommissionsDistributed']}"
            )

            await eventBus.emit(StakingEvents.DISTRIBUTION_COMPLETED, {
                "date": today,
                "stakesProcessed": stats["stakesProcessed"],
                "stakesExpired": stats["stakesExpired"],
                "totalYieldDistributed": stats["totalYieldDistributed"],
                "totalCommissionsDistributed": stats["totalCommissionsDistributed"]
            })

            return {"success": True, **stats}

        except Exception as e:
            self.session.rollback()
            logger.error(f"Distribution run failed: {e}")
            self._writeExecutionLog("failed", str(e) or "Unknown error", stats, startTime)
            self.session.commit()
            await eventBus.emit(StakingEvents.DISTRIBUTION_FAILED, {"error": str(e)})
            raise

        finally:
            await self._releaseLock()

    async def processStake(
            self,
            stakeId: int,
            snapshot: EngineSnapshot,
            now: datetime,
            today: str
    ) -> tuple:
        """
        Run one stake's cascade. Returns (outcome, yield, commissions).
        The caller commits or rolls back.
        """
        stake = self.session.query(Stake).filter_by(stakeID=stakeId).first()
        if not stake or not stake.isActive:
            return OUTCOME_SKIPPED, Decimal("0"), Decimal("0")

        if now > stake.endDate:
            await self._completeStake(stake, snapshot, now)
            return OUTCOME_EXPIRED, Decimal("0"), Decimal("0")

        alreadyPaid = self.session.query(StakeYieldRecord).filter_by(
            stakeID=stakeId,
            yieldDate=today
        ).first()
        if alreadyPaid:
            logger.debug(f"Stake {stakeId} already paid for {today}")
            return OUTCOME_SKIPPED, Decimal("0"), Decimal("0")

        # Marker first; a concurrent writer fails here on the unique key
        marker = StakeYieldRecord(stakeID=stakeId, yieldDate=today, processedAt=now)
        self.session.add(marker)
        try:
            self.session.flush()
        except IntegrityError:
            self.session.rollback()
            logger.info(f"Stake {stakeId} claimed by another run for {today}")
            return OUTCOME_SKIPPED, Decimal("0"), Decimal("0")

        dailyYield = percentOf(stake.amount, stake.dailyRate)
        staker = stake.account
        currency = self.currencyService.rewardCurrency(snapshot)

        await self.currencyService.creditReward(
            staker.accountID, dailyYield, "yield", snapshot,
            stakeId=stake.stakeID,
            description=f"Daily yield for ${stake.amount:.2f} stake ({stake.cycleDays} days)"
        )
        await self.notificationService.notify(
            staker.accountID, "earnings", "Daily Yield Credited",
            f"You earned {dailyYield:.2f} {currency} from your {stake.cycleDays}-day stake!",
            icon="💵", data={"amount": dailyYield, "stakeId": stake.stakeID, "currency": currency}
        )

        referral = await self.referralService.distributeReferralBonuses(stake, dailyYield, snapshot)
        rankBonus = await self.bRankService.distributeRankBonus(stake, dailyYield, snapshot)
        unilevel = await self.unilevelService.distributeUnilevelCommissions(stake, dailyYield, snapshot)

        commissions = toMoney(referral["total"] + rankBonus + unilevel["total"])

        stake.lastYieldDate = now
        marker.yieldAmount = dailyYield
        marker.commissionAmount = commissions
        self.session.flush()

        await eventBus.emit(StakingEvents.YIELD_PAID, {
            "stakeId": stake.stakeID,
            "accountId": staker.accountID,
            "amount": dailyYield,
            "commissions": commissions
        })

        return OUTCOME_PROCESSED, dailyYield, commissions

    async def _completeStake(self, stake: Stake, snapshot: EngineSnapshot, now: datetime):
        """Terminal transition. No yield is paid on the expiry day and principal stays locked."""
        stake.status = Stake.STATUS_COMPLETED
        stake.completedAt = now
        self.session.flush()

        await VolumeService(self.session, snapshot.rankRules).applyVolumeDelta(stake.accountID, -stake.amount)
        await self.unilevelService.updateActiveDirects(stake.account.referrerID)

        await self.notificationService.notify(
            stake.accountID, "stake", "Stake Completed",
            f"Your {stake.cycleDays}-day stake of ${stake.amount:.2f} has completed.",
            icon="✅", data={"stakeId": stake.stakeID, "amount": stake.amount}
        )

        await eventBus.emit(StakingEvents.STAKE_COMPLETED, {
            "stakeId": stake.stakeID,
            "accountId": stake.accountID,
            "amount": stake.amount
        })

        logger.info(f"Stake {stake.stakeID} of account {stake.accountID} completed")

    async def _acquireLock(self) -> bool:
        now = timeMachine.now
        lock = self.session.query(JobLock).filter_by(jobName=self.jobName).first()

        if lock:
            if now - lock.lockedAt < timedelta(seconds=config.JOB_LOCK_TIMEOUT_SECONDS):
                return False

            previousOwner = lock.owner
            # Conditional update so only one contender takes over a stale lock
            taken = self.session.query(JobLock).filter(
                JobLock.jobName == self.jobName,
                JobLock.lockedAt == lock.lockedAt
            ).update({"owner": self.owner, "lockedAt": now}, synchronize_session=False)
            self.session.commit()

            if taken:
                logger.warning(f"Took over stale lock of {self.jobName} held by {previousOwner}")
            return bool(taken)

        self.session.add(JobLock(jobName=self.jobName, owner=self.owner, lockedAt=now))
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return False
        return True

    async def _releaseLock(self):
        self.session.query(JobLock).filter_by(
            jobName=self.jobName,
            owner=self.owner
        ).delete(synchronize_session=False)
        self.session.commit()

    def _writeExecutionLog(self, status: str, message: str, stats: Dict, startTime: float):
        errors: List[str] = stats.get("errors") or []
        self.session.add(ExecutionLog(
            jobName=self.jobName,
            status=status,
            message=message,
            timestamp=timeMachine.now,
            stakesProcessed=stats.get("stakesProcessed", 0),
            stakesExpired=stats.get("stakesExpired", 0),
            stakesSkipped=stats.get("stakesSkipped", 0),
            totalYieldDistributed=toMoney(stats.get("totalYieldDistributed", 0)),
            totalCommissionsDistributed=toMoney(stats.get("totalCommissionsDistributed", 0)),
            executionTimeMs=int((time.perf_counter() - startTime) * 1000),
            details="\n".join(errors) if errors else None
        ))
