# staking_system/utils/time_machine.py
"""
Time machine - controls virtual time so day boundaries can be replayed.
"""
from datetime import datetime, timezone, timedelta
from typing import Optional, Dict
import logging

logger = logging.getLogger(__name__)


class TimeMachine:
    """Singleton for managing system time."""

    _instance = None
    _virtualTime: Optional[datetime] = None
    _isTestMode: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def now(self) -> datetime:
        """Get current system time (real or virtual), always UTC."""
        if self._isTestMode and self._virtualTime:
            return self._virtualTime
        return datetime.now(timezone.utc)

    @property
    def today(self) -> str:
        """Processing day in YYYY-MM-DD format."""
        return self.now.strftime('%Y-%m-%d')

    @property
    def isTestMode(self) -> bool:
        return self._isTestMode

    def reportingBuckets(self, moment: Optional[datetime] = None) -> Dict:
        """Date, ISO week, month and year buckets used by commission reports."""
        moment = moment or self.now
        isoYear, isoWeek, _ = moment.isocalendar()
        return {
            "date": moment.strftime('%Y-%m-%d'),
            "week": f"{isoYear}-{isoWeek:02d}",
            "month": moment.strftime('%Y-%m'),
            "year": moment.year,
        }

    def setTime(self, newTime: datetime, adminId: Optional[int] = None):
        """Set virtual time for testing."""
        if newTime.tzinfo is None:
            newTime = newTime.replace(tzinfo=timezone.utc)
        self._isTestMode = True
        self._virtualTime = newTime.astimezone(timezone.utc)
        logger.info(f"Virtual time set to {self._virtualTime} by admin {adminId}")

    def advanceTime(self, days: int = 0, hours: int = 0):
        """Advance virtual time forward."""
        if not self._isTestMode:
            raise ValueError("Cannot advance time when not in test mode")

        self._virtualTime += timedelta(days=days, hours=hours)
        logger.info(f"Time advanced to {self._virtualTime}")

    def resetToRealTime(self):
        """Return to real time."""
        self._isTestMode = False
        self._virtualTime = None
        logger.info("Returned to real time")


# Global instance
timeMachine = TimeMachine()
