# staking_system/services/notification_service.py
"""
Notification sink. Persists notices and hands them to the event bus;
delivery (email, push, web) subscribes to NOTIFICATION_CREATED.
"""
from decimal import Decimal
from typing import Dict, Optional, List
from sqlalchemy.orm import Session
import logging

from models import Notification, Account
from staking_system.events.event_bus import eventBus, StakingEvents

logger = logging.getLogger(__name__)


def _jsonSafe(data: Optional[Dict]) -> Optional[Dict]:
    if not data:
        return data
    return {key: (str(value) if isinstance(value, Decimal) else value) for key, value in data.items()}


class NotificationService:
    """Creates notification records for accounts."""

    def __init__(self, session: Session):
        self.session = session

    async def notify(
            self,
            accountId: int,
            category: str,
            title: str,
            message: str,
            icon: Optional[str] = None,
            data: Optional[Dict] = None
    ) -> Notification:
        notification = Notification(
            accountID=accountId,
            category=category,
            title=title,
            message=message,
            icon=icon,
            data=_jsonSafe(data)
        )
        self.session.add(notification)
        self.session.flush()

        logger.debug(f"Notification for account {accountId}: {title}")

        await eventBus.emit(StakingEvents.NOTIFICATION_CREATED, {
            "notificationId": notification.notificationID,
            "accountId": accountId,
            "category": category,
            "title": title
        })
        return notification

    async def notifyAll(
            self,
            category: str,
            title: str,
            message: str,
            icon: Optional[str] = None,
            data: Optional[Dict] = None
    ) -> int:
        """Notify every account. Returns number of notices created."""
        accountIds: List[int] = [row[0] for row in self.session.query(Account.accountID).all()]

        for accountId in accountIds:
            await self.notify(accountId, category, title, message, icon, data)

        logger.info(f"Broadcast '{title}' to {len(accountIds)} accounts")
        return len(accountIds)
