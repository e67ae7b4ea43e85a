# staking_system/events/event_bus.py
"""
Event bus for decoupled communication between engine components.
Notification delivery and reporting subscribe here.
"""
from typing import Dict, List, Callable, Any
import logging
import asyncio

logger = logging.getLogger(__name__)


class EventBus:
    """
    Simple in-process event bus.
    Handler failures are logged and never reach the emitter.
    """

    _instance = None
    _handlers: Dict[str, List[Callable]] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._handlers = {}
        return cls._instance

    def subscribe(self, eventName: str, handler: Callable):
        """Subscribe handler to event."""
        if eventName not in self._handlers:
            self._handlers[eventName] = []

        self._handlers[eventName].append(handler)
        logger.debug(f"Handler {handler.__name__} subscribed to {eventName}")

    def unsubscribe(self, eventName: str, handler: Callable):
        """Unsubscribe handler from event."""
        if eventName in self._handlers and handler in self._handlers[eventName]:
            self._handlers[eventName].remove(handler)
            logger.debug(f"Handler {handler.__name__} unsubscribed from {eventName}")

    async def emit(self, eventName: str, data: Dict[str, Any]):
        """Emit event to all subscribers."""
        if eventName not in self._handlers:
            return

        logger.debug(f"Emitting event {eventName} with data: {data}")

        for handler in list(self._handlers[eventName]):
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(data)
                else:
                    handler(data)
            except Exception as e:
                logger.error(f"Error in handler {handler.__name__} for event {eventName}: {e}")

    def clear(self):
        """Clear all event handlers."""
        self._handlers.clear()


# Global event bus instance
eventBus = EventBus()


# Predefined events
class StakingEvents:
    """Standard staking engine events."""

    ACCOUNT_REGISTERED = "account.registered"

    STAKE_CREATED = "stake.created"
    STAKE_COMPLETED = "stake.completed"
    YIELD_PAID = "yield.paid"

    VOLUME_UPDATED = "volume.updated"
    RANK_CHANGED = "rank.changed"

    COMMISSION_PAID = "commission.paid"
    RANK_BONUS_PAID = "rank_bonus.paid"
    RANK_BONUS_CAP_REACHED = "rank_bonus.cap_reached"

    POINTS_SWAPPED = "points.swapped"
    POINTS_TOGGLED = "points.toggled"

    NOTIFICATION_CREATED = "notification.created"

    DISTRIBUTION_STARTED = "distribution.started"
    DISTRIBUTION_COMPLETED = "distribution.completed"
    DISTRIBUTION_FAILED = "distribution.failed"
