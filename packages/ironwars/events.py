"""
Run notifications.

Synchronous observer registry used by the progression state machine and the
relic engine. Listeners are called immediately on emit() with a Notification
whose payload is a deep copy, so listeners can never reach live run state.

Usage:
    bus = NotificationBus()
    bus.on(NotificationType.GOLD_UPDATED, lambda n: print(n.payload["gold"]))
    progression = RunProgression(catalog, relic_engine, store, bus=bus)
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class NotificationType(Enum):
    """Notifications emitted during a run."""

    # Run lifecycle
    RUN_STARTED = "run-started"
    RUN_LOADED = "run-loaded"
    RUN_ABANDONED = "run-abandoned"
    RUN_COMPLETED = "run-completed"

    # Map
    STAGE_ENTERED = "stage-entered"
    STAGE_COMPLETED = "stage-completed"
    NODE_SELECTED = "node-selected"
    NODE_COMPLETED = "node-completed"

    # Resources
    GOLD_UPDATED = "gold-updated"
    FORTRESS_UPDATED = "fortress-updated"
    DECK_UPDATED = "deck-updated"
    RELICS_UPDATED = "relics-updated"
    CURSES_UPDATED = "curses-updated"
    ROSTER_UPDATED = "roster-updated"

    # Relic engine
    RELIC_ADDED = "relic-added"
    RELIC_REMOVED = "relic-removed"
    RELIC_TRIGGERED = "relic-triggered"


@dataclass
class Notification:
    """A single emitted notification."""
    type: NotificationType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "payload": copy.deepcopy(self.payload),
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.payload}"


NotificationHandler = Callable[[Notification], None]


class NotificationBus:
    """Synchronous notification bus with a bounded history."""

    def __init__(self, history_limit: int = 200):
        self._listeners: Dict[NotificationType, List[NotificationHandler]] = {}
        self._history: List[Notification] = []
        self._history_limit = history_limit

    def on(self, notification_type: Optional[NotificationType], handler: NotificationHandler) -> None:
        """Subscribe to a notification type (None for every type). Subscribing twice is a no-op."""
        handlers = self._listeners.setdefault(notification_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, notification_type: Optional[NotificationType], handler: NotificationHandler) -> None:
        handlers = self._listeners.get(notification_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, notification_type: NotificationType, payload: Optional[Dict[str, Any]] = None) -> Notification:
        """
        Emit a notification to all subscribers.

        The payload is deep-copied before delivery. A failing listener is
        logged and the remaining listeners still run.
        """
        notification = Notification(type=notification_type, payload=copy.deepcopy(payload or {}))

        self._history.append(notification)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]

        logger.debug("emit %s", notification_type.value)
        handlers = self._listeners.get(notification_type, []) + self._listeners.get(None, [])
        for handler in handlers:
            try:
                handler(notification)
            except Exception:
                logger.exception("Notification handler failed for %s", notification_type.value)

        return notification

    def get_history(self, notification_type: Optional[NotificationType] = None) -> List[Notification]:
        """Recent notifications, optionally filtered by type."""
        if notification_type is None:
            return list(self._history)
        return [n for n in self._history if n.type == notification_type]

    def clear(self) -> None:
        """Drop all listeners and history."""
        self._listeners.clear()
        self._history.clear()

    def listener_count(self, notification_type: Optional[NotificationType]) -> int:
        return len(self._listeners.get(notification_type, []))
