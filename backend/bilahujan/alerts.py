# backend/bilahujan/alerts.py
"""
Session-scoped notification feed. A state produces at most one open
notification; dismissing it (or clearing all) lets that state notify again.
"""

import itertools
import threading
from typing import Callable, Dict, List, Optional, Set

from .logging_setup import logger
from .schemas import CRITICAL_THRESHOLD, FLOOD_THRESHOLD, FloodZone, Notification
from .locations import STATEWIDE_NAME
from .zone_store import UPSERTED, ZoneEvent, ZoneStore


def notification_label(severity: int) -> str:
    if severity >= CRITICAL_THRESHOLD:
        return "Flood Alert Nearby"
    if severity >= FLOOD_THRESHOLD:
        return "Flood Warning Nearby"
    return "Area Status Update"


def notification_title(zone: FloodZone) -> str:
    if zone.name == STATEWIDE_NAME:
        return f"{zone.state} - {STATEWIDE_NAME}"
    return zone.name


class AlertDispatcher:
    def __init__(self):
        self._notified_states: Set[str] = set()
        self._notifications: Dict[int, Notification] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._detach: Optional[Callable[[], None]] = None

    def attach(self, store: ZoneStore):
        self._detach = store.subscribe(self.handle)

    def detach(self):
        if self._detach:
            self._detach()
            self._detach = None

    def handle(self, event: ZoneEvent):
        if event.kind != UPSERTED or event.zone is None:
            return
        self.on_zone_upserted(event.zone_id, event.zone)

    def on_zone_upserted(self, zone_id: str, zone: FloodZone) -> Optional[Notification]:
        with self._lock:
            if zone.state in self._notified_states:
                logger.info(f"[alerts] Suppressed {zone_id}, {zone.state} already notified")
                return None
            self._notified_states.add(zone.state)
            notification = Notification(
                id=next(self._ids),
                zone_id=zone_id,
                state=zone.state,
                label=notification_label(zone.severity),
                title=notification_title(zone),
                forecast=zone.forecast,
                severity=zone.severity,
            )
            self._notifications[notification.id] = notification
        logger.info(f"[alerts] {notification.label}: {notification.title} (severity {zone.severity})")
        return notification

    def pending(self) -> List[Notification]:
        with self._lock:
            return list(self._notifications.values())

    def dismiss(self, notification_id: int) -> bool:
        with self._lock:
            notification = self._notifications.pop(notification_id, None)
            if notification is None:
                return False
            if not any(n.state == notification.state for n in self._notifications.values()):
                self._notified_states.discard(notification.state)
        return True

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._notifications)
            self._notifications.clear()
            self._notified_states.clear()
        return count
