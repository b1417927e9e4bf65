"""
Notification Center

Delivers refresh outcomes and per-channel conditions to consumers.
Consumers either subscribe with a callback or poll the recent history.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable


logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    REFRESH_STARTED = "refresh_started"
    REFRESH_COMPLETED = "refresh_completed"
    CONNECTIVITY_FAILED = "connectivity_failed"
    LOAD_FAILED = "load_failed"
    NO_SCHEDULE = "no_schedule"


ERROR_KINDS = frozenset({
    NotificationKind.CONNECTIVITY_FAILED,
    NotificationKind.LOAD_FAILED,
    NotificationKind.NO_SCHEDULE,
})


@dataclass(frozen=True, slots=True)
class Notification:
    kind: NotificationKind
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    channel_id: int | None = None

    @property
    def is_error(self) -> bool:
        return self.kind in ERROR_KINDS

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "channel_id": self.channel_id,
            "is_error": self.is_error,
        }


Subscriber = Callable[[Notification], None]


class NotificationCenter:
    """
    Keeps a bounded history of notifications and fans them out to subscribers.

    A failing subscriber is logged and skipped; it never breaks the publisher.
    """

    def __init__(self, history_size: int = 100):
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def publish(self, notification: Notification) -> None:
        with self._lock:
            self._history.append(notification)
            subscribers = list(self._subscribers)

        log = logger.warning if notification.is_error else logger.debug
        log("Notification [%s]: %s", notification.kind.value, notification.message)

        for subscriber in subscribers:
            try:
                subscriber(notification)
            except Exception as e:
                logger.error(f"Notification subscriber {subscriber!r} failed: {e}", exc_info=True)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """
        Register a callback for future notifications

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def recent(self, limit: int | None = None) -> list[Notification]:
        """Return notifications oldest first, optionally only the last `limit`"""
        with self._lock:
            items = list(self._history)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
