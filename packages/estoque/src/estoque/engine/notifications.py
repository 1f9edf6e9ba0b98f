"""User-facing notifications (toast equivalents).

Notifications are keyed: while a notification with a given key is active, a
second ``notify`` with the same key is a no-op. Persistent notifications stay
active until dismissed; the rest close on their own after a short delay.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

logger = logging.getLogger(__name__)


class NotificationLevel(StrEnum):
    """Severity of a notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


@dataclass
class Notification:
    """A notification shown to the user."""

    key: str
    level: NotificationLevel
    message: str
    persistent: bool = False
    count: int = 1
    created_at: float = field(default_factory=time.monotonic)


class Notifier(Protocol):
    """Sink for user-facing notifications."""

    def notify(
        self,
        level: NotificationLevel,
        message: str,
        *,
        key: str | None = None,
        persistent: bool = False,
    ) -> Notification | None: ...

    def update(
        self,
        key: str,
        *,
        message: str | None = None,
        count: int | None = None,
    ) -> bool: ...

    def dismiss(self, key: str) -> bool: ...

    def is_active(self, key: str) -> bool: ...


class NotificationCenter:
    """
    In-memory notifier.

    Keeps the active notifications, a history of every notification emitted,
    and forwards new ones to an optional callback (a UI adapter, a console).
    """

    def __init__(
        self,
        *,
        auto_close_seconds: float = 5.0,
        on_notify: Callable[[Notification], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._auto_close_seconds = auto_close_seconds
        self._on_notify = on_notify
        self._clock = clock
        self._active: dict[str, Notification] = {}
        self._history: list[Notification] = []
        self._sequence = 0

    @property
    def history(self) -> list[Notification]:
        """Every notification emitted, oldest first."""
        return list(self._history)

    @property
    def active(self) -> list[Notification]:
        self._expire()
        return list(self._active.values())

    def emitted(self, key: str) -> list[Notification]:
        """Notifications emitted under a key."""
        return [n for n in self._history if n.key == key]

    def notify(
        self,
        level: NotificationLevel,
        message: str,
        *,
        key: str | None = None,
        persistent: bool = False,
    ) -> Notification | None:
        """Emit a notification unless one with the same key is active."""
        if key is not None and self.is_active(key):
            return None
        if key is None:
            self._sequence += 1
            key = f"notification-{self._sequence}"

        notification = Notification(
            key=key,
            level=level,
            message=message,
            persistent=persistent,
            created_at=self._clock(),
        )
        self._active[key] = notification
        self._history.append(notification)
        logger.log(_LOG_LEVELS[level], message)

        if self._on_notify is not None:
            try:
                self._on_notify(notification)
            except Exception as e:
                logger.debug(f"Notification callback failed for '{key}': {e}")
        return notification

    def update(
        self,
        key: str,
        *,
        message: str | None = None,
        count: int | None = None,
    ) -> bool:
        """Update an active notification in place."""
        if not self.is_active(key):
            return False
        notification = self._active[key]
        if message is not None:
            notification.message = message
        notification.count = count if count is not None else notification.count + 1
        return True

    def dismiss(self, key: str) -> bool:
        return self._active.pop(key, None) is not None

    def is_active(self, key: str) -> bool:
        self._expire()
        return key in self._active

    def clear(self) -> None:
        self._active.clear()

    def _expire(self) -> None:
        now = self._clock()
        expired = [
            key
            for key, notification in self._active.items()
            if not notification.persistent
            and now - notification.created_at >= self._auto_close_seconds
        ]
        for key in expired:
            del self._active[key]
