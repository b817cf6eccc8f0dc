"""Lifecycle notification sinks."""

from typing import Optional

from swapflow.config import Settings, get_settings
from swapflow.notifications.base import (
    LoggingNotificationSink,
    MemoryNotificationSink,
    NotificationEvent,
    NotificationKind,
    NotificationSink,
)


def create_notification_sink(settings: Optional[Settings] = None) -> NotificationSink:
    """Telegram when configured, otherwise the log."""
    settings = settings or get_settings()

    if settings.has_telegram:
        from swapflow.notifications.telegram import TelegramNotificationSink

        return TelegramNotificationSink(
            chat_id=settings.telegram_chat_id,
            token=settings.telegram_bot_token,
        )

    return LoggingNotificationSink()


__all__ = [
    "LoggingNotificationSink",
    "MemoryNotificationSink",
    "NotificationEvent",
    "NotificationKind",
    "NotificationSink",
    "create_notification_sink",
]
