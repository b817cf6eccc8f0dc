"""Telegram notification sink.

Sends swap lifecycle events to a configured chat.
"""

import logging
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError

from swapflow.notifications.base import NotificationEvent, NotificationKind, NotificationSink

logger = logging.getLogger(__name__)

_TITLES = {
    NotificationKind.INFO: "Swap Submitted",
    NotificationKind.SUCCESS: "Swap Confirmed",
    NotificationKind.ERROR: "Swap Failed",
}


def short_hash(tx_hash: str) -> str:
    """Truncate a hash for display."""
    return f"{tx_hash[:8]}...{tx_hash[-8:]}" if len(tx_hash) > 20 else tx_hash


def format_event(event: NotificationEvent) -> str:
    """Render an event as Telegram HTML."""
    message = f"<b>{_TITLES[event.kind]}</b>\n\n{event.text}\n"

    if event.hash:
        message += f"TX: <code>{short_hash(event.hash)}</code>\n"
    if event.explorer_url:
        message += f'<a href="{event.explorer_url}">View on explorer</a>\n'

    return message


class TelegramNotificationSink(NotificationSink):
    """Delivers events to one Telegram chat."""

    def __init__(self, chat_id: int, bot: Optional[Bot] = None, token: str = ""):
        """Initialize with a bot instance or a bot token."""
        if bot is None and not token:
            raise ValueError("TelegramNotificationSink needs a bot or a token")
        self.chat_id = chat_id
        self._bot = bot
        self._token = token

    def _get_bot(self) -> Bot:
        if self._bot is None:
            self._bot = Bot(token=self._token)
        return self._bot

    async def notify(self, event: NotificationEvent) -> bool:
        bot = self._get_bot()

        try:
            await bot.send_message(
                chat_id=self.chat_id,
                text=format_event(event),
                parse_mode="HTML",
            )
            return True
        except TelegramForbiddenError:
            logger.warning(f"Chat {self.chat_id} has blocked the bot")
            return False
        except TelegramBadRequest as e:
            logger.error(f"Bad request sending to {self.chat_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to send notification to {self.chat_id}: {e}")
            return False

    async def close(self) -> None:
        """Close the bot session (call on shutdown)."""
        if self._bot is not None:
            await self._bot.session.close()
            self._bot = None
