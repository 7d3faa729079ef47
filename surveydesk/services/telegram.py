# surveydesk/services/telegram.py
import logging
from typing import Protocol

from aiogram import Bot
from aiogram.types import BufferedInputFile

logger = logging.getLogger(__name__)

# Telegram API limits
MESSAGE_LIMIT = 4096
CAPTION_LIMIT = 1024


class TextChannel(Protocol):
    """Accepts a short text message (new-response notifications)."""

    @property
    def configured(self) -> bool: ...

    async def send_message(self, text: str) -> None: ...


class DocumentChannel(Protocol):
    """Accepts a named binary attachment with a caption (report delivery)."""

    @property
    def configured(self) -> bool: ...

    async def send_document(self, payload: bytes, filename: str, caption: str) -> None: ...


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


class TelegramChannel:
    """Sends messages and documents to one Telegram chat through a bot."""

    def __init__(self, bot_token: str, chat_id: str):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.bot: Bot | None = None

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def _get_bot(self) -> Bot:
        """Lazy bot initialization"""
        if self.bot is None:
            self.bot = Bot(token=self.bot_token)
        return self.bot

    async def send_message(self, text: str) -> None:
        bot = self._get_bot()
        await bot.send_message(chat_id=self.chat_id, text=_clip(text, MESSAGE_LIMIT))
        logger.info("Message sent to chat %s", self.chat_id)

    async def send_document(self, payload: bytes, filename: str, caption: str) -> None:
        bot = self._get_bot()
        await bot.send_document(
            chat_id=self.chat_id,
            document=BufferedInputFile(payload, filename),
            caption=_clip(caption, CAPTION_LIMIT),
        )
        logger.info("Document %s (%d bytes) sent to chat %s", filename, len(payload), self.chat_id)

    async def close(self) -> None:
        if self.bot is not None:
            await self.bot.session.close()
            self.bot = None
