"""
Отправка сообщений и проверка прав администратора.
"""
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Union

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import (
    BufferedInputFile,
    InlineKeyboardMarkup,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)

logger = logging.getLogger(__name__)

Markup = Union[InlineKeyboardMarkup, ReplyKeyboardMarkup, ReplyKeyboardRemove, None]


class Messenger(ABC):
    """Исходящие вызовы к мессенджеру."""

    @abstractmethod
    async def send_message(self, chat_id: int, text: str, reply_markup: Markup = None) -> None:
        ...

    @abstractmethod
    async def answer_callback(
        self, callback_id: str, text: Optional[str] = None, show_alert: bool = False
    ) -> None:
        ...

    @abstractmethod
    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> None:
        ...

    @abstractmethod
    async def send_document(
        self, chat_id: int, filename: str, data: bytes, caption: Optional[str] = None
    ) -> None:
        ...

    @abstractmethod
    async def download_document(self, file_id: str) -> bytes:
        ...


class TelegramMessenger(Messenger):
    """Messenger поверх aiogram Bot."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(self, chat_id: int, text: str, reply_markup: Markup = None) -> None:
        await self.bot.send_message(chat_id, text, reply_markup=reply_markup)

    async def answer_callback(
        self, callback_id: str, text: Optional[str] = None, show_alert: bool = False
    ) -> None:
        await self.bot.answer_callback_query(callback_id, text=text, show_alert=show_alert)

    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> None:
        try:
            await self.bot.edit_message_text(
                text=text,
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=reply_markup,
            )
        except TelegramBadRequest as e:
            # Повторное нажатие той же кнопки
            if "message is not modified" in str(e):
                return
            raise

    async def send_document(
        self, chat_id: int, filename: str, data: bytes, caption: Optional[str] = None
    ) -> None:
        await self.bot.send_document(
            chat_id,
            BufferedInputFile(data, filename=filename),
            caption=caption,
        )

    async def download_document(self, file_id: str) -> bytes:
        buffer = await self.bot.download(file_id)
        return buffer.read()


class AdminPolicy(ABC):
    @abstractmethod
    def is_admin(self, platform_id: int) -> bool:
        ...

    @abstractmethod
    def admin_ids(self) -> list[int]:
        ...


class StaticAdminPolicy(AdminPolicy):
    """Администраторы из настроек (ADMIN_IDS)."""

    def __init__(self, ids: Iterable[int]):
        self._ids = frozenset(ids)

    def is_admin(self, platform_id: int) -> bool:
        return platform_id in self._ids

    def admin_ids(self) -> list[int]:
        return sorted(self._ids)
