"""
Middleware для обработки ошибок.

Единственный верхний обработчик: DispatchRouter исключения не глотает,
они долетают сюда из on_message / on_callback.
"""
import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from vetbot.bot.formatting import GENERIC_ERROR_TEXT
from vetbot.bot.keyboards.inline import get_back_to_menu_keyboard

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseMiddleware):
    """Глобальный обработчик ошибок."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        try:
            return await handler(event, data)
        except Exception as e:
            logger.exception(f"Unhandled error: {e}")

            # Callback уже подтверждён роутером, поэтому пишем в чат
            try:
                if isinstance(event, Message):
                    await event.answer(GENERIC_ERROR_TEXT)
                elif isinstance(event, CallbackQuery) and isinstance(event.message, Message):
                    await event.message.answer(
                        GENERIC_ERROR_TEXT,
                        reply_markup=get_back_to_menu_keyboard(),
                    )
            except Exception as notify_error:
                logger.warning(f"Failed to notify user about error: {notify_error}")

            return None
