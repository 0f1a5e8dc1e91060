"""
Middleware для логирования всех событий.
"""
import logging
import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseMiddleware):
    """Логирование входящих событий и времени их обработки."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        start_time = time.monotonic()

        user_info = self._get_user_info(event)
        event_type = self._get_event_type(event)
        logger.info(f"📥 {event_type} from {user_info}")

        try:
            result = await handler(event, data)
        except Exception as e:
            duration = (time.monotonic() - start_time) * 1000
            logger.error(f"❌ {event_type} failed after {duration:.0f}ms: {e}")
            raise

        duration = (time.monotonic() - start_time) * 1000
        logger.info(f"✅ {event_type} handled in {duration:.0f}ms")
        return result

    def _get_user_info(self, event: TelegramObject) -> str:
        user = getattr(event, "from_user", None)
        if user:
            return f"User({user.id}, @{user.username or 'no_username'})"
        return "Unknown"

    def _get_event_type(self, event: TelegramObject) -> str:
        if isinstance(event, Message):
            if event.text:
                if event.text.startswith("/"):
                    return f"Command: {event.text.split()[0]}"
                # Текст отзыва в лог целиком не пишем
                return f"Message: {len(event.text)} chars"
            if event.document:
                return f"Document: {event.document.file_name}"
            return "Message (other)"
        if isinstance(event, CallbackQuery):
            return f"Callback: {event.data}"
        return "Unknown event"
