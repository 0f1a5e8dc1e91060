"""
Приём апдейтов aiogram.

Все сообщения и нажатия кнопок превращаются в IncomingEvent и передаются
в DispatchRouter (приходит из workflow_data диспетчера).
"""
import logging

from aiogram import Router
from aiogram.types import CallbackQuery, Message

from vetbot.bot.events import event_from_callback, event_from_message
from vetbot.bot.router import DispatchRouter

logger = logging.getLogger(__name__)

router = Router(name="updates")


@router.message()
async def on_message(message: Message, dispatch_router: DispatchRouter):
    event = event_from_message(message)
    if event is None:
        await message.answer("Я понимаю только текст, команды и файлы импорта. Используйте /help.")
        return
    await dispatch_router.handle_incoming_event(event)


@router.callback_query()
async def on_callback(callback: CallbackQuery, dispatch_router: DispatchRouter):
    await dispatch_router.handle_incoming_event(event_from_callback(callback))
