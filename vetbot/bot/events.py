"""
Входящие события бота в нейтральном виде.

Апдейты aiogram превращаются в IncomingEvent, дальше с ними работает
DispatchRouter, не зная про Telegram-типы.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from aiogram.types import CallbackQuery, Message

from vetbot.db.gateway import UserProfile


class EventKind(str, Enum):
    COMMAND = "command"
    TEXT = "text"
    CALLBACK = "callback"
    DOCUMENT = "document"


@dataclass(frozen=True)
class DocumentRef:
    file_id: str
    file_name: str
    file_size: Optional[int] = None


@dataclass(frozen=True)
class IncomingEvent:
    kind: EventKind
    user_id: int
    chat_id: int
    profile: UserProfile
    text: str = ""
    # Имя команды без "/" и без "@botname", в нижнем регистре
    command: Optional[str] = None
    callback_id: Optional[str] = None
    callback_data: Optional[str] = None
    message_id: Optional[int] = None
    document: Optional[DocumentRef] = None


def parse_command(text: str) -> Optional[str]:
    """'/search_5@vet_bot foo' -> 'search_5'."""
    if not text.startswith("/"):
        return None
    head = text[1:].split(maxsplit=1)[0] if len(text) > 1 else ""
    name = head.split("@", 1)[0].lower()
    return name or None


def _profile(user) -> UserProfile:
    return UserProfile(
        telegram_id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def event_from_message(message: Message) -> Optional[IncomingEvent]:
    """Сообщение -> событие. Стикеры, фото и прочее без текста не поддерживаются."""
    if message.from_user is None:
        return None

    base = dict(
        user_id=message.from_user.id,
        chat_id=message.chat.id,
        profile=_profile(message.from_user),
        message_id=message.message_id,
    )

    if message.document:
        return IncomingEvent(
            kind=EventKind.DOCUMENT,
            text=message.caption or "",
            document=DocumentRef(
                file_id=message.document.file_id,
                file_name=message.document.file_name or "",
                file_size=message.document.file_size,
            ),
            **base,
        )

    if message.text is None:
        return None

    command = parse_command(message.text)
    return IncomingEvent(
        kind=EventKind.COMMAND if command else EventKind.TEXT,
        text=message.text,
        command=command,
        **base,
    )


def event_from_callback(callback: CallbackQuery) -> IncomingEvent:
    message = callback.message
    chat_id = message.chat.id if message else callback.from_user.id
    return IncomingEvent(
        kind=EventKind.CALLBACK,
        user_id=callback.from_user.id,
        chat_id=chat_id,
        profile=_profile(callback.from_user),
        callback_id=callback.id,
        callback_data=callback.data or "",
        message_id=message.message_id if message else None,
    )
