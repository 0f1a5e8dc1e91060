"""
Тесты middleware обработки ошибок.
"""
from datetime import datetime

import pytest
from aiogram.types import CallbackQuery, Chat, Message, User

from tests.conftest import USER_ID, make_event
from vetbot.bot.flows import ModerationFlow, ReviewFlow
from vetbot.bot.formatting import GENERIC_ERROR_TEXT
from vetbot.bot.handlers import AdminHandlers, VetHandlers
from vetbot.bot.middlewares import ErrorHandlerMiddleware
from vetbot.bot.router import DispatchRouter

answered: list[tuple[int, str, object]] = []


class RecordingMessage(Message):
    """Message, который не ходит в Telegram, а запоминает ответы."""

    async def answer(self, text, reply_markup=None, **kwargs):
        answered.append((self.chat.id, text, reply_markup))


@pytest.fixture(autouse=True)
def clear_answers():
    answered.clear()
    yield
    answered.clear()


def make_message(text: str = "привет") -> RecordingMessage:
    return RecordingMessage(
        message_id=1,
        date=datetime.now(),
        chat=Chat(id=USER_ID, type="private"),
        from_user=User(id=USER_ID, is_bot=False, first_name="Тест"),
        text=text,
    )


async def failing_handler(event, data):
    raise RuntimeError("boom")


class TestErrorHandlerMiddleware:
    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        async def handler(event, data):
            return "ok"

        assert await ErrorHandlerMiddleware()(handler, make_message(), {}) == "ok"
        assert answered == []

    @pytest.mark.asyncio
    async def test_message_error_answered(self):
        result = await ErrorHandlerMiddleware()(failing_handler, make_message(), {})

        assert result is None
        assert answered == [(USER_ID, GENERIC_ERROR_TEXT, None)]

    @pytest.mark.asyncio
    async def test_callback_error_written_to_chat(self):
        callback = CallbackQuery.model_construct(
            id="cb-1",
            from_user=User(id=USER_ID, is_bot=False, first_name="Тест"),
            chat_instance="ci",
            data="add_review_7",
            message=make_message(),
        )

        await ErrorHandlerMiddleware()(failing_handler, callback, {})

        assert len(answered) == 1
        chat_id, text, markup = answered[0]
        assert (chat_id, text) == (USER_ID, GENERIC_ERROR_TEXT)
        assert markup is not None

    @pytest.mark.asyncio
    async def test_router_errors_reach_middleware_once(
        self, store, gateway, messenger, admin_policy, session_maker, monkeypatch
    ):
        router = DispatchRouter(
            store=store,
            messenger=messenger,
            review_flow=ReviewFlow(store, gateway, messenger, admin_policy),
            moderation_flow=ModerationFlow(store, gateway, messenger, admin_policy),
            vet_handlers=VetHandlers(messenger, session_maker, gateway),
            admin_handlers=AdminHandlers(messenger, session_maker, admin_policy, gateway),
        )

        async def boom(event):
            raise RuntimeError("boom")

        monkeypatch.setitem(router._commands, "help", boom)

        async def on_message(message, data):
            await router.handle_incoming_event(make_event(text="/help"))

        await ErrorHandlerMiddleware()(on_message, make_message("/help"), {})

        assert messenger.sent == []
        assert answered == [(USER_ID, GENERIC_ERROR_TEXT, None)]
