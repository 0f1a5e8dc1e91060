"""
Тесты маршрутизации событий.
"""
import asyncio

import pytest

from tests.conftest import ADMIN_ID, USER_ID, make_event
from vetbot.bot.callbacks import CallbackAction
from vetbot.bot.events import DocumentRef
from vetbot.bot.flows import ModerationFlow, ReviewFlow
from vetbot.bot.formatting import ADMIN_ONLY_TEXT, UNKNOWN_COMMAND_TEXT, UNKNOWN_TEXT
from vetbot.bot.handlers import AdminHandlers, VetHandlers
from vetbot.bot.keyboards.reply import BTN_ADMIN_CITIES, BTN_APPROVE, BTN_HELP
from vetbot.bot.router import DispatchRouter
from vetbot.bot.states import ReviewStates


@pytest.fixture
def router(store, gateway, messenger, admin_policy, session_maker):
    return DispatchRouter(
        store=store,
        messenger=messenger,
        review_flow=ReviewFlow(store, gateway, messenger, admin_policy),
        moderation_flow=ModerationFlow(store, gateway, messenger, admin_policy),
        vet_handlers=VetHandlers(messenger, session_maker, gateway),
        admin_handlers=AdminHandlers(messenger, session_maker, admin_policy, gateway),
    )


class TestIdleRouting:
    @pytest.mark.asyncio
    async def test_plain_text_in_idle(self, router, store, messenger, gateway):
        await router.handle_incoming_event(make_event(text="4"))

        assert messenger.last_text == UNKNOWN_TEXT
        assert await store.get_state(USER_ID) is None
        assert gateway.created == []

    @pytest.mark.asyncio
    async def test_rating_button_in_idle(self, router, store, messenger):
        await router.handle_incoming_event(make_event(callback_data="review_rate_4"))

        assert messenger.answers == [(f"cb-{USER_ID}", None)]
        assert await store.get_state(USER_ID) is None
        assert messenger.sent == []

    @pytest.mark.asyncio
    async def test_unknown_command(self, router, messenger):
        await router.handle_incoming_event(make_event(text="/foo"))
        assert messenger.last_text == UNKNOWN_COMMAND_TEXT

    @pytest.mark.asyncio
    async def test_help_command_and_button(self, router, messenger):
        await router.handle_incoming_event(make_event(text="/help"))
        await router.handle_incoming_event(make_event(text=BTN_HELP))

        assert len(messenger.sent) == 2
        assert messenger.sent[0][1] == messenger.sent[1][1]
        assert "/search" in messenger.sent[0][1]

    @pytest.mark.asyncio
    async def test_start_registers_user(self, router, messenger, gateway):
        await router.handle_incoming_event(make_event(text="/start"))

        assert USER_ID in gateway.users
        assert messenger.sent[-1][2] is not None

    @pytest.mark.asyncio
    async def test_bad_search_command(self, router, messenger):
        await router.handle_incoming_event(make_event(text="/search_abc"))
        assert messenger.last_text == "Неверный формат команды поиска"

    @pytest.mark.asyncio
    async def test_cancel_in_idle(self, router, messenger):
        await router.handle_incoming_event(make_event(text="/cancel"))
        assert messenger.last_text == "Нечего отменять."

    @pytest.mark.asyncio
    async def test_admin_command_denied_for_user(self, router, messenger):
        await router.handle_incoming_event(make_event(text="/stats"))
        assert messenger.last_text == ADMIN_ONLY_TEXT

    @pytest.mark.asyncio
    async def test_approve_button_in_idle_is_not_a_decision(self, router, messenger, gateway):
        gateway.add_review(9)
        await router.handle_incoming_event(make_event(user_id=ADMIN_ID, text=BTN_APPROVE))

        assert gateway.status_updates == []
        assert messenger.last_text == UNKNOWN_TEXT


class TestAdminCatalogRouting:
    @pytest.mark.asyncio
    async def test_catalog_command_and_button(self, router, messenger, catalog):
        await router.handle_incoming_event(make_event(user_id=ADMIN_ID, text="/admin_vets"))
        assert "Врачи</b> (всего: 4)" in messenger.last_text

        await router.handle_incoming_event(make_event(user_id=ADMIN_ID, text=BTN_ADMIN_CITIES))
        assert "Города</b> (всего: 2)" in messenger.last_text

    @pytest.mark.asyncio
    async def test_delete_confirmation_button(self, router, messenger, catalog):
        vet_id = catalog["sidorova"].id
        await router.handle_incoming_event(
            make_event(user_id=ADMIN_ID, callback_data=f"admin_vet_delete_ok_{vet_id}")
        )

        assert messenger.answers == [(f"cb-{ADMIN_ID}", "✅ Врач удалён")]
        assert "(всего: 3)" in messenger.edits[-1][2]

    @pytest.mark.asyncio
    async def test_catalog_button_denied_for_user(self, router, messenger, catalog):
        await router.handle_incoming_event(
            make_event(callback_data=f"admin_vet_delete_ok_{catalog['sidorova'].id}")
        )

        assert messenger.last_text == ADMIN_ONLY_TEXT
        assert messenger.edits == []


class TestFlowRouting:
    @pytest.mark.asyncio
    async def test_review_through_router(self, router, store, messenger, gateway):
        await router.handle_incoming_event(make_event(callback_data="add_review_7"))
        await router.handle_incoming_event(make_event(callback_data="review_rate_4"))
        await router.handle_incoming_event(make_event(text="Great vet!"))

        assert len(gateway.created) == 1
        assert gateway.created[0].rating == 4
        assert await store.get_state(USER_ID) is None
        assert [a[1] for a in messenger.answers] == [None, "✅ Оценка: 4/5"]

    @pytest.mark.asyncio
    async def test_command_during_review_does_not_leak(self, router, store, messenger, gateway):
        await router.handle_incoming_event(make_event(callback_data="add_review_7"))
        await router.handle_incoming_event(make_event(callback_data="review_rate_4"))

        await router.handle_incoming_event(make_event(text="/start"))

        assert await store.get_state(USER_ID) == ReviewStates.awaiting_comment.state
        assert gateway.created == []

    @pytest.mark.asyncio
    async def test_moderation_through_router(self, router, store, messenger, gateway):
        admin = gateway.add_user(ADMIN_ID)
        gateway.add_review(9)

        await router.handle_incoming_event(make_event(user_id=ADMIN_ID, text="/moderation"))
        await router.handle_incoming_event(make_event(user_id=ADMIN_ID, text="9"))
        await router.handle_incoming_event(make_event(user_id=ADMIN_ID, text=BTN_APPROVE))

        assert gateway.status_updates == [(9, "approved", admin.id)]
        assert await store.get_state(ADMIN_ID) is None

    @pytest.mark.asyncio
    async def test_other_users_unaffected(self, router, store):
        await router.handle_incoming_event(make_event(callback_data="add_review_7"))
        await router.handle_incoming_event(make_event(user_id=7, text="hello"))

        assert await store.get_state(USER_ID) == ReviewStates.awaiting_rating.state
        assert await store.get_state(7) is None


class TestCallbacks:
    @pytest.mark.asyncio
    async def test_unknown_callback_acknowledged(self, router, messenger):
        await router.handle_incoming_event(make_event(callback_data="something_else"))
        assert messenger.answers == [(f"cb-{USER_ID}", "Неизвестное действие")]

    @pytest.mark.asyncio
    async def test_malformed_callback_acknowledged(self, router, messenger):
        await router.handle_incoming_event(make_event(callback_data="vet_details_abc"))
        assert messenger.answers == [(f"cb-{USER_ID}", "Неверные данные кнопки")]

    @pytest.mark.asyncio
    async def test_callback_acknowledged_when_handler_fails(self, router, messenger, monkeypatch):
        async def boom(event, vet_id):
            raise RuntimeError("boom")

        monkeypatch.setitem(router._callbacks, CallbackAction.ADD_REVIEW, boom)

        with pytest.raises(RuntimeError):
            await router.handle_incoming_event(make_event(callback_data="add_review_7"))

        # Ответ пользователю за ErrorHandlerMiddleware, роутер только подтверждает callback
        assert len(messenger.answers) == 1
        assert messenger.sent == []

    @pytest.mark.asyncio
    async def test_lock_released_after_failure(self, router, messenger, monkeypatch):
        async def boom(event, vet_id):
            raise RuntimeError("boom")

        monkeypatch.setitem(router._callbacks, CallbackAction.ADD_REVIEW, boom)
        with pytest.raises(RuntimeError):
            await router.handle_incoming_event(make_event(callback_data="add_review_7"))

        await asyncio.wait_for(router.handle_incoming_event(make_event(text="/help")), timeout=1)
        assert "/search" in messenger.last_text

    @pytest.mark.asyncio
    async def test_review_cancel_button(self, router, store, messenger):
        await router.handle_incoming_event(make_event(callback_data="add_review_7"))
        await router.handle_incoming_event(make_event(callback_data="review_cancel"))

        assert await store.get_state(USER_ID) is None
        assert len(messenger.answers) == 2


class TestDocuments:
    @pytest.mark.asyncio
    async def test_import_denied_for_user(self, router, messenger):
        document = DocumentRef(file_id="f1", file_name="vets.csv", file_size=10)
        await router.handle_incoming_event(make_event(document=document))
        assert messenger.last_text == "❌ Импорт данных доступен только администраторам"

    @pytest.mark.asyncio
    async def test_unsupported_file(self, router, messenger):
        document = DocumentRef(file_id="f1", file_name="photo.png", file_size=10)
        await router.handle_incoming_event(make_event(user_id=ADMIN_ID, document=document))
        assert "CSV и Excel" in messenger.last_text


class TestSerialization:
    @pytest.mark.asyncio
    async def test_same_user_events_run_one_at_a_time(self, router, store, gateway):
        await router.handle_incoming_event(make_event(callback_data="add_review_7"))
        await router.handle_incoming_event(make_event(callback_data="review_rate_4"))

        original_create = gateway.create_review

        async def slow_create(draft):
            await asyncio.sleep(0.01)
            return await original_create(draft)

        gateway.create_review = slow_create

        await asyncio.gather(
            router.handle_incoming_event(make_event(text="первый")),
            router.handle_incoming_event(make_event(text="второй")),
        )

        assert len(gateway.created) == 1
        assert gateway.created[0].comment == "первый"
        assert await store.get_state(USER_ID) is None
