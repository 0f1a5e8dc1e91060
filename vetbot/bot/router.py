"""
Маршрутизация входящих событий.

Кнопки разбираются по префиксу callback_data независимо от состояния.
Текст и команды при активном сценарии уходят в этот сценарий, иначе
распознаются по имени команды или тексту кнопки меню.
"""
import asyncio
import logging
import weakref
from typing import Awaitable, Callable, Optional

from vetbot.bot.callbacks import CallbackAction, decode_callback
from vetbot.bot.events import EventKind, IncomingEvent
from vetbot.bot.flows import ModerationFlow, ReviewFlow
from vetbot.bot.formatting import UNKNOWN_COMMAND_TEXT, UNKNOWN_TEXT
from vetbot.bot.handlers import AdminHandlers, VetHandlers
from vetbot.bot.keyboards import reply
from vetbot.bot.messenger import Messenger
from vetbot.bot.state_store import ConversationStateStore
from vetbot.bot.states import MODERATION_FLOW_STATES, REVIEW_FLOW_STATES

logger = logging.getLogger(__name__)

Handler = Callable[[IncomingEvent], Awaitable[None]]
CallbackHandler = Callable[[IncomingEvent, int], Awaitable[Optional[str]]]

SEARCH_COMMAND_PREFIX = "search_"


class DispatchRouter:
    def __init__(
        self,
        store: ConversationStateStore,
        messenger: Messenger,
        review_flow: ReviewFlow,
        moderation_flow: ModerationFlow,
        vet_handlers: VetHandlers,
        admin_handlers: AdminHandlers,
    ):
        self.store = store
        self.messenger = messenger
        self.review_flow = review_flow
        self.moderation_flow = moderation_flow
        self.vet_handlers = vet_handlers
        self.admin_handlers = admin_handlers

        # Блокировка живёт, пока её кто-то держит или ждёт
        self._user_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

        self._commands: dict[str, Handler] = {
            "start": vet_handlers.start,
            "help": vet_handlers.help,
            "specializations": vet_handlers.specializations,
            "search": vet_handlers.search_menu,
            "clinics": vet_handlers.clinics,
            "cities": vet_handlers.cities,
            "admin": admin_handlers.admin_menu,
            "stats": admin_handlers.stats,
            "admin_vets": admin_handlers.vets,
            "admin_clinics": admin_handlers.clinics,
            "admin_cities": admin_handlers.cities,
            "template": admin_handlers.template,
            "import": admin_handlers.import_instructions,
            "moderation": moderation_flow.open_queue,
            "cancel": self._nothing_to_cancel,
        }
        self._menu_texts: dict[str, Handler] = {
            reply.BTN_SEARCH: vet_handlers.search_menu,
            reply.BTN_SPECIALIZATIONS: vet_handlers.specializations,
            reply.BTN_CLINICS: vet_handlers.clinics,
            reply.BTN_CITIES: vet_handlers.cities,
            reply.BTN_HELP: vet_handlers.help,
            reply.BTN_MODERATION: moderation_flow.open_queue,
            reply.BTN_STATS: admin_handlers.stats,
            reply.BTN_ADMIN_VETS: admin_handlers.vets,
            reply.BTN_ADMIN_CLINICS: admin_handlers.clinics,
            reply.BTN_ADMIN_CITIES: admin_handlers.cities,
            reply.BTN_IMPORT: admin_handlers.import_instructions,
            reply.BTN_TEMPLATE: admin_handlers.template,
            reply.BTN_EXIT_ADMIN: admin_handlers.exit_admin,
            reply.BTN_BACK_TO_ADMIN: admin_handlers.admin_menu,
        }
        self._callbacks: dict[CallbackAction, CallbackHandler] = {
            CallbackAction.ADD_REVIEW: review_flow.start,
            CallbackAction.REVIEW_RATE: review_flow.rate,
            CallbackAction.SHOW_REVIEWS: vet_handlers.show_reviews,
            CallbackAction.VET_DETAILS: vet_handlers.vet_details,
            CallbackAction.SEARCH_SPEC: vet_handlers.search_by_specialization,
            CallbackAction.SEARCH_DAY: vet_handlers.search_by_day,
            CallbackAction.SEARCH_CLINIC: vet_handlers.search_by_clinic,
            CallbackAction.SEARCH_CITY: vet_handlers.search_by_city,
            CallbackAction.ADMIN_VETS: admin_handlers.vets,
            CallbackAction.ADMIN_VET: admin_handlers.vet_card,
            CallbackAction.ADMIN_VET_TOGGLE: admin_handlers.vet_toggle,
            CallbackAction.ADMIN_VET_DELETE: admin_handlers.vet_delete,
            CallbackAction.ADMIN_VET_DELETE_CONFIRM: admin_handlers.vet_delete_confirm,
            CallbackAction.ADMIN_CLINICS: admin_handlers.clinics,
            CallbackAction.ADMIN_CLINIC: admin_handlers.clinic_card,
            CallbackAction.ADMIN_CLINIC_TOGGLE: admin_handlers.clinic_toggle,
            CallbackAction.ADMIN_CLINIC_DELETE: admin_handlers.clinic_delete,
            CallbackAction.ADMIN_CLINIC_DELETE_CONFIRM: admin_handlers.clinic_delete_confirm,
            CallbackAction.ADMIN_CITIES: admin_handlers.cities,
            CallbackAction.ADMIN_CITY: admin_handlers.city_card,
            CallbackAction.ADMIN_CITY_DELETE: admin_handlers.city_delete,
            CallbackAction.ADMIN_CITY_DELETE_CONFIRM: admin_handlers.city_delete_confirm,
        }

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    async def handle_incoming_event(self, event: IncomingEvent) -> None:
        """
        Обработать одно событие под блокировкой пользователя.

        Сбои коллабораторов сценарии обрабатывают сами. Всё остальное
        пробрасывается в ErrorHandlerMiddleware: там логирование и ответ
        пользователю. Callback к этому моменту уже подтверждён.
        """
        lock = self._lock_for(event.user_id)
        async with lock:
            await self._dispatch(event)

    async def _dispatch(self, event: IncomingEvent) -> None:
        if event.kind == EventKind.CALLBACK:
            await self._handle_callback(event)
            return

        if event.kind == EventKind.DOCUMENT:
            await self.admin_handlers.import_document(event)
            return

        state = await self.store.get_state(event.user_id)
        if state in REVIEW_FLOW_STATES:
            await self.review_flow.handle_text(event)
        elif state in MODERATION_FLOW_STATES:
            await self.moderation_flow.handle_text(event)
        else:
            await self._handle_idle(event)

    async def _handle_callback(self, event: IncomingEvent) -> None:
        """Callback подтверждается всегда, даже при ошибке обработчика."""
        toast = None
        try:
            toast = await self._route_callback(event)
        finally:
            try:
                await self.messenger.answer_callback(event.callback_id, text=toast)
            except Exception as e:
                logger.warning(f"Failed to answer callback {event.callback_id}: {e}")

    async def _route_callback(self, event: IncomingEvent) -> Optional[str]:
        decoded = decode_callback(event.callback_data or "")
        if decoded is None:
            logger.warning(f"Unknown callback data: {event.callback_data!r}")
            return "Неизвестное действие"

        if decoded.action == CallbackAction.REVIEW_CANCEL:
            return await self.review_flow.cancel(event)
        if decoded.action == CallbackAction.MAIN_MENU:
            return await self.vet_handlers.main_menu(event)

        if decoded.arg is None:
            logger.warning(f"Malformed callback data: {event.callback_data!r}")
            return "Неверные данные кнопки"

        return await self._callbacks[decoded.action](event, decoded.arg)

    async def _handle_idle(self, event: IncomingEvent) -> None:
        command = event.command
        if command:
            handler = self._commands.get(command)
            if handler:
                await handler(event)
                return
            if command.startswith(SEARCH_COMMAND_PREFIX):
                await self._search_command(event, command[len(SEARCH_COMMAND_PREFIX):])
                return
            await self.messenger.send_message(event.chat_id, UNKNOWN_COMMAND_TEXT)
            return

        handler = self._menu_texts.get(event.text.strip())
        if handler:
            await handler(event)
            return

        await self.messenger.send_message(event.chat_id, UNKNOWN_TEXT)

    async def _search_command(self, event: IncomingEvent, suffix: str) -> None:
        """/search_<id> — поиск по специализации."""
        try:
            spec_id = int(suffix)
        except ValueError:
            await self.messenger.send_message(event.chat_id, "Неверный формат команды поиска")
            return
        await self.vet_handlers.search_by_specialization(event, spec_id)

    async def _nothing_to_cancel(self, event: IncomingEvent) -> None:
        await self.messenger.send_message(event.chat_id, "Нечего отменять.")
