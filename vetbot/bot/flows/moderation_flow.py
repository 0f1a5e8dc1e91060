"""
Сценарий модерации отзывов (только для администраторов).

idle -> moderation_listing -> moderation_item_selected -> moderation_listing ...
"""
import logging

from vetbot.bot.events import IncomingEvent
from vetbot.bot.formatting import (
    ADMIN_ONLY_TEXT,
    format_moderation_item,
    format_moderation_queue,
)
from vetbot.bot.keyboards.reply import (
    BTN_APPROVE,
    BTN_BACK_TO_ADMIN,
    BTN_BACK_TO_LIST,
    BTN_REJECT,
    get_admin_keyboard,
    get_moderation_decision_keyboard,
    get_moderation_list_keyboard,
)
from vetbot.bot.messenger import AdminPolicy, Messenger
from vetbot.bot.state_store import ConversationStateStore
from vetbot.bot.states import (
    KEY_MODERATION_REVIEW,
    KEY_PENDING_REVIEWS,
    ModerationStates,
)
from vetbot.db.gateway import ReviewGateway
from vetbot.db.models import (
    REVIEW_STATUS_APPROVED,
    REVIEW_STATUS_PENDING,
    REVIEW_STATUS_REJECTED,
)

logger = logging.getLogger(__name__)

NO_PENDING = "✅ Нет отзывов, ожидающих модерации."
BAD_REVIEW_ID = "❌ Неверный формат ID отзыва. Введите числовой ID из списка."
BACK_TO_ADMIN = "🔧 <b>Панель администратора</b>"

DECISIONS = {
    BTN_APPROVE: (REVIEW_STATUS_APPROVED, "✅ Отзыв одобрен и опубликован!"),
    BTN_REJECT: (REVIEW_STATUS_REJECTED, "❌ Отзыв отклонен."),
}

_ITEM_STATES = (
    ModerationStates.item_selected.state,
    ModerationStates.awaiting_decision.state,
)


def already_processed(review_id: int) -> str:
    return f"❌ Отзыв #{review_id} не найден или уже обработан."


class ModerationFlow:
    def __init__(
        self,
        store: ConversationStateStore,
        gateway: ReviewGateway,
        messenger: Messenger,
        admin_policy: AdminPolicy,
    ):
        self.store = store
        self.gateway = gateway
        self.messenger = messenger
        self.admin_policy = admin_policy

    async def _deny(self, event: IncomingEvent) -> None:
        logger.info(f"User {event.user_id} denied access to moderation")
        await self.messenger.send_message(event.chat_id, ADMIN_ONLY_TEXT)

    async def open_queue(self, event: IncomingEvent) -> None:
        """/moderation или кнопка в админке."""
        if not self.admin_policy.is_admin(event.user_id):
            await self._deny(event)
            return
        await self.show_listing(event)

    async def show_listing(self, event: IncomingEvent, header: str | None = None) -> None:
        """
        Показать очередь на модерацию.

        header — результат предыдущего решения, выводится в том же сообщении.
        """
        user_id, chat_id = event.user_id, event.chat_id

        try:
            pending = await self.gateway.list_pending_reviews()
        except Exception:
            logger.exception("Failed to load pending reviews")
            await self.store.clear_state(user_id)
            await self.messenger.send_message(
                chat_id, "❌ Ошибка при загрузке отзывов", reply_markup=get_admin_keyboard()
            )
            return

        prefix = f"{header}\n\n" if header else ""

        if not pending:
            await self.store.clear_state(user_id)
            await self.messenger.send_message(
                chat_id, prefix + NO_PENDING, reply_markup=get_admin_keyboard()
            )
            return

        await self.store.clear_data_key(user_id, KEY_MODERATION_REVIEW)
        await self.store.set_data(user_id, KEY_PENDING_REVIEWS, list(pending))
        await self.store.set_state(user_id, ModerationStates.listing)

        await self.messenger.send_message(
            chat_id,
            prefix + format_moderation_queue(pending),
            reply_markup=get_moderation_list_keyboard(),
        )

    async def handle_text(self, event: IncomingEvent) -> None:
        """Текст, пока администратор в сценарии модерации."""
        if not self.admin_policy.is_admin(event.user_id):
            await self._deny(event)
            return

        text = event.text.strip()
        state = await self.store.get_state(event.user_id)

        if text == BTN_BACK_TO_ADMIN or event.command in ("cancel", "admin"):
            await self.store.clear_state(event.user_id)
            await self.messenger.send_message(
                event.chat_id, BACK_TO_ADMIN, reply_markup=get_admin_keyboard()
            )
            return

        if text == BTN_BACK_TO_LIST or event.command == "moderation":
            await self.show_listing(event)
            return

        if text in DECISIONS:
            if state not in _ITEM_STATES:
                await self.messenger.send_message(
                    event.chat_id, "Сначала выберите отзыв: введите его ID из списка."
                )
                return
            status, result_text = DECISIONS[text]
            await self.decide(event, status, result_text)
            return

        if event.command is None and text.isdigit():
            await self.select(event, int(text))
            return

        if state in _ITEM_STATES:
            await self.messenger.send_message(
                event.chat_id,
                f"Выберите действие кнопками: {BTN_APPROVE}, {BTN_REJECT} или {BTN_BACK_TO_LIST}.",
            )
        else:
            await self.messenger.send_message(event.chat_id, BAD_REVIEW_ID)

    async def select(self, event: IncomingEvent, review_id: int) -> None:
        # Список в памяти мог устареть: отзыв перечитывается из БД
        try:
            review = await self.gateway.get_review_by_id(review_id)
        except Exception:
            logger.exception(f"Failed to load review {review_id}")
            await self.store.clear_state(event.user_id)
            await self.messenger.send_message(
                event.chat_id, "❌ Ошибка при загрузке отзыва", reply_markup=get_admin_keyboard()
            )
            return

        if review is None or review.status != REVIEW_STATUS_PENDING:
            await self.messenger.send_message(event.chat_id, already_processed(review_id))
            return

        await self.store.set_data(event.user_id, KEY_MODERATION_REVIEW, review)
        await self.store.set_state(event.user_id, ModerationStates.item_selected)

        await self.messenger.send_message(
            event.chat_id,
            format_moderation_item(review),
            reply_markup=get_moderation_decision_keyboard(),
        )

    async def decide(self, event: IncomingEvent, status: str, result_text: str) -> None:
        user_id, chat_id = event.user_id, event.chat_id

        review = await self.store.get_data(user_id, KEY_MODERATION_REVIEW)
        if review is None:
            logger.error(f"moderation_review not found for admin {user_id}")
            await self.store.clear_state(user_id)
            await self.messenger.send_message(
                chat_id, "❌ Ошибка: данные отзыва не найдены", reply_markup=get_admin_keyboard()
            )
            return

        try:
            moderator = await self.gateway.find_user_by_platform_id(user_id)
        except Exception:
            logger.exception(f"Failed to resolve moderator {user_id}")
            moderator = None
        if moderator is None:
            await self.messenger.send_message(
                chat_id, "❌ Ошибка: модератор не найден. Выполните /start и повторите."
            )
            return

        try:
            updated = await self.gateway.update_review_status(review.id, status, moderator.id)
        except Exception:
            logger.exception(f"Failed to update review {review.id}")
            await self.store.clear_state(user_id)
            await self.messenger.send_message(
                chat_id, "❌ Ошибка при обновлении статуса отзыва", reply_markup=get_admin_keyboard()
            )
            return

        await self.store.clear_data_key(user_id, KEY_MODERATION_REVIEW)
        if not updated:
            # Другой модератор успел раньше: его решение не перезаписывается
            logger.info(f"Admin {user_id} tried to set processed review {review.id} to {status}")
            await self.show_listing(event, header=already_processed(review.id))
            return

        logger.info(f"Admin {user_id} set review {review.id} to {status}")
        await self.show_listing(event, header=result_text)
