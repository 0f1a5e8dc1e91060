"""
Сценарий добавления отзыва о враче.

idle -> awaiting_rating -> awaiting_comment -> idle
"""
import logging
from typing import Optional

from vetbot.bot.events import IncomingEvent
from vetbot.bot.formatting import format_new_review_alert, stars
from vetbot.bot.keyboards.inline import get_cancel_review_keyboard, get_rating_keyboard
from vetbot.bot.messenger import AdminPolicy, Messenger
from vetbot.bot.state_store import ConversationStateStore
from vetbot.bot.states import (
    KEY_REVIEW_RATING,
    KEY_REVIEW_VET_ID,
    ReviewStates,
)
from vetbot.db.gateway import ReviewDraft, ReviewGateway

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500
MIN_RATING, MAX_RATING = 1, 5

RATING_PROMPT = "📝 <b>Добавление отзыва</b>\n\nВыберите оценку врачу (1-5 звезд):"
ALREADY_REVIEWED = "❌ Вы уже оставляли отзыв этому врачу."
COMMENT_TOO_LONG = (
    f"❌ Отзыв слишком длинный (максимум {MAX_COMMENT_LENGTH} символов). "
    "Сократите текст и отправьте снова."
)
REVIEW_SENT = (
    "✅ <b>Отзыв успешно отправлен!</b>\n\n"
    "Ваш отзыв будет опубликован после проверки модератором. Спасибо за ваш вклад!"
)
REVIEW_CANCELLED = "❌ Добавление отзыва отменено."


def comment_prompt(rating: int) -> str:
    return (
        "📝 <b>Добавление отзыва</b>\n\n"
        f"✅ Оценка: {rating}/5 {stars(rating)}\n\n"
        f"Теперь напишите ваш отзыв (максимум {MAX_COMMENT_LENGTH} символов):"
    )


class ReviewFlow:
    """Добавление отзыва: оценка кнопками, затем текст."""

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

    async def start(self, event: IncomingEvent, vet_id: int) -> Optional[str]:
        """Кнопка «Оставить отзыв». Возвращает текст для ответа на callback."""
        user_id, chat_id = event.user_id, event.chat_id

        try:
            user = await self.gateway.ensure_user(event.profile)
            already = await self.gateway.has_existing_review(user.id, vet_id)
        except Exception:
            logger.exception(f"Failed to check reviews of user {user_id} for vet {vet_id}")
            await self.messenger.send_message(chat_id, "❌ Ошибка проверки отзывов. Попробуйте позже.")
            return None

        if already:
            await self.messenger.send_message(chat_id, ALREADY_REVIEWED)
            return None

        # Новый сценарий заменяет незавершённый
        await self.store.clear_state(user_id)
        await self.store.set_data(user_id, KEY_REVIEW_VET_ID, vet_id)
        await self.store.set_state(user_id, ReviewStates.awaiting_rating)
        logger.info(f"User {user_id} started review for vet {vet_id}")

        await self.messenger.send_message(chat_id, RATING_PROMPT, reply_markup=get_rating_keyboard())
        return None

    async def rate(self, event: IncomingEvent, rating: Optional[int]) -> Optional[str]:
        """Выбор оценки. Вне сценария или вне диапазона 1-5 ничего не делает."""
        user_id = event.user_id

        if await self.store.get_state(user_id) != ReviewStates.awaiting_rating.state:
            return None
        if rating is None or not MIN_RATING <= rating <= MAX_RATING:
            logger.warning(f"User {user_id} sent rating out of range: {rating}")
            return None

        await self.store.set_data(user_id, KEY_REVIEW_RATING, rating)
        await self.store.set_state(user_id, ReviewStates.awaiting_comment)

        if event.message_id is not None:
            await self.messenger.edit_message(
                event.chat_id,
                event.message_id,
                comment_prompt(rating),
                reply_markup=get_cancel_review_keyboard(),
            )
        else:
            await self.messenger.send_message(
                event.chat_id, comment_prompt(rating), reply_markup=get_cancel_review_keyboard()
            )
        return f"✅ Оценка: {rating}/5"

    async def cancel(self, event: IncomingEvent) -> Optional[str]:
        await self.store.clear_state(event.user_id)
        await self.messenger.send_message(event.chat_id, REVIEW_CANCELLED)
        return None

    async def handle_text(self, event: IncomingEvent) -> None:
        """Текст или команда, пока пользователь в сценарии отзыва."""
        if event.command == "cancel":
            await self.cancel(event)
            return

        state = await self.store.get_state(event.user_id)
        if state == ReviewStates.awaiting_rating.state:
            await self.messenger.send_message(
                event.chat_id,
                "⭐ Выберите оценку кнопками выше или нажмите /cancel для отмены.",
            )
            return

        if event.command:
            await self.messenger.send_message(
                event.chat_id,
                "✍️ Сейчас вы пишете отзыв. Отправьте текст отзыва или /cancel для отмены.",
            )
            return

        await self.submit_comment(event)

    async def submit_comment(self, event: IncomingEvent) -> None:
        user_id, chat_id = event.user_id, event.chat_id
        comment = event.text

        if len(comment) > MAX_COMMENT_LENGTH:
            await self.messenger.send_message(chat_id, COMMENT_TOO_LONG)
            return

        vet_id, found = await self.store.get_data_int(user_id, KEY_REVIEW_VET_ID)
        if not found:
            logger.error(f"review_vet_id not found for user {user_id}")
            await self.store.clear_state(user_id)
            await self.messenger.send_message(chat_id, "❌ Ошибка: данные о враче не найдены. Начните заново.")
            return

        rating, found = await self.store.get_data_int(user_id, KEY_REVIEW_RATING)
        if not found:
            logger.error(f"review_rating not found for user {user_id}")
            await self.store.clear_state(user_id)
            await self.messenger.send_message(chat_id, "❌ Ошибка: данные об оценке не найдены. Начните заново.")
            return

        try:
            user = await self.gateway.ensure_user(event.profile)
        except Exception:
            logger.exception(f"Failed to resolve user {user_id}")
            await self.store.clear_state(user_id)
            await self.messenger.send_message(chat_id, "❌ Ошибка при создании пользователя")
            return

        try:
            if await self.gateway.has_existing_review(user.id, vet_id):
                await self.store.clear_state(user_id)
                await self.messenger.send_message(chat_id, ALREADY_REVIEWED)
                return

            review = await self.gateway.create_review(
                ReviewDraft(
                    vet_id=vet_id,
                    user_id=user.id,
                    rating=rating,
                    comment=comment.strip(),
                )
            )
        except Exception:
            logger.exception(f"Failed to save review of user {user_id} for vet {vet_id}")
            await self.store.clear_state(user_id)
            await self.messenger.send_message(chat_id, "❌ Ошибка при сохранении отзыва")
            return

        await self.store.clear_state(user_id)
        logger.info(f"Review {review.id} saved for user {user_id}")
        await self.messenger.send_message(chat_id, REVIEW_SENT)

        await self.notify_moderators(review)

    async def notify_moderators(self, review) -> None:
        """Оповестить админов. Ошибки отправки не откатывают отзыв."""
        text = format_new_review_alert(review)
        for admin_id in self.admin_policy.admin_ids():
            try:
                await self.messenger.send_message(admin_id, text)
            except Exception as e:
                logger.warning(f"Failed to notify admin {admin_id} about review {review.id}: {e}")
