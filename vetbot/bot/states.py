"""
FSM состояния диалогов.
"""
from aiogram.fsm.state import State, StatesGroup


class ReviewStates(StatesGroup):
    """Добавление отзыва."""

    awaiting_rating = State()
    awaiting_comment = State()


class ModerationStates(StatesGroup):
    """Модерация отзывов."""

    listing = State()
    item_selected = State()
    awaiting_decision = State()


REVIEW_FLOW_STATES = frozenset({
    ReviewStates.awaiting_rating.state,
    ReviewStates.awaiting_comment.state,
})

MODERATION_FLOW_STATES = frozenset({
    ModerationStates.listing.state,
    ModerationStates.item_selected.state,
    ModerationStates.awaiting_decision.state,
})


# Ключи временных данных сценариев
KEY_REVIEW_VET_ID = "review_vet_id"
KEY_REVIEW_RATING = "review_rating"
KEY_PENDING_REVIEWS = "pending_reviews"
KEY_MODERATION_REVIEW = "moderation_review"
