"""Репозитории для работы с БД."""
from vetbot.db.repositories.user_repo import get_or_create_user, get_user_by_telegram_id
from vetbot.db.repositories.review_repo import (
    create_review,
    get_review_by_id,
    has_existing_review,
    list_pending_reviews,
    update_review_status,
)

__all__ = [
    "get_or_create_user",
    "get_user_by_telegram_id",
    "create_review",
    "get_review_by_id",
    "has_existing_review",
    "list_pending_reviews",
    "update_review_status",
]
