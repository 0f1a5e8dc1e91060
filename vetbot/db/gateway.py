"""
Шлюз к БД для сценариев отзывов и модерации.

Сценарии работают через абстрактный ReviewGateway и получают простые
dataclass-представления, не привязанные к сессии SQLAlchemy.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vetbot.db.models import Review, User
from vetbot.db.repositories import review_repo, user_repo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    """Профиль пользователя из апдейта Telegram."""
    telegram_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass(frozen=True)
class UserView:
    id: int
    telegram_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None


@dataclass(frozen=True)
class ReviewDraft:
    vet_id: int
    user_id: int
    rating: int
    comment: str


@dataclass(frozen=True)
class ReviewView:
    """Отзыв вместе с именами врача и автора."""
    id: int
    vet_id: int
    vet_name: str
    user_id: int
    author_name: str
    rating: int
    comment: str
    status: str
    created_at: datetime


def _user_view(user: User) -> UserView:
    return UserView(
        id=user.id,
        telegram_id=user.telegram_id,
        username=user.username,
        first_name=user.first_name,
    )


def _review_view(review: Review) -> ReviewView:
    author = review.user
    if author is None:
        author_name = "Пользователь"
    elif author.username:
        author_name = f"@{author.username}"
    else:
        author_name = author.first_name or f"ID {author.telegram_id}"

    return ReviewView(
        id=review.id,
        vet_id=review.vet_id,
        vet_name=review.vet.full_name if review.vet else f"Врач #{review.vet_id}",
        user_id=review.user_id,
        author_name=author_name,
        rating=review.rating,
        comment=review.comment or "",
        status=review.status,
        created_at=review.created_at,
    )


class ReviewGateway(ABC):
    """Операции с пользователями и отзывами, нужные сценариям."""

    @abstractmethod
    async def find_user_by_platform_id(self, platform_id: int) -> Optional[UserView]:
        ...

    @abstractmethod
    async def ensure_user(self, profile: UserProfile) -> UserView:
        ...

    @abstractmethod
    async def has_existing_review(self, user_id: int, vet_id: int) -> bool:
        ...

    @abstractmethod
    async def create_review(self, draft: ReviewDraft) -> ReviewView:
        ...

    @abstractmethod
    async def get_review_by_id(self, review_id: int) -> Optional[ReviewView]:
        ...

    @abstractmethod
    async def list_pending_reviews(self) -> list[ReviewView]:
        ...

    @abstractmethod
    async def update_review_status(self, review_id: int, status: str, moderator_id: int) -> bool:
        """False, если отзыв уже не на модерации."""
        ...


class DatabaseGateway(ReviewGateway):
    """Реализация поверх SQLAlchemy: одна сессия на вызов."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def find_user_by_platform_id(self, platform_id: int) -> Optional[UserView]:
        async with self._session_maker() as session:
            user = await user_repo.get_user_by_telegram_id(session, platform_id)
            return _user_view(user) if user else None

    async def ensure_user(self, profile: UserProfile) -> UserView:
        async with self._session_maker() as session:
            user = await user_repo.get_or_create_user(
                session,
                telegram_id=profile.telegram_id,
                username=profile.username,
                first_name=profile.first_name,
                last_name=profile.last_name,
            )
            return _user_view(user)

    async def has_existing_review(self, user_id: int, vet_id: int) -> bool:
        async with self._session_maker() as session:
            return await review_repo.has_existing_review(session, user_id, vet_id)

    async def create_review(self, draft: ReviewDraft) -> ReviewView:
        async with self._session_maker() as session:
            review = await review_repo.create_review(
                session,
                vet_id=draft.vet_id,
                user_id=draft.user_id,
                rating=draft.rating,
                comment=draft.comment,
            )
            review = await review_repo.get_review_by_id(session, review.id)
            logger.info(f"Review {review.id} created for vet {draft.vet_id}")
            return _review_view(review)

    async def get_review_by_id(self, review_id: int) -> Optional[ReviewView]:
        async with self._session_maker() as session:
            review = await review_repo.get_review_by_id(session, review_id)
            return _review_view(review) if review else None

    async def list_pending_reviews(self) -> list[ReviewView]:
        async with self._session_maker() as session:
            reviews = await review_repo.list_pending_reviews(session)
            return [_review_view(r) for r in reviews]

    async def update_review_status(self, review_id: int, status: str, moderator_id: int) -> bool:
        async with self._session_maker() as session:
            updated = await review_repo.update_review_status(session, review_id, status, moderator_id)
        if updated:
            logger.info(f"Review {review_id} -> {status} by user {moderator_id}")
        else:
            logger.info(f"Review {review_id} is no longer pending, {status} by user {moderator_id} skipped")
        return updated
