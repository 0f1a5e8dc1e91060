"""
Репозиторий отзывов о врачах.
"""
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vetbot.db.models import (
    REVIEW_STATUS_APPROVED,
    REVIEW_STATUS_PENDING,
    Review,
    utcnow,
)


def _with_relations(stmt):
    return stmt.options(selectinload(Review.vet), selectinload(Review.user))


async def has_existing_review(session: AsyncSession, user_id: int, vet_id: int) -> bool:
    """Оставлял ли пользователь (внутренний ID) отзыв этому врачу, в любом статусе."""
    stmt = select(func.count(Review.id)).where(
        Review.user_id == user_id,
        Review.vet_id == vet_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one() > 0


async def create_review(
    session: AsyncSession,
    vet_id: int,
    user_id: int,
    rating: int,
    comment: str | None,
) -> Review:
    """
    Создать отзыв со статусом pending.

    Args:
        session: Сессия БД
        vet_id: ID врача
        user_id: Внутренний ID пользователя
        rating: Оценка 1-5
        comment: Текст отзыва

    Returns:
        Созданный отзыв
    """
    review = Review(
        vet_id=vet_id,
        user_id=user_id,
        rating=rating,
        comment=comment,
        status=REVIEW_STATUS_PENDING,
        created_at=utcnow(),
    )
    session.add(review)
    await session.commit()
    await session.refresh(review)
    return review


async def get_review_by_id(session: AsyncSession, review_id: int) -> Review | None:
    stmt = _with_relations(select(Review).where(Review.id == review_id))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_pending_reviews(session: AsyncSession) -> list[Review]:
    """Отзывы на модерации, старые первыми."""
    stmt = _with_relations(
        select(Review)
        .where(Review.status == REVIEW_STATUS_PENDING)
        .order_by(Review.created_at.asc(), Review.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_review_status(
    session: AsyncSession,
    review_id: int,
    status: str,
    moderator_id: int,
) -> bool:
    """
    Проставить решение модератора.

    Обновляется только отзыв, который ещё на модерации: решение второго
    модератора по уже обработанному отзыву не записывается.

    Returns:
        True, если статус изменён; False, если отзыва нет или он уже обработан
    """
    stmt = (
        update(Review)
        .where(Review.id == review_id, Review.status == REVIEW_STATUS_PENDING)
        .values(status=status, moderated_by=moderator_id, moderated_at=utcnow())
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount > 0


async def get_approved_reviews(session: AsyncSession, vet_id: int) -> list[Review]:
    """Опубликованные отзывы врача, новые первыми."""
    stmt = _with_relations(
        select(Review)
        .where(Review.vet_id == vet_id, Review.status == REVIEW_STATUS_APPROVED)
        .order_by(Review.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_vet_rating(session: AsyncSession, vet_id: int) -> tuple[float, int]:
    """Средняя оценка и число опубликованных отзывов."""
    stmt = select(func.avg(Review.rating), func.count(Review.id)).where(
        Review.vet_id == vet_id,
        Review.status == REVIEW_STATUS_APPROVED,
    )
    result = await session.execute(stmt)
    avg, count = result.one()
    return float(avg or 0.0), int(count)


async def count_pending_reviews(session: AsyncSession) -> int:
    stmt = select(func.count(Review.id)).where(Review.status == REVIEW_STATUS_PENDING)
    result = await session.execute(stmt)
    return result.scalar_one()
