"""
Статистика и лог поисковых запросов.
"""
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vetbot.db.models import UserRequest
from vetbot.db.repositories.city_repo import count_cities
from vetbot.db.repositories.clinic_repo import count_clinics
from vetbot.db.repositories.review_repo import count_pending_reviews
from vetbot.db.repositories.user_repo import count_users
from vetbot.db.repositories.vet_repo import count_vets


@dataclass
class BotStats:
    users: int
    active_vets: int
    total_vets: int
    active_clinics: int
    total_clinics: int
    cities: int
    requests: int
    pending_reviews: int


async def log_user_request(
    session: AsyncSession,
    telegram_id: int,
    specialization_id: int | None = None,
    search_query: str | None = None,
) -> None:
    session.add(
        UserRequest(
            user_id=telegram_id,
            specialization_id=specialization_id,
            search_query=search_query,
        )
    )
    await session.commit()


async def count_requests(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(UserRequest.id)))
    return result.scalar_one()


async def get_stats(session: AsyncSession) -> BotStats:
    """Собрать сводную статистику для админки."""
    return BotStats(
        users=await count_users(session),
        active_vets=await count_vets(session, active_only=True),
        total_vets=await count_vets(session),
        active_clinics=await count_clinics(session, active_only=True),
        total_clinics=await count_clinics(session),
        cities=await count_cities(session),
        requests=await count_requests(session),
        pending_reviews=await count_pending_reviews(session),
    )
