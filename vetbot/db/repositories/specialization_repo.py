"""
Репозиторий специализаций.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vetbot.db.models import Specialization


async def list_specializations(session: AsyncSession) -> list[Specialization]:
    result = await session.execute(select(Specialization).order_by(Specialization.name))
    return list(result.scalars().all())


async def get_specialization_by_id(session: AsyncSession, spec_id: int) -> Specialization | None:
    return await session.get(Specialization, spec_id)


async def get_or_create_specialization(session: AsyncSession, name: str) -> Specialization:
    """
    Найти специализацию по имени без учёта регистра или создать новую.

    Коммит не делается: вызывающий сохраняет её вместе с врачом.
    """
    wanted = name.strip().casefold()
    for spec in await list_specializations(session):
        if spec.name.casefold() == wanted:
            return spec

    spec = Specialization(name=name.strip())
    session.add(spec)
    await session.flush()
    return spec
