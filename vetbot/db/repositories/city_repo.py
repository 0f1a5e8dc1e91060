"""
Репозиторий городов.
"""
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vetbot.db.models import City, Clinic, Veterinarian


async def list_cities(session: AsyncSession) -> list[City]:
    result = await session.execute(select(City).order_by(City.name))
    return list(result.scalars().all())


async def get_city_by_id(session: AsyncSession, city_id: int) -> City | None:
    return await session.get(City, city_id)


async def get_city_by_name(session: AsyncSession, name: str) -> City | None:
    """Поиск без учёта регистра (SQLite lower() не знает кириллицу, сравниваем в Python)."""
    wanted = name.strip().casefold()
    for city in await list_cities(session):
        if city.name.casefold() == wanted:
            return city
    return None


async def create_city(session: AsyncSession, name: str, region: str | None = None) -> City:
    city = City(name=name.strip(), region=region)
    session.add(city)
    await session.commit()
    await session.refresh(city)
    return city


async def count_cities(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(City.id)))
    return result.scalar_one()


async def count_city_links(session: AsyncSession, city_id: int) -> tuple[int, int]:
    """Сколько врачей и клиник привязано к городу."""
    vets = await session.execute(select(func.count(Veterinarian.id)).where(Veterinarian.city_id == city_id))
    clinics = await session.execute(select(func.count(Clinic.id)).where(Clinic.city_id == city_id))
    return vets.scalar_one(), clinics.scalar_one()


async def delete_city(session: AsyncSession, city_id: int) -> bool:
    """
    Удалить город.

    Врачи и клиники остаются, но теряют привязку к городу.
    """
    await session.execute(update(Veterinarian).where(Veterinarian.city_id == city_id).values(city_id=None))
    await session.execute(update(Clinic).where(Clinic.city_id == city_id).values(city_id=None))
    result = await session.execute(delete(City).where(City.id == city_id))
    await session.commit()
    return result.rowcount > 0
