"""
Репозиторий клиник.
"""
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vetbot.db.models import Clinic, Schedule


async def list_clinics(session: AsyncSession, active_only: bool = True) -> list[Clinic]:
    stmt = select(Clinic).options(selectinload(Clinic.city)).order_by(Clinic.name)
    if active_only:
        stmt = stmt.where(Clinic.is_active.is_(True))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_clinic_by_id(session: AsyncSession, clinic_id: int) -> Clinic | None:
    stmt = select(Clinic).options(selectinload(Clinic.city)).where(Clinic.id == clinic_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_clinic_by_name(session: AsyncSession, name: str) -> Clinic | None:
    wanted = name.strip().casefold()
    for clinic in await list_clinics(session, active_only=False):
        if clinic.name.casefold() == wanted:
            return clinic
    return None


async def create_clinic(
    session: AsyncSession,
    name: str,
    address: str | None = None,
    phone: str | None = None,
    working_hours: str | None = None,
    district: str | None = None,
    metro_station: str | None = None,
    city_id: int | None = None,
) -> Clinic:
    clinic = Clinic(
        name=name.strip(),
        address=address,
        phone=phone,
        working_hours=working_hours,
        district=district,
        metro_station=metro_station,
        city_id=city_id,
        is_active=True,
    )
    session.add(clinic)
    await session.commit()
    await session.refresh(clinic)
    return clinic


async def count_clinics(session: AsyncSession, active_only: bool = False) -> int:
    stmt = select(func.count(Clinic.id))
    if active_only:
        stmt = stmt.where(Clinic.is_active.is_(True))
    result = await session.execute(stmt)
    return result.scalar_one()


async def toggle_clinic_active(session: AsyncSession, clinic_id: int) -> bool | None:
    """Новое значение is_active или None, если клиники нет."""
    clinic = await session.get(Clinic, clinic_id)
    if clinic is None:
        return None
    clinic.is_active = not clinic.is_active
    await session.commit()
    return clinic.is_active


async def delete_clinic(session: AsyncSession, clinic_id: int) -> bool:
    """Удалить клинику вместе со слотами расписания врачей в ней."""
    await session.execute(delete(Schedule).where(Schedule.clinic_id == clinic_id))
    result = await session.execute(delete(Clinic).where(Clinic.id == clinic_id))
    await session.commit()
    return result.rowcount > 0
