"""
Репозиторий ветеринаров и их расписаний.
"""
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vetbot.db.models import Review, Schedule, Specialization, Veterinarian, vet_specializations


@dataclass
class ScheduleSlot:
    """Строка расписания до сохранения в БД."""
    clinic_id: int
    day_of_week: int
    start_time: str
    end_time: str


def _vets_query(active_only: bool = True):
    """Врачи вместе со всем, что нужно для карточки."""
    stmt = (
        select(Veterinarian)
        .options(
            selectinload(Veterinarian.city),
            selectinload(Veterinarian.specializations),
            selectinload(Veterinarian.schedules).selectinload(Schedule.clinic),
        )
        .order_by(Veterinarian.last_name, Veterinarian.first_name)
    )
    if active_only:
        stmt = stmt.where(Veterinarian.is_active.is_(True))
    return stmt


async def get_vet_by_id(session: AsyncSession, vet_id: int, active_only: bool = True) -> Veterinarian | None:
    stmt = _vets_query(active_only).where(Veterinarian.id == vet_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_vets_by_specialization(session: AsyncSession, spec_id: int) -> list[Veterinarian]:
    stmt = _vets_query().where(Veterinarian.specializations.any(Specialization.id == spec_id))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_vets_by_day(session: AsyncSession, day_of_week: int) -> list[Veterinarian]:
    """
    Врачи, принимающие в указанный день.

    day_of_week: 1 = Пн ... 7 = Вс, 0 = любой день.
    """
    if day_of_week == 0:
        condition = Veterinarian.schedules.any(Schedule.is_available.is_(True))
    else:
        condition = Veterinarian.schedules.any(
            (Schedule.day_of_week == day_of_week) & Schedule.is_available.is_(True)
        )
    result = await session.execute(_vets_query().where(condition))
    return list(result.scalars().all())


async def get_vets_by_clinic(session: AsyncSession, clinic_id: int) -> list[Veterinarian]:
    stmt = _vets_query().where(Veterinarian.schedules.any(Schedule.clinic_id == clinic_id))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_vets_by_city(session: AsyncSession, city_id: int) -> list[Veterinarian]:
    stmt = _vets_query().where(Veterinarian.city_id == city_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_vet(
    session: AsyncSession,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    email: str | None = None,
    experience_years: int | None = None,
    description: str | None = None,
    city_id: int | None = None,
    specializations: list[Specialization] | None = None,
    schedule: list[ScheduleSlot] | None = None,
) -> Veterinarian:
    """
    Создать врача вместе со специализациями и расписанием одним коммитом.

    Returns:
        Созданный врач
    """
    vet = Veterinarian(
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        email=email,
        experience_years=experience_years,
        description=description,
        city_id=city_id,
        is_active=True,
        specializations=list(specializations or []),
        schedules=[
            Schedule(
                clinic_id=slot.clinic_id,
                day_of_week=slot.day_of_week,
                start_time=slot.start_time,
                end_time=slot.end_time,
                is_available=True,
            )
            for slot in schedule or []
        ],
    )
    session.add(vet)
    await session.commit()
    await session.refresh(vet)
    return vet


async def count_vets(session: AsyncSession, active_only: bool = False) -> int:
    stmt = select(func.count(Veterinarian.id))
    if active_only:
        stmt = stmt.where(Veterinarian.is_active.is_(True))
    result = await session.execute(stmt)
    return result.scalar_one()


async def list_all_vets(session: AsyncSession) -> list[Veterinarian]:
    """Все врачи, включая неактивных (для админки)."""
    result = await session.execute(_vets_query(active_only=False))
    return list(result.scalars().all())


async def toggle_vet_active(session: AsyncSession, vet_id: int) -> bool | None:
    """
    Переключить видимость врача в поиске.

    Returns:
        Новое значение is_active или None, если врача нет
    """
    vet = await session.get(Veterinarian, vet_id)
    if vet is None:
        return None
    vet.is_active = not vet.is_active
    await session.commit()
    return vet.is_active


async def delete_vet(session: AsyncSession, vet_id: int) -> bool:
    """Удалить врача вместе с расписанием, специализациями и отзывами."""
    await session.execute(delete(Review).where(Review.vet_id == vet_id))
    await session.execute(delete(Schedule).where(Schedule.vet_id == vet_id))
    await session.execute(delete(vet_specializations).where(vet_specializations.c.vet_id == vet_id))
    result = await session.execute(delete(Veterinarian).where(Veterinarian.id == vet_id))
    await session.commit()
    return result.rowcount > 0
