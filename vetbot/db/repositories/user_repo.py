"""
Репозиторий для работы с пользователями.
"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vetbot.db.models import User


async def get_or_create_user(
    session: AsyncSession,
    telegram_id: int,
    username: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """
    Получить пользователя или создать нового.

    Args:
        session: Сессия БД
        telegram_id: ID пользователя в Telegram
        username: Username
        first_name: Имя
        last_name: Фамилия

    Returns:
        Объект пользователя
    """
    user = await get_user_by_telegram_id(session, telegram_id)

    if user:
        # Обновляем профиль если изменился
        updated = False
        for field, value in (
            ("username", username),
            ("first_name", first_name),
            ("last_name", last_name),
        ):
            if value and getattr(user, field) != value:
                setattr(user, field, value)
                updated = True

        if updated:
            await session.commit()

        return user

    user = User(
        telegram_id=telegram_id,
        username=username,
        first_name=first_name,
        last_name=last_name,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)

    return user


async def get_user_by_telegram_id(session: AsyncSession, telegram_id: int) -> User | None:
    """Получить пользователя по Telegram ID."""
    stmt = select(User).where(User.telegram_id == telegram_id).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def count_users(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(User.id)))
    return result.scalar_one()
