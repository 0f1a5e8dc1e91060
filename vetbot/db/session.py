"""
Сессия базы данных.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vetbot.core.config import get_settings, mask_db_url
from vetbot.db.models import Base

logger = logging.getLogger(__name__)

# Глобальные объекты
_engine = None
_session_maker = None

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./vetbot.db"


def get_database_url() -> str:
    """Получить URL базы данных."""
    settings = get_settings()

    # Дефолтный PostgreSQL URL — значит база не настроена, работаем на SQLite
    if "user:password@localhost" in settings.database_url:
        return SQLITE_FALLBACK_URL

    return settings.database_url


async def init_db(db_url: str | None = None):
    """Инициализация базы данных."""
    global _engine, _session_maker

    db_url = db_url or get_database_url()
    logger.info(f"Initializing database: {mask_db_url(db_url)}")

    if "sqlite" in db_url:
        _engine = create_async_engine(db_url, echo=False)
    else:
        _engine = create_async_engine(
            db_url,
            echo=False,
            pool_size=5,
            max_overflow=10,
        )

    _session_maker = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Создаём таблицы
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized successfully")


async def close_db():
    """Закрытие соединения с БД."""
    global _engine, _session_maker

    if _engine:
        await _engine.dispose()
        _engine = None
        _session_maker = None
        logger.info("Database connection closed")


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_maker
