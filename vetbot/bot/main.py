"""
VetBot — точка входа.
"""
import asyncio
import logging
import sys

import sentry_sdk
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vetbot.bot.flows import ModerationFlow, ReviewFlow
from vetbot.bot.handlers import AdminHandlers, VetHandlers, updates
from vetbot.bot.messenger import AdminPolicy, Messenger, StaticAdminPolicy, TelegramMessenger
from vetbot.bot.middlewares import ErrorHandlerMiddleware, LoggingMiddleware
from vetbot.bot.router import DispatchRouter
from vetbot.bot.scheduler import start_scheduler, stop_scheduler
from vetbot.bot.state_store import ConversationStateStore
from vetbot.core.config import Settings, get_settings, mask_token
from vetbot.db import close_db, init_db
from vetbot.db.gateway import DatabaseGateway
from vetbot.db.session import get_session_maker

logger = logging.getLogger(__name__)


def build_dispatch_router(
    messenger: Messenger,
    session_maker: async_sessionmaker[AsyncSession],
    admin_policy: AdminPolicy,
    store: ConversationStateStore,
) -> DispatchRouter:
    """Собрать сценарии и обработчики вокруг общих зависимостей."""
    gateway = DatabaseGateway(session_maker)
    return DispatchRouter(
        store=store,
        messenger=messenger,
        review_flow=ReviewFlow(store, gateway, messenger, admin_policy),
        moderation_flow=ModerationFlow(store, gateway, messenger, admin_policy),
        vet_handlers=VetHandlers(messenger, session_maker, gateway),
        admin_handlers=AdminHandlers(messenger, session_maker, admin_policy, gateway),
    )


async def send_admin_alert(messenger: Messenger, admin_policy: AdminPolicy, message: str):
    """Отправить алерт всем админам."""
    for admin_id in admin_policy.admin_ids():
        try:
            await messenger.send_message(admin_id, f"🔔 <b>Bot Alert</b>\n\n{message}")
        except Exception as e:
            logger.warning(f"Failed to alert admin {admin_id}: {e}")


def setup_logging(config: Settings) -> None:
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    # aiogram очень многословен на DEBUG
    logging.getLogger("aiogram.event").setLevel(logging.WARNING)


async def main():
    """Запуск бота."""
    config = get_settings()
    setup_logging(config)

    if config.sentry_dsn:
        sentry_sdk.init(
            dsn=config.sentry_dsn,
            send_default_pii=False,
            traces_sample_rate=0.1,
        )
        logger.info("Sentry initialized")

    admin_policy = StaticAdminPolicy(config.admin_id_set)
    if not admin_policy.admin_ids():
        logger.warning("ADMIN_IDS is empty: moderation and import are unavailable")

    logger.info("🗄️ Инициализация базы данных...")
    await init_db()

    bot = Bot(
        token=config.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    messenger = TelegramMessenger(bot)

    # Одно FSM-хранилище на диспетчер и сценарии
    storage = MemoryStorage()
    store = ConversationStateStore(
        storage,
        bot_id=bot.id,
        ttl_seconds=config.state_ttl_minutes * 60,
    )
    dispatch_router = build_dispatch_router(messenger, get_session_maker(), admin_policy, store)

    dp = Dispatcher(storage=storage, dispatch_router=dispatch_router)

    dp.message.middleware(LoggingMiddleware())
    dp.callback_query.middleware(LoggingMiddleware())
    dp.message.middleware(ErrorHandlerMiddleware())
    dp.callback_query.middleware(ErrorHandlerMiddleware())

    dp.include_router(updates.router)

    logger.info(f"🚀 Бот запускается (token {mask_token(config.bot_token)})...")

    if config.state_ttl_minutes > 0:
        start_scheduler(store, config.state_sweep_interval_seconds)
        logger.info(f"⏰ Незавершённые диалоги сбрасываются через {config.state_ttl_minutes} мин")

    try:
        await send_admin_alert(messenger, admin_policy, "✅ Бот запущен")
        await dp.start_polling(bot)
    except Exception as e:
        logger.error(f"❌ Критическая ошибка: {e}")
        await send_admin_alert(messenger, admin_policy, f"❌ Критическая ошибка:\n<code>{e}</code>")
        raise
    finally:
        logger.info("🛑 Бот останавливается...")
        stop_scheduler()
        await close_db()
        await bot.session.close()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
