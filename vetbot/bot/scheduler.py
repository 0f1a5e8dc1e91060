"""
Планировщик фоновых задач.

Сбрасывает диалоги, брошенные посреди сценария (например, начатый и
не дописанный отзыв).
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vetbot.bot.state_store import ConversationStateStore

logger = logging.getLogger(__name__)

PURGE_JOB_ID = "purge_stale_conversations"

# Глобальный экземпляр планировщика
scheduler = AsyncIOScheduler()


async def purge_stale_conversations(store: ConversationStateStore) -> int:
    """Wrapper для APScheduler job."""
    try:
        return await store.purge_expired()
    except Exception as e:
        logger.error(f"Scheduler error: {e}")
        return 0


def start_scheduler(store: ConversationStateStore, interval_seconds: int = 60) -> AsyncIOScheduler:
    """Запустить планировщик."""
    if scheduler.running:
        return scheduler

    scheduler.add_job(
        purge_stale_conversations,
        IntervalTrigger(seconds=interval_seconds),
        args=[store],
        id=PURGE_JOB_ID,
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started (APScheduler), purge every {interval_seconds}s")
    return scheduler


def stop_scheduler():
    """Остановить планировщик."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
