import pytest

from vetbot.bot import scheduler as scheduler_module
from vetbot.bot.scheduler import PURGE_JOB_ID, purge_stale_conversations, start_scheduler, stop_scheduler
from vetbot.bot.state_store import ConversationStateStore
from vetbot.bot.states import ReviewStates


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_purge_job_drops_stale_conversations():
    clock = FakeClock()
    store = ConversationStateStore(ttl_seconds=3600, clock=clock)
    await store.set_state(1, ReviewStates.awaiting_comment)
    await store.set_data(1, "review_vet_id", 7)

    clock.now = 3601
    assert await purge_stale_conversations(store) == 1
    assert await store.get_state(1) is None


@pytest.mark.asyncio
async def test_purge_job_survives_store_errors():
    class BrokenStore:
        async def purge_expired(self):
            raise RuntimeError("boom")

    assert await purge_stale_conversations(BrokenStore()) == 0


@pytest.mark.asyncio
async def test_start_and_stop_scheduler(monkeypatch):
    from apscheduler.schedulers.asyncio import AsyncIOScheduler

    monkeypatch.setattr(scheduler_module, "scheduler", AsyncIOScheduler())
    store = ConversationStateStore(ttl_seconds=60)

    sched = start_scheduler(store, interval_seconds=30)
    try:
        job = sched.get_job(PURGE_JOB_ID)
        assert job is not None
        assert job.args == (store,)
        # Повторный запуск не добавляет задачу
        assert start_scheduler(store) is sched
        assert len(sched.get_jobs()) == 1
    finally:
        stop_scheduler()
