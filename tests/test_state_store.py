"""
Тесты хранилища состояний диалогов.
"""
import asyncio

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.memory import MemoryStorage

from vetbot.bot.state_store import ConversationStateStore
from vetbot.bot.states import ModerationStates, ReviewStates


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class WideInt(int):
    """Целое другого представления (как numpy.int64)."""


class TestStateTransitions:
    @pytest.mark.asyncio
    async def test_unknown_user_is_idle(self, store):
        assert await store.get_state(1) is None
        assert await store.has_state(1) is False
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_last_set_wins(self, store):
        await store.set_state(1, ReviewStates.awaiting_rating)
        await store.set_state(1, ReviewStates.awaiting_comment)
        assert await store.get_state(1) == ReviewStates.awaiting_comment.state

    @pytest.mark.asyncio
    async def test_setting_none_clears_everything(self, store):
        await store.set_state(1, ReviewStates.awaiting_rating)
        await store.set_data(1, "review_vet_id", 7)
        await store.set_state(1, None)
        assert await store.get_data(1, "review_vet_id") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_clear_state_drops_data(self, store):
        await store.set_state(1, ReviewStates.awaiting_comment)
        await store.set_data(1, "review_vet_id", 7)
        await store.set_data(1, "review_rating", 4)

        await store.clear_state(1)

        assert await store.get_state(1) is None
        assert await store.get_all_data(1) == {}

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, store):
        await store.set_state(1, ReviewStates.awaiting_rating)
        await store.set_data(2, "review_vet_id", 3)
        assert await store.get_state(2) is None
        assert await store.get_data(1, "review_vet_id") is None


class TestAiogramStorage:
    @pytest.mark.asyncio
    async def test_state_visible_through_fsm_context(self):
        storage = MemoryStorage()
        store = ConversationStateStore(storage, bot_id=123)
        await store.set_state(42, ReviewStates.awaiting_rating)
        await store.set_data(42, "review_vet_id", 7)

        state = FSMContext(storage=storage, key=store.key(42))
        assert await state.get_state() == ReviewStates.awaiting_rating.state
        assert await state.get_data() == {"review_vet_id": 7}

    @pytest.mark.asyncio
    async def test_fsm_context_writes_are_seen_by_store(self):
        storage = MemoryStorage()
        store = ConversationStateStore(storage, bot_id=123)

        state = FSMContext(storage=storage, key=store.key(42))
        await state.set_state(ModerationStates.listing)

        assert await store.get_state(42) == ModerationStates.listing.state

    @pytest.mark.asyncio
    async def test_bots_do_not_share_conversations(self):
        storage = MemoryStorage()
        first = ConversationStateStore(storage, bot_id=1)
        second = ConversationStateStore(storage, bot_id=2)

        await first.set_state(42, ReviewStates.awaiting_rating)

        assert await second.get_state(42) is None


class TestScratchData:
    @pytest.mark.asyncio
    async def test_get_data_int(self, store):
        await store.set_data(1, "n", 7)
        assert await store.get_data_int(1, "n") == (7, True)

    @pytest.mark.asyncio
    async def test_get_data_int_accepts_other_integer_types(self, store):
        await store.set_data(1, "n", WideInt(9))
        value, found = await store.get_data_int(1, "n")
        assert found is True
        assert value == 9
        assert type(value) is int

    @pytest.mark.asyncio
    async def test_get_data_int_rejects_non_integers(self, store):
        await store.set_data(1, "s", "7")
        await store.set_data(1, "f", 7.0)
        await store.set_data(1, "b", True)
        assert await store.get_data_int(1, "s") == (0, False)
        assert await store.get_data_int(1, "f") == (0, False)
        assert await store.get_data_int(1, "b") == (0, False)
        assert await store.get_data_int(1, "missing") == (0, False)
        assert await store.get_data_int(2, "n") == (0, False)

    @pytest.mark.asyncio
    async def test_clear_data_keeps_state(self, store):
        await store.set_state(1, ModerationStates.listing)
        await store.set_data(1, "pending_reviews", [1, 2])
        await store.clear_data(1)
        assert await store.get_state(1) == ModerationStates.listing.state
        assert await store.get_data(1, "pending_reviews") is None
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_clear_data_key_removes_one_key(self, store):
        await store.set_data(1, "a", 1)
        await store.set_data(1, "b", 2)
        await store.clear_data_key(1, "a")
        assert await store.get_all_data(1) == {"b": 2}

    @pytest.mark.asyncio
    async def test_clear_data_key_drops_empty_entry(self, store):
        await store.set_data(1, "a", 1)
        await store.clear_data_key(1, "a")
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_clear_on_unknown_user_is_noop(self, store):
        await store.clear_data(5)
        await store.clear_data_key(5, "a")
        await store.clear_state(5)
        assert len(store) == 0
        assert await store.get_state(5) is None

    @pytest.mark.asyncio
    async def test_get_all_data_returns_copy(self, store):
        await store.set_data(1, "a", 1)
        snapshot = await store.get_all_data(1)
        snapshot["a"] = 100
        assert await store.get_data(1, "a") == 1


class TestExpiry:
    @pytest.mark.asyncio
    async def test_purge_expired(self):
        clock = FakeClock()
        store = ConversationStateStore(ttl_seconds=60, clock=clock)
        await store.set_state(1, ReviewStates.awaiting_rating)
        clock.now = 50
        await store.set_state(2, ReviewStates.awaiting_rating)

        clock.now = 61
        assert await store.purge_expired() == 1
        assert await store.get_state(1) is None
        assert await store.get_state(2) == ReviewStates.awaiting_rating.state
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_purge_drops_data(self):
        clock = FakeClock()
        store = ConversationStateStore(ttl_seconds=60, clock=clock)
        await store.set_data(1, "review_vet_id", 7)

        clock.now = 61
        assert await store.purge_expired() == 1
        assert await store.get_all_data(1) == {}

    @pytest.mark.asyncio
    async def test_activity_refreshes_entry(self):
        clock = FakeClock()
        store = ConversationStateStore(ttl_seconds=60, clock=clock)
        await store.set_state(1, ReviewStates.awaiting_rating)
        clock.now = 40
        await store.set_data(1, "review_rating", 5)

        clock.now = 90
        assert await store.purge_expired() == 0
        assert await store.get_data(1, "review_rating") == 5

    @pytest.mark.asyncio
    async def test_zero_ttl_never_expires(self):
        clock = FakeClock()
        store = ConversationStateStore(ttl_seconds=0, clock=clock)
        await store.set_state(1, ReviewStates.awaiting_rating)
        clock.now = 10 ** 9
        assert await store.purge_expired() == 0
        assert await store.has_state(1)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_writes_are_not_lost(self, store):
        async def worker(user_id: int) -> None:
            for i in range(200):
                await store.set_data(user_id, f"k{i}", i)
                await store.set_state(user_id, ReviewStates.awaiting_comment)
                await asyncio.sleep(0)

        await asyncio.gather(*(worker(user_id) for user_id in range(8)))

        for user_id in range(8):
            data = await store.get_all_data(user_id)
            assert len(data) == 200
            assert await store.get_state(user_id) == ReviewStates.awaiting_comment.state

    @pytest.mark.asyncio
    async def test_concurrent_writes_same_user(self, store):
        async def worker(n: int) -> None:
            for i in range(100):
                await store.set_data(1, f"{n}-{i}", i)
                await asyncio.sleep(0)

        await asyncio.gather(*(worker(n) for n in range(4)))

        assert len(await store.get_all_data(1)) == 400
