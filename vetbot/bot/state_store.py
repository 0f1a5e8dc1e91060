"""
Хранилище состояний диалогов поверх FSM-хранилища aiogram.

Состояние и данные сценария лежат в BaseStorage (по умолчанию MemoryStorage)
под ключом личного чата пользователя; тот же экземпляр хранилища отдаётся
Dispatcher, поэтому FSMContext в обработчиках aiogram видит те же данные.
Сверху добавлены чтение чисел, частичная очистка данных и сброс брошенных
диалогов по таймауту. Операции не бросают исключений, отсутствие записи
означает idle.
"""
import asyncio
import logging
import time
from numbers import Integral
from typing import Any, Callable, Optional, Union

from aiogram.fsm.state import State
from aiogram.fsm.storage.base import BaseStorage, StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

logger = logging.getLogger(__name__)

StateType = Optional[Union[str, State]]


class ConversationStateStore:
    """Состояние и временные данные сценария для каждого user_id."""

    def __init__(
        self,
        storage: Optional[BaseStorage] = None,
        bot_id: int = 0,
        ttl_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.bot_id = bot_id
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        # user_id -> время последней записи, только для непустых диалогов
        self._touched: dict[int, float] = {}

    def key(self, user_id: int) -> StorageKey:
        """Ключ FSM личного чата: chat_id совпадает с user_id."""
        return StorageKey(bot_id=self.bot_id, chat_id=user_id, user_id=user_id)

    async def _clear(self, user_id: int) -> None:
        key = self.key(user_id)
        await self.storage.set_state(key, None)
        await self.storage.set_data(key, {})
        self._touched.pop(user_id, None)

    async def _forget_if_empty(self, user_id: int) -> None:
        key = self.key(user_id)
        if await self.storage.get_state(key) is None and not await self.storage.get_data(key):
            self._touched.pop(user_id, None)

    # ==================== Состояние ====================

    async def set_state(self, user_id: int, state: StateType) -> None:
        """None сбрасывает диалог целиком, как clear_state."""
        async with self._lock:
            if state is None:
                await self._clear(user_id)
                return
            await self.storage.set_state(self.key(user_id), state)
            self._touched[user_id] = self._clock()

    async def get_state(self, user_id: int) -> Optional[str]:
        async with self._lock:
            return await self.storage.get_state(self.key(user_id))

    async def has_state(self, user_id: int) -> bool:
        return await self.get_state(user_id) is not None

    async def clear_state(self, user_id: int) -> None:
        """Сбросить состояние вместе с данными сценария."""
        async with self._lock:
            await self._clear(user_id)

    # ==================== Данные сценария ====================

    async def set_data(self, user_id: int, key: str, value: Any) -> None:
        async with self._lock:
            await self.storage.update_data(self.key(user_id), {key: value})
            self._touched[user_id] = self._clock()

    async def get_data(self, user_id: int, key: str) -> Any:
        async with self._lock:
            data = await self.storage.get_data(self.key(user_id))
        return data.get(key)

    async def get_data_int(self, user_id: int, key: str) -> tuple[int, bool]:
        """Вернуть (значение, найдено). bool целым числом не считается."""
        value = await self.get_data(user_id, key)
        if isinstance(value, bool) or not isinstance(value, Integral):
            return 0, False
        return int(value), True

    async def clear_data(self, user_id: int) -> None:
        """Очистить данные сценария, не трогая состояние."""
        async with self._lock:
            await self.storage.set_data(self.key(user_id), {})
            await self._forget_if_empty(user_id)

    async def clear_data_key(self, user_id: int, key: str) -> None:
        async with self._lock:
            storage_key = self.key(user_id)
            data = await self.storage.get_data(storage_key)
            if key not in data:
                return
            data.pop(key)
            await self.storage.set_data(storage_key, data)
            await self._forget_if_empty(user_id)

    async def get_all_data(self, user_id: int) -> dict[str, Any]:
        async with self._lock:
            return dict(await self.storage.get_data(self.key(user_id)))

    # ==================== Таймаут ====================

    async def purge_expired(self, now: Optional[float] = None) -> int:
        """
        Сбросить диалоги, не обновлявшиеся дольше TTL.

        Returns:
            Количество сброшенных диалогов
        """
        if self._ttl_seconds <= 0:
            return 0

        async with self._lock:
            now = self._clock() if now is None else now
            expired = [
                user_id
                for user_id, touched_at in self._touched.items()
                if now - touched_at > self._ttl_seconds
            ]
            for user_id in expired:
                await self._clear(user_id)

        if expired:
            logger.info(f"Purged {len(expired)} stale conversations")
        return len(expired)

    def __len__(self) -> int:
        return len(self._touched)
