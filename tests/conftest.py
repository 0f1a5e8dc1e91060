import itertools
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vetbot.bot.events import EventKind, IncomingEvent, parse_command
from vetbot.bot.messenger import Messenger, StaticAdminPolicy
from vetbot.bot.state_store import ConversationStateStore
from vetbot.db.gateway import ReviewDraft, ReviewGateway, ReviewView, UserProfile, UserView
from vetbot.db.models import Base
from vetbot.db.repositories import city_repo, clinic_repo, specialization_repo, vet_repo
from vetbot.db.repositories.vet_repo import ScheduleSlot

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_ID = 1000
USER_ID = 42


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a fresh database for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker):
    """Create a new session for each test."""
    async with session_maker() as session:
        yield session


# ==================== Fakes ====================

class FakeMessenger(Messenger):
    """Записывает все исходящие вызовы."""

    def __init__(self):
        self.sent = []
        self.answers = []
        self.edits = []
        self.documents = []
        self.files: dict[str, bytes] = {}
        self.failing_chats: set[int] = set()

    async def send_message(self, chat_id, text, reply_markup=None):
        if chat_id in self.failing_chats:
            raise RuntimeError(f"chat {chat_id} is unavailable")
        self.sent.append((chat_id, text, reply_markup))

    async def answer_callback(self, callback_id, text=None, show_alert=False):
        self.answers.append((callback_id, text))

    async def edit_message(self, chat_id, message_id, text, reply_markup=None):
        self.edits.append((chat_id, message_id, text, reply_markup))

    async def send_document(self, chat_id, filename, data, caption=None):
        self.documents.append((chat_id, filename, data, caption))

    async def download_document(self, file_id):
        return self.files[file_id]

    def texts_to(self, chat_id: int) -> list[str]:
        return [text for chat, text, _ in self.sent if chat == chat_id]

    @property
    def last_text(self) -> str:
        return self.sent[-1][1]


class FakeGateway(ReviewGateway):
    """Пользователи и отзывы в памяти со счётчиками вызовов."""

    def __init__(self):
        self.users: dict[int, UserView] = {}
        self.reviews: dict[int, ReviewView] = {}
        self.created: list[ReviewDraft] = []
        self.status_updates: list[tuple[int, str, int]] = []
        self.list_pending_calls = 0
        self.fail_create = False
        self.fail_list = False
        self.fail_update = False
        self._ids = itertools.count(1)
        self._review_ids = itertools.count(1)

    def add_user(self, telegram_id: int) -> UserView:
        user = UserView(id=next(self._ids), telegram_id=telegram_id)
        self.users[telegram_id] = user
        return user

    def add_review(self, review_id: int, vet_id: int = 7, status: str = "pending", user_id: int = 99) -> ReviewView:
        review = ReviewView(
            id=review_id,
            vet_id=vet_id,
            vet_name=f"Врач {vet_id}",
            user_id=user_id,
            author_name="Автор",
            rating=5,
            comment=f"Отзыв {review_id}",
            status=status,
            created_at=datetime(2024, 1, 1) + timedelta(minutes=review_id),
        )
        self.reviews[review_id] = review
        return review

    async def find_user_by_platform_id(self, platform_id: int) -> Optional[UserView]:
        return self.users.get(platform_id)

    async def ensure_user(self, profile: UserProfile) -> UserView:
        return self.users.get(profile.telegram_id) or self.add_user(profile.telegram_id)

    async def has_existing_review(self, user_id: int, vet_id: int) -> bool:
        return any(r.user_id == user_id and r.vet_id == vet_id for r in self.reviews.values())

    async def create_review(self, draft: ReviewDraft) -> ReviewView:
        if self.fail_create:
            raise RuntimeError("database is down")
        self.created.append(draft)
        review = ReviewView(
            id=1000 + next(self._review_ids),
            vet_id=draft.vet_id,
            vet_name=f"Врач {draft.vet_id}",
            user_id=draft.user_id,
            author_name="Автор",
            rating=draft.rating,
            comment=draft.comment,
            status="pending",
            created_at=datetime.now(),
        )
        self.reviews[review.id] = review
        return review

    async def get_review_by_id(self, review_id: int) -> Optional[ReviewView]:
        return self.reviews.get(review_id)

    async def list_pending_reviews(self) -> list[ReviewView]:
        self.list_pending_calls += 1
        if self.fail_list:
            raise RuntimeError("database is down")
        pending = [r for r in self.reviews.values() if r.status == "pending"]
        return sorted(pending, key=lambda r: r.created_at)

    async def update_review_status(self, review_id: int, status: str, moderator_id: int) -> bool:
        if self.fail_update:
            raise RuntimeError("database is down")
        review = self.reviews.get(review_id)
        if review is None or review.status != "pending":
            return False
        self.status_updates.append((review_id, status, moderator_id))
        self.reviews[review_id] = replace(review, status=status)
        return True


# ==================== Fixtures ====================

@pytest.fixture
def store():
    return ConversationStateStore()


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def admin_policy():
    return StaticAdminPolicy([ADMIN_ID])


def make_event(
    user_id: int = USER_ID,
    text: str = "",
    callback_data: Optional[str] = None,
    message_id: Optional[int] = 500,
    document=None,
) -> IncomingEvent:
    """Событие от пользователя в личном чате (chat_id == user_id)."""
    profile = UserProfile(telegram_id=user_id, username=f"user{user_id}", first_name="Тест")
    if callback_data is not None:
        return IncomingEvent(
            kind=EventKind.CALLBACK,
            user_id=user_id,
            chat_id=user_id,
            profile=profile,
            callback_id=f"cb-{user_id}",
            callback_data=callback_data,
            message_id=message_id,
        )
    if document is not None:
        return IncomingEvent(
            kind=EventKind.DOCUMENT,
            user_id=user_id,
            chat_id=user_id,
            profile=profile,
            document=document,
            message_id=message_id,
        )
    command = parse_command(text)
    return IncomingEvent(
        kind=EventKind.COMMAND if command else EventKind.TEXT,
        user_id=user_id,
        chat_id=user_id,
        profile=profile,
        text=text,
        command=command,
        message_id=message_id,
    )


@pytest_asyncio.fixture
async def catalog(db_session):
    """Два города, две клиники, три активных врача и один неактивный."""
    moscow = await city_repo.create_city(db_session, "Москва", "Московская область")
    kazan = await city_repo.create_city(db_session, "Казань", "Татарстан")
    center = await clinic_repo.create_clinic(
        db_session, "ВетКлиника Центр", address="ул. Ленина, 1", phone="+74951112233", city_id=moscow.id
    )
    north = await clinic_repo.create_clinic(db_session, "ВетКлиника Север", city_id=moscow.id)

    therapist = await specialization_repo.get_or_create_specialization(db_session, "Терапевт")
    surgeon = await specialization_repo.get_or_create_specialization(db_session, "Хирург")
    dermatologist = await specialization_repo.get_or_create_specialization(db_session, "Дерматолог")
    await db_session.commit()

    petrov = await vet_repo.create_vet(
        db_session, "Иван", "Петров", experience_years=10, city_id=moscow.id,
        specializations=[therapist, surgeon],
        schedule=[
            ScheduleSlot(center.id, 1, "09:00", "18:00"),
            ScheduleSlot(center.id, 3, "09:00", "18:00"),
        ],
    )
    sidorova = await vet_repo.create_vet(
        db_session, "Мария", "Сидорова", city_id=moscow.id,
        specializations=[dermatologist],
        schedule=[ScheduleSlot(north.id, 2, "10:00", "19:00")],
    )
    ivanov = await vet_repo.create_vet(
        db_session, "Олег", "Иванов", city_id=kazan.id, specializations=[therapist]
    )
    retired = await vet_repo.create_vet(
        db_session, "Пётр", "Архивов", city_id=moscow.id,
        specializations=[therapist],
        schedule=[ScheduleSlot(center.id, 1, "09:00", "12:00")],
    )
    retired.is_active = False
    await db_session.commit()

    return {
        "moscow": moscow,
        "kazan": kazan,
        "center": center,
        "north": north,
        "therapist": therapist,
        "surgeon": surgeon,
        "dermatologist": dermatologist,
        "petrov": petrov,
        "sidorova": sidorova,
        "ivanov": ivanov,
        "retired": retired,
    }
