"""
Обработчики для пользователей: справочники, поиск, карточка врача, отзывы.
"""
import logging
from html import escape
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vetbot.bot.events import IncomingEvent
from vetbot.bot.formatting import (
    HELP_TEXT,
    MAIN_MENU_TEXT,
    WELCOME_TEXT,
    format_clinics,
    format_public_reviews,
    format_vet_details,
    format_vet_list,
)
from vetbot.bot.keyboards.inline import (
    DAY_NAMES,
    get_cities_keyboard,
    get_clinics_keyboard,
    get_days_keyboard,
    get_reviews_keyboard,
    get_specializations_keyboard,
    get_vet_details_keyboard,
    get_vets_keyboard,
)
from vetbot.bot.keyboards.reply import get_main_menu_keyboard
from vetbot.bot.messenger import Markup, Messenger
from vetbot.db.gateway import ReviewGateway
from vetbot.db.models import Veterinarian
from vetbot.db.repositories import (
    city_repo,
    clinic_repo,
    review_repo,
    specialization_repo,
    stats_repo,
    vet_repo,
)
from vetbot.utils.message_splitter import split_message

logger = logging.getLogger(__name__)

# Telegram не принимает клавиатуры больше 100 кнопок
MAX_VET_BUTTONS = 30


class VetHandlers:
    def __init__(
        self,
        messenger: Messenger,
        session_maker: async_sessionmaker[AsyncSession],
        gateway: ReviewGateway,
    ):
        self.messenger = messenger
        self.session_maker = session_maker
        self.gateway = gateway

    async def _send_long(self, chat_id: int, text: str, reply_markup: Markup = None) -> None:
        """Клавиатура прикрепляется к последней части."""
        parts = split_message(text)
        for i, part in enumerate(parts):
            is_last = i == len(parts) - 1
            await self.messenger.send_message(chat_id, part, reply_markup=reply_markup if is_last else None)

    async def _send_vets(self, chat_id: int, title: str, vets: Sequence[Veterinarian]) -> None:
        markup = get_vets_keyboard(vets[:MAX_VET_BUTTONS]) if vets else None
        await self._send_long(chat_id, format_vet_list(title, vets), reply_markup=markup)

    # ==================== Команды ====================

    async def start(self, event: IncomingEvent) -> None:
        """/start — регистрация пользователя и приветствие."""
        try:
            await self.gateway.ensure_user(event.profile)
        except Exception:
            # Приветствие важнее регистрации
            logger.exception(f"Error creating user {event.user_id}")

        await self.messenger.send_message(
            event.chat_id, WELCOME_TEXT, reply_markup=get_main_menu_keyboard()
        )

    async def help(self, event: IncomingEvent) -> None:
        await self.messenger.send_message(event.chat_id, HELP_TEXT)

    async def main_menu(self, event: IncomingEvent) -> Optional[str]:
        await self.messenger.send_message(
            event.chat_id, MAIN_MENU_TEXT, reply_markup=get_main_menu_keyboard()
        )
        return None

    async def specializations(self, event: IncomingEvent) -> None:
        async with self.session_maker() as session:
            specs = await specialization_repo.list_specializations(session)

        if not specs:
            await self.messenger.send_message(event.chat_id, "🎯 Специализации пока не добавлены.")
            return

        lines = ["🎯 <b>Специализации врачей</b>", ""]
        lines += [f"• {escape(spec.name)} — /search_{spec.id}" for spec in specs]
        await self._send_long(
            event.chat_id, "\n".join(lines), reply_markup=get_specializations_keyboard(specs)
        )

    async def search_menu(self, event: IncomingEvent) -> None:
        await self.messenger.send_message(
            event.chat_id, "Выберите день недели для поиска:", reply_markup=get_days_keyboard()
        )

    async def clinics(self, event: IncomingEvent) -> None:
        async with self.session_maker() as session:
            clinics = await clinic_repo.list_clinics(session)

        markup = get_clinics_keyboard(clinics) if clinics else None
        await self._send_long(event.chat_id, format_clinics(clinics), reply_markup=markup)

    async def cities(self, event: IncomingEvent) -> None:
        async with self.session_maker() as session:
            cities = await city_repo.list_cities(session)

        if not cities:
            await self.messenger.send_message(event.chat_id, "🏙️ Города пока не добавлены.")
            return

        await self.messenger.send_message(
            event.chat_id,
            "🏙️ <b>Выберите город:</b>",
            reply_markup=get_cities_keyboard(cities),
        )

    # ==================== Поиск ====================

    async def search_by_specialization(self, event: IncomingEvent, spec_id: int) -> Optional[str]:
        async with self.session_maker() as session:
            spec = await specialization_repo.get_specialization_by_id(session, spec_id)
            if spec is None:
                await self.messenger.send_message(event.chat_id, "❌ Специализация не найдена")
                return None
            vets = await vet_repo.get_vets_by_specialization(session, spec_id)
            await stats_repo.log_user_request(
                session, event.user_id, specialization_id=spec_id, search_query=spec.name
            )
            spec_name = spec.name

        await self._send_vets(event.chat_id, f"🎯 <b>{escape(spec_name)}</b>", vets)
        return None

    async def search_by_day(self, event: IncomingEvent, day: int) -> Optional[str]:
        if day != 0 and day not in DAY_NAMES:
            return "Неверный день недели"

        async with self.session_maker() as session:
            vets = await vet_repo.get_vets_by_day(session, day)
            await stats_repo.log_user_request(session, event.user_id, search_query=f"day:{day}")

        title = "📅 <b>Врачи, принимающие в любой день</b>" if day == 0 else f"📅 <b>{DAY_NAMES[day]}</b>"
        await self._send_vets(event.chat_id, title, vets)
        return None

    async def search_by_clinic(self, event: IncomingEvent, clinic_id: int) -> Optional[str]:
        async with self.session_maker() as session:
            clinic = await clinic_repo.get_clinic_by_id(session, clinic_id)
            if clinic is None:
                return "Клиника не найдена"
            vets = await vet_repo.get_vets_by_clinic(session, clinic_id)

        await self._send_vets(event.chat_id, f"🏥 <b>{escape(clinic.name)}</b>", vets)
        return None

    async def search_by_city(self, event: IncomingEvent, city_id: int) -> Optional[str]:
        async with self.session_maker() as session:
            city = await city_repo.get_city_by_id(session, city_id)
            if city is None:
                return "Город не найден"
            vets = await vet_repo.get_vets_by_city(session, city_id)

        await self._send_vets(event.chat_id, f"🏙️ <b>{escape(city.name)}</b>", vets)
        return None

    # ==================== Врач и отзывы ====================

    async def vet_details(self, event: IncomingEvent, vet_id: int) -> Optional[str]:
        async with self.session_maker() as session:
            vet = await vet_repo.get_vet_by_id(session, vet_id)
            if vet is None:
                return "Врач не найден"
            avg, count = await review_repo.get_vet_rating(session, vet_id)

        await self.messenger.send_message(
            event.chat_id,
            format_vet_details(vet, avg, count),
            reply_markup=get_vet_details_keyboard(vet_id),
        )
        return None

    async def show_reviews(self, event: IncomingEvent, vet_id: int) -> Optional[str]:
        async with self.session_maker() as session:
            reviews = await review_repo.get_approved_reviews(session, vet_id)
            avg, _ = await review_repo.get_vet_rating(session, vet_id)

        await self.messenger.send_message(
            event.chat_id,
            format_public_reviews(reviews, avg),
            reply_markup=get_reviews_keyboard(vet_id),
        )
        return None
