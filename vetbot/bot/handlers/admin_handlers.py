"""
Админка без состояния: меню, статистика, справочники, шаблон и импорт файлов.
"""
import logging
from typing import Optional, Sequence, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vetbot.bot.callbacks import CallbackAction
from vetbot.bot.events import EventKind, IncomingEvent
from vetbot.bot.formatting import (
    ADMIN_ONLY_TEXT,
    IMPORT_INSTRUCTIONS_TEXT,
    format_admin_city_card,
    format_admin_clinic_card,
    format_admin_list_title,
    format_admin_vet_card,
    format_city_delete_confirm,
    format_clinic_delete_confirm,
    format_import_result,
    format_stats,
    format_vet_delete_confirm,
)
from vetbot.bot.keyboards.inline import (
    active_mark,
    get_admin_item_keyboard,
    get_admin_list_keyboard,
    get_confirm_delete_keyboard,
)
from vetbot.bot.keyboards.reply import get_admin_keyboard, get_main_menu_keyboard
from vetbot.bot.messenger import AdminPolicy, Markup, Messenger
from vetbot.db.gateway import ReviewGateway
from vetbot.db.repositories import city_repo, clinic_repo, review_repo, vet_repo
from vetbot.db.repositories.stats_repo import get_stats
from vetbot.services.importer import ImportFileError, import_file, is_supported_file
from vetbot.services.template_generator import TEMPLATE_FILENAME, generate_import_template

logger = logging.getLogger(__name__)

# Telegram Bot API отдаёт ботам файлы до 20 МБ
MAX_IMPORT_FILE_SIZE = 20 * 1024 * 1024

# Записей на странице списка справочника
ADMIN_PAGE_SIZE = 20

T = TypeVar("T")

ADMIN_MENU_TEXT = (
    "🔧 <b>Панель администратора</b>\n\n"
    "⚡ Модерация отзывов — /moderation\n"
    "📊 Статистика — /stats\n"
    "👨‍⚕️ Врачи — /admin_vets\n"
    "🏥 Клиники — /admin_clinics\n"
    "🏙️ Города — /admin_cities\n"
    "📥 Импорт данных — отправьте CSV или Excel файл\n"
    "📄 Шаблон импорта — /template"
)


def paginate(items: Sequence[T], page: int, size: int = ADMIN_PAGE_SIZE) -> tuple[Sequence[T], int, int]:
    """Срез страницы, номер страницы (в допустимых границах) и число страниц."""
    pages = max(1, -(-len(items) // size))
    page = min(max(page, 0), pages - 1)
    return items[page * size:(page + 1) * size], page, pages


class AdminHandlers:
    def __init__(
        self,
        messenger: Messenger,
        session_maker: async_sessionmaker[AsyncSession],
        admin_policy: AdminPolicy,
        gateway: ReviewGateway,
    ):
        self.messenger = messenger
        self.session_maker = session_maker
        self.admin_policy = admin_policy
        self.gateway = gateway

    async def _check_admin(self, event: IncomingEvent) -> bool:
        if self.admin_policy.is_admin(event.user_id):
            return True
        logger.info(f"User {event.user_id} denied access to admin command")
        await self.messenger.send_message(event.chat_id, ADMIN_ONLY_TEXT)
        return False

    async def admin_menu(self, event: IncomingEvent) -> None:
        if not await self._check_admin(event):
            return
        # Модератору нужна запись в users для отметки о модерации
        try:
            await self.gateway.ensure_user(event.profile)
        except Exception:
            logger.exception(f"Error registering admin {event.user_id}")

        await self.messenger.send_message(event.chat_id, ADMIN_MENU_TEXT, reply_markup=get_admin_keyboard())

    async def exit_admin(self, event: IncomingEvent) -> None:
        await self.messenger.send_message(
            event.chat_id, "👋 Вы вышли из админки.", reply_markup=get_main_menu_keyboard()
        )

    async def stats(self, event: IncomingEvent) -> None:
        if not await self._check_admin(event):
            return
        async with self.session_maker() as session:
            stats = await get_stats(session)
        await self.messenger.send_message(event.chat_id, format_stats(stats))

    async def import_instructions(self, event: IncomingEvent) -> None:
        if not await self._check_admin(event):
            return
        await self.messenger.send_message(event.chat_id, IMPORT_INSTRUCTIONS_TEXT)

    async def template(self, event: IncomingEvent) -> None:
        if not await self._check_admin(event):
            return
        async with self.session_maker() as session:
            data = await generate_import_template(session)
        await self.messenger.send_document(
            event.chat_id,
            TEMPLATE_FILENAME,
            data,
            caption="📄 Шаблон для импорта врачей. Заполните лист «Врачи» и отправьте файл обратно.",
        )

    async def import_document(self, event: IncomingEvent) -> None:
        """Документ от пользователя: импорт справочников для админов."""
        document = event.document
        if document is None:
            return

        if not is_supported_file(document.file_name):
            await self.messenger.send_message(
                event.chat_id, "❌ Поддерживаются только CSV и Excel файлы (.csv, .xlsx)"
            )
            return

        if not self.admin_policy.is_admin(event.user_id):
            logger.info(f"User {event.user_id} tried to import {document.file_name}")
            await self.messenger.send_message(event.chat_id, "❌ Импорт данных доступен только администраторам")
            return

        if document.file_size and document.file_size > MAX_IMPORT_FILE_SIZE:
            await self.messenger.send_message(event.chat_id, "❌ Файл слишком большой (максимум 20 МБ)")
            return

        try:
            data = await self.messenger.download_document(document.file_id)
            async with self.session_maker() as session:
                kind, result = await import_file(session, data, document.file_name)
        except ImportFileError as e:
            await self.messenger.send_message(event.chat_id, f"❌ {e}")
            return
        except Exception:
            logger.exception(f"Import of {document.file_name} failed")
            await self.messenger.send_message(event.chat_id, "❌ Ошибка импорта файла. Подробности в логах.")
            return

        await self.messenger.send_message(event.chat_id, format_import_result(kind.value, result))

    # ==================== Справочники ====================

    async def _show(self, event: IncomingEvent, text: str, reply_markup: Markup = None) -> None:
        """Кнопка правит своё сообщение, команда присылает новое."""
        if event.kind == EventKind.CALLBACK and event.message_id is not None:
            await self.messenger.edit_message(event.chat_id, event.message_id, text, reply_markup=reply_markup)
        else:
            await self.messenger.send_message(event.chat_id, text, reply_markup=reply_markup)

    async def vets(self, event: IncomingEvent, page: int = 0) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            vets = await vet_repo.list_all_vets(session)
        if not vets:
            await self._show(event, "👨‍⚕️ Врачей в базе пока нет.")
            return None

        chunk, page, pages = paginate(vets, page)
        await self._show(
            event,
            format_admin_list_title("👨‍⚕️ <b>Врачи</b>", len(vets), page, pages),
            get_admin_list_keyboard(
                [(vet.id, f"{active_mark(vet.is_active)} {vet.full_name}") for vet in chunk],
                CallbackAction.ADMIN_VET,
                CallbackAction.ADMIN_VETS,
                page,
                pages,
            ),
        )
        return None

    async def vet_card(self, event: IncomingEvent, vet_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            vet = await vet_repo.get_vet_by_id(session, vet_id, active_only=False)
            if vet is None:
                await self.vets(event)
                return "Врач не найден"
            _, reviews_count = await review_repo.get_vet_rating(session, vet_id)

        await self._show(
            event,
            format_admin_vet_card(vet, reviews_count),
            get_admin_item_keyboard(
                vet.id,
                CallbackAction.ADMIN_VETS,
                CallbackAction.ADMIN_VET_DELETE,
                CallbackAction.ADMIN_VET_TOGGLE,
                vet.is_active,
            ),
        )
        return None

    async def vet_toggle(self, event: IncomingEvent, vet_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            is_active = await vet_repo.toggle_vet_active(session, vet_id)
        if is_active is None:
            await self.vets(event)
            return "Врач не найден"

        logger.info(f"Vet {vet_id} active={is_active}, changed by admin {event.user_id}")
        await self.vet_card(event, vet_id)
        return "✅ Врач снова в поиске" if is_active else "✅ Врач скрыт из поиска"

    async def vet_delete(self, event: IncomingEvent, vet_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            vet = await vet_repo.get_vet_by_id(session, vet_id, active_only=False)
        if vet is None:
            await self.vets(event)
            return "Врач не найден"

        await self._show(
            event,
            format_vet_delete_confirm(vet),
            get_confirm_delete_keyboard(vet.id, CallbackAction.ADMIN_VET_DELETE_CONFIRM, CallbackAction.ADMIN_VET),
        )
        return None

    async def vet_delete_confirm(self, event: IncomingEvent, vet_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            deleted = await vet_repo.delete_vet(session, vet_id)

        await self.vets(event)
        if not deleted:
            return "Врач не найден"
        logger.warning(f"Vet {vet_id} deleted by admin {event.user_id}")
        return "✅ Врач удалён"

    async def clinics(self, event: IncomingEvent, page: int = 0) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            clinics = await clinic_repo.list_clinics(session, active_only=False)
        if not clinics:
            await self._show(event, "🏥 Клиник в базе пока нет.")
            return None

        chunk, page, pages = paginate(clinics, page)
        await self._show(
            event,
            format_admin_list_title("🏥 <b>Клиники</b>", len(clinics), page, pages),
            get_admin_list_keyboard(
                [(clinic.id, f"{active_mark(clinic.is_active)} {clinic.name}") for clinic in chunk],
                CallbackAction.ADMIN_CLINIC,
                CallbackAction.ADMIN_CLINICS,
                page,
                pages,
            ),
        )
        return None

    async def clinic_card(self, event: IncomingEvent, clinic_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            clinic = await clinic_repo.get_clinic_by_id(session, clinic_id)
        if clinic is None:
            await self.clinics(event)
            return "Клиника не найдена"

        await self._show(
            event,
            format_admin_clinic_card(clinic),
            get_admin_item_keyboard(
                clinic.id,
                CallbackAction.ADMIN_CLINICS,
                CallbackAction.ADMIN_CLINIC_DELETE,
                CallbackAction.ADMIN_CLINIC_TOGGLE,
                clinic.is_active,
            ),
        )
        return None

    async def clinic_toggle(self, event: IncomingEvent, clinic_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            is_active = await clinic_repo.toggle_clinic_active(session, clinic_id)
        if is_active is None:
            await self.clinics(event)
            return "Клиника не найдена"

        logger.info(f"Clinic {clinic_id} active={is_active}, changed by admin {event.user_id}")
        await self.clinic_card(event, clinic_id)
        return "✅ Клиника снова в поиске" if is_active else "✅ Клиника скрыта из поиска"

    async def clinic_delete(self, event: IncomingEvent, clinic_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            clinic = await clinic_repo.get_clinic_by_id(session, clinic_id)
        if clinic is None:
            await self.clinics(event)
            return "Клиника не найдена"

        await self._show(
            event,
            format_clinic_delete_confirm(clinic),
            get_confirm_delete_keyboard(
                clinic.id, CallbackAction.ADMIN_CLINIC_DELETE_CONFIRM, CallbackAction.ADMIN_CLINIC
            ),
        )
        return None

    async def clinic_delete_confirm(self, event: IncomingEvent, clinic_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            deleted = await clinic_repo.delete_clinic(session, clinic_id)

        await self.clinics(event)
        if not deleted:
            return "Клиника не найдена"
        logger.warning(f"Clinic {clinic_id} deleted by admin {event.user_id}")
        return "✅ Клиника удалена"

    async def cities(self, event: IncomingEvent, page: int = 0) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            cities = await city_repo.list_cities(session)
        if not cities:
            await self._show(event, "🏙️ Городов в базе пока нет.")
            return None

        chunk, page, pages = paginate(cities, page)
        await self._show(
            event,
            format_admin_list_title("🏙️ <b>Города</b>", len(cities), page, pages, with_marks=False),
            get_admin_list_keyboard(
                [(city.id, city.name) for city in chunk],
                CallbackAction.ADMIN_CITY,
                CallbackAction.ADMIN_CITIES,
                page,
                pages,
            ),
        )
        return None

    async def city_card(self, event: IncomingEvent, city_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            city = await city_repo.get_city_by_id(session, city_id)
            if city is None:
                await self.cities(event)
                return "Город не найден"
            vets, clinics = await city_repo.count_city_links(session, city_id)

        await self._show(
            event,
            format_admin_city_card(city, vets, clinics),
            get_admin_item_keyboard(city.id, CallbackAction.ADMIN_CITIES, CallbackAction.ADMIN_CITY_DELETE),
        )
        return None

    async def city_delete(self, event: IncomingEvent, city_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            city = await city_repo.get_city_by_id(session, city_id)
            if city is None:
                await self.cities(event)
                return "Город не найден"
            vets, clinics = await city_repo.count_city_links(session, city_id)

        await self._show(
            event,
            format_city_delete_confirm(city, vets, clinics),
            get_confirm_delete_keyboard(city.id, CallbackAction.ADMIN_CITY_DELETE_CONFIRM, CallbackAction.ADMIN_CITY),
        )
        return None

    async def city_delete_confirm(self, event: IncomingEvent, city_id: int) -> Optional[str]:
        if not await self._check_admin(event):
            return None
        async with self.session_maker() as session:
            deleted = await city_repo.delete_city(session, city_id)

        await self.cities(event)
        if not deleted:
            return "Город не найден"
        logger.warning(f"City {city_id} deleted by admin {event.user_id}")
        return "✅ Город удалён"
