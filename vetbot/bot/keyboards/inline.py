"""
Inline клавиатуры для бота.
"""
from typing import Iterable

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from vetbot.bot.callbacks import CallbackAction, encode_callback
from vetbot.db.models import City, Clinic, Specialization, Veterinarian

DAY_NAMES = {
    1: "Понедельник",
    2: "Вторник",
    3: "Среда",
    4: "Четверг",
    5: "Пятница",
    6: "Суббота",
    7: "Воскресенье",
}


def get_back_to_menu_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="🏠 Главное меню", callback_data=encode_callback(CallbackAction.MAIN_MENU)),
    )
    return builder.as_markup()


def get_rating_keyboard() -> InlineKeyboardMarkup:
    """Оценка врача от 1 до 5 звёзд."""
    builder = InlineKeyboardBuilder()
    for rating in range(1, 6):
        builder.button(
            text="⭐" * rating,
            callback_data=encode_callback(CallbackAction.REVIEW_RATE, rating),
        )
    builder.button(text="❌ Отмена", callback_data=encode_callback(CallbackAction.REVIEW_CANCEL))
    builder.adjust(1)
    return builder.as_markup()


def get_cancel_review_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="❌ Отмена", callback_data=encode_callback(CallbackAction.REVIEW_CANCEL)),
    )
    return builder.as_markup()


def get_days_keyboard() -> InlineKeyboardMarkup:
    """Выбор дня недели для поиска."""
    builder = InlineKeyboardBuilder()
    for day, name in DAY_NAMES.items():
        builder.button(text=name, callback_data=encode_callback(CallbackAction.SEARCH_DAY, day))
    builder.button(text="Любой день", callback_data=encode_callback(CallbackAction.SEARCH_DAY, 0))
    builder.adjust(2, 2, 3, 1)
    return builder.as_markup()


def get_specializations_keyboard(specs: Iterable[Specialization]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for spec in specs:
        builder.button(
            text=f"🔍 {spec.name}",
            callback_data=encode_callback(CallbackAction.SEARCH_SPEC, spec.id),
        )
    builder.adjust(2)
    return builder.as_markup()


def get_clinics_keyboard(clinics: Iterable[Clinic]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for clinic in clinics:
        builder.button(
            text=f"🏥 {clinic.name}",
            callback_data=encode_callback(CallbackAction.SEARCH_CLINIC, clinic.id),
        )
    builder.adjust(1)
    return builder.as_markup()


def get_cities_keyboard(cities: Iterable[City]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for city in cities:
        builder.button(
            text=f"🏙️ {city.name}",
            callback_data=encode_callback(CallbackAction.SEARCH_CITY, city.id),
        )
    builder.adjust(2)
    return builder.as_markup()


def get_vets_keyboard(vets: Iterable[Veterinarian]) -> InlineKeyboardMarkup:
    """Кнопка «Подробнее» для каждого врача из списка."""
    builder = InlineKeyboardBuilder()
    for vet in vets:
        builder.row(
            InlineKeyboardButton(
                text=f"👨‍⚕️ {vet.full_name}",
                callback_data=encode_callback(CallbackAction.VET_DETAILS, vet.id),
            ),
        )
    builder.row(
        InlineKeyboardButton(text="🏠 Главное меню", callback_data=encode_callback(CallbackAction.MAIN_MENU)),
    )
    return builder.as_markup()


def get_vet_details_keyboard(vet_id: int) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="📝 Отзывы", callback_data=encode_callback(CallbackAction.SHOW_REVIEWS, vet_id)),
        InlineKeyboardButton(text="💬 Оставить отзыв", callback_data=encode_callback(CallbackAction.ADD_REVIEW, vet_id)),
    )
    builder.row(
        InlineKeyboardButton(text="🏠 Главное меню", callback_data=encode_callback(CallbackAction.MAIN_MENU)),
    )
    return builder.as_markup()


def get_reviews_keyboard(vet_id: int) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="💬 Оставить отзыв", callback_data=encode_callback(CallbackAction.ADD_REVIEW, vet_id)),
    )
    builder.row(
        InlineKeyboardButton(text="🔙 К врачу", callback_data=encode_callback(CallbackAction.VET_DETAILS, vet_id)),
    )
    return builder.as_markup()


# ==================== Админка: справочники ====================

def active_mark(is_active: bool) -> str:
    return "✅" if is_active else "❌"


def get_admin_list_keyboard(
    items: Iterable[tuple[int, str]],
    item_action: CallbackAction,
    list_action: CallbackAction,
    page: int = 0,
    pages: int = 1,
) -> InlineKeyboardMarkup:
    """Страница списка: кнопка на каждую запись и стрелки между страницами."""
    builder = InlineKeyboardBuilder()
    for item_id, title in items:
        builder.row(InlineKeyboardButton(text=title, callback_data=encode_callback(item_action, item_id)))

    nav = []
    if page > 0:
        nav.append(InlineKeyboardButton(text="◀️", callback_data=encode_callback(list_action, page - 1)))
    if page + 1 < pages:
        nav.append(InlineKeyboardButton(text="▶️", callback_data=encode_callback(list_action, page + 1)))
    if nav:
        builder.row(*nav)
    return builder.as_markup()


def get_admin_item_keyboard(
    item_id: int,
    list_action: CallbackAction,
    delete_action: CallbackAction,
    toggle_action: CallbackAction | None = None,
    is_active: bool = True,
) -> InlineKeyboardMarkup:
    """Карточка записи справочника: скрыть/вернуть, удалить, назад к списку."""
    builder = InlineKeyboardBuilder()
    if toggle_action is not None:
        builder.row(
            InlineKeyboardButton(
                text="🚫 Скрыть из поиска" if is_active else "✅ Вернуть в поиск",
                callback_data=encode_callback(toggle_action, item_id),
            ),
        )
    builder.row(
        InlineKeyboardButton(text="🗑️ Удалить", callback_data=encode_callback(delete_action, item_id)),
    )
    builder.row(
        InlineKeyboardButton(text="🔙 К списку", callback_data=encode_callback(list_action, 0)),
    )
    return builder.as_markup()


def get_confirm_delete_keyboard(
    item_id: int,
    confirm_action: CallbackAction,
    cancel_action: CallbackAction,
) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Подтвердить удаление", callback_data=encode_callback(confirm_action, item_id)),
        InlineKeyboardButton(text="❌ Отмена", callback_data=encode_callback(cancel_action, item_id)),
    )
    return builder.as_markup()
