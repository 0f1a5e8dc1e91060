"""
Reply клавиатуры: главное меню, админка и модерация.

Тексты кнопок приходят обратно обычными сообщениями, поэтому константы
используются и при разборе входящих текстов.
"""
from aiogram.types import KeyboardButton, ReplyKeyboardMarkup
from aiogram.utils.keyboard import ReplyKeyboardBuilder

# Главное меню
BTN_SEARCH = "🔍 Поиск врача"
BTN_SPECIALIZATIONS = "🎯 Специализации"
BTN_CLINICS = "🏥 Клиники"
BTN_CITIES = "🏙️ Города"
BTN_HELP = "❓ Помощь"

# Админка
BTN_MODERATION = "⚡ Модерация отзывов"
BTN_STATS = "📊 Статистика"
BTN_IMPORT = "📥 Импорт данных"
BTN_TEMPLATE = "📄 Шаблон импорта"
BTN_ADMIN_VETS = "👨‍⚕️ Управление врачами"
BTN_ADMIN_CLINICS = "🏥 Управление клиниками"
BTN_ADMIN_CITIES = "🏙️ Управление городами"
BTN_EXIT_ADMIN = "❌ Выйти из админки"

# Модерация
BTN_APPROVE = "✅ Одобрить отзыв"
BTN_REJECT = "❌ Отклонить отзыв"
BTN_BACK_TO_LIST = "🔙 Назад к списку"
BTN_BACK_TO_ADMIN = "🔙 Назад в админку"


def get_main_menu_keyboard() -> ReplyKeyboardMarkup:
    builder = ReplyKeyboardBuilder()
    builder.row(
        KeyboardButton(text=BTN_SEARCH),
        KeyboardButton(text=BTN_SPECIALIZATIONS),
    )
    builder.row(
        KeyboardButton(text=BTN_CLINICS),
        KeyboardButton(text=BTN_CITIES),
    )
    builder.row(KeyboardButton(text=BTN_HELP))
    return builder.as_markup(resize_keyboard=True)


def get_admin_keyboard() -> ReplyKeyboardMarkup:
    builder = ReplyKeyboardBuilder()
    builder.row(
        KeyboardButton(text=BTN_MODERATION),
        KeyboardButton(text=BTN_STATS),
    )
    builder.row(
        KeyboardButton(text=BTN_IMPORT),
        KeyboardButton(text=BTN_TEMPLATE),
    )
    builder.row(KeyboardButton(text=BTN_ADMIN_VETS))
    builder.row(
        KeyboardButton(text=BTN_ADMIN_CLINICS),
        KeyboardButton(text=BTN_ADMIN_CITIES),
    )
    builder.row(KeyboardButton(text=BTN_EXIT_ADMIN))
    return builder.as_markup(resize_keyboard=True)


def get_moderation_list_keyboard() -> ReplyKeyboardMarkup:
    builder = ReplyKeyboardBuilder()
    builder.row(KeyboardButton(text=BTN_BACK_TO_ADMIN))
    return builder.as_markup(resize_keyboard=True)


def get_moderation_decision_keyboard() -> ReplyKeyboardMarkup:
    builder = ReplyKeyboardBuilder()
    builder.row(
        KeyboardButton(text=BTN_APPROVE),
        KeyboardButton(text=BTN_REJECT),
    )
    builder.row(
        KeyboardButton(text=BTN_BACK_TO_LIST),
        KeyboardButton(text=BTN_BACK_TO_ADMIN),
    )
    return builder.as_markup(resize_keyboard=True)
