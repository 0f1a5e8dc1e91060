"""
Тексты сообщений бота (HTML).

Всё, что пришло от пользователей или из импорта, экранируется через html.escape.
"""
from collections import OrderedDict
from html import escape
from typing import Sequence

from vetbot.bot.keyboards.inline import DAY_NAMES, active_mark
from vetbot.db.gateway import ReviewView
from vetbot.db.models import City, Clinic, Review, Veterinarian
from vetbot.db.repositories.stats_repo import BotStats

DAY_SHORT = {1: "Пн", 2: "Вт", 3: "Ср", 4: "Чт", 5: "Пт", 6: "Сб", 7: "Вс"}

MODERATION_PREVIEW_LIMIT = 5
REVIEWS_SHOWN_LIMIT = 10

WELCOME_TEXT = (
    "🐾 <b>Добро пожаловать в VetBot!</b> 🐾\n\n"
    "Я помогу вам найти ветеринарного врача по нужной специализации и расписанию.\n\n"
    "Доступные команды:\n"
    "/specializations - специализации врачей\n"
    "/search - поиск врача по дню недели\n"
    "/clinics - список клиник\n"
    "/cities - список городов\n"
    "/help - помощь"
)

HELP_TEXT = (
    "🐾 <b>VetBot - Помощь</b> 🐾\n\n"
    "<b>Команды:</b>\n"
    "/start - Начать работу с ботом\n"
    "/specializations - Показать все специализации врачей\n"
    "/search - Поиск врача по расписанию\n"
    "/clinics - Список всех клиник\n"
    "/cities - Список городов\n"
    "/cancel - Отменить текущее действие\n"
    "/help - Показать эту справку\n\n"
    "<b>Как пользоваться:</b>\n"
    "1. Откройте /specializations и выберите нужную специализацию\n"
    "2. Или используйте /search для выбора дня недели\n"
    "3. Нажмите на врача, чтобы увидеть контакты, расписание и отзывы\n"
    "4. Оставить отзыв можно из карточки врача"
)

MAIN_MENU_TEXT = "🏠 <b>Главное меню</b>\n\nВыберите действие в меню ниже или используйте /help."

UNKNOWN_COMMAND_TEXT = "Неизвестная команда. Используйте /help для списка команд"
UNKNOWN_TEXT = "Я понимаю только команды. Используйте /help для списка доступных команд."
ADMIN_ONLY_TEXT = "❌ Эта функция доступна только администраторам"
GENERIC_ERROR_TEXT = "❌ Произошла ошибка. Попробуйте ещё раз или нажмите /start."


def stars(rating: int) -> str:
    return "⭐" * rating


def format_date(value) -> str:
    return value.strftime("%d.%m.%Y") if value else ""


# ==================== Врачи ====================

def _schedule_by_clinic(vet: Veterinarian) -> "OrderedDict[int, tuple[Clinic, dict[int, list[str]]]]":
    """Слоты расписания, сгруппированные по клиникам и дням (без дублей)."""
    grouped: OrderedDict = OrderedDict()
    for slot in sorted(vet.schedules, key=lambda s: (s.clinic_id, s.day_of_week, s.start_time)):
        if not slot.is_available or slot.clinic is None:
            continue
        clinic, days = grouped.setdefault(slot.clinic_id, (slot.clinic, {}))
        time_range = f"{slot.start_time}-{slot.end_time}"
        if time_range not in days.setdefault(slot.day_of_week, []):
            days[slot.day_of_week].append(time_range)
    return grouped


def format_vet_short(vet: Veterinarian) -> str:
    """Карточка врача в списке результатов поиска."""
    lines = [f"👨‍⚕️ <b>{escape(vet.full_name)}</b>"]
    if vet.specializations:
        lines.append("🎯 " + escape(", ".join(s.name for s in vet.specializations)))
    if vet.phone:
        lines.append(f"📞 <code>{escape(vet.phone)}</code>")
    if vet.experience_years:
        lines.append(f"⏳ Опыт: {vet.experience_years} лет")
    for clinic, days in _schedule_by_clinic(vet).values():
        schedule = ", ".join(
            f"{DAY_SHORT[day]} {' / '.join(slots)}" for day, slots in sorted(days.items())
        )
        lines.append(f"🏥 {escape(clinic.name)}: {schedule}")
    return "\n".join(lines)


def format_vet_list(title: str, vets: Sequence[Veterinarian]) -> str:
    if not vets:
        return f"{title}\n\n😔 Врачи не найдены."
    cards = "\n\n".join(format_vet_short(vet) for vet in vets)
    return f"{title}\n\nНайдено врачей: {len(vets)}\n\n{cards}"


def format_vet_details(vet: Veterinarian, avg_rating: float, reviews_count: int) -> str:
    """Полная карточка врача."""
    lines = [
        "🐾 <b>Детальная информация о враче</b>",
        "",
        f"👨‍⚕️ <b>{escape(vet.full_name)}</b>",
    ]

    if reviews_count:
        lines.append(f"⭐ <b>Рейтинг:</b> {avg_rating:.1f}/5 ({reviews_count} отзывов)")
    else:
        lines.append("⭐ <b>Рейтинг:</b> пока нет отзывов")

    if vet.phone:
        lines.append(f"📞 <b>Телефон:</b> <code>{escape(vet.phone)}</code>")
    if vet.email:
        lines.append(f"📧 <b>Email:</b> {escape(vet.email)}")
    if vet.experience_years is not None:
        lines.append(f"⏳ <b>Опыт работы:</b> {vet.experience_years} лет")
    if vet.description:
        lines.append(f"📝 <b>Описание:</b> {escape(vet.description)}")
    if vet.city:
        city = escape(vet.city.name)
        if vet.city.region:
            city += f" ({escape(vet.city.region)})"
        lines.append(f"🏙️ <b>Город:</b> {city}")
    if vet.specializations:
        lines.append("🎯 <b>Специализации:</b> " + escape(", ".join(s.name for s in vet.specializations)))

    grouped = _schedule_by_clinic(vet)
    if not grouped:
        lines += ["", "📅 <b>Расписание:</b> не указано"]
        return "\n".join(lines)

    lines += ["", "🏥 <b>Места приема и расписание:</b>"]
    for clinic, days in grouped.values():
        lines += ["", f"<b>{escape(clinic.name)}</b>"]
        if clinic.address:
            lines.append(f"📍 Адрес: {escape(clinic.address)}")
        if clinic.metro_station:
            lines.append(f"🚇 Метро: {escape(clinic.metro_station)}")
        if clinic.district:
            lines.append(f"🏘️ Район: {escape(clinic.district)}")
        if clinic.phone:
            lines.append(f"📞 Телефон клиники: {escape(clinic.phone)}")
        if clinic.working_hours:
            lines.append(f"🕐 Часы работы: {escape(clinic.working_hours)}")
        lines.append("📅 Расписание приема:")
        for day in sorted(days):
            lines.append(f"   • {DAY_NAMES[day]}: {', '.join(sorted(days[day]))}")

    return "\n".join(lines)


def format_clinics(clinics: Sequence[Clinic]) -> str:
    if not clinics:
        return "🏥 Клиники пока не добавлены."
    lines = ["🏥 <b>Клиники</b>", ""]
    for clinic in clinics:
        lines.append(f"<b>{escape(clinic.name)}</b>")
        if clinic.address:
            lines.append(f"📍 {escape(clinic.address)}")
        if clinic.phone:
            lines.append(f"📞 {escape(clinic.phone)}")
        if clinic.working_hours:
            lines.append(f"🕐 {escape(clinic.working_hours)}")
        lines.append("")
    lines.append("Выберите клинику, чтобы увидеть врачей:")
    return "\n".join(lines)


# ==================== Отзывы ====================

def format_public_reviews(reviews: Sequence[Review], avg_rating: float) -> str:
    """Опубликованные отзывы о враче, не больше REVIEWS_SHOWN_LIMIT."""
    if not reviews:
        return "📝 <b>Отзывы о враче</b>\n\nПока нет одобренных отзывов."

    lines = [
        "📝 <b>Отзывы о враче</b>",
        "",
        f"⭐ Средняя оценка: {avg_rating:.1f}/5",
        f"📊 Всего отзывов: {len(reviews)}",
        "",
    ]
    for i, review in enumerate(reviews[:REVIEWS_SHOWN_LIMIT], 1):
        lines.append(f"<b>{i}.</b> {stars(review.rating)}")
        if review.comment:
            lines.append(f"💬 {escape(review.comment)}")
        if review.user and review.user.first_name:
            lines.append(f"👤 {escape(review.user.first_name)}")
        lines.append(f"📅 {format_date(review.created_at)}")
        lines.append("")

    if len(reviews) > REVIEWS_SHOWN_LIMIT:
        lines.append(f"... и еще {len(reviews) - REVIEWS_SHOWN_LIMIT} отзывов")
    return "\n".join(lines).rstrip()


def format_review_detail(review: ReviewView) -> str:
    return (
        f"👨‍⚕️ Врач: <b>{escape(review.vet_name)}</b>\n"
        f"⭐ Оценка: {review.rating}/5\n"
        f"💬 Отзыв: {escape(review.comment)}\n"
        f"👤 Пользователь: {escape(review.author_name)}\n"
        f"📅 Дата: {format_date(review.created_at)}"
    )


def format_moderation_queue(reviews: Sequence[ReviewView]) -> str:
    """Первые MODERATION_PREVIEW_LIMIT отзывов очереди и счётчик остальных."""
    lines = [
        "⚡ <b>Модерация отзывов</b>",
        "",
        f"Отзывов на модерации: {len(reviews)}",
        "",
    ]
    for i, review in enumerate(reviews[:MODERATION_PREVIEW_LIMIT], 1):
        lines.append(f"<b>{i}.</b> " + format_review_detail(review))
        lines.append(f"🆔 ID отзыва: <code>{review.id}</code>")
        lines.append("")

    hidden = len(reviews) - MODERATION_PREVIEW_LIMIT
    if hidden > 0:
        lines.append(f"... и еще {hidden} отзывов")
        lines.append("")

    lines.append("Введите ID отзыва для модерации:")
    return "\n".join(lines)


def format_moderation_item(review: ReviewView) -> str:
    return f"⚡ <b>Модерация отзыва #{review.id}</b>\n\n{format_review_detail(review)}\n\nВыберите действие:"


def format_new_review_alert(review: ReviewView) -> str:
    return (
        "🔔 <b>Новый отзыв на модерации</b>\n\n"
        f"{format_review_detail(review)}\n"
        f"🆔 ID отзыва: <code>{review.id}</code>\n\n"
        "Открыть очередь: /moderation"
    )


# ==================== Админка ====================

def format_stats(stats: BotStats) -> str:
    return (
        "📊 <b>Статистика бота</b>\n\n"
        f"👥 Пользователей: {stats.users}\n"
        f"👨‍⚕️ Врачей: {stats.active_vets} активных из {stats.total_vets}\n"
        f"🏥 Клиник: {stats.active_clinics} активных из {stats.total_clinics}\n"
        f"🏙️ Городов: {stats.cities}\n"
        f"🔍 Поисковых запросов: {stats.requests}\n"
        f"⚡ Отзывов на модерации: {stats.pending_reviews}"
    )


IMPORT_INSTRUCTIONS_TEXT = (
    "📥 <b>Импорт данных</b>\n\n"
    "Отправьте файл CSV (разделитель «;») или Excel (.xlsx).\n"
    "Тип данных определяется по имени файла:\n"
    "• содержит «город» — импорт городов (Название; Регион)\n"
    "• содержит «клиник» — импорт клиник (Название; Адрес; Телефон; ЧасыРаботы; Район; Метро; Город)\n"
    "• любое другое имя — импорт врачей по шаблону\n\n"
    "Шаблон для врачей: /template"
)


IMPORT_KIND_TITLES = {
    "veterinarians": "врачей",
    "clinics": "клиник",
    "cities": "городов",
}
IMPORT_ERRORS_SHOWN = 10


def format_import_result(kind: str, result) -> str:
    """Отчёт об импорте с первыми ошибками и предупреждениями."""
    lines = [
        f"📥 <b>Импорт {IMPORT_KIND_TITLES.get(kind, kind)} завершён</b>",
        "",
        f"📄 Строк обработано: {result.total_rows}",
        f"✅ Успешно: {result.success_count}",
        f"❌ Ошибок: {result.error_count}",
    ]
    if result.skipped_count:
        lines.append(f"⏭️ Пропущено (уже есть): {result.skipped_count}")

    for title, items in (("Ошибки", result.errors), ("Предупреждения", result.warnings)):
        if not items:
            continue
        lines += ["", f"<b>{title}:</b>"]
        for item in items[:IMPORT_ERRORS_SHOWN]:
            lines.append(f"• Строка {item.row} ({item.field}): {escape(item.message)}")
        if len(items) > IMPORT_ERRORS_SHOWN:
            lines.append(f"... и еще {len(items) - IMPORT_ERRORS_SHOWN}")
    return "\n".join(lines)


# ==================== Справочники (админка) ====================

def format_admin_list_title(title: str, total: int, page: int, pages: int, with_marks: bool = True) -> str:
    lines = [f"{title} (всего: {total})"]
    if pages > 1:
        lines.append(f"Страница {page + 1} из {pages}")
    if with_marks:
        lines += ["", f"{active_mark(True)} — в поиске, {active_mark(False)} — скрыт"]
    lines += ["", "Выберите запись:"]
    return "\n".join(lines)


def _status_line(is_active: bool) -> str:
    return f"{active_mark(is_active)} " + ("Показывается в поиске" if is_active else "Скрыт из поиска")


def format_admin_vet_card(vet: Veterinarian, reviews_count: int) -> str:
    lines = [
        f"👨‍⚕️ <b>{escape(vet.full_name)}</b>",
        f"🆔 ID: <code>{vet.id}</code>",
        _status_line(vet.is_active),
        "",
    ]
    if vet.phone:
        lines.append(f"📞 {escape(vet.phone)}")
    if vet.email:
        lines.append(f"📧 {escape(vet.email)}")
    lines.append(f"🏙️ Город: {escape(vet.city.name) if vet.city else 'не указан'}")
    if vet.specializations:
        lines.append("🎯 " + escape(", ".join(s.name for s in vet.specializations)))
    lines.append(f"📅 Слотов расписания: {len(vet.schedules)}")
    lines.append(f"💬 Опубликованных отзывов: {reviews_count}")
    return "\n".join(lines)


def format_admin_clinic_card(clinic: Clinic) -> str:
    lines = [
        f"🏥 <b>{escape(clinic.name)}</b>",
        f"🆔 ID: <code>{clinic.id}</code>",
        _status_line(clinic.is_active),
        "",
    ]
    if clinic.address:
        lines.append(f"📍 {escape(clinic.address)}")
    if clinic.phone:
        lines.append(f"📞 {escape(clinic.phone)}")
    if clinic.working_hours:
        lines.append(f"🕐 {escape(clinic.working_hours)}")
    lines.append(f"🏙️ Город: {escape(clinic.city.name) if clinic.city else 'не указан'}")
    return "\n".join(lines)


def format_admin_city_card(city: City, vets: int, clinics: int) -> str:
    lines = [f"🏙️ <b>{escape(city.name)}</b>", f"🆔 ID: <code>{city.id}</code>"]
    if city.region:
        lines.append(f"🗺️ Регион: {escape(city.region)}")
    lines += ["", f"👨‍⚕️ Врачей: {vets}", f"🏥 Клиник: {clinics}"]
    return "\n".join(lines)


def format_vet_delete_confirm(vet: Veterinarian) -> str:
    return (
        f"🗑️ Удалить врача <b>{escape(vet.full_name)}</b>?\n\n"
        "Вместе с ним удалятся расписание и все отзывы. Отменить это нельзя.\n"
        "Чтобы убрать врача из поиска без удаления, используйте «Скрыть из поиска»."
    )


def format_clinic_delete_confirm(clinic: Clinic) -> str:
    return (
        f"🗑️ Удалить клинику <b>{escape(clinic.name)}</b>?\n\n"
        "Слоты расписания врачей в этой клинике тоже удалятся. Отменить это нельзя."
    )


def format_city_delete_confirm(city: City, vets: int, clinics: int) -> str:
    text = f"🗑️ Удалить город <b>{escape(city.name)}</b>?"
    if vets or clinics:
        text += f"\n\nУ {vets} врачей и {clinics} клиник город станет не указан."
    return text
