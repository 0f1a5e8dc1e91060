"""
Импорт врачей, клиник и городов из CSV (разделитель «;») и Excel (.xlsx).

Ошибки собираются построчно в ImportResult, файл обрабатывается до конца.
Формат колонок врачей:
    Имя; Фамилия; Телефон; Email; ОпытРаботы; Описание; Город; Специализации; КлиникиИРасписание
Расписание: "ВетКлиника Центр:Пн:9-18,Ср:9-18;ВетКлиника Север:Вт:10-19"
"""
import csv
import io
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from openpyxl import load_workbook
from sqlalchemy.ext.asyncio import AsyncSession

from vetbot.db.repositories import city_repo, clinic_repo, specialization_repo, vet_repo
from vetbot.db.repositories.vet_repo import ScheduleSlot

logger = logging.getLogger(__name__)

MIN_VET_COLUMNS = 7

DAY_ALIASES = {
    "пн": 1, "пон": 1, "понедельник": 1,
    "вт": 2, "вто": 2, "вторник": 2,
    "ср": 3, "сре": 3, "среда": 3,
    "чт": 4, "чет": 4, "четверг": 4,
    "пт": 5, "пят": 5, "пятница": 5,
    "сб": 6, "суб": 6, "суббота": 6,
    "вс": 7, "вос": 7, "воскресенье": 7,
}

_TIME_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?$")
_YEARS_RE = re.compile(r"\d+")


class ImportKind(str, Enum):
    VETERINARIANS = "veterinarians"
    CLINICS = "clinics"
    CITIES = "cities"


class ImportFileError(Exception):
    """Файл не удалось прочитать целиком."""


@dataclass
class RowError:
    row: int
    field: str
    message: str


@dataclass
class ImportResult:
    total_rows: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    errors: list[RowError] = field(default_factory=list)
    warnings: list[RowError] = field(default_factory=list)

    def fail(self, row: int, field_name: str, message: str) -> None:
        self.error_count += 1
        self.errors.append(RowError(row, field_name, message))

    def warn(self, row: int, field_name: str, message: str) -> None:
        self.warnings.append(RowError(row, field_name, message))


# ==================== Разбор значений ====================

def normalize_time(value: str) -> Optional[str]:
    """'9' -> '09:00', '9:30' -> '09:30'. None для некорректного времени."""
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2) or 0)
    if hours > 24 or minutes > 59 or (hours == 24 and minutes):
        return None
    return f"{hours:02d}:{minutes:02d}"


def parse_schedule(text: str) -> tuple[list[tuple[int, str, str]], list[str]]:
    """
    Разобрать расписание одной клиники: "Пн:9-18,Ср:9:30-18".

    Returns:
        (слоты (день, начало, конец), нераспознанные фрагменты)
    """
    slots, rejected = [], []
    for chunk in text.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue

        day_name, sep, time_range = chunk.partition(":")
        day = DAY_ALIASES.get(day_name.strip().lower())
        start, dash, end = time_range.partition("-")
        start_time, end_time = normalize_time(start), normalize_time(end)

        if not sep or day is None or not dash or start_time is None or end_time is None:
            rejected.append(chunk)
            continue
        slots.append((day, start_time, end_time))
    return slots, rejected


def parse_clinic_schedules(text: str) -> list[tuple[str, str]]:
    """'Клиника А:Пн:9-18;Клиника Б:Вт:10-19' -> [(клиника, расписание), ...]."""
    result = []
    for block in text.split(";"):
        name, _, schedule = block.partition(":")
        if name.strip():
            result.append((name.strip(), schedule.strip()))
    return result


def parse_experience(value: str) -> Optional[int]:
    """'10' или '5 лет' -> число лет."""
    match = _YEARS_RE.search(value)
    return int(match.group()) if match else None


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


# ==================== Чтение файлов ====================

def detect_import_kind(filename: str) -> ImportKind:
    name = filename.lower()
    if "город" in name:
        return ImportKind.CITIES
    if "клиник" in name:
        return ImportKind.CLINICS
    return ImportKind.VETERINARIANS


def is_supported_file(filename: str) -> bool:
    return filename.lower().endswith((".csv", ".xlsx"))


def read_rows(data: bytes, filename: str) -> list[list[str]]:
    """Прочитать все строки файла, первая строка — заголовок."""
    if filename.lower().endswith(".xlsx"):
        try:
            wb = load_workbook(io.BytesIO(data), data_only=True, read_only=True)
        except Exception as e:
            raise ImportFileError(f"Не удалось открыть Excel файл: {e}") from e
        try:
            ws = wb.worksheets[0]
            return [[_cell(v) for v in row] for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Excel под Windows сохраняет CSV в cp1251
        text = data.decode("cp1251", errors="replace")
    return [[c.strip() for c in row] for row in csv.reader(io.StringIO(text), delimiter=";")]


def _data_rows(rows: list[list[str]]):
    """(номер строки в файле, значения) без заголовка и пустых строк."""
    for row_num, row in enumerate(rows[1:], start=2):
        if any(cell for cell in row):
            yield row_num, row


def _col(row: list[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


# ==================== Импорт ====================

async def import_veterinarians(session: AsyncSession, rows: list[list[str]]) -> ImportResult:
    result = ImportResult()

    for row_num, row in _data_rows(rows):
        result.total_rows += 1

        if len(row) < MIN_VET_COLUMNS:
            result.fail(
                row_num, "all",
                f"Недостаточно колонок (требуется минимум {MIN_VET_COLUMNS}, получено {len(row)})",
            )
            continue

        first_name, last_name = _col(row, 0), _col(row, 1)
        if not first_name or not last_name:
            result.fail(row_num, "name", "Не указаны имя или фамилия")
            continue

        city_id = None
        city_name = _col(row, 6)
        if city_name:
            city = await city_repo.get_city_by_name(session, city_name)
            if city is None:
                result.fail(row_num, "city", f"Город '{city_name}' не найден в базе")
                continue
            city_id = city.id

        experience = None
        if _col(row, 4):
            experience = parse_experience(_col(row, 4))
            if experience is None:
                result.warn(row_num, "experience", f"Опыт '{_col(row, 4)}' не распознан")

        schedule: list[ScheduleSlot] = []
        for clinic_name, schedule_text in parse_clinic_schedules(_col(row, 8)):
            clinic = await clinic_repo.get_clinic_by_name(session, clinic_name)
            if clinic is None:
                result.warn(row_num, "clinics", f"Клиника '{clinic_name}' не найдена")
                continue
            slots, rejected = parse_schedule(schedule_text)
            for fragment in rejected:
                result.warn(row_num, "schedule", f"Не распознано расписание '{fragment}'")
            schedule += [ScheduleSlot(clinic.id, day, start, end) for day, start, end in slots]

        try:
            specs = []
            for spec_name in _col(row, 7).split(","):
                if not spec_name.strip():
                    continue
                spec = await specialization_repo.get_or_create_specialization(session, spec_name)
                if spec not in specs:
                    specs.append(spec)

            await vet_repo.create_vet(
                session,
                first_name=first_name,
                last_name=last_name,
                phone=_col(row, 2) or None,
                email=_col(row, 3) or None,
                experience_years=experience,
                description=_col(row, 5) or None,
                city_id=city_id,
                specializations=specs,
                schedule=schedule,
            )
        except Exception as e:
            await session.rollback()
            logger.exception(f"Failed to import veterinarian from row {row_num}")
            result.fail(row_num, "database", f"Ошибка сохранения: {e}")
            continue

        result.success_count += 1

    logger.info(
        f"Veterinarians import: {result.success_count} ok, {result.error_count} errors "
        f"of {result.total_rows}"
    )
    return result


async def import_cities(session: AsyncSession, rows: list[list[str]]) -> ImportResult:
    """Колонки: Название; Регион."""
    result = ImportResult()

    for row_num, row in _data_rows(rows):
        result.total_rows += 1
        name = _col(row, 0)
        if not name:
            result.fail(row_num, "name", "Не указано название города")
            continue
        if await city_repo.get_city_by_name(session, name):
            result.skipped_count += 1
            result.warn(row_num, "name", f"Город '{name}' уже есть в базе")
            continue

        try:
            await city_repo.create_city(session, name, region=_col(row, 1) or None)
        except Exception as e:
            await session.rollback()
            logger.exception(f"Failed to import city from row {row_num}")
            result.fail(row_num, "database", f"Ошибка сохранения: {e}")
            continue
        result.success_count += 1

    logger.info(f"Cities import: {result.success_count} ok, {result.error_count} errors")
    return result


async def import_clinics(session: AsyncSession, rows: list[list[str]]) -> ImportResult:
    """Колонки: Название; Адрес; Телефон; ЧасыРаботы; Район; Метро; Город."""
    result = ImportResult()

    for row_num, row in _data_rows(rows):
        result.total_rows += 1
        name = _col(row, 0)
        if not name:
            result.fail(row_num, "name", "Не указано название клиники")
            continue
        if await clinic_repo.get_clinic_by_name(session, name):
            result.skipped_count += 1
            result.warn(row_num, "name", f"Клиника '{name}' уже есть в базе")
            continue

        city_id = None
        city_name = _col(row, 6)
        if city_name:
            city = await city_repo.get_city_by_name(session, city_name)
            if city is None:
                result.fail(row_num, "city", f"Город '{city_name}' не найден в базе")
                continue
            city_id = city.id

        try:
            await clinic_repo.create_clinic(
                session,
                name=name,
                address=_col(row, 1) or None,
                phone=_col(row, 2) or None,
                working_hours=_col(row, 3) or None,
                district=_col(row, 4) or None,
                metro_station=_col(row, 5) or None,
                city_id=city_id,
            )
        except Exception as e:
            await session.rollback()
            logger.exception(f"Failed to import clinic from row {row_num}")
            result.fail(row_num, "database", f"Ошибка сохранения: {e}")
            continue
        result.success_count += 1

    logger.info(f"Clinics import: {result.success_count} ok, {result.error_count} errors")
    return result


_IMPORTERS = {
    ImportKind.VETERINARIANS: import_veterinarians,
    ImportKind.CLINICS: import_clinics,
    ImportKind.CITIES: import_cities,
}


async def import_file(session: AsyncSession, data: bytes, filename: str) -> tuple[ImportKind, ImportResult]:
    """
    Импортировать файл, тип данных определяется по имени.

    Raises:
        ImportFileError: формат не поддерживается или файл пустой
    """
    if not is_supported_file(filename):
        raise ImportFileError("Поддерживаются только CSV и Excel файлы (.csv, .xlsx)")

    rows = read_rows(data, filename)
    if len(rows) < 2:
        raise ImportFileError("Файл не содержит данных")

    kind = detect_import_kind(filename)
    logger.info(f"Importing {kind.value} from {filename}: {len(rows) - 1} rows")
    return kind, await _IMPORTERS[kind](session, rows)
