"""
Excel шаблон для импорта врачей.

Листы: «Врачи» (заголовки и примеры), «Справочники» (города, специализации,
клиники из БД), «Инструкция».
"""
import io
import logging
from typing import Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy.ext.asyncio import AsyncSession

from vetbot.db.repositories import city_repo, clinic_repo, specialization_repo

logger = logging.getLogger(__name__)

TEMPLATE_FILENAME = "vet_import_template.xlsx"

VET_HEADERS = [
    "Имя",
    "Фамилия",
    "Телефон",
    "Email",
    "ОпытРаботы",
    "Описание",
    "Город",
    "Специализации",
    "КлиникиИРасписание",
]

EXAMPLES = [
    [
        "Иван", "Петров", "+79161234567", "ivan.petrov@vetclinic.ru", "10",
        "Опытный терапевт, специалист по мелким животным", "Москва", "Терапевт, Хирург",
        "ВетКлиника Центр:Пн:9-18,Ср:9-18,Пт:9-18;ВетКлиника Север:Вт:10-19,Чт:10-19",
    ],
    [
        "Мария", "Сидорова", "+79167654321", "maria.sidorova@vetclinic.ru", "8",
        "Дерматолог, аллерголог", "Москва", "Дерматолог",
        "ВетКлиника Центр:Пн:12-20,Ср:12-20",
    ],
]

INSTRUCTIONS = [
    "ИНСТРУКЦИЯ ПО ЗАПОЛНЕНИЮ",
    "",
    "1. Заполняйте данные только на листе 'Врачи', строки-примеры удалите",
    "2. Используйте значения из листа 'Справочники'",
    "3. Обязательные поля: Имя, Фамилия",
    "4. Город должен уже существовать в базе",
    "5. Опыт работы указывается в годах (только цифры)",
    "",
    "ФОРМАТЫ ДАННЫХ:",
    "- Специализации перечисляются через запятую: 'Терапевт, Хирург'",
    "- Новые специализации создаются автоматически",
    "- Клиники и расписание: 'НазваниеКлиники:День:Часы,День:Часы;ДругаяКлиника:День:Часы'",
    "- Пример: 'ВетКлиника Центр:Пн:9-18,Ср:9:30-18;ВетКлиника Север:Вт:10-19'",
    "",
    "ОБОЗНАЧЕНИЯ ДНЕЙ:",
    "- Пн, Вт, Ср, Чт, Пт, Сб, Вс",
    "- или: Понедельник, Вторник, Среда, Четверг, Пятница, Суббота, Воскресенье",
    "",
    "После заполнения отправьте файл боту в админке.",
]

HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")


def _style_header(ws, columns: int) -> None:
    for col_idx in range(1, columns + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center", vertical="center")


def build_vet_template(
    cities: Sequence[str],
    specializations: Sequence[str],
    clinics: Sequence[str],
) -> bytes:
    """Собрать xlsx шаблон и вернуть его содержимое."""
    wb = Workbook()

    ws = wb.active
    ws.title = "Врачи"
    ws.append(VET_HEADERS)
    for row in EXAMPLES:
        ws.append(row)
    _style_header(ws, len(VET_HEADERS))
    for col_idx in range(1, len(VET_HEADERS) + 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = 20
    ws.column_dimensions[get_column_letter(len(VET_HEADERS))].width = 60
    ws.freeze_panes = "A2"

    refs = wb.create_sheet("Справочники")
    columns = [
        ("Доступные города:", cities),
        ("Доступные специализации:", specializations),
        ("Доступные клиники:", clinics),
    ]
    for col_idx, (title, values) in enumerate(columns, start=1):
        refs.cell(row=1, column=col_idx, value=title)
        for row_idx, value in enumerate(values, start=2):
            refs.cell(row=row_idx, column=col_idx, value=value)
        refs.column_dimensions[get_column_letter(col_idx)].width = 30
    _style_header(refs, len(columns))

    help_ws = wb.create_sheet("Инструкция")
    for line in INSTRUCTIONS:
        help_ws.append([line])
    help_ws["A1"].font = Font(bold=True)
    help_ws.column_dimensions["A"].width = 90

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


async def generate_import_template(session: AsyncSession) -> bytes:
    """Шаблон со справочниками из БД."""
    cities = [c.name for c in await city_repo.list_cities(session)]
    specs = [s.name for s in await specialization_repo.list_specializations(session)]
    clinics = [c.name for c in await clinic_repo.list_clinics(session)]

    logger.info(
        f"Generating import template: {len(cities)} cities, {len(specs)} specializations, "
        f"{len(clinics)} clinics"
    )
    return build_vet_template(cities, specs, clinics)
