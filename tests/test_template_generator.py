"""
Тесты Excel шаблона импорта.
"""
import io

import pytest
from openpyxl import load_workbook

from vetbot.services.template_generator import VET_HEADERS, build_vet_template, generate_import_template


def _load(data: bytes):
    return load_workbook(io.BytesIO(data))


def test_template_sheets_and_headers():
    wb = _load(build_vet_template(["Москва"], ["Терапевт"], ["ВетКлиника Центр"]))

    assert wb.sheetnames == ["Врачи", "Справочники", "Инструкция"]
    vets = wb["Врачи"]
    assert [c.value for c in vets[1]] == VET_HEADERS
    assert vets.max_row == 3
    assert vets["A1"].font.bold


def test_template_reference_columns():
    wb = _load(build_vet_template(["Москва", "Казань"], ["Терапевт"], []))
    refs = wb["Справочники"]

    assert [refs.cell(row=1, column=i).value for i in (1, 2, 3)] == [
        "Доступные города:",
        "Доступные специализации:",
        "Доступные клиники:",
    ]
    assert refs["A2"].value == "Москва"
    assert refs["A3"].value == "Казань"
    assert refs["B2"].value == "Терапевт"
    assert refs["C2"].value is None


@pytest.mark.asyncio
async def test_generate_from_database(db_session, catalog):
    wb = _load(await generate_import_template(db_session))
    refs = wb["Справочники"]

    cities = [refs.cell(row=r, column=1).value for r in range(2, refs.max_row + 1)]
    clinics = [refs.cell(row=r, column=3).value for r in range(2, refs.max_row + 1)]
    assert [c for c in cities if c] == ["Казань", "Москва"]
    assert [c for c in clinics if c] == ["ВетКлиника Север", "ВетКлиника Центр"]
