"""
Разбор callback_data inline-кнопок.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CallbackAction(str, Enum):
    ADD_REVIEW = "add_review_"
    REVIEW_RATE = "review_rate_"
    REVIEW_CANCEL = "review_cancel"
    SHOW_REVIEWS = "show_reviews_"
    VET_DETAILS = "vet_details_"
    SEARCH_SPEC = "search_spec_"
    SEARCH_DAY = "search_day_"
    SEARCH_CLINIC = "search_clinic_"
    SEARCH_CITY = "search_city_"
    MAIN_MENU = "main_menu"

    # Админка: справочники
    ADMIN_VETS = "admin_vets_"
    ADMIN_VET = "admin_vet_"
    ADMIN_VET_TOGGLE = "admin_vet_toggle_"
    ADMIN_VET_DELETE = "admin_vet_delete_"
    ADMIN_VET_DELETE_CONFIRM = "admin_vet_delete_ok_"
    ADMIN_CLINICS = "admin_clinics_"
    ADMIN_CLINIC = "admin_clinic_"
    ADMIN_CLINIC_TOGGLE = "admin_clinic_toggle_"
    ADMIN_CLINIC_DELETE = "admin_clinic_delete_"
    ADMIN_CLINIC_DELETE_CONFIRM = "admin_clinic_delete_ok_"
    ADMIN_CITIES = "admin_cities_"
    ADMIN_CITY = "admin_city_"
    ADMIN_CITY_DELETE = "admin_city_delete_"
    ADMIN_CITY_DELETE_CONFIRM = "admin_city_delete_ok_"


# Действия без аргумента сравниваются целиком
_EXACT = (CallbackAction.REVIEW_CANCEL, CallbackAction.MAIN_MENU)
# Длинные префиксы первыми: admin_vet_delete_ok_ раньше admin_vet_delete_ и admin_vet_
_PREFIXED = tuple(
    sorted((a for a in CallbackAction if a not in _EXACT), key=lambda a: len(a.value), reverse=True)
)


@dataclass(frozen=True)
class DecodedCallback:
    action: CallbackAction
    # Целочисленный аргумент; None если не распознан
    arg: Optional[int] = None


def decode_callback(data: str) -> Optional[DecodedCallback]:
    """
    Разобрать callback_data.

    Returns:
        DecodedCallback или None для неизвестных данных.
        Для действий с аргументом нечисловой суффикс даёт arg=None.
    """
    for action in _EXACT:
        if data == action.value:
            return DecodedCallback(action)

    for action in _PREFIXED:
        if data.startswith(action.value):
            suffix = data[len(action.value):]
            try:
                return DecodedCallback(action, int(suffix))
            except ValueError:
                return DecodedCallback(action, None)

    return None


def encode_callback(action: CallbackAction, arg: Optional[int] = None) -> str:
    if arg is None:
        return action.value
    return f"{action.value}{arg}"
