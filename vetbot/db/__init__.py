"""Модуль базы данных."""
from vetbot.db.session import init_db, close_db, get_session_maker
from vetbot.db.models import (
    Base, User, City, Specialization, Clinic, Veterinarian,
    Schedule, Review, UserRequest,
)

__all__ = [
    "init_db",
    "close_db",
    "get_session_maker",
    "Base",
    "User",
    "City",
    "Specialization",
    "Clinic",
    "Veterinarian",
    "Schedule",
    "Review",
    "UserRequest",
]
