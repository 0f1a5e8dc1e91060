"""Обработчики без состояния: поиск врачей и админка."""
from vetbot.bot.handlers.admin_handlers import AdminHandlers
from vetbot.bot.handlers.vet_handlers import VetHandlers

__all__ = ["AdminHandlers", "VetHandlers"]
