"""Сервисы: импорт справочников и шаблоны Excel."""
