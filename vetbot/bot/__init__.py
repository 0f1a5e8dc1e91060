"""Telegram бот: маршрутизация, сценарии и обработчики."""
