"""Конфигурация и общие настройки."""
