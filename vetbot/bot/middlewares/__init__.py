"""Middleware для бота."""
from vetbot.bot.middlewares.error_handler import ErrorHandlerMiddleware
from vetbot.bot.middlewares.logging_middleware import LoggingMiddleware

__all__ = ["ErrorHandlerMiddleware", "LoggingMiddleware"]
