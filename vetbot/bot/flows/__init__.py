"""Сценарии диалогов с состоянием."""
from vetbot.bot.flows.moderation_flow import ModerationFlow
from vetbot.bot.flows.review_flow import ReviewFlow

__all__ = ["ModerationFlow", "ReviewFlow"]
