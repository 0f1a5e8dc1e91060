"""
Разбиение длинных списков врачей и клиник на несколько сообщений.

Telegram принимает не больше 4096 символов. Режем по пустым строкам между
карточками, затем по переводам строк; незакрытые HTML теги переносятся
в следующую часть.
"""
import logging
import re

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000

_TAG_RE = re.compile(r"<(/?)(b|i|u|s|code|pre)>")


def _unclosed_tags(text: str) -> list[str]:
    stack = []
    for match in _TAG_RE.finditer(text):
        closing, tag = match.group(1) == "/", match.group(2)
        if closing:
            if stack and stack[-1] == tag:
                stack.pop()
        else:
            stack.append(tag)
    return stack


def _split_point(text: str, max_len: int) -> int:
    window = text[:max_len]
    for separator, min_share in (("\n\n", 0.3), ("\n", 0.4), (" ", 0.5)):
        pos = window.rfind(separator)
        if pos > max_len * min_share:
            return pos + len(separator)
    return max_len


def _cut(text: str, prefix: str, available: int) -> tuple[int, str, str]:
    cut = _split_point(text, available)
    part = prefix + text[:cut].rstrip()
    closing = "".join(f"</{tag}>" for tag in reversed(_unclosed_tags(part)))
    return cut, part, closing


def split_message(text: str, max_len: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """
    Разбить текст на части не длиннее max_len.

    Returns:
        Список частей; пустой для пустого текста
    """
    text = text.strip()
    if not text:
        return []
    if len(text) <= max_len:
        return [text]

    parts = []
    carry: list[str] = []
    remaining = text

    while remaining:
        prefix = "".join(f"<{tag}>" for tag in carry)
        available = max_len - len(prefix)
        if len(remaining) <= available:
            parts.append(prefix + remaining)
            break

        cut, part, closing = _cut(remaining, prefix, available)
        if len(part) + len(closing) > max_len:
            # Оставляем место под закрывающие теги
            cut, part, closing = _cut(remaining, prefix, available - len(closing))

        carry = _unclosed_tags(part)
        remaining = remaining[cut:].lstrip()
        parts.append(part + closing)

    logger.debug(f"Message split into {len(parts)} parts")
    return parts
