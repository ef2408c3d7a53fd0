from __future__ import annotations

import html
from typing import Iterable, Optional, Tuple

from loguru import logger

from santa.services.rate_limit import rate_limiter

SLOW_DOWN = "You're doing that too often. Please slow down."
GENERIC_ERROR = "Something went wrong. Please try again later."


def is_admin(user_id: int, admin_ids: Iterable[int]) -> bool:
    return user_id in set(admin_ids)


def check_rate_limit(user_id: int, action: str) -> bool:
    key = f"{user_id}:{action}"
    result = rate_limiter.allow(key)
    return result.allowed


def spoiler(name: str) -> str:
    return f"<tg-spoiler>{html.escape(name)}</tg-spoiler>"


def parse_callback(data: Optional[str], prefix: str) -> Tuple[str, ...]:
    """Split ``"<prefix>:a|b"`` callback data into ``("a", "b")``."""
    if not data or not data.startswith(prefix + ":"):
        return ()
    return tuple(data[len(prefix) + 1:].split("|"))


def log_handler_exception(action: str, user_id: Optional[int], chat_id: Optional[int], error: Exception) -> None:
    logger.bind(action=action, user_id=user_id, chat_id=chat_id).exception(
        "Handler error: {error}", error=str(error)
    )
