import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    bot_token: str
    database_url: str
    log_level: str
    log_path: str
    roster_path: Optional[str]
    cycle_id: str
    cache_path: Optional[str]
    max_attempts: int = 50
    draw_seed: Optional[int] = None
    admin_ids: FrozenSet[int] = field(default_factory=frozenset)


def _parse_int(name: str, raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from exc


def _parse_admin_ids(raw: Optional[str]) -> FrozenSet[int]:
    if not raw:
        return frozenset()
    return frozenset(
        _parse_int("ADMIN_IDS", chunk) for chunk in raw.split(",") if chunk.strip()
    )


def load_settings() -> Settings:
    bot_token = os.getenv("BOT_TOKEN")
    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_path = os.getenv("LOG_PATH", "logs/santa.log")

    if not bot_token:
        raise ValueError("BOT_TOKEN is required. Set it in the environment or .env file.")
    if not database_url:
        raise ValueError("DATABASE_URL is required. Set it in the environment or .env file.")

    max_attempts = _parse_int("MAX_ATTEMPTS", os.getenv("MAX_ATTEMPTS")) or 50
    if max_attempts < 1:
        raise ValueError("MAX_ATTEMPTS must be at least 1.")

    return Settings(
        bot_token=bot_token,
        database_url=database_url,
        log_level=log_level,
        log_path=log_path,
        roster_path=os.getenv("ROSTER_PATH") or None,
        cycle_id=os.getenv("CYCLE_ID", "family-exchange"),
        cache_path=os.getenv("CACHE_PATH", ".santa_cache.json") or None,
        max_attempts=max_attempts,
        draw_seed=_parse_int("DRAW_SEED", os.getenv("DRAW_SEED")),
        admin_ids=_parse_admin_ids(os.getenv("ADMIN_IDS")),
    )
