from __future__ import annotations

import asyncio

import uvloop
from aiogram.types import BotCommand, BotCommandScopeDefault
from loguru import logger

from santa.bot import bot, dp, settings
from santa.core.logging import setup_logging
from santa.core.roster import load_roster
from santa.db import get_session, init_engine
from santa.services.exchange import build_exchange


USERS_COMMANDS: dict[str, str] = {
    "start": "start",
    "assign": "get or enter your recipient",
    "check": "see your recipient",
    "status": "draw progress",
    "verify": "verify the draw (organisers)",
    "reset": "start the draw over (organisers)",
}


async def set_default_commands() -> None:
    await bot.set_my_commands(
        [
            BotCommand(command=command, description=description)
            for command, description in USERS_COMMANDS.items()
        ],
        scope=BotCommandScopeDefault(),
    )


async def on_startup() -> None:
    logger.info("bot starting...")

    await set_default_commands()

    bot_info = await bot.get_me()

    logger.info("Name     - {name}", name=bot_info.full_name)
    logger.info("Username - @{username}", username=bot_info.username)
    logger.info("Cycle    - {cycle}", cycle=settings.cycle_id)

    logger.info("bot started")


async def on_shutdown() -> None:
    logger.info("bot stopping...")

    await dp.storage.close()

    await bot.session.close()

    logger.info("bot stopped")


async def main() -> None:
    setup_logging(settings.log_level, settings.log_path)
    init_engine(settings.database_url, create_schema=settings.database_url.startswith("sqlite"))

    roster = load_roster(settings.roster_path)
    with get_session() as session:
        dp["exchange"] = build_exchange(session, settings, roster)

    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())


def run() -> None:
    if not getattr(asyncio, "debug", False):
        uvloop.install()

    asyncio.run(main())


if __name__ == "__main__":
    run()
