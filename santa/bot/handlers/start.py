from aiogram import Router, types
from aiogram.filters import Command, CommandStart

from santa.bot.utils import SLOW_DOWN, check_rate_limit

router = Router()

HELP_TEXT = (
    "Hello! I'm the family Secret Santa bot.\n\n"
    "/assign - pick your name, then either tell me who you already have "
    "or let me draw someone for you.\n"
    "/check - see who you are giving a gift to.\n"
    "/status - how many people have their recipient.\n\n"
    "Nobody can draw themselves or the person they had last year."
)


@router.message(CommandStart())
async def command_start_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "start"):
        await message.answer(SLOW_DOWN)
        return
    await message.answer(HELP_TEXT)


@router.message(Command("help"))
async def help_command_handler(message: types.Message) -> None:
    await message.answer(HELP_TEXT)
