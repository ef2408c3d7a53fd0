from __future__ import annotations

import html

from aiogram import F, Router, types
from aiogram.filters import Command

from santa.bot.keyboards import names_keyboard
from santa.bot.utils import GENERIC_ERROR, SLOW_DOWN, check_rate_limit, log_handler_exception, parse_callback, spoiler
from santa.db import get_session
from santa.services import exchange as exchange_flow
from santa.services.exchange import Exchange

router = Router()


@router.message(Command("check"))
async def check_command_handler(message: types.Message, exchange: Exchange) -> None:
    if not check_rate_limit(message.from_user.id, "check"):
        await message.answer(SLOW_DOWN)
        return

    await message.answer(
        "Whose assignment do you want to see?",
        reply_markup=names_keyboard(exchange.participants, "check"),
    )


@router.callback_query(F.data.startswith("check:"))
async def check_callback_handler(query: types.CallbackQuery, exchange: Exchange) -> None:
    if not check_rate_limit(query.from_user.id, "check_name"):
        await query.answer(SLOW_DOWN, show_alert=True)
        return

    parts = parse_callback(query.data, "check")
    if len(parts) != 1:
        await query.answer()
        return
    person = parts[0]

    try:
        with get_session() as session:
            receiver = exchange_flow.lookup(session, exchange, person)

        if receiver is None:
            await query.message.edit_text(
                f"No assignment found for {html.escape(person)}. "
                "Use /assign to get one first."
            )
        else:
            await query.message.edit_text(
                "Make sure nobody is looking at your screen!\n\n"
                f"{html.escape(person)}, you are giving a gift to {spoiler(receiver)}."
            )
        await query.answer()
    except Exception as exc:
        log_handler_exception("check", query.from_user.id, query.message.chat.id, exc)
        await query.answer(GENERIC_ERROR, show_alert=True)
