from __future__ import annotations

import html

from aiogram import F, Router, types
from aiogram.filters import Command

from santa.bot.keyboards import confirm_reset_keyboard
from santa.bot.utils import GENERIC_ERROR, SLOW_DOWN, check_rate_limit, is_admin, log_handler_exception
from santa.core.config import Settings
from santa.db import get_session
from santa.services import exchange as exchange_flow
from santa.services.exchange import Exchange

router = Router()


@router.message(Command("status"))
async def status_command_handler(message: types.Message, exchange: Exchange) -> None:
    if not check_rate_limit(message.from_user.id, "status"):
        await message.answer(SLOW_DOWN)
        return

    try:
        with get_session() as session:
            status = exchange_flow.progress(session, exchange)

        lines = [f"{len(status.assigned)} of {status.total} assignments completed."]
        if status.assigned:
            lines.append("People with assignments: " + html.escape(", ".join(status.assigned)))
        if status.unassigned:
            lines.append("Still waiting on: " + html.escape(", ".join(status.unassigned)))
        await message.answer("\n".join(lines))
    except Exception as exc:
        log_handler_exception("status", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)


@router.message(Command("verify"))
async def verify_command_handler(message: types.Message, exchange: Exchange, settings: Settings) -> None:
    if not is_admin(message.from_user.id, settings.admin_ids):
        await message.answer("Only the organisers can verify the draw.")
        return

    try:
        with get_session() as session:
            report = exchange_flow.verify(session, exchange)

        if report.valid:
            await message.answer("The draw is complete and valid. 🎄")
            return
        await message.answer(
            "The draw has problems:\n" + "\n".join(f"- {html.escape(issue)}" for issue in report.issues)
        )
    except Exception as exc:
        log_handler_exception("verify", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)


@router.message(Command("reset"))
async def reset_command_handler(message: types.Message, settings: Settings) -> None:
    if not is_admin(message.from_user.id, settings.admin_ids):
        await message.answer("Only the organisers can reset the draw.")
        return

    await message.answer(
        "Are you sure? Everyone draws again. A finished draw becomes last year's exclusions; "
        "an unfinished one is discarded.",
        reply_markup=confirm_reset_keyboard(),
    )


@router.callback_query(F.data == "confirm_reset")
async def confirm_reset_callback_handler(
    query: types.CallbackQuery,
    exchange: Exchange,
    settings: Settings,
) -> None:
    if not is_admin(query.from_user.id, settings.admin_ids):
        await query.answer("Only the organisers can reset the draw.", show_alert=True)
        return

    try:
        with get_session() as session:
            archived = exchange_flow.reset_cycle(session, exchange)
        if archived:
            text = (
                f"The draw has been reset. {archived} assignments were archived "
                "and are now excluded for the new draw."
            )
        else:
            text = "The draw has been reset. Last year's exclusions still apply."
        await query.message.edit_text(text)
        await query.answer()
    except Exception as exc:
        log_handler_exception("reset", query.from_user.id, query.message.chat.id, exc)
        await query.answer(GENERIC_ERROR, show_alert=True)
