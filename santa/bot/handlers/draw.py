from __future__ import annotations

import html

from aiogram import F, Router, types
from aiogram.filters import Command

from santa.bot.keyboards import knows_receiver_keyboard, names_keyboard
from santa.bot.utils import (
    GENERIC_ERROR,
    SLOW_DOWN,
    check_rate_limit,
    log_handler_exception,
    parse_callback,
    spoiler,
)
from santa.db import get_session
from santa.services import exchange as exchange_flow
from santa.services.exchange import Exchange

router = Router()


@router.message(Command("assign"))
async def assign_command_handler(message: types.Message, exchange: Exchange) -> None:
    if not check_rate_limit(message.from_user.id, "assign"):
        await message.answer(SLOW_DOWN)
        return

    try:
        with get_session() as session:
            status = exchange_flow.progress(session, exchange)

        if not status.unassigned:
            await message.answer("Everyone already has a Secret Santa assignment. Use /check to see yours.")
            return

        await message.answer(
            f"{len(status.assigned)} of {status.total} assignments completed.\n\nWho are you?",
            reply_markup=names_keyboard(status.unassigned, "who"),
        )
    except Exception as exc:
        log_handler_exception("assign", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)


@router.callback_query(F.data.startswith("who:"))
async def who_callback_handler(query: types.CallbackQuery) -> None:
    parts = parse_callback(query.data, "who")
    if len(parts) != 1:
        await query.answer()
        return
    giver = parts[0]
    await query.message.edit_text(
        f"Hi {html.escape(giver)}! Do you already know who your Secret Santa recipient is?",
        reply_markup=knows_receiver_keyboard(giver),
    )
    await query.answer()


@router.callback_query(F.data.startswith("knows:"))
async def knows_callback_handler(query: types.CallbackQuery, exchange: Exchange) -> None:
    parts = parse_callback(query.data, "knows")
    if len(parts) != 1:
        await query.answer()
        return
    giver = parts[0]

    try:
        with get_session() as session:
            state = exchange_flow.load_state(session, exchange).state

        if giver in state.assignments:
            await query.answer(f"{giver} already has a secret santa assignment!", show_alert=True)
            return

        candidates = exchange.rule.allowed(giver, state.remaining_receivers)
        if not candidates:
            await query.answer("Nobody left in the pool can be your recipient.", show_alert=True)
            return

        await query.message.edit_text(
            "Who is your recipient?",
            reply_markup=names_keyboard(candidates, "give", extra=giver),
        )
        await query.answer()
    except Exception as exc:
        log_handler_exception("knows", query.from_user.id, query.message.chat.id, exc)
        await query.answer(GENERIC_ERROR, show_alert=True)


@router.callback_query(F.data.startswith("give:"))
async def give_callback_handler(query: types.CallbackQuery, exchange: Exchange) -> None:
    if not check_rate_limit(query.from_user.id, "give"):
        await query.answer(SLOW_DOWN, show_alert=True)
        return

    parts = parse_callback(query.data, "give")
    if len(parts) != 2:
        await query.answer()
        return
    giver, receiver = parts

    try:
        with get_session() as session:
            outcome = exchange_flow.declare_assignment(session, exchange, giver, receiver)

        if not outcome.ok:
            await query.answer(
                exchange_flow.format_failure(outcome, giver, receiver, exchange.rule),
                show_alert=True,
            )
            return

        await query.message.edit_text(
            f"Saved! {html.escape(giver)} is giving a gift to {html.escape(receiver)}."
        )
        await query.answer()
    except Exception as exc:
        log_handler_exception("give", query.from_user.id, query.message.chat.id, exc)
        await query.answer(GENERIC_ERROR, show_alert=True)


@router.callback_query(F.data.startswith("draw:"))
async def draw_callback_handler(query: types.CallbackQuery, exchange: Exchange) -> None:
    if not check_rate_limit(query.from_user.id, "draw"):
        await query.answer(SLOW_DOWN, show_alert=True)
        return

    parts = parse_callback(query.data, "draw")
    if len(parts) != 1:
        await query.answer()
        return
    giver = parts[0]

    try:
        with get_session() as session:
            outcome = exchange_flow.request_assignment(session, exchange, giver)

        if not outcome.ok:
            await query.message.edit_text(exchange_flow.format_failure(outcome, giver))
            await query.answer()
            return

        await query.message.edit_text(
            "Make sure nobody is looking at your screen!\n\n"
            f"{html.escape(giver)}, you are giving a gift to {spoiler(outcome.receiver)}.\n\n"
            "You can see it again any time with /check."
        )
        await query.answer()
    except Exception as exc:
        log_handler_exception("draw", query.from_user.id, query.message.chat.id, exc)
        await query.answer(GENERIC_ERROR, show_alert=True)
