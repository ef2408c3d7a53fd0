from typing import Iterable

from aiogram.utils.keyboard import InlineKeyboardBuilder


def names_keyboard(names: Iterable[str], prefix: str, extra: str = ""):
    keyboard = InlineKeyboardBuilder()
    for name in names:
        data = f"{prefix}:{extra}|{name}" if extra else f"{prefix}:{name}"
        keyboard.button(text=name, callback_data=data)
    keyboard.adjust(2)
    return keyboard.as_markup()


def knows_receiver_keyboard(giver: str):
    keyboard = InlineKeyboardBuilder()
    keyboard.button(text="Yes, I know who I have", callback_data=f"knows:{giver}")
    keyboard.button(text="No, draw for me", callback_data=f"draw:{giver}")
    keyboard.adjust(1)
    return keyboard.as_markup()


def confirm_reset_keyboard():
    keyboard = InlineKeyboardBuilder()
    keyboard.button(text="Yes, reset the draw", callback_data="confirm_reset")
    return keyboard.as_markup()
