from __future__ import annotations

from typing import Sequence

from aiogram.types import KeyboardButton, ReplyKeyboardMarkup, ReplyKeyboardRemove

from blessing_bot.core.catalog import Theme
from blessing_bot.core.prompts import AI_GENERATE_TEXT, USE_DEFAULT_TEXT

THEMES_PER_ROW = 2


def build_theme_keyboard(themes: Sequence[Theme]) -> ReplyKeyboardMarkup:
    buttons = [KeyboardButton(text=theme.name) for theme in themes]
    rows = [buttons[i:i + THEMES_PER_ROW] for i in range(0, len(buttons), THEMES_PER_ROW)]
    return ReplyKeyboardMarkup(
        keyboard=rows,
        resize_keyboard=True,
        one_time_keyboard=True,
        input_field_placeholder="請選擇今天想傳的祝福主題 🌸",
    )


def build_blessing_keyboard() -> ReplyKeyboardMarkup:
    """Quick replies offered when asking for the blessing text."""
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=USE_DEFAULT_TEXT)],
            [KeyboardButton(text=AI_GENERATE_TEXT)],
        ],
        resize_keyboard=True,
        one_time_keyboard=True,
        input_field_placeholder="輸入祝福語，或選擇下方選項",
    )


def remove_keyboard() -> ReplyKeyboardRemove:
    return ReplyKeyboardRemove()
