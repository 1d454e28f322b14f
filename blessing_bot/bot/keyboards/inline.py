from __future__ import annotations

from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from blessing_bot.core.catalog import Style

STYLE_CALLBACK_PREFIX = "style"


def build_style_callback(theme_id: str, style_id: str) -> str:
    return f"{STYLE_CALLBACK_PREFIX}:{theme_id}:{style_id}"


def parse_style_callback(data: str | None) -> tuple[str, str] | None:
    if not data:
        return None
    parts = data.split(":")
    if len(parts) != 3 or parts[0] != STYLE_CALLBACK_PREFIX:
        return None
    return parts[1], parts[2]


def build_style_keyboard(theme_id: str, styles: Sequence[Style]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=style.name, callback_data=build_style_callback(theme_id, style.id))]
            for style in styles
        ]
    )
