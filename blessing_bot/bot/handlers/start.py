from __future__ import annotations

from aiogram import Dispatcher, types
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext

from blessing_bot.bot.keyboards.main import build_theme_keyboard
from blessing_bot.core.catalog import Catalog
from blessing_bot.core.config import Settings


def format_keywords(phrases: list[str]) -> str:
    return "、".join(f"「{phrase}」" for phrase in phrases)


def build_welcome_text(settings: Settings) -> str:
    return settings.welcome_message.format(keywords=format_keywords(settings.trigger_phrases))


async def cmd_start(message: types.Message, state: FSMContext, settings: Settings, catalog: Catalog) -> None:
    await state.clear()
    await message.answer(
        build_welcome_text(settings),
        reply_markup=build_theme_keyboard(catalog.themes),
    )


def register_start_handlers(dp: Dispatcher) -> None:
    dp.message.register(cmd_start, CommandStart())
    dp.message.register(cmd_start, Command("help"))
