from __future__ import annotations

import asyncio
from pathlib import Path

from aiogram import Dispatcher, F, types
from aiogram.enums import ChatType
from aiogram.fsm.context import FSMContext
from aiogram.types import FSInputFile
from loguru import logger

from blessing_bot.bot.handlers.start import format_keywords
from blessing_bot.bot.keyboards.inline import (
    STYLE_CALLBACK_PREFIX,
    build_style_keyboard,
    parse_style_callback,
)
from blessing_bot.bot.keyboards.main import build_blessing_keyboard, build_theme_keyboard, remove_keyboard
from blessing_bot.bot.session import (
    STAGE_WAIT_STYLE,
    STAGE_WAIT_TEXT,
    STYLE_ID_KEY,
    THEME_ID_KEY,
    get_stage,
    is_expired,
    start_session,
)
from blessing_bot.core.catalog import Catalog, Theme
from blessing_bot.core.config import Settings
from blessing_bot.core.pipeline import GreetingPipeline
from blessing_bot.core.prompts import resolve_user_text
from blessing_bot.core.storage import MediaStorage

CHOOSE_THEME_TEXT = "請選擇今天想傳的祝福主題 👇"
CHOOSE_STYLE_TEXT = "您選擇了「{theme}」，接下來請選擇圖片風格："
ASK_BLESSING_TEXT = (
    "請輸入想放在圖片上的祝福語（{max_length} 字以內），\n"
    "或選擇使用主題預設文字、請 AI 幫您生成。"
)
NOT_FOUND_TEXT = "抱歉，找不到對應的主題或風格。"
TOO_LONG_TEXT = "祝福語最多 {max_length} 個字，目前是 {length} 個字，請縮短後再傳一次。"
EXPIRED_TEXT = "操作已逾時，請重新選擇祝福主題。"
PLEASE_WAIT_TEXT = "長輩圖製作中，請稍候片刻 ⏳"
HINT_TEXT = "想製作長輩圖嗎？請輸入 {keywords} 開始。"


def match_trigger(text: str | None, phrases: list[str]) -> bool:
    """True when ``text`` contains any trigger phrase, ignoring case."""
    if not text:
        return False
    lowered = text.casefold()
    return any(phrase.casefold() in lowered for phrase in phrases if phrase)


async def show_themes(message: types.Message, catalog: Catalog, text: str = CHOOSE_THEME_TEXT) -> None:
    await message.answer(text, reply_markup=build_theme_keyboard(catalog.themes))


async def delete_after(media_storage: MediaStorage, path: Path, delay: float) -> None:
    if delay > 0:
        await asyncio.sleep(delay)
    try:
        media_storage.delete(path)
    except OSError as exc:
        logger.warning("Failed to delete greeting image {}: {}", path, exc)


async def handle_trigger(message: types.Message, state: FSMContext, catalog: Catalog) -> None:
    logger.info(
        "Trigger phrase from user {} in chat {}",
        message.from_user.id if message.from_user else "unknown",
        message.chat.id,
    )
    await state.clear()
    await show_themes(message, catalog)


async def handle_theme_choice(message: types.Message, state: FSMContext, catalog: Catalog, theme: Theme) -> None:
    await start_session(state, STAGE_WAIT_STYLE, **{THEME_ID_KEY: theme.id})
    logger.debug("Theme {} selected in chat {}", theme.id, message.chat.id)
    await message.answer(
        CHOOSE_STYLE_TEXT.format(theme=theme.name),
        reply_markup=build_style_keyboard(theme.id, catalog.styles),
    )


async def handle_style_choice(callback: types.CallbackQuery, state: FSMContext, catalog: Catalog, settings: Settings) -> None:
    await callback.answer()
    message = callback.message
    if not isinstance(message, types.Message):
        logger.warning("Style callback without an accessible message: {}", callback.data)
        return

    selection = parse_style_callback(callback.data)
    theme = catalog.find_theme(selection[0]) if selection else None
    style = catalog.find_style(selection[1]) if selection else None
    if theme is None or style is None:
        logger.warning("Unknown theme/style in callback data '{}'", callback.data)
        await message.answer(NOT_FOUND_TEXT)
        return

    await start_session(state, STAGE_WAIT_TEXT, **{THEME_ID_KEY: theme.id, STYLE_ID_KEY: style.id})
    logger.debug("Style {} selected for theme {} in chat {}", style.id, theme.id, message.chat.id)
    await message.answer(
        ASK_BLESSING_TEXT.format(max_length=settings.max_text_length),
        reply_markup=build_blessing_keyboard(),
    )


async def handle_blessing_text(
    message: types.Message,
    state: FSMContext,
    settings: Settings,
    catalog: Catalog,
    pipeline: GreetingPipeline,
    media_storage: MediaStorage,
) -> None:
    data = await state.get_data()
    if is_expired(data, settings.session_ttl_seconds):
        logger.info("Session expired in chat {}", message.chat.id)
        await state.clear()
        await show_themes(message, catalog, EXPIRED_TEXT)
        return

    theme = catalog.find_theme(data.get(THEME_ID_KEY))
    if theme is None:
        await state.clear()
        await message.answer(NOT_FOUND_TEXT)
        return
    # text typed before a style was picked uses the first style
    style = catalog.find_style(data.get(STYLE_ID_KEY)) or catalog.default_style

    text = resolve_user_text(theme, message.text or "")
    if len(text) > settings.max_text_length:
        await message.answer(TOO_LONG_TEXT.format(max_length=settings.max_text_length, length=len(text)))
        return

    await message.answer(PLEASE_WAIT_TEXT, reply_markup=remove_keyboard())
    path: Path | None = None
    try:
        result = await asyncio.to_thread(pipeline.generate, theme, style, text)
        path = media_storage.save_greeting(result.image)
        await message.answer_photo(FSInputFile(path), caption=result.text)
    except Exception as exc:  # noqa: BLE001
        logger.opt(exception=exc).error("Greeting generation failed for chat {}: {}", message.chat.id, exc)
        await message.answer(settings.generation_error_message)
    else:
        logger.info("Greeting delivered to chat {} (theme={}, style={})", message.chat.id, theme.id, style.id)
    finally:
        await state.clear()
        if path is not None:
            await delete_after(media_storage, path, settings.image_deletion_delay_seconds)


async def handle_unrelated_text(message: types.Message, settings: Settings) -> None:
    if message.chat.type != ChatType.PRIVATE:
        return
    await message.answer(HINT_TEXT.format(keywords=format_keywords(settings.trigger_phrases)))


def register_greeting_handlers(dp: Dispatcher) -> None:
    async def trigger_filter(message: types.Message, settings: Settings) -> bool:
        return match_trigger(message.text, settings.trigger_phrases)

    async def blessing_stage_filter(message: types.Message, state: FSMContext) -> bool:
        return await get_stage(state) in (STAGE_WAIT_STYLE, STAGE_WAIT_TEXT)

    async def theme_name_filter(message: types.Message, catalog: Catalog) -> dict[str, Theme] | bool:
        theme = catalog.find_theme_by_name(message.text)
        return {"theme": theme} if theme else False

    # a trigger phrase restarts the conversation from any stage
    dp.message.register(handle_trigger, F.text, trigger_filter)
    dp.message.register(handle_blessing_text, F.text, blessing_stage_filter)
    dp.message.register(handle_theme_choice, F.text, theme_name_filter)
    dp.callback_query.register(handle_style_choice, F.data.startswith(f"{STYLE_CALLBACK_PREFIX}:"))
    dp.message.register(handle_unrelated_text, F.text)
