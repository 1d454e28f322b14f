from __future__ import annotations

from typing import Any

from aiogram import Dispatcher
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.storage.base import BaseStorage
from aiogram.types import ErrorEvent
from loguru import logger

from blessing_bot.bot.handlers import setup_handlers

ERROR_TEXT = "抱歉，處理您的訊息時發生錯誤，請稍後再試一次。"


async def error_handler(event: ErrorEvent) -> bool:
    """Last-resort handler for exceptions escaping any bot handler."""
    exception = event.exception
    update = event.update
    if isinstance(exception, TelegramBadRequest) and "message is not modified" in str(exception):
        logger.debug("TelegramBadRequest ignored: {}", exception)
        return True

    logger.opt(exception=exception).error("Unhandled exception in bot handler: {}", exception)

    try:
        if update.message:
            await update.message.answer(ERROR_TEXT)
        elif update.callback_query:
            await update.callback_query.answer(ERROR_TEXT, show_alert=True)
    except Exception as send_error:  # noqa: BLE001
        logger.error("Failed to send error notification to user: {}", send_error)
    return True


def build_dispatcher(storage: BaseStorage | None = None, **workflow_data: Any) -> Dispatcher:
    """Dispatcher with the handlers registered.

    ``workflow_data`` (settings, catalog, pipeline, media_storage) is injected
    into handlers and filters by parameter name.
    """
    dp = Dispatcher(storage=storage, **workflow_data)
    dp.errors.register(error_handler)
    setup_handlers(dp)
    return dp
