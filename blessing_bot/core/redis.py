from __future__ import annotations

from aiogram.fsm.storage.base import BaseStorage
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisStorage
from loguru import logger

from blessing_bot.core.config import Settings


def build_session_storage(settings: Settings) -> BaseStorage:
    """Session store for the conversation; entries expire after session_ttl_seconds."""
    if not settings.redis_url:
        logger.warning("REDIS_URL not set, keeping sessions in memory")
        return MemoryStorage()
    logger.info("Using Redis session storage (ttl {}s)", settings.session_ttl_seconds)
    return RedisStorage.from_url(
        settings.redis_url,
        state_ttl=settings.session_ttl_seconds,
        data_ttl=settings.session_ttl_seconds,
    )
