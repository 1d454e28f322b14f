from __future__ import annotations

import asyncio

from aiogram import Bot
from loguru import logger

from blessing_bot.bot import build_dispatcher
from blessing_bot.core import get_settings, setup_logging
from blessing_bot.core.blessing import BlessingConfig, BlessingTextGenerator
from blessing_bot.core.catalog import Catalog
from blessing_bot.core.config import Settings
from blessing_bot.core.pipeline import GreetingPipeline
from blessing_bot.core.redis import build_session_storage
from blessing_bot.core.storage import MediaStorage
from blessing_bot.core.text_render import RenderOptions
from blessing_bot.providers.fal import FalClient, FalTextGenerator
from blessing_bot.providers.pollinations import PollinationsClient
from blessing_bot.providers.twemoji import TwemojiClient
from blessing_bot.providers.vision import GoogleVisionClient


def build_pipeline(
    settings: Settings,
    fal_client: FalClient,
    pollinations: PollinationsClient,
    vision: GoogleVisionClient,
    twemoji: TwemojiClient,
) -> GreetingPipeline:
    text_generator = FalTextGenerator(
        fal_client,
        model=settings.fal_llm_model,
        endpoint=settings.fal_llm_endpoint,
    )
    blessing_generator = BlessingTextGenerator(text_generator, BlessingConfig.from_settings(settings))
    if not vision.enabled:
        logger.warning("GOOGLE_VISION_API_KEY not set, text placement will ignore image content")
    return GreetingPipeline(
        blessing_generator=blessing_generator,
        fetch_image=pollinations.fetch_generated_image,
        fetch_emoji=twemoji.fetch_emoji_bitmap,
        detect_objects=vision.detect_objects if vision.enabled else None,
        render_options=RenderOptions.from_settings(settings),
        image_size=(settings.image_width, settings.image_height),
    )


async def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    if not settings.tg_bot_token:
        raise RuntimeError("TG_BOT_TOKEN is not configured")
    if not settings.fal_api_key:
        logger.warning("FAL_API_KEY not set, blessings will fall back to the default phrase")

    catalog = Catalog.from_files(settings.themes_path, settings.styles_path)
    fal_client = FalClient(settings.fal_api_key, base_url=settings.fal_run_base_url)
    pollinations = PollinationsClient(
        base_url=settings.pollinations_base_url,
        model=settings.pollinations_model,
        max_attempts=settings.image_fetch_max_attempts,
        retry_delay=settings.image_fetch_retry_delay,
    )
    vision = GoogleVisionClient(settings.google_vision_api_key, url=settings.google_vision_url)
    twemoji = TwemojiClient(base_url=settings.twemoji_base_url, local_dir=settings.twemoji_local_dir)
    pipeline = build_pipeline(settings, fal_client, pollinations, vision, twemoji)

    bot = Bot(token=settings.tg_bot_token)
    dp = build_dispatcher(
        build_session_storage(settings),
        settings=settings,
        catalog=catalog,
        pipeline=pipeline,
        media_storage=MediaStorage(settings.greetings_dir),
    )
    logger.info("Starting bot in {} mode", settings.app_env)
    try:
        await dp.start_polling(bot)
    finally:
        await bot.session.close()
        for client in (fal_client, pollinations, vision, twemoji):
            client.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
