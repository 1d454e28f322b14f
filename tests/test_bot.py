import asyncio
import io
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from aiogram import types
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage
from PIL import Image

from blessing_bot.bot import build_dispatcher
from blessing_bot.bot.handlers import greeting
from blessing_bot.bot.handlers.start import build_welcome_text, cmd_start
from blessing_bot.bot.keyboards.inline import build_style_callback, parse_style_callback
from blessing_bot.bot.session import (
    STAGE_KEY,
    STAGE_WAIT_STYLE,
    STAGE_WAIT_TEXT,
    STARTED_AT_KEY,
    STYLE_ID_KEY,
    THEME_ID_KEY,
    get_stage,
    is_expired,
    start_session,
)
from blessing_bot.core.pipeline import GreetingResult
from blessing_bot.core.prompts import USE_DEFAULT_TEXT
from blessing_bot.core.storage import MediaStorage
from blessing_bot.providers.pollinations import ImageGenerationError


def _state():
    return FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=1, chat_id=10, user_id=20))


def _message(text, chat_type="private"):
    message = MagicMock(spec=types.Message)
    message.text = text
    message.chat = SimpleNamespace(id=10, type=chat_type)
    message.from_user = SimpleNamespace(id=20)
    message.answer = AsyncMock()
    message.answer_photo = AsyncMock()
    return message


def _png():
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), "red").save(buffer, "PNG")
    return buffer.getvalue()


class FakePipeline:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def generate(self, theme, style, user_text):
        self.calls.append((theme.id, style.id, user_text))
        if self.error:
            raise self.error
        return GreetingResult(image=_png(), text=user_text or "平安", prompt="prompt", seed=1)


async def _wait_text_session(state, theme_id="morning", style_id="photo", started_at=None):
    await state.set_data(
        {
            STAGE_KEY: STAGE_WAIT_TEXT,
            THEME_ID_KEY: theme_id,
            STYLE_ID_KEY: style_id,
            STARTED_AT_KEY: time.time() if started_at is None else started_at,
        }
    )


def test_match_trigger_is_case_insensitive():
    assert greeting.match_trigger("I want to START now", ["start"])
    assert greeting.match_trigger("來做長輩圖", ["長輩圖"])
    assert not greeting.match_trigger("hello", ["start"])
    assert not greeting.match_trigger(None, ["start"])


def test_style_callback_round_trip():
    assert parse_style_callback(build_style_callback("morning", "photo")) == ("morning", "photo")
    assert parse_style_callback("style:only-one") is None
    assert parse_style_callback("other:a:b") is None


def test_session_expiry():
    assert not is_expired({STARTED_AT_KEY: 1000.0}, 300, now=1200.0)
    assert is_expired({STARTED_AT_KEY: 1000.0}, 300, now=1301.0)
    assert is_expired({}, 300)


def test_start_lists_trigger_phrases(settings, catalog):
    message = _message("/start")
    asyncio.run(cmd_start(message, _state(), settings, catalog))
    text = message.answer.call_args.args[0]
    assert text == build_welcome_text(settings)
    assert "「長輩圖」" in text
    keyboard = message.answer.call_args.kwargs["reply_markup"]
    assert [button.text for row in keyboard.keyboard for button in row] == ["早安問候", "節慶祝賀"]


def test_trigger_clears_session_and_shows_themes(catalog):
    state = _state()
    message = _message("長輩圖")

    async def scenario():
        await _wait_text_session(state)
        await greeting.handle_trigger(message, state, catalog)
        return await state.get_data()

    assert asyncio.run(scenario()) == {}
    assert message.answer.call_args.args[0] == greeting.CHOOSE_THEME_TEXT


def test_theme_choice_opens_style_carousel(catalog, morning):
    state = _state()
    message = _message(morning.name)

    async def scenario():
        await greeting.handle_theme_choice(message, state, catalog, morning)
        return await state.get_data()

    data = asyncio.run(scenario())
    assert data[STAGE_KEY] == STAGE_WAIT_STYLE
    assert data[THEME_ID_KEY] == "morning"
    markup = message.answer.call_args.kwargs["reply_markup"]
    assert [row[0].callback_data for row in markup.inline_keyboard] == ["style:morning:watercolor", "style:morning:photo"]


def test_unknown_style_callback_reports_not_found(catalog, settings):
    state = _state()
    message = _message(None)
    callback = SimpleNamespace(data="style:morning:unknown", message=message, answer=AsyncMock())

    async def scenario():
        await greeting.handle_style_choice(callback, state, catalog, settings)
        return await state.get_data()

    assert asyncio.run(scenario()) == {}
    message.answer.assert_awaited_once_with(greeting.NOT_FOUND_TEXT)


def test_style_callback_asks_for_blessing(catalog, settings):
    state = _state()
    message = _message(None)
    callback = SimpleNamespace(data="style:festival:photo", message=message, answer=AsyncMock())

    async def scenario():
        await greeting.handle_style_choice(callback, state, catalog, settings)
        return await state.get_data()

    data = asyncio.run(scenario())
    assert data[STAGE_KEY] == STAGE_WAIT_TEXT
    assert (data[THEME_ID_KEY], data[STYLE_ID_KEY]) == ("festival", "photo")
    callback.answer.assert_awaited_once()


def test_too_long_text_keeps_session(settings, catalog):
    state = _state()
    pipeline = FakePipeline()
    message = _message("長" * (settings.max_text_length + 1))

    async def scenario():
        await _wait_text_session(state)
        await greeting.handle_blessing_text(message, state, settings, catalog, pipeline, MediaStorage(settings.greetings_dir))
        return await state.get_data()

    data = asyncio.run(scenario())
    assert data[STAGE_KEY] == STAGE_WAIT_TEXT
    assert pipeline.calls == []
    assert "最多 20 個字" in message.answer.call_args.args[0]


def test_expired_session_restarts(settings, catalog):
    state = _state()
    pipeline = FakePipeline()
    message = _message("早安")

    async def scenario():
        await _wait_text_session(state, started_at=time.time() - settings.session_ttl_seconds - 1)
        await greeting.handle_blessing_text(message, state, settings, catalog, pipeline, MediaStorage(settings.greetings_dir))
        return await state.get_data()

    assert asyncio.run(scenario()) == {}
    assert pipeline.calls == []
    assert message.answer.call_args.args[0] == greeting.EXPIRED_TEXT


def test_blessing_text_delivers_photo_and_cleans_up(settings, catalog):
    state = _state()
    pipeline = FakePipeline()
    media_storage = MediaStorage(settings.greetings_dir)
    message = _message(USE_DEFAULT_TEXT)

    async def scenario():
        await _wait_text_session(state)
        await greeting.handle_blessing_text(message, state, settings, catalog, pipeline, media_storage)
        return await state.get_data()

    assert asyncio.run(scenario()) == {}
    assert pipeline.calls == [("morning", "photo", catalog.find_theme("morning").default_text)]
    assert message.answer.call_args_list[0].args[0] == greeting.PLEASE_WAIT_TEXT
    message.answer_photo.assert_awaited_once()
    assert list(settings.greetings_dir.iterdir()) == []


def test_text_before_style_uses_default_style(settings, catalog):
    state = _state()
    pipeline = FakePipeline()

    async def scenario():
        await state.set_data({STAGE_KEY: STAGE_WAIT_STYLE, THEME_ID_KEY: "festival", STARTED_AT_KEY: time.time()})
        await greeting.handle_blessing_text(
            _message("新年快樂"), state, settings, catalog, pipeline, MediaStorage(settings.greetings_dir)
        )

    asyncio.run(scenario())
    assert pipeline.calls == [("festival", "watercolor", "新年快樂")]


def test_generation_failure_sends_single_error_message(settings, catalog):
    state = _state()
    message = _message("早安")

    async def scenario():
        await _wait_text_session(state)
        await greeting.handle_blessing_text(
            message,
            state,
            settings,
            catalog,
            FakePipeline(ImageGenerationError("down")),
            MediaStorage(settings.greetings_dir),
        )
        return await state.get_data()

    assert asyncio.run(scenario()) == {}
    assert message.answer.call_args.args[0] == settings.generation_error_message
    message.answer_photo.assert_not_awaited()


def test_unrelated_text_gets_hint_only_in_private_chats(settings):
    private = _message("hello")
    group = _message("hello", chat_type="group")
    asyncio.run(greeting.handle_unrelated_text(private, settings))
    asyncio.run(greeting.handle_unrelated_text(group, settings))
    assert "「start」" in private.answer.call_args.args[0]
    group.answer.assert_not_awaited()


def test_dispatcher_carries_dependencies(settings, catalog):
    dp = build_dispatcher(MemoryStorage(), settings=settings, catalog=catalog)
    assert dp.workflow_data["settings"] is settings
    assert dp.workflow_data["catalog"] is catalog
    assert len(dp.message.handlers) == 6
    assert len(dp.callback_query.handlers) == 1


def test_session_stage_round_trip():
    state = _state()

    async def scenario():
        before = await get_stage(state)
        await start_session(state, STAGE_WAIT_STYLE, **{THEME_ID_KEY: "morning"})
        return before, await get_stage(state), await state.get_data()

    before, after, data = asyncio.run(scenario())
    assert before is None
    assert after == STAGE_WAIT_STYLE
    assert data[THEME_ID_KEY] == "morning"
    assert not is_expired(data, 300)
