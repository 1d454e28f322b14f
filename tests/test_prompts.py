import pytest

from blessing_bot.core.catalog import Style, Theme
from blessing_bot.core.prompts import (
    AI_GENERATE_TEXT,
    USE_DEFAULT_TEXT,
    MissingSelectionError,
    compose_prompt,
    resolve_user_text,
)


def test_style_prompt_fills_the_slot():
    theme = Theme(id="calm", name="平靜", default_text="", prompt_template="A {stylePrompt} scene")
    style = Style(id="fest", name="節慶", prompt="festive")
    assert compose_prompt(theme, style) == "A festive scene"


def test_festival_prompt_is_steered_by_blessing(festival, watercolor):
    assert compose_prompt(festival, watercolor, "新年快樂") == "新年快樂, A soft watercolor painting scene"


def test_festival_prompt_ignores_default_text_sentinel(festival, watercolor):
    assert compose_prompt(festival, watercolor, USE_DEFAULT_TEXT) == "A soft watercolor painting scene"


def test_other_themes_ignore_blessing(morning, watercolor):
    assert compose_prompt(morning, watercolor, "新年快樂") == "A calm sunrise, soft watercolor painting"


def test_missing_selection_is_a_caller_error(morning, watercolor):
    with pytest.raises(MissingSelectionError):
        compose_prompt(None, watercolor)
    with pytest.raises(MissingSelectionError):
        compose_prompt(morning, None)


def test_sentinels_are_resolved(morning):
    assert resolve_user_text(morning, USE_DEFAULT_TEXT) == morning.default_text
    assert resolve_user_text(morning, AI_GENERATE_TEXT) == ""
    assert resolve_user_text(morning, "  早安  ") == "早安"
