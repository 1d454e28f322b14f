from __future__ import annotations

import pytest

from blessing_bot.core.catalog import Catalog, Style, Theme
from blessing_bot.core.config import Settings


class FixedWidthMeasurer:
    """Every character is ``char_ratio * font_size`` pixels wide."""

    def __init__(self, font_size: float = 20.0, char_ratio: float = 1.0) -> None:
        self.font_size = font_size
        self.char_ratio = char_ratio
        self.calls: list[tuple[str, float]] = []

    def measure(self, text: str) -> float:
        self.calls.append((text, self.font_size))
        return len(text) * self.font_size * self.char_ratio


@pytest.fixture
def measurer() -> FixedWidthMeasurer:
    return FixedWidthMeasurer()


@pytest.fixture
def morning() -> Theme:
    return Theme(
        id="morning",
        name="早安問候",
        default_text="早安，願你今天順心如意",
        prompt_template="A calm sunrise, {stylePrompt}",
    )


@pytest.fixture
def festival() -> Theme:
    return Theme(
        id="festival",
        name="節慶祝賀",
        default_text="佳節愉快",
        prompt_template="A {stylePrompt} scene",
    )


@pytest.fixture
def watercolor() -> Style:
    return Style(id="watercolor", name="水彩", prompt="soft watercolor painting")


@pytest.fixture
def catalog(morning: Theme, festival: Theme, watercolor: Style) -> Catalog:
    return Catalog(
        [morning, festival],
        [watercolor, Style(id="photo", name="寫實攝影", prompt="realistic photo")],
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        tg_bot_token="123:test",
        fal_api_key="test-key",
        media_dir=tmp_path / "media",
        image_deletion_delay_seconds=0,
        trigger_phrases=["長輩圖", "start"],
    )
