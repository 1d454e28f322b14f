"""
Font-size fitting for the blessing panel.

The font size starts at ``image_width / divisor`` and shrinks by 10% per attempt
until the wrapped block fits the placement region's height. Character widths
depend on the font size, so the text is measured and wrapped again on every
attempt.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol

from loguru import logger

from blessing_bot.core.emoji import tokenize
from blessing_bot.core.line_break import WrappedLine, wrap_tokens
from blessing_bot.core.placement import PlacementRegion

LINE_HEIGHT_RATIO = 1.2
SHRINK_FACTOR = 0.9
MIN_FONT_SIZE = 12.0
DEFAULT_FIT_ATTEMPTS = 8


class TextMeasurer(Protocol):
    font_size: float

    def measure(self, text: str) -> float:
        ...


@dataclass(frozen=True)
class FittedLayout:
    lines: tuple[WrappedLine, ...]
    font_size: float
    line_height: float
    padding: float
    origin_x: float  # panel top-left corner
    origin_y: float
    panel_width: float
    panel_height: float
    region: PlacementRegion
    fits: bool
    attempted_sizes: tuple[float, ...]

    @property
    def emoji_width(self) -> float:
        return self.font_size

    def line_left(self, line: WrappedLine) -> float:
        return self.origin_x + (self.panel_width - line.pixel_width) / 2

    def line_center_y(self, index: int) -> float:
        return self.origin_y + self.padding + self.line_height * (index + 0.5)


def _place_panel(
    region: PlacementRegion,
    panel_width: float,
    panel_height: float,
    image_size: tuple[int, int],
) -> tuple[float, float]:
    image_width, image_height = image_size
    x = region.x + (region.width - panel_width) / 2
    if region.name.startswith("top"):
        y = region.y
    else:
        y = region.bottom - panel_height
    # keep the panel inside the image
    x = min(max(x, 0.0), max(image_width - panel_width, 0.0))
    y = min(max(y, 0.0), max(image_height - panel_height, 0.0))
    return x, y


def _layout_at(
    text: str,
    region: PlacementRegion,
    measurer: TextMeasurer,
    font_size: float,
    markers: Mapping[str, str] | None,
) -> tuple[list[WrappedLine], float, float, float]:
    measurer.font_size = font_size
    line_height = font_size * LINE_HEIGHT_RATIO
    padding = font_size / 4
    lines = wrap_tokens(tokenize(text, markers), region.width - 2 * padding, measurer.measure, font_size)
    block_height = len(lines) * line_height + 2 * padding
    return lines, line_height, padding, block_height


def fit_text(
    text: str,
    region: PlacementRegion,
    measurer: TextMeasurer,
    initial_font_size: float,
    image_size: tuple[int, int],
    *,
    max_attempts: int = DEFAULT_FIT_ATTEMPTS,
    markers: Mapping[str, str] | None = None,
    min_font_size: float = MIN_FONT_SIZE,
) -> FittedLayout:
    """Shrink the font until ``text`` fits ``region``; return the last attempt if it never does."""
    font_size = max(float(initial_font_size), min_font_size)
    attempted: list[float] = []
    fits = False

    for attempt in range(max(1, max_attempts)):
        if attempt:
            next_size = font_size * SHRINK_FACTOR
            if next_size < min_font_size:
                break
            font_size = next_size
        attempted.append(font_size)
        lines, line_height, padding, block_height = _layout_at(text, region, measurer, font_size, markers)
        if block_height <= region.height:
            fits = True
            break

    if not fits:
        logger.warning(
            "Text does not fit region {} after {} attempts, using font size {:.1f}",
            region.name,
            len(attempted),
            font_size,
        )

    panel_width = max((line.pixel_width for line in lines), default=0.0) + 2 * padding
    origin_x, origin_y = _place_panel(region, panel_width, block_height, image_size)
    return FittedLayout(
        lines=tuple(lines),
        font_size=font_size,
        line_height=line_height,
        padding=padding,
        origin_x=origin_x,
        origin_y=origin_y,
        panel_width=panel_width,
        panel_height=block_height,
        region=region,
        fits=fits,
        attempted_sizes=tuple(attempted),
    )
