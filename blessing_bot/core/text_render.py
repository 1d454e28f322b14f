from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Protocol, Sequence

from loguru import logger
from PIL import Image, ImageDraw, ImageFont

from blessing_bot.core.config import Settings
from blessing_bot.core.layout import DEFAULT_FIT_ATTEMPTS, FittedLayout, fit_text
from blessing_bot.core.placement import ObjectAnnotation, select_region

EMOJI_PLACEHOLDER = "□"

EmojiFetcher = Callable[[str], bytes]


@dataclass(frozen=True)
class RenderOptions:
    font_path: Path | None = None
    font_size_divisor: float = 20.0
    text_color: str = "#FFFFFF"
    panel_color: tuple[int, int, int, int] = (0, 0, 0, 128)
    fit_max_attempts: int = DEFAULT_FIT_ATTEMPTS
    markers: Mapping[str, str] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> RenderOptions:
        return cls(
            font_path=settings.font_path,
            font_size_divisor=settings.font_size_divisor,
            text_color=settings.text_color,
            panel_color=tuple(settings.panel_color),
            fit_max_attempts=settings.fit_max_attempts,
        )


class PillowTextMeasurer:
    """Measures text with a Pillow font that is reloaded whenever the size changes."""

    def __init__(self, font_path: Path | None = None, font_size: float = 32) -> None:
        self.font_path = Path(font_path) if font_path else None
        self._fonts: dict[int, ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}
        self._warned_missing_font = False
        self.font_size = font_size

    @property
    def font(self) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        pixel_size = max(1, int(round(self.font_size)))
        font = self._fonts.get(pixel_size)
        if font is None:
            font = self._load(pixel_size)
            self._fonts[pixel_size] = font
        return font

    def _load(self, pixel_size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        if self.font_path and self.font_path.exists():
            try:
                return ImageFont.truetype(str(self.font_path), pixel_size)
            except OSError as exc:
                logger.warning("Failed to load font {}: {}, using default", self.font_path, exc)
        elif not self._warned_missing_font:
            logger.warning("Font not found at: {}, using Pillow default font", self.font_path)
            self._warned_missing_font = True
        return ImageFont.load_default(size=pixel_size)

    def measure(self, text: str) -> float:
        return float(self.font.getlength(text))


class DrawingSurface(Protocol):
    def fill_rect(self, x: float, y: float, width: float, height: float, color: tuple[int, int, int, int]) -> None:
        ...

    def draw_text(self, text: str, x: float, y: float, font: ImageFont.ImageFont, color: str) -> None:
        ...

    def draw_image(self, bitmap: Image.Image, x: float, y: float, size: float) -> None:
        ...

    def to_image(self) -> Image.Image:
        ...


class PillowSurface:
    """Drawing surface backed by an RGBA copy of the source image."""

    def __init__(self, source: Image.Image) -> None:
        self._mode = source.mode
        self.image = source.convert("RGBA")
        self._draw = ImageDraw.Draw(self.image)

    def fill_rect(self, x: float, y: float, width: float, height: float, color: tuple[int, int, int, int]) -> None:
        # translucent fills need compositing, ImageDraw would overwrite alpha
        overlay = Image.new("RGBA", self.image.size, (0, 0, 0, 0))
        ImageDraw.Draw(overlay).rectangle(
            [(int(x), int(y)), (int(x + width), int(y + height))],
            fill=tuple(color),
        )
        self.image = Image.alpha_composite(self.image, overlay)
        self._draw = ImageDraw.Draw(self.image)

    def draw_text(self, text: str, x: float, y: float, font: ImageFont.ImageFont, color: str) -> None:
        self._draw.text((x, y), text, font=font, fill=color, anchor="lm")

    def draw_image(self, bitmap: Image.Image, x: float, y: float, size: float) -> None:
        side = max(1, int(round(size)))
        resized = bitmap.convert("RGBA").resize((side, side), Image.Resampling.LANCZOS)
        self.image.paste(resized, (int(x), int(y)), resized)

    def to_image(self) -> Image.Image:
        if self._mode == "RGBA":
            return self.image
        return self.image.convert("RGB")


def _load_emoji(fetch_emoji: EmojiFetcher, codepoint: str) -> Image.Image:
    bitmap = Image.open(io.BytesIO(fetch_emoji(codepoint)))
    return bitmap.convert("RGBA")


def draw_layout(
    surface: DrawingSurface,
    layout: FittedLayout,
    measurer: PillowTextMeasurer,
    fetch_emoji: EmojiFetcher,
    options: RenderOptions,
) -> None:
    measurer.font_size = layout.font_size
    font = measurer.font
    surface.fill_rect(layout.origin_x, layout.origin_y, layout.panel_width, layout.panel_height, options.panel_color)

    for index, line in enumerate(layout.lines):
        x = layout.line_left(line)
        y = layout.line_center_y(index)
        for token in line.tokens:
            if not token.is_emoji:
                surface.draw_text(token.value, x, y, font, options.text_color)
                x += measurer.measure(token.value)
                continue
            size = layout.emoji_width
            try:
                bitmap = _load_emoji(fetch_emoji, token.value)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to load emoji {}: {}, drawing placeholder", token.value, exc)
                surface.draw_text(EMOJI_PLACEHOLDER, x, y, font, options.text_color)
            else:
                surface.draw_image(bitmap, x, y - size / 2, size)
            x += size


def render_greeting(
    image: Image.Image,
    text: str,
    fetch_emoji: EmojiFetcher,
    *,
    annotations: Sequence[ObjectAnnotation] = (),
    options: RenderOptions | None = None,
    measurer: PillowTextMeasurer | None = None,
    surface_factory: Callable[[Image.Image], DrawingSurface] = PillowSurface,
) -> Image.Image:
    """Overlay ``text`` on ``image`` inside the region that avoids detected objects."""
    if not text:
        logger.debug("Empty blessing text, returning image untouched")
        return image.copy()

    options = options or RenderOptions()
    width, height = image.size
    measurer = measurer or PillowTextMeasurer(options.font_path)
    region = select_region(width, height, annotations)
    layout = fit_text(
        text,
        region,
        measurer,
        width / options.font_size_divisor,
        (width, height),
        max_attempts=options.fit_max_attempts,
        markers=options.markers,
    )
    logger.info(
        "Layout: region={}, font_size={:.1f}, lines={}, fits={}",
        region.name,
        layout.font_size,
        len(layout.lines),
        layout.fits,
    )

    surface = surface_factory(image)
    draw_layout(surface, layout, measurer, fetch_emoji, options)
    return surface.to_image()
