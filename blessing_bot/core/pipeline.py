"""
Greeting generation pipeline.

theme + style + user text -> blessing text -> background image -> detected
objects -> composited PNG. Every network collaborator is passed in, so the
pipeline itself holds no global state.
"""
from __future__ import annotations

import io
import random
from dataclasses import dataclass
from typing import Callable, Sequence

from loguru import logger
from PIL import Image

from blessing_bot.core.blessing import BlessingTextGenerator
from blessing_bot.core.catalog import Style, Theme
from blessing_bot.core.placement import ObjectAnnotation
from blessing_bot.core.prompts import MissingSelectionError, compose_prompt, resolve_user_text
from blessing_bot.core.text_render import EmojiFetcher, RenderOptions, render_greeting

ImageFetcher = Callable[[str, int, int, int], bytes]
ObjectDetector = Callable[[bytes], Sequence[ObjectAnnotation]]

MAX_SEED = 1_000_000


@dataclass(frozen=True)
class GreetingResult:
    image: bytes  # PNG
    text: str
    prompt: str
    seed: int


class GreetingPipeline:
    def __init__(
        self,
        *,
        blessing_generator: BlessingTextGenerator,
        fetch_image: ImageFetcher,
        fetch_emoji: EmojiFetcher,
        detect_objects: ObjectDetector | None = None,
        render_options: RenderOptions | None = None,
        image_size: tuple[int, int] = (1024, 1024),
        seed_factory: Callable[[], int] | None = None,
    ) -> None:
        self.blessing_generator = blessing_generator
        self.fetch_image = fetch_image
        self.fetch_emoji = fetch_emoji
        self.detect_objects = detect_objects
        self.render_options = render_options or RenderOptions()
        self.image_size = image_size
        self.seed_factory = seed_factory or (lambda: random.randrange(MAX_SEED))

    def _annotations(self, image_bytes: bytes) -> Sequence[ObjectAnnotation]:
        if self.detect_objects is None:
            return []
        try:
            return self.detect_objects(image_bytes)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Object detection failed, using default placement: {}", exc)
            return []

    def generate(self, theme: Theme | None, style: Style | None, user_text: str) -> GreetingResult:
        if theme is None or style is None:
            raise MissingSelectionError("Theme and style objects are required.")

        text = resolve_user_text(theme, user_text)
        if not text:
            logger.info("No text provided, generating blessing text for theme {}", theme.id)
            text = self.blessing_generator.generate(theme, style)

        prompt = compose_prompt(theme, style, text)
        seed = self.seed_factory()
        width, height = self.image_size
        logger.info("Generating greeting: theme={}, style={}, seed={}, prompt='{}'", theme.id, style.id, seed, prompt)

        image_bytes = self.fetch_image(prompt, width, height, seed)
        annotations = self._annotations(image_bytes)

        with Image.open(io.BytesIO(image_bytes)) as source:
            source.load()
            rendered = render_greeting(
                source,
                text,
                self.fetch_emoji,
                annotations=annotations,
                options=self.render_options,
            )

        buffer = io.BytesIO()
        rendered.save(buffer, "PNG", optimize=True)
        logger.info("Greeting rendered: {} bytes", buffer.tell())
        return GreetingResult(image=buffer.getvalue(), text=text, prompt=prompt, seed=seed)
