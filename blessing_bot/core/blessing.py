"""
Blessing text generation with bounded retries.

The model is asked for a phrase between ``min_length`` and ``max_length``
characters but does not reliably respect it, so the result is checked and the
request repeated:

    Attempting(1..max_attempts) -> FallbackAttempt -> FinalFallback -> Done

Each themed attempt that fails or returns an out-of-range phrase moves to the
next attempt; after the last one a theme-independent prompt is tried once; if
that also fails the configured constant phrase is returned. ``generate`` never
raises and makes at most ``max_attempts + 1`` model calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from loguru import logger

from blessing_bot.core.catalog import Style, Theme
from blessing_bot.core.config import Settings

QUOTE_CHARS = "\"'「」『』“”‘’"


class TextGenerationError(Exception):
    """The text generation backend failed to produce a result."""


class QuotaExceededError(TextGenerationError):
    """The text generation backend rejected the call for quota or billing reasons."""


class TextGenerator(Protocol):
    def generate_text(self, prompt: str) -> str:
        ...


class GenerationStage(str, Enum):
    ATTEMPTING = "attempting"
    FALLBACK_ATTEMPT = "fallback_attempt"
    FINAL_FALLBACK = "final_fallback"


@dataclass
class GenerationAttempt:
    stage: GenerationStage
    prompt: str
    result_text: str | None = None
    accepted: bool = False
    error: str | None = None


@dataclass
class BlessingResult:
    text: str
    source: GenerationStage  # stage that produced the text
    attempts: list[GenerationAttempt] = field(default_factory=list)


@dataclass(frozen=True)
class BlessingConfig:
    prompt_template: str
    fallback_prompt_template: str
    final_fallback_text: str
    min_length: int = 5
    max_length: int = 15
    max_attempts: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> BlessingConfig:
        return cls(
            prompt_template=settings.blessing_prompt_template,
            fallback_prompt_template=settings.blessing_fallback_prompt_template,
            final_fallback_text=settings.blessing_final_fallback_text,
            min_length=settings.blessing_min_length,
            max_length=settings.blessing_max_length,
            max_attempts=settings.blessing_max_attempts,
        )


def clean_blessing(text: str) -> str:
    return text.strip().strip(QUOTE_CHARS).strip()


class BlessingTextGenerator:
    def __init__(self, generator: TextGenerator, config: BlessingConfig) -> None:
        if not config.final_fallback_text:
            raise ValueError("final_fallback_text must not be empty")
        if config.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.generator = generator
        self.config = config
        # both templates must format with the known placeholders only
        self.fallback_prompt()
        self.config.prompt_template.format(theme="", style="", min_length=0, max_length=0)

    def themed_prompt(self, theme: Theme, style: Style) -> str:
        return self.config.prompt_template.format(
            theme=theme.name,
            style=style.name,
            min_length=self.config.min_length,
            max_length=self.config.max_length,
        )

    def fallback_prompt(self) -> str:
        return self.config.fallback_prompt_template.format(
            min_length=self.config.min_length,
            max_length=self.config.max_length,
        )

    def _within_bounds(self, text: str) -> bool:
        # len() counts code points, so CJK characters count once each
        return self.config.min_length <= len(text) <= self.config.max_length

    def _attempt(self, stage: GenerationStage, prompt: str, attempts: list[GenerationAttempt]) -> GenerationAttempt:
        attempt = GenerationAttempt(stage=stage, prompt=prompt)
        attempts.append(attempt)
        try:
            attempt.result_text = clean_blessing(self.generator.generate_text(prompt))
        except QuotaExceededError as exc:
            attempt.error = str(exc)
            logger.error("Blessing generation ({}) rejected for quota: {}", stage.value, exc)
            return attempt
        except Exception as exc:  # noqa: BLE001
            attempt.error = str(exc)
            logger.warning("Blessing generation ({}) failed: {}", stage.value, exc)
            return attempt
        attempt.accepted = self._within_bounds(attempt.result_text)
        if not attempt.accepted:
            logger.info(
                "Blessing '{}' has {} characters, expected {}-{}",
                attempt.result_text,
                len(attempt.result_text),
                self.config.min_length,
                self.config.max_length,
            )
        return attempt

    def run(self, theme: Theme, style: Style) -> BlessingResult:
        attempts: list[GenerationAttempt] = []
        stage = GenerationStage.ATTEMPTING
        prompt = self.themed_prompt(theme, style)
        for number in range(1, self.config.max_attempts + 1):
            logger.info("Blessing attempt {}/{} for theme {}", number, self.config.max_attempts, theme.id)
            attempt = self._attempt(stage, prompt, attempts)
            if attempt.accepted:
                return BlessingResult(attempt.result_text, stage, attempts)

        stage = GenerationStage.FALLBACK_ATTEMPT
        logger.info("Themed attempts exhausted, trying generic prompt")
        attempt = self._attempt(stage, self.fallback_prompt(), attempts)
        if attempt.accepted:
            return BlessingResult(attempt.result_text, stage, attempts)

        logger.warning("Using final fallback blessing after {} calls", len(attempts))
        return BlessingResult(self.config.final_fallback_text, GenerationStage.FINAL_FALLBACK, attempts)

    def generate(self, theme: Theme, style: Style) -> str:
        return self.run(theme, style).text
