"""
Greedy per-character line breaking.

Breaks can fall between any two characters, which is what CJK text needs;
Latin words may be split mid-word. Emoji tokens are never split.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from blessing_bot.core.emoji import ContentToken, text_token

HARD_BREAK = "\n"


@dataclass(frozen=True)
class WrappedLine:
    tokens: tuple[ContentToken, ...]
    pixel_width: float

    @property
    def text(self) -> str:
        return "".join(token.source for token in self.tokens)


def _explode(tokens: Iterable[ContentToken]) -> list[ContentToken]:
    units: list[ContentToken] = []
    for token in tokens:
        if token.is_emoji:
            units.append(token)
            continue
        for index, char in enumerate(token.value):
            units.append(text_token(char, token.source_offset + index))
    return units


def _merge_runs(units: Sequence[ContentToken]) -> tuple[ContentToken, ...]:
    merged: list[ContentToken] = []
    for unit in units:
        previous = merged[-1] if merged else None
        if (
            previous is not None
            and not previous.is_emoji
            and not unit.is_emoji
            and previous.source_end == unit.source_offset
        ):
            merged[-1] = text_token(previous.value + unit.value, previous.source_offset)
        else:
            merged.append(unit)
    return tuple(merged)


def wrap_tokens(
    tokens: Sequence[ContentToken],
    max_width: float,
    measure: Callable[[str], float],
    emoji_width: float,
) -> list[WrappedLine]:
    """Wrap ``tokens`` into lines no wider than ``max_width``.

    A unit wider than ``max_width`` on its own ends up alone on its line.
    A newline character forces a break and is dropped.
    """
    lines: list[WrappedLine] = []
    current: list[ContentToken] = []
    current_width = 0.0

    def close_line() -> None:
        nonlocal current, current_width
        if current:
            lines.append(WrappedLine(_merge_runs(current), current_width))
        current = []
        current_width = 0.0

    for unit in _explode(tokens):
        if not unit.is_emoji and unit.value == HARD_BREAK:
            close_line()
            continue
        width = emoji_width if unit.is_emoji else measure(unit.value)
        if current and current_width + width > max_width:
            close_line()
        current.append(unit)
        current_width += width
    close_line()
    return lines
