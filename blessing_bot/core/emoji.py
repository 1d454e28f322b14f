"""
Splits blessing text into text runs and emoji glyphs.

Chat clients send some emoji as textual markers such as "(hands together)".
Each marker is replaced by an emoji token that keeps the marker's original
offset and length, so that joining every token's ``source`` rebuilds the input.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

# Declaration order breaks ties between markers that start at the same index
EMOJI_MARKERS: dict[str, str] = {
    "(hands together)": "1f64f",
    "(heart)": "2764",
    "(love)": "1f970",
    "(flower)": "1f338",
    "(sun)": "2600",
    "(tea)": "1f375",
    "(thumbs up)": "1f44d",
    "(smile)": "1f60a",
    "(sparkles)": "2728",
    "(gift)": "1f381",
}


class TokenKind(str, Enum):
    TEXT = "text"
    EMOJI = "emoji"


@dataclass(frozen=True)
class ContentToken:
    kind: TokenKind
    value: str  # text run, or the emoji codepoint id
    source_offset: int
    source: str  # exact substring of the input this token covers

    @property
    def is_emoji(self) -> bool:
        return self.kind is TokenKind.EMOJI

    @property
    def source_end(self) -> int:
        return self.source_offset + len(self.source)


def text_token(value: str, offset: int) -> ContentToken:
    return ContentToken(TokenKind.TEXT, value, offset, value)


def _find_occurrences(text: str, markers: Mapping[str, str]) -> list[tuple[int, int, str, str]]:
    found: list[tuple[int, int, str, str]] = []
    for priority, (marker, codepoint) in enumerate(markers.items()):
        if not marker:
            continue
        start = text.find(marker)
        while start != -1:
            found.append((start, priority, marker, codepoint))
            start = text.find(marker, start + len(marker))
    found.sort(key=lambda item: (item[0], item[1]))
    return found


def tokenize(text: str, markers: Mapping[str, str] | None = None) -> list[ContentToken]:
    """Return the token stream covering ``text`` exactly once.

    Overlapping markers: the leftmost occurrence wins, and among occurrences at
    the same index the earlier-declared marker wins. Occurrences starting inside
    an already consumed marker are dropped.
    """
    if not text:
        return []
    markers = EMOJI_MARKERS if markers is None else markers

    tokens: list[ContentToken] = []
    cursor = 0
    for start, _, marker, codepoint in _find_occurrences(text, markers):
        if start < cursor:
            continue
        if start > cursor:
            tokens.append(text_token(text[cursor:start], cursor))
        tokens.append(ContentToken(TokenKind.EMOJI, codepoint, start, marker))
        cursor = start + len(marker)
    if cursor < len(text):
        tokens.append(text_token(text[cursor:], cursor))
    return tokens

