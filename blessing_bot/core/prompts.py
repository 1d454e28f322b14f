from __future__ import annotations

from blessing_bot.core.catalog import STYLE_SLOT, Style, Theme

USE_DEFAULT_TEXT = "用主題預設文字"
AI_GENERATE_TEXT = "請 AI 生成祝福語"

# Themes whose scene is steered by the user's own blessing
BLESSING_STEERED_THEMES = frozenset({"festival"})


class MissingSelectionError(ValueError):
    """Theme or style was not selected; a caller bug, not a user error."""


def compose_prompt(theme: Theme | None, style: Style | None, blessing_text: str = "") -> str:
    """Build the image-generation prompt for a theme and style."""
    if theme is None or style is None:
        raise MissingSelectionError("Theme and style objects are required.")
    prompt = theme.prompt_template.replace(STYLE_SLOT, style.prompt)
    if theme.id in BLESSING_STEERED_THEMES and blessing_text and blessing_text != USE_DEFAULT_TEXT:
        prompt = f"{blessing_text}, {prompt}"
    return prompt


def resolve_user_text(theme: Theme, user_text: str) -> str:
    """Map the quick-reply sentinels to the text that will be rendered.

    An empty result means the blessing should be generated.
    """
    text = user_text.strip()
    if text == USE_DEFAULT_TEXT:
        return theme.default_text
    if text == AI_GENERATE_TEXT:
        return ""
    return text
