"""
Static theme and style catalog.

Themes and styles are loaded once from JSON files shipped with the package and
never change at runtime.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonschema import ValidationError, validate
from loguru import logger

STYLE_SLOT = "{stylePrompt}"

THEMES_SCHEMA = {
    "type": "object",
    "properties": {
        "themes": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "name": {"type": "string", "minLength": 1},
                    "defaultText": {"type": "string"},
                    "prompt": {"type": "string", "minLength": 1},
                    "thumbnail": {"type": "string"},
                },
                "required": ["id", "name", "defaultText", "prompt"],
            },
        },
    },
    "required": ["themes"],
}

STYLES_SCHEMA = {
    "type": "object",
    "properties": {
        "styles": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "name": {"type": "string", "minLength": 1},
                    "prompt": {"type": "string", "minLength": 1},
                    "thumbnail": {"type": "string"},
                },
                "required": ["id", "name", "prompt"],
            },
        },
    },
    "required": ["styles"],
}


class CatalogError(ValueError):
    """Raised when a catalog file is missing or malformed."""


@dataclass(frozen=True)
class Theme:
    id: str
    name: str
    default_text: str
    prompt_template: str  # contains the {stylePrompt} slot
    thumbnail: str = ""


@dataclass(frozen=True)
class Style:
    id: str
    name: str
    prompt: str
    thumbnail: str = ""


def _load_json(path: Path, schema: dict[str, Any]) -> dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Cannot read catalog file {path}: {exc}") from exc
    try:
        validate(instance=data, schema=schema)
    except ValidationError as exc:
        raise CatalogError(f"Invalid catalog file {path}: {exc.message}") from exc
    return data


def load_themes(path: Path) -> list[Theme]:
    data = _load_json(path, THEMES_SCHEMA)
    themes = [
        Theme(
            id=item["id"],
            name=item["name"],
            default_text=item["defaultText"],
            prompt_template=item["prompt"],
            thumbnail=item.get("thumbnail", ""),
        )
        for item in data["themes"]
    ]
    for theme in themes:
        if STYLE_SLOT not in theme.prompt_template:
            logger.warning("Theme {} prompt has no {} slot, style will be ignored", theme.id, STYLE_SLOT)
    return themes


def load_styles(path: Path) -> list[Style]:
    data = _load_json(path, STYLES_SCHEMA)
    return [
        Style(
            id=item["id"],
            name=item["name"],
            prompt=item["prompt"],
            thumbnail=item.get("thumbnail", ""),
        )
        for item in data["styles"]
    ]


class Catalog:
    def __init__(self, themes: list[Theme], styles: list[Style]) -> None:
        if not themes or not styles:
            raise CatalogError("Catalog needs at least one theme and one style")
        self.themes = tuple(themes)
        self.styles = tuple(styles)
        self._themes_by_id = {theme.id: theme for theme in themes}
        self._themes_by_name = {theme.name: theme for theme in themes}
        self._styles_by_id = {style.id: style for style in styles}

    @classmethod
    def from_files(cls, themes_path: Path, styles_path: Path) -> Catalog:
        catalog = cls(load_themes(themes_path), load_styles(styles_path))
        logger.info("Loaded catalog: {} themes, {} styles", len(catalog.themes), len(catalog.styles))
        return catalog

    def find_theme(self, theme_id: str | None) -> Theme | None:
        return self._themes_by_id.get(theme_id) if theme_id else None

    def find_theme_by_name(self, name: str | None) -> Theme | None:
        return self._themes_by_name.get(name.strip()) if name else None

    def find_style(self, style_id: str | None) -> Style | None:
        return self._styles_by_id.get(style_id) if style_id else None

    @property
    def default_style(self) -> Style:
        return self.styles[0]
