import json

import pytest

from blessing_bot.core.catalog import STYLE_SLOT, Catalog, CatalogError, load_themes
from blessing_bot.core.config import Settings


def test_shipped_catalog_loads():
    settings = Settings(_env_file=None)
    catalog = Catalog.from_files(settings.themes_path, settings.styles_path)
    assert catalog.find_theme("festival") is not None
    assert len({theme.id for theme in catalog.themes}) == len(catalog.themes)
    assert all(STYLE_SLOT in theme.prompt_template for theme in catalog.themes)
    assert catalog.default_style is catalog.styles[0]


def test_lookup_by_id_and_name(catalog, morning):
    assert catalog.find_theme("morning") == morning
    assert catalog.find_theme_by_name(" 早安問候 ") == morning
    assert catalog.find_theme("unknown") is None
    assert catalog.find_theme_by_name(None) is None
    assert catalog.find_style("photo").name == "寫實攝影"


def test_invalid_theme_file_is_rejected(tmp_path):
    path = tmp_path / "themes.json"
    path.write_text(json.dumps({"themes": [{"id": "x", "name": "X"}]}), encoding="utf-8")
    with pytest.raises(CatalogError):
        load_themes(path)


def test_missing_file_is_rejected(tmp_path):
    with pytest.raises(CatalogError):
        load_themes(tmp_path / "absent.json")


def test_empty_catalog_is_rejected():
    with pytest.raises(ValueError):
        Catalog([], [])
