"""Tests for catalog loading and refresh.

``respx`` patches ``httpx`` at the transport layer so ``download_catalog``
never touches the network.
"""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from compcrawler.catalog.loader import CatalogLoadError, load_catalog, parse_catalog
from compcrawler.catalog.refresh import download_catalog
from compcrawler.config import settings

_URL = "https://cdn.example.test/tft/en_us.json"

_PAYLOAD = {
    "items": [
        {"apiName": "TFT_Item_BlueBuff", "name": "Blue Buff", "icon": "a/BlueBuff.tex"},
        {"apiName": "TFT9_Augment_LevelUp", "name": "Level Up!", "icon": "a/LevelUp.tex"},
    ],
    "setData": [
        {"number": 15, "champions": [{"apiName": "TFT15_Old", "name": "Old"}]},
        {
            "number": 16,
            "champions": [
                {
                    "apiName": "TFT16_New",
                    "name": "New",
                    "cost": 3,
                    "traits": ["Vanguard"],
                    "stats": {"hp": 900, "armor": 50, "range": 1},
                }
            ],
        },
    ],
}


# ---------------------------------------------------------------------------
# parse_catalog / load_catalog
# ---------------------------------------------------------------------------

class TestParseCatalog:
    def test_splits_augments_out_of_items(self) -> None:
        catalog = parse_catalog(_PAYLOAD)
        assert [e.identifier for e in catalog.items] == ["TFT_Item_BlueBuff"]
        assert [e.identifier for e in catalog.augments] == ["TFT9_Augment_LevelUp"]

    def test_units_come_from_latest_set(self) -> None:
        catalog = parse_catalog(_PAYLOAD)
        assert [e.identifier for e in catalog.units] == ["TFT16_New"]
        unit = catalog.units[0]
        assert unit.cost == 3
        assert unit.traits == ("Vanguard",)
        assert (unit.hp, unit.armor, unit.attack_range) == (900.0, 50.0, 1.0)

    def test_top_level_sections(self) -> None:
        catalog = parse_catalog(
            {
                "items": [{"apiName": "I", "name": "Item"}],
                "augments": [{"apiName": "A", "name": "Aug"}],
                "units": [{"apiName": "U", "name": "Unit"}],
            }
        )
        assert len(catalog) == 3
        assert catalog.unit_by_identifier("U").name == "Unit"
        assert catalog.unit_by_identifier("missing") is None

    def test_entries_without_identifier_are_skipped(self) -> None:
        catalog = parse_catalog({"items": [{"name": "No id"}, "junk"]})
        assert catalog.items == ()


class TestLoadCatalog:
    def test_bundled_catalog(self) -> None:
        catalog = load_catalog(settings.catalog_path)
        item_ids = {e.identifier for e in catalog.items}
        assert "TFT_Item_Voidstaff" in item_ids
        assert not any("Augment" in i for i in item_ids)
        assert catalog.augments
        assert all(e.identifier.startswith("TFT16_") for e in catalog.units)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(CatalogLoadError):
            load_catalog(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogLoadError):
            load_catalog(path)

    def test_non_object_root(self, tmp_path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(CatalogLoadError):
            load_catalog(path)


# ---------------------------------------------------------------------------
# download_catalog
# ---------------------------------------------------------------------------

class TestDownloadCatalog:
    @respx.mock
    def test_writes_and_parses(self, tmp_path) -> None:
        respx.get(_URL).mock(return_value=httpx.Response(200, json=_PAYLOAD))
        dest = tmp_path / "data" / "catalog.json"

        catalog = download_catalog(_URL, dest)

        assert [e.identifier for e in catalog.units] == ["TFT16_New"]
        assert json.loads(dest.read_text(encoding="utf-8")) == _PAYLOAD
        assert not dest.with_suffix(".json.tmp").exists()

    @respx.mock
    def test_http_error_leaves_file_untouched(self, tmp_path) -> None:
        respx.get(_URL).mock(return_value=httpx.Response(404))
        dest = tmp_path / "catalog.json"
        dest.write_text("{}", encoding="utf-8")

        with pytest.raises(httpx.HTTPStatusError):
            download_catalog(_URL, dest)
        assert dest.read_text(encoding="utf-8") == "{}"

    @respx.mock
    def test_non_object_body(self, tmp_path) -> None:
        respx.get(_URL).mock(return_value=httpx.Response(200, json=[1, 2]))
        with pytest.raises(CatalogLoadError):
            download_catalog(_URL, tmp_path / "catalog.json")
