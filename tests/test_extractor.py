"""Tests for structural extraction (scraper/extractor.py).

The fixtures mimic the three board templates seen on guide pages: an SVG
row/cell grid, absolutely positioned hexes, and a page that only links to
its units.
"""

from __future__ import annotations

import logging

import pytest

from compcrawler.catalog.loader import get_catalog
from compcrawler.scraper.extractor import (
    DEFAULT_DIFFICULTY,
    DEFAULT_NAME,
    DEFAULT_PLAN,
    DEFAULT_TIER,
    display_name,
    extract_comp_links,
    generate_slug,
    item_slug_from_url,
    parse_detail_html,
    slug_from_url,
)
from compcrawler.scraper.layout import BoardPosition, BoardSize

_ICON = "https://cdn.mobalytics.gg/assets/tft/images/champions/icons/set16/{}.jpg?v=3"
_ITEM = "https://cdn.mobalytics.gg/assets/tft/images/game-items/set16/{}.png"


def _cell(unit: str | None = None, items: tuple[str, ...] = ()) -> str:
    if unit is None:
        return "<div class='cell'></div>"
    item_imgs = "".join(f"<img src='{_ITEM.format(i)}' alt='{i}'>" for i in items)
    return (
        "<div class='cell'>"
        f"<div class='hex'><svg><image href='{_ICON.format(unit)}'/></svg></div>"
        f"<div class='items'>{item_imgs}</div>"
        "</div>"
    )


_GRID_HTML = f"""\
<html>
<head><meta name="description" content="Jinx carries late."></head>
<body>
  <h1>Rebel Jinx</h1>
  <img src="https://cdn.mobalytics.gg/hex-tiers/s.svg" alt="s">
  <div class="meta"><div>Fast 8</div><div>Hard</div></div>
  <div class="board">
    <div class="row">{_cell()}{_cell("leona")}{_cell()}{_cell("braum")}</div>
    <div class="row">{_cell()}</div>
    <div class="row">{_cell("ahri")}</div>
    <div class="row">{_cell()}{_cell("jinx", ("infinity-edge", "voidstaff70", "guardbreaker"))}</div>
  </div>
  <div class="recommended">
    <div><div><div><svg><image href="{_ICON.format("zed")}"/></svg></div></div></div>
  </div>
  <section>
    <div class="group">
      <div class="label"><span>Tier 2</span></div>
      <div class="icons">
        <img alt="Cybernetic Bulk I" src="https://cdn/augments/cybernetic-bulk-i.png">
        <img alt="t2" src="https://cdn/augments/portable-forge.png">
        <img alt="t1" src="">
      </div>
    </div>
    <div class="group">
      <div class="label"><span>Tier 3</span></div>
      <div class="icons"><img alt="Not An Augment" src=""></div>
    </div>
  </section>
</body>
</html>
"""

_POSITIONED_HTML = f"""\
<html><body>
  <h1>Vanguard Vi</h1>
  <div class="board" style="position: relative">
    <div class="hex" style="position: absolute; left: 14%; top: 25%">
      <img src="{_ICON.format("vi")}">
      <img src="https://cdn/items/bloodthirster.png">
    </div>
    <div class="hex" style="position: absolute; left: 0%; top: 0%">
      <img src="{_ICON.format("braum")}">
    </div>
  </div>
</body></html>
"""

_PIXEL_HTML = f"""\
<html><body>
  <h1>Pixel Board</h1>
  <div class="hex" style="left: 120px; top: 3px"><img src="{_ICON.format("vi")}"></div>
  <div class="hex" style="left: 10px; top: 0px"><img src="{_ICON.format("leona")}"></div>
  <div class="hex" style="left: 40px; top: 90px"><img src="{_ICON.format("ahri")}"></div>
</body></html>
"""

_LINKS_HTML = """\
<html><body>
  <h1>Ionia Ahri</h1>
  <ul>
    <li><a href="/tft/units/ahri"><img src="https://cdn/ahri.png"></a>
        <a href="/tft/items/blue-buff">Blue Buff</a></li>
    <li><a href="/tft/units/ahri">Ahri again</a></li>
    <li><a href="/tft/champions/zed/">Zed</a></li>
  </ul>
</body></html>
"""


@pytest.fixture(scope="module")
def catalog():
    return get_catalog()


# ---------------------------------------------------------------------------
# Slug helpers
# ---------------------------------------------------------------------------

class TestSlugHelpers:
    def test_slug_from_url(self) -> None:
        assert slug_from_url(_ICON.format("kaisa")) == "kaisa"
        assert slug_from_url("") == ""

    def test_item_slug_from_url(self) -> None:
        assert item_slug_from_url(_ITEM.format("infinity-edge")) == "infinityedge"
        assert item_slug_from_url("https://cdn/items/hand-of-justice_2.png") == "handofjustice"

    def test_display_name(self) -> None:
        assert display_name("jinx") == "Jinx"
        assert display_name("luciansenna") == "Lucian"
        assert display_name("JarvanIV") == "Jarvan IV"

    def test_generate_slug(self) -> None:
        assert generate_slug("Dr. Mundo") == "dr-mundo"
        assert generate_slug("  Rebel Jinx! ") == "rebel-jinx"


# ---------------------------------------------------------------------------
# parse_detail_html: grid template
# ---------------------------------------------------------------------------

class TestGridBoard:
    def test_metadata(self, catalog) -> None:
        skeleton = parse_detail_html(_GRID_HTML, "https://x/comp", catalog)
        assert skeleton.name == "Rebel Jinx"
        assert skeleton.tier == "S"
        assert skeleton.plan == "Fast 8"
        assert skeleton.difficulty == "Hard"
        assert skeleton.meta_description == "Jinx carries late."
        assert skeleton.source_url == "https://x/comp"
        assert skeleton.is_late_game

    def test_picks_densest_board(self, catalog) -> None:
        skeleton = parse_detail_html(_GRID_HTML, "", catalog)
        assert skeleton.board_strategy == "grid"
        assert [u.slug for u in skeleton.units] == ["leona", "braum", "ahri", "jinx"]

    def test_positions_from_rows_and_cells(self, catalog) -> None:
        skeleton = parse_detail_html(_GRID_HTML, "", catalog)
        positions = {u.slug: u.position for u in skeleton.units}
        assert positions["leona"] == BoardPosition(0, 1)
        assert positions["braum"] == BoardPosition(0, 3)
        assert positions["ahri"] == BoardPosition(2, 0)
        assert positions["jinx"] == BoardPosition(3, 1)

    def test_items_and_carry(self, catalog) -> None:
        skeleton = parse_detail_html(_GRID_HTML, "", catalog)
        jinx = skeleton.units[-1]
        assert jinx.items == ["infinityedge", "voidstaff70", "guardbreaker"]
        assert jinx.carry
        assert not skeleton.units[0].carry
        assert skeleton.core_champion is jinx

    def test_augments_resolved_and_deduplicated(self, catalog) -> None:
        skeleton = parse_detail_html(_GRID_HTML, "", catalog)
        names = {a.name: a.tier for a in skeleton.augments}
        assert names["TFT9_Augment_CyberneticBulk1"] == 2
        assert names["TFT9_Augment_PortableForge"] == 2
        assert names["Unresolved_Not An Augment"] == 3
        assert len(skeleton.augments) == 3


# ---------------------------------------------------------------------------
# parse_detail_html: fallback strategies
# ---------------------------------------------------------------------------

class TestPositionedBoard:
    def test_percent_offsets(self, catalog, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            skeleton = parse_detail_html(_POSITIONED_HTML, "https://x/vi", catalog)
        assert skeleton.board_strategy == "positioned"
        positions = {u.slug: u.position for u in skeleton.units}
        assert positions == {"vi": BoardPosition(1, 1), "braum": BoardPosition(0, 0)}
        assert skeleton.units[0].items == ["bloodthirster"]
        assert "Fallback board strategy" in caplog.text

    def test_pixel_offsets_grouped_into_rows(self, catalog) -> None:
        skeleton = parse_detail_html(_PIXEL_HTML, "", catalog)
        positions = {u.slug: u.position for u in skeleton.units}
        assert positions == {
            "vi": BoardPosition(0, 1),
            "leona": BoardPosition(0, 0),
            "ahri": BoardPosition(1, 0),
        }


class TestUnitLinkFallback:
    def test_dedup_and_enumeration_positions(self, catalog) -> None:
        skeleton = parse_detail_html(_LINKS_HTML, "", catalog)
        assert skeleton.board_strategy == "unit-links"
        assert [u.slug for u in skeleton.units] == ["ahri", "zed"]
        assert [u.position for u in skeleton.units] == [BoardPosition(3, 0), BoardPosition(3, 1)]
        assert skeleton.units[0].items == ["blue-buff"]

    def test_shared_container_items_stop_at_next_unit(self, catalog) -> None:
        html = (
            "<html><body><div>"
            "<a href='/tft/units/ahri/'>Ahri</a>"
            "<a href='/tft/items/blue-buff/'>Blue Buff</a>"
            "<a href='/tft/units/braum/'>Braum</a>"
            "<a href='/tft/units/zed/'>Zed</a>"
            "</div></body></html>"
        )
        skeleton = parse_detail_html(html, "", catalog)
        assert {u.slug: u.items for u in skeleton.units} == {
            "ahri": ["blue-buff"],
            "braum": [],
            "zed": [],
        }
        assert [u.carry for u in skeleton.units] == [True, False, False]

    def test_enumeration_is_clamped(self, catalog) -> None:
        links = "".join(f"<a href='/tft/units/u{i}'>u</a>" for i in range(10))
        skeleton = parse_detail_html(f"<html><body>{links}</body></html>", "", catalog)
        assert all(u.position.in_bounds(BoardSize()) for u in skeleton.units)


class TestDefaults:
    def test_empty_page_uses_defaults(self, catalog, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            skeleton = parse_detail_html("<html><body></body></html>", "https://x/empty", catalog)
        assert skeleton.name == DEFAULT_NAME
        assert skeleton.tier == DEFAULT_TIER
        assert skeleton.plan == DEFAULT_PLAN
        assert skeleton.difficulty == DEFAULT_DIFFICULTY
        assert skeleton.meta_description == f"Guide for {DEFAULT_NAME}"
        assert skeleton.units == []
        assert skeleton.augments == []
        assert skeleton.board_strategy is None
        assert skeleton.core_champion is None
        assert "No units found" in caplog.text

    def test_invalid_tier_badge_falls_back(self, catalog) -> None:
        html = "<h1>X</h1><img src='/hex-tiers/z.svg' alt='Z'><span class='tier-label'>a</span>"
        assert parse_detail_html(html, "", catalog).tier == "A"

    def test_og_title_when_no_heading(self, catalog) -> None:
        html = "<html><head><meta property='og:title' content='From OG'></head></html>"
        assert parse_detail_html(html, "", catalog).name == "From OG"


# ---------------------------------------------------------------------------
# extract_comp_links
# ---------------------------------------------------------------------------

def test_extract_comp_links() -> None:
    html = """
    <a href="/tft/comps-guide/jinx-reroll">Jinx</a>
    <a href="https://mobalytics.gg/tft/comps-guide/jinx-reroll#top">Jinx again</a>
    <a href="/tft/other">Other</a>
    <a href="/tft/comps-guide/zed">Zed</a>
    """
    links = extract_comp_links(html, "https://mobalytics.gg/tft/team-comps", "/tft/comps-guide/")
    assert links == [
        "https://mobalytics.gg/tft/comps-guide/jinx-reroll",
        "https://mobalytics.gg/tft/comps-guide/zed",
    ]
