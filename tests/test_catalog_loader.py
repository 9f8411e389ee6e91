"""
Catalog parsing and the upstream -> cache -> seed fallback chain.
"""

import urllib.error

import pytest

from fence_planner.pricing.catalog_loader import (
    CatalogShapeError,
    CatalogStore,
    CatalogUnavailableError,
    load_seed_rows,
    normalize_colour,
    normalize_type,
    parse_catalog_csv,
    parse_catalog_json,
    parse_price,
    parse_width,
)
from fence_planner.schemas import Colour, ProductType, WidthRange


SHEET_CSV = """Catagory,Type,Style,Colour,Height,Width,[Line Items] SKU,[Line Items] Unit price
Residential,Panel,Bellbrae,White,1.6,,Bellbrae-White-1.6m,$303.88
Residential,Gate,Picket,,1.6,4.6-5.0,Gate-Pick-Sliding-1.6H-4.6/5.0,"$5,631.67"
Commercial,Panel,Bellbrae,White,1.6,,Comm-Bellbrae-1.6m,100
,,,,,,,
"""


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class _Fetcher:
    """Serves CSV text, or raises once told the sheet is offline."""

    def __init__(self, text=SHEET_CSV):
        self.text = text
        self.calls = 0
        self.offline = False

    def __call__(self):
        self.calls += 1
        if self.offline:
            raise urllib.error.URLError("offline")
        return self.text


def _store(fetcher, clock=None, seed_path=None):
    return CatalogStore(
        sheet_id="sheet", sheet_gid="42", seed_path=seed_path, ttl_seconds=600,
        timeout_seconds=1, fetcher=fetcher, clock=clock or _Clock(),
    )


# --- Field parsing ---

def test_parse_price():
    assert parse_price("$1,234.50 ") == 1234.5
    assert parse_price(12) == 12.0
    assert parse_price("") is None
    assert parse_price("n/a") is None


def test_parse_width():
    assert parse_width("4.3-5.0") == WidthRange(min=4.3, max=5.0)
    assert parse_width("2.35") == 2.35
    assert parse_width({"min": 3.1, "max": 3.6}) == WidthRange(min=3.1, max=3.6)
    assert parse_width("") is None
    assert parse_width(None) is None


def test_normalize_colour():
    assert normalize_colour("white") == Colour.WHITE
    assert normalize_colour("Colored") == Colour.COLOURED
    assert normalize_colour("") is None
    with pytest.raises(ValueError):
        normalize_colour("Charcoal")


def test_gate_type_comes_from_sku():
    assert normalize_type("Gate", "Gate-Picket-Double-1.6H-4.7W") == ProductType.DOUBLE_GATE
    assert normalize_type("Line Post", "ResPost-Line-Wht-1.6m") == ProductType.LINE_POST


# --- CSV / JSON ---

def test_parse_sheet_csv_keeps_residential_rows():
    rows = parse_catalog_csv(SHEET_CSV)
    assert [r.sku for r in rows] == ["Bellbrae-White-1.6m", "Gate-Pick-Sliding-1.6H-4.6/5.0"]
    slider = rows[1]
    assert slider.type == ProductType.SLIDING_GATE
    assert slider.width == WidthRange(min=4.6, max=5.0)
    assert slider.unit_price == 5631.67
    assert slider.colour is None


def test_sku_whitespace_is_removed():
    text = "Category,Type,Style,Colour,Height,SKU,Price\nResidential,Panel,Bellbrae,White,1.6, Bellbrae-White- 1.6m ,303.88\n"
    assert parse_catalog_csv(text)[0].sku == "Bellbrae-White-1.6m"


def test_bad_catalogs_are_rejected():
    with pytest.raises(CatalogShapeError) as empty:
        parse_catalog_csv("")
    assert empty.value.reason == "EMPTY"

    with pytest.raises(CatalogShapeError) as header_only:
        parse_catalog_csv("SKU,Price\n")
    assert header_only.value.reason == "EMPTY"

    with pytest.raises(CatalogShapeError) as missing:
        parse_catalog_csv("Type,Style,Height,SKU,Price\nPanel,Bellbrae,1.6,Bellbrae-White-1.6m,free\n")
    assert missing.value.reason == "MISSING_FIELDS"

    with pytest.raises(CatalogShapeError) as shape:
        parse_catalog_json([])
    assert shape.value.reason == "BAD_SHAPE"


def test_seed_file_loads():
    rows = load_seed_rows()
    by_sku = {r.sku: r for r in rows}
    assert by_sku["Bellbrae-White-1.6m"].unit_price == 303.88
    assert by_sku["Gate-Picket-Double-1.6H-4.7W"].unit_price == 1768.36
    assert by_sku["Gate-Pick-Sliding-1.6H-4.6/5.0"].width == WidthRange(min=4.6, max=5.0)
    assert all(r.category == "Residential" for r in rows)


# --- Store ---

def test_upstream_load_then_cache_within_ttl():
    fetcher = _Fetcher()
    clock = _Clock()
    store = _store(fetcher, clock)

    index = store.get_index()
    assert len(index) == 2
    assert store.status().source == "upstream"
    assert store.status().row_count == 2

    clock.now += 60
    assert store.get_index() is index
    assert fetcher.calls == 1
    assert store.status().source == "cache"


def test_upstream_failure_keeps_cached_index():
    fetcher = _Fetcher()
    clock = _Clock()
    store = _store(fetcher, clock)
    index = store.get_index()

    fetcher.offline = True
    clock.now += 601
    assert store.get_index() is index
    status = store.status()
    assert status.source == "cache"
    assert "offline" in status.last_error


def test_first_load_failure_falls_back_to_seed():
    fetcher = _Fetcher()
    fetcher.offline = True
    store = _store(fetcher)
    index = store.get_index()
    assert "Bellbrae-White-1.6m" in index.by_sku
    status = store.status()
    assert status.source == "seed"
    assert status.last_success_at is not None
    assert status.last_error is not None


def test_no_catalog_anywhere_raises(tmp_path):
    fetcher = _Fetcher()
    fetcher.offline = True
    store = _store(fetcher, seed_path=str(tmp_path / "missing.json"))
    with pytest.raises(CatalogUnavailableError):
        store.get_index()
    assert store.status().source == "none"


def test_refresh_rebuilds_index():
    fetcher = _Fetcher()
    store = _store(fetcher)
    first = store.get_index()
    second = store.refresh()
    assert second is not first
    assert fetcher.calls == 2


def test_upstream_url():
    store = _store(_Fetcher())
    assert store.upstream_url == "https://docs.google.com/spreadsheets/d/sheet/export?format=csv&gid=42"
    assert CatalogStore(sheet_id="").upstream_url is None
