"""
Residential catalog loading with fallback chain:
1. Upstream price sheet (CSV export of the published sheet), cached for a TTL
2. The last good copy held in memory
3. The seed file shipped in fence_planner/data/pricing_catalog_seed.json

Each successful load rebuilds the PricingIndex. The index is swapped in whole,
so readers never see a half-built one.
"""

import csv
import io
import json
import logging
import os
import re
import time
import urllib.error
import urllib.request
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..config import settings
from ..schemas import CatalogStatus, Colour, PricingRow, ProductType, WidthRange
from .catalog_index import PricingIndex

logger = logging.getLogger(__name__)

DEFAULT_SEED_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "pricing_catalog_seed.json")
SHEET_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"

# Header aliases, compared after lower-casing and collapsing whitespace
HEADER_ALIASES = {
    "category": ["Category", "Catagory"],
    "type": ["Type"],
    "style": ["Style"],
    "colour": ["Colour", "Color"],
    "height": ["Height"],
    "width": ["Width", "Gate width", "Gate Width", "GateWidth"],
    "sku": ["[Line Items] SKU", "Line Items SKU", "SKU"],
    "price": ["[Line Items] Unit price", "Line Items Unit price", "Unit price", "Unit Price", "Price"],
}

_PRICE_JUNK = re.compile(r"[$,\s]")
_WHITESPACE = re.compile(r"\s+")


class CatalogUnavailableError(Exception):
    """No catalog could be loaded from upstream, cache or seed."""


class CatalogShapeError(ValueError):
    """Raw catalog failed the shape check (EMPTY, BAD_SHAPE, MISSING_FIELDS)."""

    def __init__(self, reason: str, details: Optional[dict] = None):
        super().__init__(f"Invalid pricing catalog: {reason}")
        self.reason = reason
        self.details = details or {}


# --- Field parsing ---

def _normalize_header(value: str) -> str:
    return _WHITESPACE.sub(" ", value.strip().lower())


def parse_price(value) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = _PRICE_JUNK.sub("", str(value))
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_width(value):
    """'4.3-5.0' -> WidthRange, '2.35' -> 2.35, blank -> None."""
    if value is None:
        return None
    if isinstance(value, dict):
        return WidthRange(**value)
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    if "-" in text:
        low, _, high = text.partition("-")
        try:
            return WidthRange(min=float(low.strip()), max=float(high.strip()))
        except ValueError:
            pass
    try:
        return float(text)
    except ValueError:
        return None


def normalize_colour(value) -> Optional[Colour]:
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in ("", "*", "any", "all"):
        return None
    if text == "white":
        return Colour.WHITE
    if text in ("colour", "color", "colored", "coloured"):
        return Colour.COLOURED
    raise ValueError(f"Unknown colour: {value}")


def normalize_type(type_text: str, sku: str) -> ProductType:
    """Gate rows are typed from the SKU; the sheet's Type column is unreliable for them."""
    if "-Sliding-" in sku:
        return ProductType.SLIDING_GATE
    if "-Double-" in sku:
        return ProductType.DOUBLE_GATE
    if "-Single-" in sku:
        return ProductType.SINGLE_GATE
    return ProductType(type_text.strip())


def row_from_fields(fields: dict) -> Optional[PricingRow]:
    """
    Build a PricingRow from loosely typed fields. Returns None for rows that
    are not residential or lack a style, type or SKU.
    """
    category = str(fields.get("category") or "Residential").strip()
    if category.lower() != "residential":
        return None

    sku = _WHITESPACE.sub("", str(fields.get("sku") or ""))
    style = str(fields.get("style") or "").strip()
    type_text = str(fields.get("type") or "").strip()
    if not sku or not style or not (type_text or "-Gate" in sku or sku.startswith("Gate-")):
        return None

    try:
        height_m = float(str(fields.get("height") or "").strip().rstrip("mH"))
        if height_m <= 0:
            raise ValueError(f"Invalid height: {height_m}")
        return PricingRow(
            category="Residential",
            type=normalize_type(type_text, sku),
            style=style,
            colour=normalize_colour(fields.get("colour")),
            height_m=height_m,
            width=parse_width(fields.get("width")),
            sku=sku,
            unit_price=parse_price(fields.get("price")),
        )
    except (ValueError, ValidationError) as e:
        logger.warning("Skipping catalog row %s: %s", sku, e)
        return None


def check_catalog_shape(items) -> int:
    """Count usable rows, raising CatalogShapeError when the catalog is unusable."""
    if not isinstance(items, list):
        raise CatalogShapeError("BAD_SHAPE", {"expected": "array"})

    valid = invalid = blank = 0
    for item in items:
        if not isinstance(item, dict):
            invalid += 1
            continue
        sku = str(item.get("sku") or "").strip()
        raw_price = item.get("price")
        if not sku and (raw_price is None or str(raw_price).strip() == ""):
            blank += 1
            continue
        if not sku or parse_price(raw_price) is None:
            invalid += 1
            continue
        valid += 1

    if invalid:
        raise CatalogShapeError("MISSING_FIELDS", {"invalid_rows": invalid, "blank_rows": blank, "valid_rows": valid})
    if valid == 0:
        raise CatalogShapeError("EMPTY", {"blank_rows": blank})
    return valid


def _rows_from_items(items: List[dict]) -> List[PricingRow]:
    check_catalog_shape(items)
    rows = []
    for item in items:
        row = row_from_fields(item)
        if row is not None:
            rows.append(row)
    if not rows:
        raise CatalogShapeError("EMPTY", {"residential_rows": 0})
    return rows


def parse_catalog_csv(text: str) -> List[PricingRow]:
    """Price sheet CSV export -> residential PricingRows."""
    reader = csv.reader(io.StringIO(text))
    all_rows = [r for r in reader if any(cell.strip() for cell in r)]
    if not all_rows:
        raise CatalogShapeError("EMPTY")

    header_index = {_normalize_header(h): i for i, h in enumerate(all_rows[0])}

    def cell(row: List[str], field: str) -> str:
        for alias in HEADER_ALIASES[field]:
            idx = header_index.get(_normalize_header(alias))
            if idx is not None and idx < len(row):
                return row[idx]
        return ""

    items = []
    for row in all_rows[1:]:
        item = {field: cell(row, field) for field in HEADER_ALIASES}
        if not item["sku"].strip() and not item["price"].strip():
            continue
        items.append(item)
    return _rows_from_items(items)


def parse_catalog_json(data: dict) -> List[PricingRow]:
    """Seed file format: {"updated_at": ..., "rows": [PricingRow-like dicts]}."""
    if not isinstance(data, dict) or "rows" not in data:
        raise CatalogShapeError("BAD_SHAPE", {"expected": "object with rows"})
    items = []
    for raw in data["rows"]:
        if not isinstance(raw, dict):
            items.append(raw)
            continue
        items.append({
            "category": raw.get("category"),
            "type": raw.get("type"),
            "style": raw.get("style"),
            "colour": raw.get("colour"),
            "height": raw.get("height_m"),
            "width": raw.get("width"),
            "sku": raw.get("sku"),
            "price": raw.get("unit_price"),
        })
    return _rows_from_items(items)


def load_seed_rows(path: Optional[str] = None) -> List[PricingRow]:
    seed_path = path or settings.PRICING_SEED_PATH or DEFAULT_SEED_PATH
    with open(seed_path) as f:
        return parse_catalog_json(json.load(f))


# --- Store ---

def _now() -> datetime:
    return datetime.now(timezone.utc)


class CatalogStore:
    """
    Holds the current PricingIndex and how it was obtained.

    fetcher is any callable returning CSV text; it defaults to an HTTP GET of
    the configured sheet export.
    """

    def __init__(self, sheet_id: Optional[str] = None, sheet_gid: Optional[str] = None,
                 seed_path: Optional[str] = None, ttl_seconds: Optional[int] = None,
                 timeout_seconds: Optional[float] = None,
                 fetcher: Optional[Callable[[], str]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.sheet_id = settings.PRICING_SHEET_ID if sheet_id is None else sheet_id
        self.sheet_gid = settings.PRICING_SHEET_GID if sheet_gid is None else sheet_gid
        self.seed_path = seed_path
        self.ttl_seconds = settings.PRICING_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.timeout_seconds = timeout_seconds or settings.PRICING_UPSTREAM_TIMEOUT_SECONDS
        self.fetcher = fetcher or self._fetch_upstream
        self.clock = clock

        self._index: Optional[PricingIndex] = None
        self._fetched_at: Optional[float] = None
        self._status = CatalogStatus()

    @property
    def upstream_url(self) -> Optional[str]:
        if not self.sheet_id or not self.sheet_gid:
            return None
        return SHEET_EXPORT_URL.format(sheet_id=self.sheet_id, gid=self.sheet_gid)

    def status(self) -> CatalogStatus:
        return self._status.model_copy()

    def get_index(self) -> PricingIndex:
        """Current index, refreshing from upstream once the TTL has lapsed."""
        now = self.clock()
        self._status.last_attempt_at = _now()

        if self._index is not None and self._fetched_at is not None \
                and now - self._fetched_at < self.ttl_seconds:
            if self._status.source != "seed":
                self._status.source = "cache"
            return self._index

        try:
            rows = parse_catalog_csv(self.fetcher())
        except (CatalogShapeError, urllib.error.URLError, OSError, ValueError) as e:
            self._status.last_error = str(e)
            logger.warning("Pricing catalog fetch failed, falling back: %s", e)
            return self._fallback(now)

        self._install(rows, now, "upstream")
        self._status.last_error = None
        return self._index

    def refresh(self) -> PricingIndex:
        """Force an upstream attempt on the next read."""
        self._fetched_at = None
        return self.get_index()

    def load_rows(self, rows: List[PricingRow], source: str = "manual") -> PricingIndex:
        self._install(rows, self.clock(), source)
        return self._index

    def _fallback(self, now: float) -> PricingIndex:
        if self._index is not None:
            if self._status.source != "seed":
                self._status.source = "cache"
            return self._index
        try:
            rows = load_seed_rows(self.seed_path)
        except (OSError, ValueError) as e:
            self._status.source = "none"
            logger.error("Seed pricing catalog unavailable: %s", e)
            raise CatalogUnavailableError(f"Unable to load pricing catalog: {e}") from e
        self._install(rows, now, "seed")
        return self._index

    def _install(self, rows: List[PricingRow], now: float, source: str) -> None:
        self._index = PricingIndex.build(rows)
        self._fetched_at = now
        self._status.source = source
        self._status.row_count = len(rows)
        self._status.last_success_at = _now()
        logger.info("Pricing catalog loaded from %s: %d rows", source, len(rows))

    def _fetch_upstream(self) -> str:
        url = self.upstream_url
        if url is None:
            raise ValueError("Pricing sheet environment variables are not configured.")
        req = urllib.request.Request(url, headers={"Accept": "text/csv"}, method="GET")
        with urllib.request.urlopen(req, timeout=self.timeout_seconds) as response:
            return response.read().decode("utf-8")


catalog_store = CatalogStore()
