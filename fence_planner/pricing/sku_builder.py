"""
Deterministic SKU construction for residential fence products.

The catalog names products with a fixed grammar:

    Panel:  Bellbrae-White-1.8m, Mystique-Solid-Colour-1.8m,
            Picket-Jabiru-White-1.2m, <Style>-White-1.8m
    Post:   ResPost-Corner-Wht-1.8m
    Gate:   Gate-Picket-Single-1.6H-2.35W, Gate-Myst-Double-1.8H-4.7W
    Slider: Gate-Pick-Sliding-1.6H-4.6/5.0

Builders never raise on bad input; they return a failed SkuResult. This
module also holds the load-time catalog checks and option extraction.
"""

import math
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..schemas import Colour, PricingRow, ProductType, WidthRange

PICKET_STYLES = {"Jabiru", "Kestrel", "Kookaburra", "Rosella", "Toucan", "Wren"}
MYSTIQUE_STYLES = {"Mystique Solid", "Mystique Lattice"}

POST_KINDS = {
    ProductType.END_POST: "End",
    ProductType.CORNER_POST: "Corner",
    ProductType.LINE_POST: "Line",
    ProductType.BLANK_POST: "Blank",
}

GATE_KINDS = {
    ProductType.SINGLE_GATE: "Single",
    ProductType.DOUBLE_GATE: "Double",
    ProductType.SLIDING_GATE: "Sliding",
}

MAX_HEIGHT_M = 3.0
MAX_GATE_WIDTH_M = 10.0


class SkuResult(BaseModel):
    success: bool
    sku: Optional[str] = None
    error: Optional[str] = None
    context: Dict[str, Any] = {}


def _ok(sku: str) -> SkuResult:
    return SkuResult(success=True, sku=sku)


def _fail(error: str, **context) -> SkuResult:
    return SkuResult(success=False, error=error, context=context)


# --- Token formatting ---

def format_number(value: float) -> str:
    """Shortest decimal form: 1.0 -> '1', 2.35 -> '2.35'."""
    return f"{value:.10g}"


def round_tenth(value: float) -> float:
    # half-up, matching how heights are written on the price list
    return math.floor(value * 10 + 0.5) / 10


def format_height_m(height_m: float) -> str:
    return f"{format_number(round_tenth(height_m))}m"


def format_height_h(height_m: float) -> str:
    return f"{format_number(round_tenth(height_m))}H"


def format_width_w(width_m: float) -> str:
    return f"{format_number(width_m)}W"


def format_range_bound(value: float) -> str:
    """At least one decimal, as the price list writes brackets: 5 -> '5.0', 4.75 -> '4.75'."""
    text = format_number(value)
    return text if "." in text else f"{text}.0"


def format_width_range(width_range: WidthRange) -> str:
    return f"{format_range_bound(width_range.min)}/{format_range_bound(width_range.max)}"


def panel_colour_token(colour: Colour) -> str:
    return "White" if Colour(colour) == Colour.WHITE else "Colour"


def post_colour_token(colour: Colour) -> str:
    return "Wht" if Colour(colour) == Colour.WHITE else "Col"


def gate_style_token(style: str) -> str:
    return "Myst" if style in MYSTIQUE_STYLES else "Picket"


# --- Builders ---

def build_panel_sku(style: str, colour: Colour, height_m: float) -> SkuResult:
    if not style or not style.strip():
        return _fail("Panel style is required", style=style)
    if height_m <= 0 or height_m > MAX_HEIGHT_M:
        return _fail(f"Invalid panel height: {height_m}m", height_m=height_m)

    colour_token = panel_colour_token(colour)
    height_token = format_height_m(height_m)

    if style == "Bellbrae":
        return _ok(f"Bellbrae-{colour_token}-{height_token}")
    if style == "Mystique Lattice":
        return _ok(f"Mystique-Lattice-{colour_token}-{height_token}")
    if style == "Mystique Solid":
        return _ok(f"Mystique-Solid-{colour_token}-{height_token}")
    if style in PICKET_STYLES:
        return _ok(f"Picket-{style}-{colour_token}-{height_token}")
    return _ok(f"{style}-{colour_token}-{height_token}")


def build_post_sku(post_kind: str, colour: Colour, height_m: float) -> SkuResult:
    if post_kind not in POST_KINDS.values():
        return _fail(f"Unknown post kind: {post_kind}", post_kind=post_kind)
    if height_m <= 0 or height_m > MAX_HEIGHT_M:
        return _fail(f"Invalid post height: {height_m}m", height_m=height_m)
    return _ok(f"ResPost-{post_kind}-{post_colour_token(colour)}-{format_height_m(height_m)}")


def build_gate_sku(gate_kind: str, style: str, height_m: float, width_m: float,
                   width_range: Optional[WidthRange] = None) -> SkuResult:
    if height_m <= 0 or height_m > MAX_HEIGHT_M:
        return _fail(f"Invalid gate height: {height_m}m", height_m=height_m)
    if width_m <= 0 or width_m > MAX_GATE_WIDTH_M:
        return _fail(f"Invalid gate width: {width_m}m", width_m=width_m)

    style_token = gate_style_token(style)
    if gate_kind == "Sliding":
        if width_range is None:
            return _fail("Sliding gate requires a width range", width_m=width_m)
        slider_token = "Myst" if style_token == "Myst" else "Pick"
        return _ok(
            f"Gate-{slider_token}-Sliding-{format_height_h(height_m)}-{format_width_range(width_range)}"
        )
    if gate_kind not in ("Single", "Double"):
        return _fail(f"Unknown gate kind: {gate_kind}", gate_kind=gate_kind)
    return _ok(f"Gate-{style_token}-{gate_kind}-{format_height_h(height_m)}-{format_width_w(width_m)}")


def build_sku(category: str, **kwargs) -> SkuResult:
    """Dispatch to the builder for a category (panel, post, gate)."""
    builders = {
        "panel": build_panel_sku,
        "post": build_post_sku,
        "gate": build_gate_sku,
    }
    if category not in builders:
        raise ValueError(
            f"No SKU builder registered for category: {category}. "
            f"Available: {list(builders.keys())}"
        )
    return builders[category](**kwargs)


# --- Load-time catalog validation ---

PANEL_SKU_PATTERNS = [
    re.compile(r"^Bellbrae-(?:White|Colour)-\d+(?:\.\d+)?m$"),
    re.compile(r"^Mystique-(?:Lattice|Solid)-(?:White|Colour)-\d+(?:\.\d+)?m$"),
    re.compile(r"^Picket-[A-Za-z]+-(?:White|Colour)-\d+(?:\.\d+)?m$"),
]
POST_SKU_PATTERN = re.compile(r"^ResPost-(?:End|Corner|Line|Blank)-(?:Wht|Col)-\d+(?:\.\d+)?m$")
GATE_SKU_PATTERNS = [
    re.compile(r"^Gate-(?:Picket|Pick|Myst|Mystique)-(?:Single|Double)-\d+(?:\.\d+)?H-\d+(?:\.\d+)?W$"),
    re.compile(r"^Gate-(?:Picket|Pick|Myst|Mystique)-Sliding-(?:\d+(?:\.\d+)?H-)?\d+(?:\.\d+)?(?:/|-)\d+(?:\.\d+)?$"),
]
_SLIDING_RANGE_TAIL = re.compile(r"(\d+(?:\.\d+)?)-(\d+(?:\.\d+)?)$")


def normalize_sliding_sku(sku: str) -> str:
    """Sliding SKUs are written both 4.6-5.0 and 4.6/5.0; treat them alike."""
    sku = sku.strip()
    if "Sliding" not in sku:
        return sku
    return _SLIDING_RANGE_TAIL.sub(r"\1/\2", sku)


def validate_catalog(rows: List[PricingRow]) -> dict:
    """
    Duplicate, price and SKU-pattern checks over a freshly loaded catalog.
    Problems are reported, never fixed; resolution runs on the rows as given.
    """
    errors = []
    warnings = []
    seen: Dict[str, int] = {}
    stats = {"total_rows": len(rows), "panels": 0, "posts": 0, "gates": 0, "duplicates": 0}

    for index, row in enumerate(rows):
        normalized = normalize_sliding_sku(row.sku)

        if normalized in seen:
            stats["duplicates"] += 1
            warnings.append({
                "type": "duplicate_sku",
                "sku": row.sku,
                "message": f"Duplicate SKU found at row {index + 1}, first seen at row {seen[normalized] + 1}",
            })
        else:
            seen[normalized] = index

        if row.unit_price is None or math.isnan(row.unit_price):
            errors.append({
                "type": "missing_price",
                "sku": row.sku,
                "message": f"Missing or invalid price for SKU: {row.sku}",
            })
        elif row.unit_price < 0:
            errors.append({
                "type": "invalid_price",
                "sku": row.sku,
                "message": f"Negative price ({row.unit_price}) for SKU: {row.sku}",
            })

        type_name = ProductType(row.type).value
        if type_name == "Panel":
            stats["panels"] += 1
            patterns, label = PANEL_SKU_PATTERNS, "Panel SKU does not match expected patterns"
        elif "Post" in type_name:
            stats["posts"] += 1
            patterns, label = [POST_SKU_PATTERN], "Post SKU does not match expected pattern"
        else:
            stats["gates"] += 1
            patterns, label = GATE_SKU_PATTERNS, "Gate SKU does not match expected patterns"

        if not any(p.match(normalized) for p in patterns):
            warnings.append({
                "type": "invalid_sku_pattern",
                "sku": row.sku,
                "message": f"{label}: {row.sku}",
            })

    return {"valid": not errors, "errors": errors, "warnings": warnings, "stats": stats}


def extract_available_options(rows: List[PricingRow]) -> dict:
    """Styles, heights, colours and gate widths actually present in the catalog."""
    styles = set()
    heights = set()
    colours = []
    single = set()
    double = set()
    sliding: List[WidthRange] = []

    for row in rows:
        if row.style:
            styles.add(row.style)
        if row.height_m and row.height_m > 0:
            heights.add(row.height_m)
        if row.colour is not None and row.colour not in colours:
            colours.append(row.colour)

        if row.type == ProductType.SINGLE_GATE and isinstance(row.width, (int, float)) and row.width:
            single.add(row.width)
        elif row.type == ProductType.DOUBLE_GATE and isinstance(row.width, (int, float)) and row.width:
            double.add(row.width)
        elif row.type == ProductType.SLIDING_GATE and isinstance(row.width, WidthRange):
            if not any(r.min == row.width.min and r.max == row.width.max for r in sliding):
                sliding.append(row.width)

    return {
        "styles": sorted(styles),
        "heights": sorted(heights),
        "colours": colours,
        "gate_widths": {
            "single": sorted(single),
            "double": sorted(double),
            "sliding": sorted(sliding, key=lambda r: r.min),
        },
    }


def snap_to_available_width(requested_m: float, available_m: List[float],
                            mode: str = "round_up") -> Optional[dict]:
    """
    Snap a requested gate width onto the catalog's widths.
    round_up picks the next width that fits (the largest when none does);
    nearest picks the closest, ties to the smaller.
    """
    if not available_m:
        return None
    ordered = sorted(available_m)

    if mode == "round_up":
        priced = next((w for w in ordered if w >= requested_m), None)
        if priced is None:
            return {"priced_width_m": ordered[-1], "requested_width_m": requested_m, "snapped": True}
    else:
        priced = min(ordered, key=lambda w: abs(w - requested_m))

    return {
        "priced_width_m": priced,
        "requested_width_m": requested_m,
        "snapped": abs(priced - requested_m) > 0.001,
    }


def find_sliding_gate_range(width_m: float, ranges: List[WidthRange]) -> Optional[WidthRange]:
    """First bracket containing the width, both ends inclusive."""
    return next((r for r in ranges if r.contains(width_m)), None)
