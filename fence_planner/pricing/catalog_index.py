"""
Read-only pricing index over a residential catalog.

Built once per catalog load:
  exact    (type, style, colour | WILDCARD, height, width | WILDCARD) -> row
  sliding  (type, style, height) -> rows priced by width bracket
  by_sku   sku -> row
plus the load-time validation report and available options.

Post and gate rows are priced per family, not per fence style: every style
shares the "Picket" rows except Mystique Solid and Mystique Lattice, which
carry their own.
"""

import enum
import logging
from typing import Dict, List, Optional, Tuple, Union

from ..schemas import PricingRow, ProductType, Selection, WidthRange
from .sku_builder import extract_available_options, validate_catalog

logger = logging.getLogger(__name__)

PICKET_EXCEPTIONS = {"Mystique Solid", "Mystique Lattice"}
GENERIC_STYLE_KEY = "Picket"


class Wildcard(enum.Enum):
    """Key part matching any value of a catalog dimension."""
    ANY = "*"


WILDCARD = Wildcard.ANY

KeyPart = Union[str, float, Wildcard]
ExactKey = Tuple[str, str, KeyPart, float, KeyPart]
SlidingKey = Tuple[str, str, float]


def _height_key(height_m: float) -> float:
    return round(height_m, 3)


def _width_key(width: Union[WidthRange, float, None]) -> KeyPart:
    if width is None:
        return WILDCARD
    if isinstance(width, WidthRange):
        return f"{width.min}-{width.max}"
    return round(float(width), 3)


def style_key_for_selection(selection: Selection) -> str:
    if selection.type == ProductType.PANEL:
        return selection.fence_style
    if selection.fence_style in PICKET_EXCEPTIONS:
        return selection.fence_style
    return GENERIC_STYLE_KEY


def is_gate_with_width(product_type: ProductType) -> bool:
    return product_type in (ProductType.SINGLE_GATE, ProductType.DOUBLE_GATE)


class PricingIndex:
    """Immutable after build(). Rebuild when the catalog rows change."""

    def __init__(self, rows: List[PricingRow]):
        self.rows: Tuple[PricingRow, ...] = tuple(rows)
        self.exact: Dict[ExactKey, PricingRow] = {}
        self.sliding: Dict[SlidingKey, List[PricingRow]] = {}
        self.by_sku: Dict[str, PricingRow] = {}

        for row in self.rows:
            type_name = ProductType(row.type).value
            if row.type == ProductType.SLIDING_GATE:
                key = (type_name, row.style, _height_key(row.height_m))
                self.sliding.setdefault(key, []).append(row)
            else:
                key = (
                    type_name,
                    row.style,
                    row.colour.value if row.colour is not None else WILDCARD,
                    _height_key(row.height_m),
                    _width_key(row.width),
                )
                self.exact[key] = row
            self.by_sku[row.sku] = row

        self.validation = validate_catalog(list(self.rows))
        self.options = extract_available_options(list(self.rows))

        if not self.validation["valid"]:
            logger.warning("Catalog has %d errors", len(self.validation["errors"]))
        if self.validation["warnings"]:
            logger.info("Catalog has %d warnings", len(self.validation["warnings"]))

    @classmethod
    def build(cls, rows: List[PricingRow]) -> "PricingIndex":
        return cls(rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def sliding_ranges(self) -> List[WidthRange]:
        return list(self.options["gate_widths"]["sliding"])

    def resolve_row(self, selection: Selection) -> Optional[PricingRow]:
        """
        Key lookup without SKU construction.

        Sliding gates: first bracket in the bucket containing the width.
        Other types: exact colour first, then the any-colour row.
        No approximation beyond that; a miss returns None.
        """
        style = style_key_for_selection(selection)
        type_name = ProductType(selection.type).value
        height = _height_key(selection.height_m)

        if selection.type == ProductType.SLIDING_GATE:
            width = selection.gate_width_m
            if width is None:
                return None
            for row in self.sliding.get((type_name, style, height), []):
                if isinstance(row.width, WidthRange) and row.width.contains(width):
                    return row
            return None

        width_part: KeyPart = WILDCARD
        if is_gate_with_width(selection.type):
            if selection.gate_width_m is None:
                return None
            width_part = _width_key(selection.gate_width_m)

        for colour_part in (selection.colour.value, WILDCARD):
            row = self.exact.get((type_name, style, colour_part, height, width_part))
            if row is not None:
                return row
        return None

    def skus_with_prefix(self, prefix: str, limit: int = 10) -> List[str]:
        return [sku for sku in self.by_sku if sku.startswith(prefix)][:limit]
