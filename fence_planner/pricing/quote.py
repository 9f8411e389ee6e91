"""
Quote assembly.

Turns a planned fence (panel segments, posts, gates, lines) into priced line
items. Pure lookup math: quantity x unit price from the catalog. Anything the
catalog cannot price becomes a placeholder line so the quote never aborts.

Input: fence selection + planning outputs + PricingIndex
Output: QuoteSummary
"""

import logging
from collections import OrderedDict
from typing import List, Optional

from ..geometry.gates import get_gate_width
from ..geometry.panels import count_boards_purchased
from ..schemas import (
    Colour,
    Gate,
    GateType,
    Line,
    PanelSegment,
    Post,
    PostCategory,
    ProductType,
    QuoteLineItem,
    QuoteSummary,
    Selection,
)
from .catalog_index import PricingIndex
from .resolver import CatalogResolver
from .sku_builder import find_sliding_gate_range, format_height_m, round_tenth

logger = logging.getLogger(__name__)

MISSING_SKU = "MISSING_SHEET_MATCH"


class QuoteBuilder:
    """Prices planning output against one catalog index."""

    # (category, label, catalog type); T posts share the corner post SKU
    POST_ITEMS = [
        (PostCategory.END, "End Posts", ProductType.END_POST),
        (PostCategory.CORNER, "Corner Posts", ProductType.CORNER_POST),
        (PostCategory.T, "T Posts", ProductType.CORNER_POST),
        (PostCategory.LINE, "Line Posts", ProductType.LINE_POST),
    ]

    GATE_PRODUCTS = {
        "single": ProductType.SINGLE_GATE,
        "double": ProductType.DOUBLE_GATE,
        "sliding": ProductType.SLIDING_GATE,
    }

    def __init__(self, index: Optional[PricingIndex]):
        self.index = index
        self.resolver = CatalogResolver(index)

    def calculate_costs(self, style: str, height_m: float, colour: Colour,
                        panels: List[PanelSegment], posts: List[Post],
                        gates: List[Gate], lines: List[Line]) -> QuoteSummary:
        """
        Build the priced quote.

        Args:
            style: fence style label as the catalog writes it ("Bellbrae")
            height_m: fence height in metres
            colour: White or Coloured
            panels: every panel segment across all runs
            posts: generated posts
            gates: gates on the fence
            lines: fence lines, for the total length

        Returns:
            QuoteSummary with missing_items a subset of line_items
        """
        summary = QuoteSummary(total_length_mm=sum(line.measured_length_mm() for line in lines))

        # --- Panels ---
        panel_quantity = count_boards_purchased(panels)
        if panel_quantity > 0:
            self._add_item(
                summary,
                name=f"{style} Panel {format_height_m(height_m)}",
                item_type="panel",
                quantity=panel_quantity,
                selection=Selection(type=ProductType.PANEL, fence_style=style,
                                    colour=colour, height_m=height_m),
            )

        # --- Posts ---
        counts = {}
        for post in posts:
            counts[post.category] = counts.get(post.category, 0) + 1
        for category, label, product in self.POST_ITEMS:
            quantity = counts.get(category, 0)
            if quantity <= 0:
                continue
            self._add_item(
                summary,
                name=label,
                item_type="post",
                quantity=quantity,
                selection=Selection(type=product, fence_style=style,
                                    colour=colour, height_m=height_m),
            )

        # --- Gates, grouped by label ---
        groups = OrderedDict()
        for gate in gates:
            if gate.type == GateType.OPENING_CUSTOM:
                continue
            width_m = get_gate_width(gate) / 1000.0
            family = GateType(gate.type).value.split("_", 1)[0]
            name = f"{family.capitalize()} Gate {round_tenth(width_m):.1f}m"
            if name in groups:
                groups[name]["quantity"] += 1
            else:
                groups[name] = {"quantity": 1, "width_m": width_m, "family": family}

        for name, group in groups.items():
            self._add_item(
                summary,
                name=name,
                item_type="gate",
                quantity=group["quantity"],
                selection=Selection(type=self.GATE_PRODUCTS[group["family"]], fence_style=style,
                                    colour=colour, height_m=height_m,
                                    gate_width_m=group["width_m"]),
            )

        summary.priced_total = round(sum(item.line_total for item in summary.line_items), 2)
        summary.grand_total = summary.priced_total
        return summary

    # --- Helpers ---

    def _add_item(self, summary: QuoteSummary, name: str, item_type: str,
                  quantity: int, selection: Selection) -> None:
        result = self.resolver.resolve(selection)
        item = QuoteLineItem(
            name=name,
            item_type=item_type,
            quantity=quantity,
            sku=MISSING_SKU,
            unit_price=0.0,
            line_total=0.0,
            gate_width_m=selection.gate_width_m,
        )

        if result.success:
            item.sku = result.resolved.sku
            item.unit_price = result.resolved.unit_price
            item.line_total = round(result.resolved.unit_price * quantity, 2)
            if selection.type == ProductType.SLIDING_GATE:
                bracket = find_sliding_gate_range(selection.gate_width_m, self.index.sliding_ranges)
                item.gate_width_range = bracket.label() if bracket else None
        else:
            item.debug_info = {
                "message": f"Missing residential pricing for {self._selection_key(selection)}",
                "error_type": result.error.type.value,
                "error": result.error.message,
                "generated_sku": result.error.context.generated_sku,
            }
            logger.info("Unpriced quote item %s: %s", name, result.error.message)
            summary.missing_items.append(item)

        summary.line_items.append(item)

    @staticmethod
    def _selection_key(selection: Selection) -> str:
        parts = [selection.type.value, selection.fence_style, selection.colour.value, selection.height_m]
        if selection.gate_width_m is not None:
            parts.append(selection.gate_width_m)
        return "|".join(str(p) for p in parts)


def calculate_costs(style: str, height_m: float, colour: Colour, index: Optional[PricingIndex],
                    panels: List[PanelSegment], posts: List[Post], gates: List[Gate],
                    lines: List[Line]) -> QuoteSummary:
    return QuoteBuilder(index).calculate_costs(style, height_m, colour, panels, posts, gates, lines)
