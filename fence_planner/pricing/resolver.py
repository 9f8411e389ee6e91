"""
Selection -> SKU and unit price, with typed failures.

Resolution runs an ordered chain of strategies against one PricingIndex:

1. SkuBuilderStrategy  - build the expected SKU and look it up by SKU
2. IndexStrategy       - key lookup (exact colour, then any colour; brackets
                         for sliding gates)

The first strategy that finds a row wins. Failures come back as a
ResolutionError (missing_sku, invalid_input, sku_build_failed) carrying
enough context to show the user what was looked for.
"""

import logging
from typing import List, Optional

from ..schemas import (
    PricingRow,
    ProductType,
    Resolved,
    ResolutionContext,
    ResolutionError,
    ResolutionErrorType,
    ResolveResult,
    Selection,
    WidthRange,
)
from .catalog_index import PricingIndex
from .sku_builder import (
    GATE_KINDS,
    POST_KINDS,
    SkuResult,
    build_gate_sku,
    build_panel_sku,
    build_post_sku,
    find_sliding_gate_range,
)

logger = logging.getLogger(__name__)

NEAR_MISS_LIMIT = 10


class SkuRequest:
    """What the chain is looking for: the built SKU and, for sliders, the bracket."""

    def __init__(self, sku: str, width_range: Optional[WidthRange] = None):
        self.sku = sku
        self.width_range = width_range


class ResolverStrategy:
    name = "base"

    def lookup(self, index: PricingIndex, selection: Selection,
               request: SkuRequest) -> Optional[PricingRow]:
        raise NotImplementedError


class SkuBuilderStrategy(ResolverStrategy):
    name = "sku_builder"

    def lookup(self, index, selection, request):
        return index.by_sku.get(request.sku)


class IndexStrategy(ResolverStrategy):
    name = "index"

    def lookup(self, index, selection, request):
        return index.resolve_row(selection)


DEFAULT_STRATEGIES: List[ResolverStrategy] = [SkuBuilderStrategy(), IndexStrategy()]


def _error(kind: ResolutionErrorType, message: str, selection: Selection, **context) -> ResolveResult:
    return ResolveResult(
        success=False,
        error=ResolutionError(
            type=kind,
            message=message,
            context=ResolutionContext(selection=selection, **context),
        ),
    )


def _family_prefix(sku: str) -> str:
    return sku.split("-", 1)[0] + "-"


class CatalogResolver:
    """Resolves selections against an index using an ordered strategy chain."""

    def __init__(self, index: Optional[PricingIndex],
                 strategies: Optional[List[ResolverStrategy]] = None):
        self.index = index
        self.strategies = strategies if strategies is not None else DEFAULT_STRATEGIES

    def resolve(self, selection: Selection) -> ResolveResult:
        if self.index is None:
            return _error(ResolutionErrorType.INVALID_INPUT, "Pricing index not available", selection)

        request = self._build_request(selection)
        if isinstance(request, ResolveResult):
            return request

        for strategy in self.strategies:
            row = strategy.lookup(self.index, selection, request)
            if row is not None:
                logger.debug("Resolved %s via %s -> %s", selection.type.value, strategy.name, row.sku)
                return ResolveResult(success=True, resolved=self._resolved(row, selection))

        return self._missing(selection, request)

    # --- Helpers ---

    def _build_request(self, selection: Selection):
        """SkuRequest on success, a failed ResolveResult otherwise."""
        product = ProductType(selection.type)

        if product == ProductType.PANEL:
            built = build_panel_sku(selection.fence_style, selection.colour, selection.height_m)
            return self._request_from(built, selection)

        if "Post" in product.value:
            post_kind = POST_KINDS.get(product)
            if post_kind is None:
                return _error(ResolutionErrorType.INVALID_INPUT,
                              f"Unknown post type: {product.value}", selection)
            built = build_post_sku(post_kind, selection.colour, selection.height_m)
            return self._request_from(built, selection)

        gate_kind = GATE_KINDS.get(product)
        if gate_kind is None:
            return _error(ResolutionErrorType.INVALID_INPUT,
                          f"Unknown gate type: {product.value}", selection)
        if selection.gate_width_m is None:
            return _error(ResolutionErrorType.INVALID_INPUT, "Gate width is required", selection)

        width_range = None
        if gate_kind == "Sliding":
            ranges = self.index.sliding_ranges
            width_range = find_sliding_gate_range(selection.gate_width_m, ranges)
            if width_range is None:
                available = ", ".join(f"{r.min}-{r.max}m" for r in ranges)
                return _error(
                    ResolutionErrorType.MISSING_SKU,
                    f"No sliding gate width range found for {selection.gate_width_m}m. "
                    f"Available ranges: {available}",
                    selection,
                    width_ranges=ranges,
                )

        built = build_gate_sku(gate_kind, selection.fence_style, selection.height_m,
                               selection.gate_width_m, width_range)
        return self._request_from(built, selection, width_range)

    def _request_from(self, built: SkuResult, selection: Selection,
                      width_range: Optional[WidthRange] = None):
        if not built.success:
            return _error(ResolutionErrorType.SKU_BUILD_FAILED, built.error, selection)
        return SkuRequest(built.sku, width_range)

    def _resolved(self, row: PricingRow, selection: Selection) -> Resolved:
        resolved = Resolved(sku=row.sku, unit_price=row.unit_price)
        if selection.gate_width_m is not None and "Gate" in selection.type.value:
            resolved.priced_width_m = selection.gate_width_m
            resolved.requested_width_m = selection.gate_width_m
            resolved.width_snapped = False
        return resolved

    def _missing(self, selection: Selection, request: SkuRequest) -> ResolveResult:
        if selection.type == ProductType.SLIDING_GATE:
            return _error(
                ResolutionErrorType.MISSING_SKU,
                f"Sliding gate SKU not found: {request.sku}",
                selection,
                generated_sku=request.sku,
                width_range=request.width_range,
                width_ranges=self.index.sliding_ranges,
            )
        label = "Gate SKU not found in catalog" if "Gate" in selection.type.value else "SKU not found in catalog"
        return _error(
            ResolutionErrorType.MISSING_SKU,
            f"{label}: {request.sku}",
            selection,
            generated_sku=request.sku,
            available_skus=self.index.skus_with_prefix(_family_prefix(request.sku), NEAR_MISS_LIMIT),
        )


def resolve_selection(index: Optional[PricingIndex], selection: Selection) -> ResolveResult:
    return CatalogResolver(index).resolve(selection)


def resolve_sku_and_price(index: Optional[PricingIndex], selection: Selection) -> Optional[Resolved]:
    """Key lookup only, without SKU construction or error detail."""
    if index is None:
        return None
    row = index.resolve_row(selection)
    if row is None:
        return None
    return Resolved(sku=row.sku, unit_price=row.unit_price)
