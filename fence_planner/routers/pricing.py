"""
Pricing endpoints: catalog status, single-selection resolution and full quotes.
"""

import logging

from fastapi import APIRouter, HTTPException

from ..geometry.gates import normalize_gate_width
from ..geometry.panels import fit_runs
from ..geometry.posts import generate_posts
from ..pricing.catalog_loader import CatalogUnavailableError, catalog_store
from ..pricing.quote import QuoteBuilder
from ..pricing.resolver import resolve_selection
from ..schemas import CatalogStatus, QuoteRequest, QuoteSummary, ResolveResult, Selection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing", tags=["pricing"])


def _current_index():
    try:
        return catalog_store.get_index()
    except CatalogUnavailableError as e:
        logger.error(f"Pricing catalog unavailable: {e}")
        raise HTTPException(status_code=502, detail="Pricing catalog unavailable")


@router.get("/catalog/status", response_model=CatalogStatus)
def catalog_status():
    return catalog_store.status()


@router.get("/catalog/options")
def catalog_options():
    """Styles, heights, colours and gate widths present in the loaded catalog."""
    index = _current_index()
    return {"options": index.options, "validation": index.validation}


@router.post("/resolve", response_model=ResolveResult)
def resolve(selection: Selection):
    return resolve_selection(_current_index(), selection)


@router.post("/quote", response_model=QuoteSummary)
def quote(request: QuoteRequest):
    """
    Plan and price a fence in one pass: fit panels, generate posts,
    then price panels, posts and gates against the catalog.
    """
    index = _current_index()
    plan = fit_runs(request.lines, list(request.leftovers))
    posts = generate_posts(request.lines, plan.panel_positions)
    gates = [normalize_gate_width(g) for g in request.gates]
    segments = [seg for result in plan.runs.values() for seg in result.segments]

    return QuoteBuilder(index).calculate_costs(
        request.fence_style, request.height_m, request.colour,
        segments, posts, gates, request.lines,
    )
