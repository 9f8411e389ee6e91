"""
Planning endpoints: panel fitting, posts and spans, snapping, offsets,
breaker lines and deck cutting lists. Stateless; every call recomputes.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from ..config import settings
from ..geometry.breakers import default_breaker_lines, snap_breaker_position
from ..geometry.decking import build_deck_cutting_list
from ..geometry.offset import offset_polygon_miter
from ..geometry.panels import fit_runs
from ..geometry.posts import generate_posts
from ..geometry.primitives import polygon_area
from ..geometry.snapping import find_snap_on_lines
from ..geometry.spans import derive_post_spans
from ..schemas import (
    BreakerDefaultsRequest,
    BreakerLine,
    BreakerSnapRequest,
    DeckRequest,
    OffsetRequest,
    OffsetResponse,
    PanelFitRequest,
    PanelPlan,
    PostsRequest,
    PostsResponse,
    SnapRequest,
    SnapResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/planning", tags=["planning"])


@router.post("/panels", response_model=PanelPlan)
def plan_panels(request: PanelFitRequest):
    """Fit panels to every run, drawing on and returning the leftover pool."""
    plan = fit_runs(request.lines, list(request.leftovers))
    if plan.warnings:
        logger.info(f"Panel plan produced {len(plan.warnings)} warnings")
    return plan


@router.post("/posts", response_model=PostsResponse)
def plan_posts(request: PostsRequest):
    posts = generate_posts(request.lines, request.panel_positions)
    spans = derive_post_spans(request.lines, posts)
    return PostsResponse(posts=posts, ordered_posts=spans.ordered_posts, spans=spans.spans)


@router.post("/snap", response_model=Optional[SnapResult])
def snap_point(request: SnapRequest):
    tolerance = request.tolerance_mm if request.tolerance_mm is not None else settings.SNAP_TOLERANCE_MM
    return find_snap_on_lines(request.point, request.lines, tolerance)


@router.post("/offset", response_model=OffsetResponse)
def offset_outline(request: OffsetRequest):
    result = offset_polygon_miter(request.polygon, request.distance_mm, request.direction)
    if result is None:
        raise HTTPException(status_code=422, detail="Outline cannot be offset by that distance")
    return OffsetResponse(polygon=result, area_mm2=polygon_area(result))


@router.post("/breakers", response_model=List[BreakerLine])
def default_breakers(request: BreakerDefaultsRequest):
    if len(request.polygon) < 3:
        raise HTTPException(status_code=422, detail="Deck outline needs at least 3 points")
    return default_breaker_lines(request.polygon, request.board_direction)


@router.post("/breakers/snap")
def snap_breaker(request: BreakerSnapRequest):
    if len(request.polygon) < 3:
        raise HTTPException(status_code=422, detail="Deck outline needs at least 3 points")
    return {
        "axis": request.axis,
        "pos_mm": snap_breaker_position(request.axis, request.pos_mm, request.polygon),
    }


@router.post("/deck")
def deck_cutting_list(request: DeckRequest):
    if len(request.polygon) < 3:
        raise HTTPException(status_code=422, detail="Deck outline needs at least 3 points")
    breakers = request.breakers
    if breakers is None:
        breakers = default_breaker_lines(request.polygon, request.board_direction)
    result = build_deck_cutting_list(request.polygon, request.board_direction, breakers)
    result["breakers"] = breakers
    return result
