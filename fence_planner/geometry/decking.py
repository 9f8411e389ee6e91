"""
Deck layout: edge locks, board runs, joists and clips.

Input: deck outline (planar mm), board direction, breaker lines
Output: cutting-list dict with per-row board plans and clip counts
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from ..config import settings
from ..schemas import Axis, BoardDirection, BreakerLine, EdgeConstraint, EdgeMode, Point
from .primitives import distance, polygon_bounds, polygon_perimeter

logger = logging.getLogger(__name__)

INTERSECTION_EPS = 1e-6
MIN_SPAN_EPS_MM = 0.5


# --- Edge constraints ---

def edge_length(polygon: List[Point], edge_index: int) -> float:
    n = len(polygon)
    if n == 0:
        return 0.0
    return distance(polygon[edge_index % n], polygon[(edge_index + 1) % n])


def is_edge_locked(constraints: Dict[int, EdgeConstraint], edge_index: int) -> bool:
    constraint = constraints.get(edge_index)
    return constraint is not None and constraint.mode == EdgeMode.LOCKED


def lock_edge(constraints: Dict[int, EdgeConstraint], edge_index: int,
              length_mm: float) -> Dict[int, EdgeConstraint]:
    updated = dict(constraints)
    updated[edge_index] = EdgeConstraint(mode=EdgeMode.LOCKED, length_mm=length_mm)
    return updated


def unlock_edge(constraints: Dict[int, EdgeConstraint], edge_index: int) -> Dict[int, EdgeConstraint]:
    updated = dict(constraints)
    updated.pop(edge_index, None)
    return updated


# --- Scanline spans ---

def _dedupe_hits(hits: List[float]) -> List[float]:
    deduped = []
    for hit in sorted(hits):
        if not deduped or abs(hit - deduped[-1]) > INTERSECTION_EPS:
            deduped.append(hit)
    return deduped


def _spans(polygon: List[Point], value: float, horizontal: bool) -> List[Tuple[float, float]]:
    hits = []
    n = len(polygon)
    for i, p1 in enumerate(polygon):
        p2 = polygon[(i + 1) % n]
        a1, a2 = (p1.y, p2.y) if horizontal else (p1.x, p2.x)
        b1, b2 = (p1.x, p2.x) if horizontal else (p1.y, p2.y)
        if abs(a1 - a2) < INTERSECTION_EPS:
            continue
        if value < min(a1, a2) or value >= max(a1, a2):
            continue
        t = (value - a1) / (a2 - a1)
        hits.append(b1 + t * (b2 - b1))

    hits.sort()
    if len(hits) % 2 == 1:
        hits = _dedupe_hits(hits)
        if len(hits) % 2 == 1:
            logger.warning("Odd %s intersection count at %.1f: %s",
                           "horizontal" if horizontal else "vertical", value, hits)
            return []

    return [
        (start, end) for start, end in zip(hits[0::2], hits[1::2])
        if end - start > MIN_SPAN_EPS_MM
    ]


def horizontal_spans(polygon: List[Point], y_mm: float) -> List[Tuple[float, float]]:
    """Inside intervals along x where the horizontal line y = y_mm crosses the polygon."""
    return _spans(polygon, y_mm, horizontal=True)


def vertical_spans(polygon: List[Point], x_mm: float) -> List[Tuple[float, float]]:
    return _spans(polygon, x_mm, horizontal=False)


def merge_intervals(intervals: List[Tuple[float, float]], tolerance_mm: float) -> List[Tuple[float, float]]:
    merged = []
    for start, end in sorted(intervals):
        if merged and start - merged[-1][1] <= tolerance_mm:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def split_at_breakers(span: Tuple[float, float], breaker_positions: List[float]) -> List[Tuple[float, float]]:
    """Cut one board run at every breaker strictly inside it."""
    start, end = span
    cuts = sorted(p for p in breaker_positions if start < p < end)
    pieces = []
    cursor = start
    for cut in cuts:
        pieces.append((cursor, cut))
        cursor = cut
    pieces.append((cursor, end))
    return pieces


# --- Boards, joists, clips ---

def plan_boards_for_run(run_length_mm: float, max_board_length_mm: Optional[float] = None) -> dict:
    """Full-length boards plus one cut board for the remainder."""
    max_len = max_board_length_mm or settings.MAX_BOARD_LENGTH_MM
    if run_length_mm <= 0:
        return {"board_lengths": [], "waste_mm": 0.0}
    full_boards = math.floor(run_length_mm / max_len)
    remainder = run_length_mm % max_len
    board_lengths = [max_len] * full_boards
    if remainder > 0:
        board_lengths.append(remainder)
    return {
        "board_lengths": board_lengths,
        "waste_mm": max_len - remainder if remainder > 0 else 0.0,
    }


def _joist_span(polygon: List[Point], board_direction: BoardDirection) -> Optional[Tuple[float, float]]:
    bounds = polygon_bounds(polygon)
    if bounds is None:
        return None
    if BoardDirection(board_direction) == BoardDirection.HORIZONTAL:
        return bounds.min_x, bounds.max_x
    return bounds.min_y, bounds.max_y


def joist_count(polygon: List[Point], board_direction: BoardDirection, joist_spacing_mm: float) -> int:
    span = _joist_span(polygon, board_direction)
    if span is None or joist_spacing_mm <= 0:
        return 0
    return math.ceil((span[1] - span[0]) / joist_spacing_mm) + 1


def joist_positions(polygon: List[Point], board_direction: BoardDirection,
                    joist_spacing_mm: float) -> List[float]:
    span = _joist_span(polygon, board_direction)
    if span is None or joist_spacing_mm <= 0:
        return []
    count = joist_count(polygon, board_direction, joist_spacing_mm)
    return [span[0] + i * joist_spacing_mm for i in range(count)]


def clips_per_joist(row_count: int) -> dict:
    """One starter clip per joist, then a clip for roughly every three rows."""
    if row_count <= 0:
        return {"clips_per_joist": 0, "starter_clips_per_joist": 0}
    extra = math.ceil(max(0.0, row_count - 2.5) / 3)
    return {"clips_per_joist": 1 + extra, "starter_clips_per_joist": 1}


def fascia_clip_count(perimeter_mm: float, joist_spacing_mm: float) -> int:
    if perimeter_mm <= 0 or joist_spacing_mm <= 0:
        return 0
    return math.ceil(perimeter_mm / joist_spacing_mm)


def fascia_clip_positions(polygon: List[Point], joist_spacing_mm: float) -> List[Point]:
    """Clip points spaced along the outline, walking from the first vertex."""
    if len(polygon) < 2 or joist_spacing_mm <= 0:
        return []
    perimeter = polygon_perimeter(polygon)
    count = fascia_clip_count(perimeter, joist_spacing_mm)
    targets = [min(perimeter, (i + 1) * joist_spacing_mm) for i in range(count)]

    positions = []
    traversed = 0.0
    n = len(polygon)
    for i in range(n):
        if len(positions) >= len(targets):
            break
        start = polygon[i]
        end = polygon[(i + 1) % n]
        length = distance(start, end)
        if length == 0:
            continue
        edge_end = traversed + length
        while len(positions) < len(targets) and targets[len(positions)] <= edge_end:
            t = (targets[len(positions)] - traversed) / length
            positions.append(Point(x=start.x + (end.x - start.x) * t, y=start.y + (end.y - start.y) * t))
        traversed = edge_end
    return positions


def build_deck_cutting_list(polygon: List[Point],
                            board_direction: BoardDirection = BoardDirection.HORIZONTAL,
                            breakers: Optional[List[BreakerLine]] = None,
                            board_width_mm: Optional[float] = None,
                            gap_mm: Optional[float] = None,
                            joist_spacing_mm: Optional[float] = None,
                            max_board_length_mm: Optional[float] = None) -> dict:
    """
    Lay board rows across the deck and plan the boards for each.

    Rows are pitched at board width + gap from the near edge. Each row's
    inside spans are split at breaker lines and then cut into stock boards.
    """
    board_width = board_width_mm or settings.BOARD_WIDTH_MM
    gap = settings.BOARD_GAP_MM if gap_mm is None else gap_mm
    spacing = joist_spacing_mm or settings.JOIST_SPACING_MM
    max_len = max_board_length_mm or settings.MAX_BOARD_LENGTH_MM
    direction = BoardDirection(board_direction)

    result = {
        "rows": [],
        "board_count": 0,
        "total_board_length_mm": 0.0,
        "waste_mm": 0.0,
        "joists": 0,
        "clips": 0,
        "starter_clips": 0,
        "fascia_clips": 0,
    }
    bounds = polygon_bounds(polygon)
    if bounds is None or len(polygon) < 3:
        return result

    horizontal = direction == BoardDirection.HORIZONTAL
    breaker_axis = Axis.X if horizontal else Axis.Y
    breaker_positions = [b.pos_mm for b in (breakers or []) if b.axis == breaker_axis]

    row_start, row_end = (bounds.min_y, bounds.max_y) if horizontal else (bounds.min_x, bounds.max_x)
    pitch = board_width + gap
    row_count = max(0, math.ceil((row_end - row_start) / pitch)) if pitch > 0 else 0

    for row in range(row_count):
        centre = row_start + row * pitch + board_width / 2
        spans = horizontal_spans(polygon, centre) if horizontal else vertical_spans(polygon, centre)
        pieces = []
        for span in spans:
            for start, end in split_at_breakers(span, breaker_positions):
                plan = plan_boards_for_run(end - start, max_len)
                pieces.append({"start_mm": start, "end_mm": end, **plan})
                result["board_count"] += len(plan["board_lengths"])
                result["total_board_length_mm"] += sum(plan["board_lengths"])
                result["waste_mm"] += plan["waste_mm"]
        result["rows"].append({"index": row, "centre_mm": centre, "pieces": pieces})

    joists = joist_count(polygon, direction, spacing)
    clips = clips_per_joist(row_count)
    result["joists"] = joists
    result["clips"] = clips["clips_per_joist"] * joists
    result["starter_clips"] = clips["starter_clips_per_joist"] * joists
    result["fascia_clips"] = fascia_clip_count(polygon_perimeter(polygon), spacing)
    return result
