"""
Breaker lines for deck layouts.

A breaker line divides the deck across the boards so that no board run is
longer than the longest stock board. Boards laid horizontally are broken by
vertical lines (axis "x"); vertical boards by horizontal lines (axis "y").
"""

from typing import List, Optional

from ..config import settings
from ..schemas import Axis, BoardDirection, BreakerLine, Point
from .primitives import polygon_bounds

BREAKER_SNAP_THRESHOLD_MM = 150.0
BREAKER_CLAMP_MARGIN_MM = 70.0  # half a breaker board


def breaker_axis_for_direction(direction: BoardDirection) -> Axis:
    return Axis.X if BoardDirection(direction) == BoardDirection.HORIZONTAL else Axis.Y


def default_breaker_lines(polygon: List[Point], board_direction: BoardDirection,
                          max_board_length_mm: Optional[float] = None) -> List[BreakerLine]:
    """One breaker every max board length from the near edge, short of the far edge."""
    if len(polygon) < 2:
        return []
    step = max_board_length_mm or settings.MAX_BOARD_LENGTH_MM
    axis = breaker_axis_for_direction(board_direction)
    bounds = polygon_bounds(polygon)
    low, high = (bounds.min_x, bounds.max_x) if axis == Axis.X else (bounds.min_y, bounds.max_y)

    lines = []
    cursor = low + step
    while cursor < high:
        lines.append(BreakerLine(id=f"breaker-{len(lines) + 1}", axis=axis, pos_mm=cursor))
        cursor += step
    return lines


def _crossings(polygon: List[Point], axis: Axis, pos: float) -> List[float]:
    """Sorted coordinates where the breaker crosses the outline (half-open edge rule)."""
    hits = []
    n = len(polygon)
    for i, p1 in enumerate(polygon):
        p2 = polygon[(i + 1) % n]
        if axis == Axis.X:
            if (p1.x <= pos < p2.x) or (p2.x <= pos < p1.x):
                t = (pos - p1.x) / (p2.x - p1.x)
                hits.append(p1.y + t * (p2.y - p1.y))
        else:
            if (p1.y <= pos < p2.y) or (p2.y <= pos < p1.y):
                t = (pos - p1.y) / (p2.y - p1.y)
                hits.append(p1.x + t * (p2.x - p1.x))
    return sorted(hits)


def breaker_line_segments(line: BreakerLine, polygon: List[Point]) -> List[dict]:
    """Pieces of the breaker that fall inside the polygon, as {"start", "end"} points."""
    if len(polygon) < 2:
        return []
    coords = _crossings(polygon, line.axis, line.pos_mm)
    segments = []
    for start, end in zip(coords[0::2], coords[1::2]):
        if end - start <= 0:
            continue
        if line.axis == Axis.X:
            segments.append({"start": Point(x=line.pos_mm, y=start), "end": Point(x=line.pos_mm, y=end)})
        else:
            segments.append({"start": Point(x=start, y=line.pos_mm), "end": Point(x=end, y=line.pos_mm)})
    return segments


def snap_breaker_position(axis: Axis, pos_mm: float, polygon: List[Point],
                          snap_threshold_mm: float = BREAKER_SNAP_THRESHOLD_MM,
                          margin_mm: float = BREAKER_CLAMP_MARGIN_MM) -> float:
    """
    Clamp a dragged breaker inside the deck, then pull it onto the nearest
    outline vertex on that axis if one is within the threshold.
    """
    if not polygon:
        return pos_mm
    axis = Axis(axis)
    bounds = polygon_bounds(polygon)
    if axis == Axis.X:
        low, high = bounds.min_x + margin_mm, bounds.max_x - margin_mm
        candidates = [p.x for p in polygon]
    else:
        low, high = bounds.min_y + margin_mm, bounds.max_y - margin_mm
        candidates = [p.y for p in polygon]

    clamped = min(high, max(low, pos_mm))
    nearest = min(candidates, key=lambda c: abs(c - clamped))
    if abs(nearest - clamped) <= snap_threshold_mm:
        return min(high, max(low, nearest))
    return clamped
