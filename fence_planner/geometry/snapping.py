"""
Snap resolution used while lines are being drawn or dragged.

Endpoint snaps always win over mid-segment snaps within tolerance, and lines
carrying gates or openings are never offered as mid-segment targets.
"""

import math
from typing import List, Optional

from ..schemas import Line, Point, SnapKind, SnapResult
from .primitives import closest_point_on_segment, distance, distance_sq

ENDPOINT_SNAP_RADIUS_MM = 250.0
CLOSE_SHAPE_SNAP_RADIUS_MM = 350.0
GRID_SIZE_MM = 100.0
GRID_SNAP_TOLERANCE_MM = 80.0


def snap_to_90_degrees(start: Point, end: Point) -> Point:
    """Keep the dominant axis of the drag, flatten the other."""
    dx = end.x - start.x
    dy = end.y - start.y
    if abs(dx) > abs(dy):
        return Point(x=end.x, y=start.y)
    return Point(x=start.x, y=end.y)


def is_orthogonal(start: Point, end: Point, tolerance: float = 0.01) -> bool:
    return abs(end.x - start.x) < tolerance or abs(end.y - start.y) < tolerance


def find_snap_point(
    point: Point,
    existing_points: List[Point],
    tolerance: float = ENDPOINT_SNAP_RADIUS_MM,
) -> Optional[Point]:
    """First existing point strictly within tolerance, in list order."""
    for existing in existing_points:
        if distance(point, existing) < tolerance:
            return existing
    return None


def endpoint_proximity_epsilon(tolerance: float) -> float:
    return max(0.02, min(0.1, tolerance * 0.1))


def find_snap_on_lines(point: Point, lines: List[Line], tolerance: float) -> Optional[SnapResult]:
    """
    Resolve the snap target for a point against drawn lines.

    Endpoints (including projections that land within the epsilon band of an
    end) are tracked separately from true mid-segment hits. Any endpoint hit
    is returned ahead of a segment hit, even a closer one.
    """
    best_endpoint = None
    best_endpoint_dist_sq = tolerance * tolerance
    best_segment = None
    best_segment_dist_sq = tolerance * tolerance
    epsilon = endpoint_proximity_epsilon(tolerance)

    for line in lines:
        for endpoint, t in ((line.a, 0.0), (line.b, 1.0)):
            d_sq = distance_sq(point, endpoint)
            if d_sq < best_endpoint_dist_sq:
                best_endpoint_dist_sq = d_sq
                best_endpoint = SnapResult(
                    point=endpoint, kind=SnapKind.ENDPOINT, line_id=line.id, t=t,
                )

        # Gate lines are never split
        if line.has_blocking_features():
            continue

        proj, t, d_sq = closest_point_on_segment(point, line.a, line.b)
        if t <= epsilon or t >= 1 - epsilon:
            if d_sq < best_endpoint_dist_sq:
                best_endpoint_dist_sq = d_sq
                best_endpoint = SnapResult(
                    point=line.a if t < 0.5 else line.b,
                    kind=SnapKind.ENDPOINT,
                    line_id=line.id,
                    t=t,
                )
            continue

        if d_sq < best_segment_dist_sq:
            best_segment_dist_sq = d_sq
            best_segment = SnapResult(point=proj, kind=SnapKind.SEGMENT, line_id=line.id, t=t)

    return best_endpoint or best_segment


def snap_to_angle(anchor: Point, point: Point, step_deg: float = 15.0) -> Point:
    """Round the anchor->point bearing to the nearest step, keeping the length."""
    dx = point.x - anchor.x
    dy = point.y - anchor.y
    length = math.hypot(dx, dy)
    if length == 0:
        return point
    step = math.radians(step_deg)
    snapped = round(math.atan2(dy, dx) / step) * step
    return Point(
        x=anchor.x + math.cos(snapped) * length,
        y=anchor.y + math.sin(snapped) * length,
    )


def snap_to_grid(
    value_mm: float,
    grid_size_mm: float = GRID_SIZE_MM,
    tolerance_mm: float = GRID_SNAP_TOLERANCE_MM,
) -> float:
    remainder = value_mm % grid_size_mm
    if remainder < tolerance_mm:
        return value_mm - remainder
    to_next = grid_size_mm - remainder
    if to_next < tolerance_mm:
        return value_mm + to_next
    return value_mm


def all_line_endpoints(lines: List[Line]) -> List[Point]:
    endpoints = []
    for line in lines:
        endpoints.extend([line.a, line.b])
    return endpoints


def should_close_shape(start: Point, cursor: Point, tolerance: float = CLOSE_SHAPE_SNAP_RADIUS_MM) -> bool:
    """True when the cursor is close enough to the first vertex to close a polygon."""
    return distance(start, cursor) < tolerance
