"""
Point, segment and polygon math shared by every planner module.

All functions are pure. Polygons are lists of Point, implicitly closed.
Degenerate input returns None (or a zero value) instead of raising.
"""

import math
from typing import List, Optional, Tuple

from ..schemas import Bounds, Point

# Determinant magnitude below which two directions are treated as parallel
PARALLEL_EPS = 1e-9


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def distance_sq(a: Point, b: Point) -> float:
    dx = b.x - a.x
    dy = b.y - a.y
    return dx * dx + dy * dy


def dot(a: Point, b: Point) -> float:
    return a.x * b.x + a.y * b.y


def cross(a: Point, b: Point) -> float:
    return a.x * b.y - a.y * b.x


def normalise(x: float, y: float) -> Point:
    """Unit vector along (x, y). Zero-length input gives (0, 0)."""
    length = math.hypot(x, y)
    if length < PARALLEL_EPS:
        return Point(x=0.0, y=0.0)
    return Point(x=x / length, y=y / length)


def interpolate(a: Point, b: Point, t: float) -> Point:
    return Point(x=a.x + (b.x - a.x) * t, y=a.y + (b.y - a.y) * t)


def midpoint(a: Point, b: Point) -> Point:
    return interpolate(a, b, 0.5)


def closest_point_on_segment(p: Point, a: Point, b: Point) -> Tuple[Point, float, float]:
    """
    Project p onto segment ab.

    Returns (point, t, dist_sq) with t clamped to [0, 1].
    A degenerate segment (a == b) returns a with t = 0.
    """
    abx = b.x - a.x
    aby = b.y - a.y
    len_sq = abx * abx + aby * aby
    if len_sq == 0:
        return Point(x=a.x, y=a.y), 0.0, distance_sq(p, a)

    t = ((p.x - a.x) * abx + (p.y - a.y) * aby) / len_sq
    t = max(0.0, min(1.0, t))
    proj = Point(x=a.x + abx * t, y=a.y + aby * t)
    return proj, t, distance_sq(p, proj)


def line_intersection(p1: Point, d1: Point, p2: Point, d2: Point) -> Optional[Point]:
    """Intersect the infinite lines p1 + s*d1 and p2 + t*d2. None when parallel."""
    det = cross(d1, d2)
    if abs(det) < PARALLEL_EPS:
        return None
    diff = Point(x=p2.x - p1.x, y=p2.y - p1.y)
    s = cross(diff, d2) / det
    return Point(x=p1.x + d1.x * s, y=p1.y + d1.y * s)


# --- Polygons ---

def polygon_signed_area(polygon: List[Point]) -> float:
    """Shoelace area. Positive for counter-clockwise in a y-up frame."""
    if len(polygon) < 3:
        return 0.0
    total = 0.0
    for i, p in enumerate(polygon):
        q = polygon[(i + 1) % len(polygon)]
        total += p.x * q.y - q.x * p.y
    return total / 2.0


def polygon_area(polygon: List[Point]) -> float:
    return abs(polygon_signed_area(polygon))


def polygon_perimeter(polygon: List[Point]) -> float:
    if len(polygon) < 2:
        return 0.0
    return sum(
        distance(p, polygon[(i + 1) % len(polygon)]) for i, p in enumerate(polygon)
    )


def polygon_bounds(polygon: List[Point]) -> Optional[Bounds]:
    if not polygon:
        return None
    xs = [p.x for p in polygon]
    ys = [p.y for p in polygon]
    return Bounds(min_x=min(xs), min_y=min(ys), max_x=max(xs), max_y=max(ys))


def polygon_edges(polygon: List[Point]) -> List[Tuple[Point, Point]]:
    return [(p, polygon[(i + 1) % len(polygon)]) for i, p in enumerate(polygon)]


def angle_deg_at_vertex(polygon: List[Point], index: int) -> Optional[float]:
    """Interior-agnostic angle between the two edges meeting at a vertex."""
    n = len(polygon)
    if n < 3:
        return None
    prev = polygon[(index - 1) % n]
    curr = polygon[index % n]
    nxt = polygon[(index + 1) % n]
    v1 = normalise(prev.x - curr.x, prev.y - curr.y)
    v2 = normalise(nxt.x - curr.x, nxt.y - curr.y)
    if (v1.x == 0 and v1.y == 0) or (v2.x == 0 and v2.y == 0):
        return None
    cos_angle = max(-1.0, min(1.0, dot(v1, v2)))
    return math.degrees(math.acos(cos_angle))


def rotate_point(p: Point, origin: Point, angle_rad: float) -> Point:
    cos_a = math.cos(angle_rad)
    sin_a = math.sin(angle_rad)
    dx = p.x - origin.x
    dy = p.y - origin.y
    return Point(
        x=origin.x + dx * cos_a - dy * sin_a,
        y=origin.y + dx * sin_a + dy * cos_a,
    )


def find_bottom_edge_index(polygon: List[Point]) -> int:
    """
    Index of the edge with the largest mean y (screen-space bottom).
    Ties go to the longer edge.
    """
    best_index = 0
    best_y = -math.inf
    best_len = -1.0
    for i, (a, b) in enumerate(polygon_edges(polygon)):
        mean_y = (a.y + b.y) / 2.0
        length = distance(a, b)
        if mean_y > best_y + 1e-9 or (abs(mean_y - best_y) <= 1e-9 and length > best_len):
            best_index = i
            best_y = mean_y
            best_len = length
    return best_index


def rotate_polygon_to_baseline(polygon: List[Point], edge_index: Optional[int] = None) -> List[Point]:
    """Rotate a polygon about its first baseline vertex so that edge lies horizontal."""
    if len(polygon) < 3:
        return list(polygon)
    if edge_index is None:
        edge_index = find_bottom_edge_index(polygon)
    a = polygon[edge_index % len(polygon)]
    b = polygon[(edge_index + 1) % len(polygon)]
    angle = math.atan2(b.y - a.y, b.x - a.x)
    if abs(angle) < 1e-12:
        return list(polygon)
    return [rotate_point(p, a, -angle) for p in polygon]
