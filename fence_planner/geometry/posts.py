"""
Post generation for fence lines.

Posts go at every line endpoint, at every interior panel boundary, and where
one line's endpoint lands on another line's interior. Each vertex post is
categorised from the lines that meet there:

    gate or opening on any connecting line  -> end
    one arm                                 -> end
    three or more arms                      -> t
    two arms, nearly straight (<=30 or >=160 deg) -> line
    two arms otherwise                      -> corner

Panel-boundary posts are always line posts.
Coordinates are planar mm, or lng/lat when geographic=True.
"""

import logging
import math
from typing import Dict, List, Optional

from ..schemas import Line, Point, Post, PostCategory, PostSource
from .geo import lnglat_to_mercator, quantize_point_mm
from .primitives import closest_point_on_segment, distance, interpolate, normalise

logger = logging.getLogger(__name__)

POINT_EPS_MM = 1.0             # endpoints closer than this are the same node
SEGMENT_TOLERANCE_MM = 0.5     # how close a T-junction endpoint must sit to the through line
T_JUNCTION_EPS = 0.02          # ignore hits this close to the through line's own ends
STRAIGHT_BELOW_DEG = 30.0
STRAIGHT_ABOVE_DEG = 160.0


def to_plane_mm(point: Point, geographic: bool = False) -> Point:
    """Planar millimetre coordinates for any input point."""
    if not geographic:
        return point
    meters = lnglat_to_mercator(point)
    return Point(x=meters.x * 1000.0, y=meters.y * 1000.0)


def _quantize(point: Point, geographic: bool) -> Point:
    if geographic:
        return quantize_point_mm(point, 1.0)
    return Point(x=float(round(point.x)), y=float(round(point.y)))


def _point_key(point: Point) -> str:
    return f"{point.x:.6f},{point.y:.6f}"


def _same_point(a: Point, b: Point, geographic: bool) -> bool:
    return distance(to_plane_mm(a, geographic), to_plane_mm(b, geographic)) <= POINT_EPS_MM


def junction_angle_deg(node: Point, a: Point, b: Point, geographic: bool = False) -> Optional[float]:
    """Angle between the arms node->a and node->b. None if either arm has no length."""
    n = to_plane_mm(node, geographic)
    pa = to_plane_mm(a, geographic)
    pb = to_plane_mm(b, geographic)
    va = normalise(pa.x - n.x, pa.y - n.y)
    vb = normalise(pb.x - n.x, pb.y - n.y)
    if math.hypot(va.x, va.y) < 1e-9 or math.hypot(vb.x, vb.y) < 1e-9:
        return None
    cos_angle = max(-1.0, min(1.0, va.x * vb.x + va.y * vb.y))
    return math.degrees(math.acos(cos_angle))


def categorize_post(pos: Point, lines: List[Line], through_lines: int = 0,
                    geographic: bool = False) -> PostCategory:
    """
    Category for a vertex post. through_lines counts lines that pass through
    pos without ending there; each contributes two arms.
    """
    connecting = [l for l in lines if _same_point(l.a, pos, geographic) or _same_point(l.b, pos, geographic)]

    if any(l.has_blocking_features() for l in connecting):
        return PostCategory.END

    arms = len(connecting) + 2 * through_lines
    if arms <= 1:
        return PostCategory.END
    if arms >= 3:
        return PostCategory.T

    line_a, line_b = connecting
    far_a = line_a.b if _same_point(line_a.a, pos, geographic) else line_a.a
    far_b = line_b.b if _same_point(line_b.a, pos, geographic) else line_b.a
    angle = junction_angle_deg(pos, far_a, far_b, geographic)
    if angle is not None and (angle <= STRAIGHT_BELOW_DEG or angle >= STRAIGHT_ABOVE_DEG):
        return PostCategory.LINE
    return PostCategory.CORNER


def line_post_points(line: Line, panel_positions: List[float]) -> List[Point]:
    """Interpolated points for panel boundaries strictly inside the line."""
    total = line.measured_length_mm()
    if not total or total <= 0:
        return []
    points = []
    for pos_mm in panel_positions:
        t = pos_mm / total
        if 0 < t < 1:
            points.append(interpolate(line.a, line.b, t))
    return points


def generate_posts(lines: List[Line],
                   panel_positions: Optional[Dict[str, List[float]]] = None,
                   geographic: bool = False) -> List[Post]:
    panel_positions = panel_positions or {}
    nodes: Dict[str, dict] = {}

    def add_node(point: Point, line: Line, source: PostSource = PostSource.VERTEX,
                 through: bool = False) -> None:
        pos = _quantize(point, geographic)
        key = _point_key(pos)
        node = nodes.get(key)
        if node is None:
            nodes[key] = {
                "pos": pos,
                "line_ids": [line.id],
                "through_ids": [line.id] if through else [],
                "source": source,
            }
            return
        if line.id not in node["line_ids"]:
            node["line_ids"].append(line.id)
        if through and line.id not in node["through_ids"]:
            node["through_ids"].append(line.id)
        # A real vertex outranks a panel boundary at the same spot
        if source == PostSource.VERTEX:
            node["source"] = PostSource.VERTEX

    for line in lines:
        add_node(line.a, line)
        add_node(line.b, line)
        for point in line_post_points(line, panel_positions.get(line.id, [])):
            add_node(point, line, PostSource.PANEL)

    # T-junctions: an endpoint resting on the interior of another line
    for index, line in enumerate(lines):
        for endpoint in (line.a, line.b):
            p = to_plane_mm(endpoint, geographic)
            for other_index, other in enumerate(lines):
                if other_index == index:
                    continue
                _, t, d_sq = closest_point_on_segment(
                    p, to_plane_mm(other.a, geographic), to_plane_mm(other.b, geographic),
                )
                if T_JUNCTION_EPS < t < 1 - T_JUNCTION_EPS and d_sq <= SEGMENT_TOLERANCE_MM ** 2:
                    add_node(endpoint, other, through=True)

    posts = []
    for n, node in enumerate(nodes.values(), start=1):
        if node["source"] == PostSource.PANEL:
            category = PostCategory.LINE
        else:
            category = categorize_post(node["pos"], lines, len(node["through_ids"]), geographic)
        posts.append(Post(id=f"post-{n}", pos=node["pos"], category=category, source=node["source"]))

    logger.debug("Generated %d posts for %d lines", len(posts), len(lines))
    return posts


def count_posts_by_category(posts: List[Post]) -> Dict[str, int]:
    counts = {c.value: 0 for c in PostCategory}
    for post in posts:
        counts[post.category.value] += 1
    return counts
