"""
Mitered polygon offsets for picture-frame borders and fascia strips.

Input: polygon (list of Point, any winding), distance in mm, direction.
Output: the offset polygon, or None when the shape cannot be offset
(fewer than 3 points, zero area, zero-length edge, parallel neighbours,
or an offset that collapses the shape).
"""

import logging
from typing import List, Optional

from ..schemas import OffsetDirection, Point
from .primitives import line_intersection, polygon_signed_area

logger = logging.getLogger(__name__)

MIN_RESULT_AREA = 1e-3


def offset_polygon_miter(
    polygon: List[Point],
    distance_mm: float,
    direction: OffsetDirection = OffsetDirection.INWARD,
) -> Optional[List[Point]]:
    if len(polygon) < 3:
        return None

    area = polygon_signed_area(polygon)
    if area == 0:
        return None

    outward_sign = 1.0 if area > 0 else -1.0
    normal_sign = outward_sign if OffsetDirection(direction) == OffsetDirection.OUTWARD else -outward_sign

    # Each edge shifted along its normal: (anchor point, direction vector)
    offset_edges = []
    n = len(polygon)
    for i, point in enumerate(polygon):
        nxt = polygon[(i + 1) % n]
        dx = nxt.x - point.x
        dy = nxt.y - point.y
        length = (dx * dx + dy * dy) ** 0.5
        if length == 0:
            return None
        nx = (dy / length) * normal_sign * distance_mm
        ny = (-dx / length) * normal_sign * distance_mm
        offset_edges.append((Point(x=point.x + nx, y=point.y + ny), Point(x=dx, y=dy)))

    result = []
    for i in range(n):
        prev_p, prev_d = offset_edges[i - 1]
        curr_p, curr_d = offset_edges[i]
        corner = line_intersection(prev_p, prev_d, curr_p, curr_d)
        if corner is None:
            return None
        result.append(corner)

    result_area = polygon_signed_area(result)
    if abs(result_area) < MIN_RESULT_AREA:
        return None

    # Offset ate the shape: winding flipped, or every edge runs backwards.
    # One short edge flipping (a small chamfer) is still a valid inset.
    if (result_area > 0) != (area > 0):
        return None
    if all(_edge_reversed(result, i, edge_dir) for i, (_, edge_dir) in enumerate(offset_edges)):
        return None
    return result


def _edge_reversed(result: List[Point], index: int, edge_dir: Point) -> bool:
    a = result[index]
    b = result[(index + 1) % len(result)]
    return (b.x - a.x) * edge_dir.x + (b.y - a.y) * edge_dir.y <= 0


def build_fascia_pieces(polygon: List[Point], thickness_mm: float) -> List[List[Point]]:
    """One quad per edge between the outline and its outward offset."""
    if len(polygon) < 3 or thickness_mm <= 0:
        return []
    outer = offset_polygon_miter(polygon, thickness_mm, OffsetDirection.OUTWARD)
    if outer is None:
        return []
    n = len(polygon)
    return [
        [polygon[i], polygon[(i + 1) % n], outer[(i + 1) % n], outer[i]]
        for i in range(n)
    ]


def build_picture_frame(
    polygon: List[Point],
    board_width_mm: float,
    gap_mm: float = 0.0,
) -> dict:
    """
    Mitered border boards running around the inside of a deck outline.

    Returns {"pieces", "inner_polygon", "infill_polygon", "warnings"}.
    The infill polygon is where the field boards go, inset by the frame
    width plus the gap.
    """
    result = {"pieces": [], "inner_polygon": None, "infill_polygon": None, "warnings": []}
    if len(polygon) < 3 or board_width_mm <= 0:
        return result

    inner = offset_polygon_miter(polygon, board_width_mm, OffsetDirection.INWARD)
    if inner is None:
        logger.warning("Picture frame inset failed for %d-point outline", len(polygon))
        result["warnings"].append(
            "Picture frame could not be fitted. The deck is too small for the border width."
        )
        return result

    n = len(polygon)
    result["pieces"] = [
        [polygon[i], polygon[(i + 1) % n], inner[(i + 1) % n], inner[i]]
        for i in range(n)
    ]
    result["inner_polygon"] = inner

    infill = offset_polygon_miter(polygon, board_width_mm + gap_mm, OffsetDirection.INWARD)
    if infill is None:
        result["warnings"].append("No room left for infill boards inside the picture frame.")
    result["infill_polygon"] = infill
    return result
