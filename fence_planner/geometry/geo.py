"""
Geographic helpers for lines drawn over a map.

Points in lng/lat are projected to spherical web-mercator metres before any
distance or projection math. Planar drawings skip this module entirely.
"""

import math

from ..schemas import Point

EARTH_RADIUS_M = 6378137.0


def lnglat_to_mercator(point: Point) -> Point:
    x = EARTH_RADIUS_M * math.radians(point.x)
    y = EARTH_RADIUS_M * math.log(math.tan(math.pi / 4 + math.radians(point.y) / 2))
    return Point(x=x, y=y)


def mercator_to_lnglat(point: Point) -> Point:
    lng = math.degrees(point.x / EARTH_RADIUS_M)
    lat = math.degrees(2 * math.atan(math.exp(point.y / EARTH_RADIUS_M)) - math.pi / 2)
    return Point(x=lng, y=lat)


def distance_meters_projected(a: Point, b: Point) -> float:
    am = lnglat_to_mercator(a)
    bm = lnglat_to_mercator(b)
    return math.hypot(bm.x - am.x, bm.y - am.y)


def point_along_line(a: Point, b: Point, distance_m: float, clamp: bool = True) -> Point:
    """Walk distance_m metres from a towards b, returning lng/lat."""
    am = lnglat_to_mercator(a)
    bm = lnglat_to_mercator(b)
    total = math.hypot(bm.x - am.x, bm.y - am.y)
    if not math.isfinite(total) or total == 0:
        return a
    t = distance_m / total
    if clamp:
        t = max(0.0, min(1.0, t))
    return mercator_to_lnglat(Point(x=am.x + (bm.x - am.x) * t, y=am.y + (bm.y - am.y) * t))


def quantize_point_mm(point: Point, step_mm: float = 1.0) -> Point:
    """Round a lng/lat point to a millimetre grid in projected space."""
    if not math.isfinite(step_mm) or step_mm <= 0:
        return point
    step_m = step_mm / 1000.0
    meters = lnglat_to_mercator(point)
    return mercator_to_lnglat(Point(
        x=round(meters.x / step_m) * step_m,
        y=round(meters.y / step_m) * step_m,
    ))
