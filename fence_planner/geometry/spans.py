"""
Post span derivation across chained fence lines.

Lines are walked end to end into one ordered chain, each post is given a
station (distance along the chain, metres) from its projection onto the
nearest chained segment, and one span is emitted per gap between
consecutive posts. A corner post shared by two lines yields one station,
so no gap is counted twice.
"""

import math
from typing import Dict, List

from ..schemas import Line, OrderedPostStation, Point, Post, PostSpan, PostSpanResult
from .posts import to_plane_mm
from .primitives import closest_point_on_segment

POINT_KEY_PRECISION = 6
MIN_SPAN_M = 0.0005


def _point_key(point: Point) -> str:
    return f"{point.x:.{POINT_KEY_PRECISION}f},{point.y:.{POINT_KEY_PRECISION}f}"


def build_ordered_segments(lines: List[Line]) -> List[dict]:
    """
    Chain lines by shared endpoints, flipping any that run backwards.

    Starts from an endpoint used by exactly one line when there is one
    (an open run), otherwise from the first line's start (a closed loop).
    Disconnected pieces are appended in input order.
    """
    if not lines:
        return []

    endpoints: Dict[str, List[str]] = {}
    for line in lines:
        endpoints.setdefault(_point_key(line.a), []).append(line.id)
        endpoints.setdefault(_point_key(line.b), []).append(line.id)

    unused = {line.id: line for line in lines}
    current_key = next(
        (key for key, line_ids in endpoints.items() if len(line_ids) == 1),
        _point_key(lines[0].a),
    )

    ordered = []
    station_m = 0.0
    while unused:
        if current_key is None:
            current_key = _point_key(next(iter(unused.values())).a)

        candidate_id = next(
            (line_id for line_id in endpoints.get(current_key, []) if line_id in unused),
            None,
        )
        if candidate_id is None:
            current_key = None
            continue

        line = unused.pop(candidate_id)
        forward = _point_key(line.a) == current_key
        start, end = (line.a, line.b) if forward else (line.b, line.a)
        length_m = line.measured_length_mm() / 1000.0

        ordered.append({
            "id": line.id,
            "a": start,
            "b": end,
            "length_m": length_m,
            "start_station_m": station_m,
        })
        station_m += length_m
        current_key = _point_key(end)

    return ordered


def derive_post_spans(lines: List[Line], posts: List[Post], geographic: bool = False) -> PostSpanResult:
    if not lines or len(posts) < 2:
        return PostSpanResult()

    segments = build_ordered_segments(lines)
    if not segments:
        return PostSpanResult()

    stations = []
    for post in posts:
        p = to_plane_mm(post.pos, geographic)
        best_station = 0.0
        best_dist_sq = math.inf
        for seg in segments:
            _, t, d_sq = closest_point_on_segment(
                p, to_plane_mm(seg["a"], geographic), to_plane_mm(seg["b"], geographic),
            )
            if d_sq < best_dist_sq:
                best_dist_sq = d_sq
                best_station = seg["start_station_m"] + seg["length_m"] * t
        stations.append(OrderedPostStation(post=post, station_m=best_station))

    stations.sort(key=lambda s: (s.station_m, s.post.id))

    spans = []
    for current, nxt in zip(stations, stations[1:]):
        length_m = nxt.station_m - current.station_m
        if not math.isfinite(length_m) or length_m <= MIN_SPAN_M:
            continue
        spans.append(PostSpan(
            id=f"span-{len(spans) + 1}",
            from_post_id=current.post.id,
            to_post_id=nxt.post.id,
            length_m=length_m,
        ))

    return PostSpanResult(ordered_posts=stations, spans=spans)
