"""
Quote assembly from planning output.

Tests:
1. Full fence: panels, posts by category, grouped gates, totals
2. T posts are priced as corner posts
3. Unpriced items become MISSING_SHEET_MATCH placeholders
4. Openings are not priced
5. Empty plan
6. Total length uses the drawn length when none is stored
"""

import pytest

from fence_planner.geometry.panels import PanelFitter, fit_runs
from fence_planner.pricing.quote import MISSING_SKU, QuoteBuilder, calculate_costs
from fence_planner.schemas import Colour, Gate, GateType, Line, Point, Post, PostCategory


def _fence_lines():
    return [
        Line(id="l1", a=Point(x=0, y=0), b=Point(x=5000, y=0), length_mm=5000),
        Line(id="l2", a=Point(x=5000, y=0), b=Point(x=5000, y=3000), length_mm=3000),
    ]


def _segments(lines):
    plan = fit_runs(lines, [], PanelFitter(panel_length_mm=2390, cut_buffer_mm=300, min_leftover_mm=300))
    return [seg for result in plan.runs.values() for seg in result.segments]


def _posts(**counts):
    posts = []
    for category, count in counts.items():
        for _ in range(count):
            posts.append(Post(
                id=f"post-{len(posts) + 1}",
                pos=Point(x=len(posts) * 1000, y=0),
                category=PostCategory(category),
            ))
    return posts


def _gates():
    return [
        Gate(id="g1", type=GateType.SINGLE_900, run_id="l1"),
        Gate(id="g2", type=GateType.SINGLE_900, run_id="l2"),
        Gate(id="g3", type=GateType.SLIDING_4800, run_id="l2"),
    ]


def test_full_fence_quote(index):
    lines = _fence_lines()
    summary = QuoteBuilder(index).calculate_costs(
        "Bellbrae", 1.6, Colour.WHITE, _segments(lines),
        _posts(end=2, corner=1, line=3), _gates(), lines,
    )

    items = {item.name: item for item in summary.line_items}
    assert list(items) == [
        "Bellbrae Panel 1.6m", "End Posts", "Corner Posts", "Line Posts",
        "Single Gate 0.9m", "Sliding Gate 4.8m",
    ]
    # 5000 run buys 3 panels, the 3000 run buys 1 and reuses the 1870 offcut
    assert items["Bellbrae Panel 1.6m"].quantity == 4
    assert items["Bellbrae Panel 1.6m"].line_total == pytest.approx(1215.52)
    assert items["End Posts"].sku == "ResPost-End-Wht-1.6m"
    assert items["Single Gate 0.9m"].quantity == 2
    assert items["Single Gate 0.9m"].line_total == pytest.approx(1224.80)
    assert items["Sliding Gate 4.8m"].sku == "Gate-Pick-Sliding-1.6H-4.6/5.0"
    assert items["Sliding Gate 4.8m"].gate_width_range == "4.6-5.0"

    assert summary.missing_items == []
    assert summary.priced_total == pytest.approx(8448.19)
    assert summary.grand_total == summary.priced_total
    assert summary.total_length_mm == 8000


def test_t_posts_use_corner_post_sku(index):
    summary = calculate_costs("Bellbrae", 1.6, Colour.WHITE, index, [], _posts(t=2), [], [])
    item = summary.line_items[0]
    assert item.name == "T Posts"
    assert item.sku == "ResPost-Corner-Wht-1.6m"
    assert item.line_total == pytest.approx(143.0)


def test_unpriced_items_become_placeholders(index):
    gates = [Gate(id="g1", type=GateType.DOUBLE_900, run_id="l1")]
    summary = calculate_costs("Bellbrae", 1.6, Colour.COLOURED, index, [], _posts(end=2), gates, [])

    assert [i.name for i in summary.line_items] == ["End Posts", "Double Gate 2.4m"]
    assert len(summary.missing_items) == 2
    placeholder = summary.missing_items[1]
    assert placeholder.sku == MISSING_SKU
    assert placeholder.unit_price == 0
    assert placeholder.line_total == 0
    assert placeholder.debug_info["message"] == "Missing residential pricing for Double Gate|Bellbrae|Coloured|1.6|2.4"
    assert placeholder.debug_info["error_type"] == "missing_sku"
    assert summary.priced_total == 0


def test_openings_are_not_priced(index):
    gates = [Gate(id="o1", type=GateType.OPENING_CUSTOM, opening_mm=1200, run_id="l1")]
    summary = calculate_costs("Bellbrae", 1.6, Colour.WHITE, index, [], [], gates, [])
    assert summary.line_items == []


def test_empty_plan():
    summary = calculate_costs("Bellbrae", 1.6, Colour.WHITE, None, [], [], [], [])
    assert summary.line_items == []
    assert summary.grand_total == 0


def test_total_length_falls_back_to_drawn_length():
    lines = [
        Line(id="l1", a=Point(x=0, y=0), b=Point(x=3000, y=0)),
        Line(id="l2", a=Point(x=3000, y=0), b=Point(x=3000, y=4000), length_mm=4100),
    ]
    summary = calculate_costs("Bellbrae", 1.6, Colour.WHITE, None, [], [], [], lines)
    assert summary.total_length_mm == pytest.approx(7100)
