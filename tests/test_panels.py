"""
Panel fitting and the shared leftover pool.

Tests:
1-4.   The 5000mm scenario and per-run properties
5-8.   Leftover reuse (largest first, consumed flag, draw order)
9-12.  Even spacing, runaway runs, empty runs
13-16. Multi-run planning over lines
"""

import pytest

from fence_planner.geometry.panels import (
    RUN_TOO_LONG_WARNING,
    PanelFitter,
    count_boards_purchased,
    count_unique_panels,
    fit_panels,
    fit_runs,
)
from fence_planner.schemas import GateMetadata, Leftover, Line, Point


def _fitter():
    return PanelFitter(panel_length_mm=2390, cut_buffer_mm=300, min_leftover_mm=300)


def _line(line_id, length_mm, even_spacing=False, gate=False):
    return Line(
        id=line_id,
        a=Point(x=0, y=0),
        b=Point(x=length_mm, y=0),
        length_mm=length_mm,
        even_spacing=even_spacing,
        gate_metadata=GateMetadata(gate_id="g1") if gate else None,
    )


# ============================================================
# 1-4. Scenario and properties
# ============================================================

def test_5000mm_run_scenario():
    """Two full panels, a 220 remainder, a warning and one 1870 offcut."""
    pool = []
    result = _fitter().fit("run", 5000, False, pool)

    assert [s.length_mm for s in result.segments] == pytest.approx([2390, 2390, 220])
    assert [s.id for s in result.segments] == ["run-seg-1", "run-seg-2", "run-seg-3"]
    assert result.segments[-1].is_remainder
    assert result.panel_positions == pytest.approx([2390, 4780])
    assert len(result.warnings) == 1
    assert "Short segment (0.22m)" in result.warnings[0]
    assert len(result.new_leftovers) == 1
    assert result.new_leftovers[0].length_mm == pytest.approx(1870)
    assert result.new_leftovers[0].id == "run-leftover-1"
    assert count_boards_purchased(result.segments) == 3
    # The pool now holds the new offcut for later runs
    assert [l.id for l in pool] == ["run-leftover-1"]


@pytest.mark.parametrize("length", [100, 2390, 2390.3, 4780, 5000, 7321.7, 12000])
@pytest.mark.parametrize("even", [False, True])
def test_segments_cover_the_run(length, even):
    result = _fitter().fit("r", length, even, [])
    assert sum(s.length_mm for s in result.segments) == pytest.approx(length, abs=0.5)
    assert result.segments[-1].end_mm == pytest.approx(length, abs=0.5)


@pytest.mark.parametrize("length", [300, 2600, 2690, 5000, 9000])
def test_no_offcut_below_minimum(length):
    pool = [Leftover(id="old", length_mm=900)]
    result = _fitter().fit("r", length, False, pool)
    assert all(l.length_mm >= 300 for l in result.new_leftovers)


def test_boards_purchased_bounds():
    fresh = _fitter().fit("a", 5000, False, [])
    assert count_boards_purchased(fresh.segments) == len(fresh.segments)

    reused = _fitter().fit("b", 3390, False, [Leftover(id="x", length_mm=1870)])
    assert count_boards_purchased(reused.segments) < len(reused.segments)


# ============================================================
# 5-8. Leftover reuse
# ============================================================

def test_largest_usable_offcut_is_taken():
    pool = [
        Leftover(id="small", length_mm=500),
        Leftover(id="big", length_mm=1500),
        Leftover(id="mid", length_mm=1000),
    ]
    result = _fitter().fit("r", 2390 + 400, False, pool)
    remainder = result.segments[-1]
    assert remainder.uses_leftover_id == "big"
    assert [l.id for l in pool if l.consumed] == ["big"]
    # 1500 - 400 - 300 = 800 comes back as a new offcut
    assert result.new_leftovers[0].length_mm == pytest.approx(800)


def test_offcut_must_cover_cut_plus_buffer():
    pool = [Leftover(id="short", length_mm=650)]
    result = _fitter().fit("r", 2390 + 400, False, pool)
    assert result.segments[-1].uses_leftover_id is None
    assert not pool[0].consumed


def test_consumed_offcuts_are_kept_not_removed():
    pool = [Leftover(id="x", length_mm=1870)]
    _fitter().fit("r", 3390, False, pool)
    assert pool[0].id == "x" and pool[0].consumed
    assert pool[1].length_mm == pytest.approx(570)


def test_find_leftover_skips_consumed():
    pool = [Leftover(id="used", length_mm=3000, consumed=True)]
    assert _fitter().find_leftover_for_cut(100, pool) is None


# ============================================================
# 9-12. Even spacing and edge cases
# ============================================================

def test_even_spacing_divides_run_equally():
    pool = []
    result = _fitter().fit("r", 5000, True, pool)
    assert len(result.segments) == 3
    assert all(s.length_mm == pytest.approx(5000 / 3) for s in result.segments)
    assert result.panel_positions == pytest.approx([5000 / 3, 10000 / 3])
    # Every cut panel leaves 2390 - 1666.7 - 300 = 423.3, kept for later runs
    assert len(result.new_leftovers) == 3
    assert result.warnings == []


def test_even_spacing_exact_multiple_uses_full_panels():
    result = _fitter().fit("r", 4780, True, [])
    assert [s.length_mm for s in result.segments] == pytest.approx([2390, 2390])
    assert result.new_leftovers == []


def test_runaway_run_is_refused():
    fitter = PanelFitter(max_panels_per_run=10)
    result = fitter.fit("r", 2390 * 20, False, [])
    assert result.segments == []
    assert result.warnings == [RUN_TOO_LONG_WARNING]


def test_empty_run():
    result = fit_panels("r", 0, False, [])
    assert result.segments == []
    assert result.warnings == []


# ============================================================
# 13-16. Multi-run planning
# ============================================================

def test_fit_runs_shares_pool_in_draw_order():
    lines = [_line("l1", 5000), _line("l2", 3390)]
    plan = fit_runs(lines, [], _fitter())

    assert plan.runs["l2"].segments[-1].uses_leftover_id == "l1-leftover-1"
    assert plan.boards_purchased == 4
    assert [l.id for l in plan.leftovers] == ["l1-leftover-1", "l2-leftover-1"]
    assert plan.leftovers[0].consumed
    assert plan.panel_positions["l2"] == pytest.approx([2390])


def test_refit_against_returned_pool_keeps_ids_unique():
    first = fit_runs([_line("l1", 5000)], [], _fitter())
    second = fit_runs([_line("l1", 5000)], first.leftovers, _fitter())

    ids = [l.id for l in second.leftovers]
    assert ids == ["l1-leftover-1", "l1-leftover-2"]
    assert second.runs["l1"].segments[-1].uses_leftover_id == "l1-leftover-1"
    assert second.leftovers[1].length_mm == pytest.approx(1350)
    assert second.boards_purchased == 2


def test_fit_runs_skips_gate_lines_and_prefixes_warnings():
    lines = [_line("l1", 5000), _line("gate", 900, gate=True)]
    plan = fit_runs(lines, [], _fitter())
    assert "gate" not in plan.runs
    assert plan.warnings[0].startswith("l1: Short segment")


def test_count_unique_panels():
    result = _fitter().fit("r", 5000, False, [])
    assert count_unique_panels(result.segments) == 3
