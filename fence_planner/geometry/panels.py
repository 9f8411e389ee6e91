"""
Panel fitting: packs a straight run into stock panels, reusing offcuts.

Input: run id, run length (mm), even-spacing flag, leftover pool
Output: PanelFitResult (segments, panel_positions, new_leftovers, warnings)

The leftover pool is owned by the caller and mutated in place: reused
offcuts are flipped to consumed, and offcuts spawned by this run are
appended once the run is finished. Runs must be fitted in draw order;
a different order can reuse different offcuts.
"""

import logging
import math
from typing import List, Optional

from ..config import settings
from ..schemas import Leftover, Line, PanelFitResult, PanelPlan, PanelSegment

logger = logging.getLogger(__name__)

RUN_TOO_LONG_WARNING = "Run too long to panelise, check length and units."


class PanelFitter:
    """Greedy cutting-stock for fence panels. Not globally optimal."""

    PANEL_LENGTH_MM = 2390.0
    CUT_BUFFER_MM = 300.0        # kerf and trim reserved per cut
    MIN_LEFTOVER_MM = 300.0      # smaller offcuts go in the bin
    MAX_PANELS_PER_RUN = 2000    # catches metres-vs-mm mistakes
    EPSILON_MM = 0.5

    def __init__(self, panel_length_mm: Optional[float] = None,
                 cut_buffer_mm: Optional[float] = None,
                 min_leftover_mm: Optional[float] = None,
                 max_panels_per_run: Optional[int] = None):
        if panel_length_mm is not None:
            self.PANEL_LENGTH_MM = panel_length_mm
        if cut_buffer_mm is not None:
            self.CUT_BUFFER_MM = cut_buffer_mm
        if min_leftover_mm is not None:
            self.MIN_LEFTOVER_MM = min_leftover_mm
        if max_panels_per_run is not None:
            self.MAX_PANELS_PER_RUN = max_panels_per_run

    @classmethod
    def from_settings(cls) -> "PanelFitter":
        return cls(
            panel_length_mm=settings.PANEL_LENGTH_MM,
            cut_buffer_mm=settings.CUT_BUFFER_MM,
            min_leftover_mm=settings.MIN_LEFTOVER_MM,
            max_panels_per_run=settings.MAX_PANELS_PER_RUN,
        )

    def fit(self, run_id: str, length_mm: float, even_spacing: bool,
            leftovers: List[Leftover]) -> PanelFitResult:
        result = PanelFitResult()
        if length_mm <= 0:
            return result

        num_panels = math.floor(length_mm / self.PANEL_LENGTH_MM)
        if num_panels > self.MAX_PANELS_PER_RUN:
            logger.warning("Run %s: %.0fmm needs %d panels, refusing", run_id, length_mm, num_panels)
            result.warnings.append(RUN_TOO_LONG_WARNING)
            return result

        remainder = length_mm % self.PANEL_LENGTH_MM
        if remainder < self.EPSILON_MM:
            remainder = 0.0

        if even_spacing:
            self._fit_even(run_id, length_mm, leftovers, result)
        else:
            self._fit_full_panels(run_id, length_mm, num_panels, remainder, leftovers, result)

        # Spawned offcuts only become available to later runs
        leftovers.extend(result.new_leftovers)
        return result

    # --- Helpers ---

    def _fit_even(self, run_id: str, length_mm: float, leftovers: List[Leftover],
                  result: PanelFitResult) -> None:
        panel_count = max(1, math.ceil(length_mm / self.PANEL_LENGTH_MM))
        if panel_count > self.MAX_PANELS_PER_RUN:
            result.warnings.append(RUN_TOO_LONG_WARNING)
            return

        spacing = length_mm / panel_count
        for i in range(panel_count):
            used_id = None
            if spacing < self.PANEL_LENGTH_MM:
                used_id = self._take_cut(run_id, spacing, leftovers, result)
            result.segments.append(PanelSegment(
                id=self._segment_id(run_id, result),
                run_id=run_id,
                start_mm=i * spacing,
                end_mm=(i + 1) * spacing,
                length_mm=spacing,
                uses_leftover_id=used_id,
            ))
            if i > 0:
                result.panel_positions.append(i * spacing)

    def _fit_full_panels(self, run_id: str, length_mm: float, num_panels: int,
                         remainder: float, leftovers: List[Leftover],
                         result: PanelFitResult) -> None:
        for i in range(num_panels):
            result.segments.append(PanelSegment(
                id=self._segment_id(run_id, result),
                run_id=run_id,
                start_mm=i * self.PANEL_LENGTH_MM,
                end_mm=(i + 1) * self.PANEL_LENGTH_MM,
                length_mm=self.PANEL_LENGTH_MM,
            ))
            if i > 0:
                result.panel_positions.append(i * self.PANEL_LENGTH_MM)

        if remainder <= 0:
            return

        start = num_panels * self.PANEL_LENGTH_MM
        result.panel_positions.append(start)
        if remainder < self.MIN_LEFTOVER_MM:
            result.warnings.append(
                f"Short segment ({remainder / 1000:.2f}m) detected. "
                "Consider enabling even spacing or extending the run."
            )

        used_id = self._take_cut(run_id, remainder, leftovers, result)
        result.segments.append(PanelSegment(
            id=self._segment_id(run_id, result),
            run_id=run_id,
            start_mm=start,
            end_mm=length_mm,
            length_mm=remainder,
            uses_leftover_id=used_id,
            is_remainder=True,
        ))

    def _take_cut(self, run_id: str, cut_mm: float, leftovers: List[Leftover],
                  result: PanelFitResult) -> Optional[str]:
        """
        Source one cut of cut_mm: from the largest usable offcut if there is
        one, otherwise from a fresh panel. Whatever is left after the cut and
        buffer becomes a new offcut if it is long enough to keep.
        """
        leftover = self.find_leftover_for_cut(cut_mm, leftovers)
        if leftover is not None:
            leftover.consumed = True
            self._spawn(run_id, leftover.length_mm - cut_mm - self.CUT_BUFFER_MM, leftovers, result)
            return leftover.id
        self._spawn(run_id, self.PANEL_LENGTH_MM - cut_mm - self.CUT_BUFFER_MM, leftovers, result)
        return None

    def find_leftover_for_cut(self, required_mm: float,
                              leftovers: List[Leftover]) -> Optional[Leftover]:
        """Largest unconsumed offcut covering the cut plus buffer."""
        available = sorted(
            (l for l in leftovers if not l.consumed),
            key=lambda l: l.length_mm,
            reverse=True,
        )
        for leftover in available:
            if leftover.length_mm >= required_mm + self.CUT_BUFFER_MM:
                return leftover
        return None

    def _spawn(self, run_id: str, length_mm: float, leftovers: List[Leftover],
               result: PanelFitResult) -> None:
        if length_mm >= self.MIN_LEFTOVER_MM:
            result.new_leftovers.append(Leftover(
                id=self._leftover_id(run_id, leftovers, result),
                length_mm=length_mm,
            ))

    @staticmethod
    def _leftover_id(run_id: str, leftovers: List[Leftover], result: PanelFitResult) -> str:
        """Next free {run_id}-leftover-n, counting offcuts from earlier fits of the run."""
        prefix = f"{run_id}-leftover-"
        highest = 0
        for leftover in list(leftovers) + result.new_leftovers:
            suffix = leftover.id[len(prefix):] if leftover.id.startswith(prefix) else ""
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1}"

    def _segment_id(self, run_id: str, result: PanelFitResult) -> str:
        return f"{run_id}-seg-{len(result.segments) + 1}"


def fit_panels(run_id: str, length_mm: float, even_spacing: bool,
               leftovers: List[Leftover]) -> PanelFitResult:
    """Fit one run with the configured panel constants."""
    return PanelFitter.from_settings().fit(run_id, length_mm, even_spacing, leftovers)


def fit_runs(lines: List[Line], leftovers: Optional[List[Leftover]] = None,
             fitter: Optional[PanelFitter] = None) -> PanelPlan:
    """
    Fit every run in draw order against one shared pool.
    Lines carrying gates or openings are not panelled.
    """
    fitter = fitter or PanelFitter.from_settings()
    pool = leftovers if leftovers is not None else []
    plan = PanelPlan()

    for line in lines:
        if line.has_blocking_features():
            continue
        result = fitter.fit(line.id, line.measured_length_mm(), line.even_spacing, pool)
        plan.runs[line.id] = result
        plan.panel_positions[line.id] = list(result.panel_positions)
        plan.boards_purchased += count_boards_purchased(result.segments)
        plan.warnings.extend(f"{line.id}: {w}" for w in result.warnings)

    plan.leftovers = pool
    return plan


def count_boards_purchased(segments: List[PanelSegment]) -> int:
    """Segments cut from new stock. Offcut-sourced segments are already paid for."""
    return sum(1 for seg in segments if not seg.uses_leftover_id)


def count_unique_panels(segments: List[PanelSegment],
                        panel_length_mm: float = PanelFitter.PANEL_LENGTH_MM) -> int:
    return sum(
        1 for seg in segments
        if not seg.uses_leftover_id or seg.length_mm > panel_length_mm
    )
