"""
Gate width rules and sliding-gate return geometry.

A sliding gate needs a straight run of fence beside its opening to slide
along (the return). The return sits on side "a" or "b" of the gate line.
"""

import math
from typing import List, Optional

from ..schemas import Gate, GateType, Line, Point, SlidingReturn
from .posts import to_plane_mm
from .primitives import distance

DEFAULT_RETURN_LENGTH_MM = 4800.0
RETURN_POINT_TOLERANCE_MM = 50.0

# Width rules in metres, per gate family
GATE_WIDTH_RULES = {
    "single": {"min_m": 0.9, "max_m": 2.35, "default_m": 0.9, "step_m": 0.05},
    "double": {"min_m": 2.4, "max_m": 4.7, "default_m": 2.4, "step_m": 0.05},
    "sliding": {"min_m": 3.1, "max_m": 6.0, "default_m": 4.8, "step_m": 0.05},
}


def gate_width_family(gate_type) -> str:
    value = GateType(gate_type).value
    if value.startswith("double"):
        return "double"
    if value.startswith("sliding"):
        return "sliding"
    return "single"


def gate_width_rules(gate_type) -> dict:
    return GATE_WIDTH_RULES[gate_width_family(gate_type)]


def clamp_gate_width_m(width_m: float, gate_type) -> float:
    rules = gate_width_rules(gate_type)
    return min(rules["max_m"], max(rules["min_m"], width_m))


def default_gate_width_mm(gate_type) -> float:
    return float(round(gate_width_rules(gate_type)["default_m"] * 1000))


def get_gate_width(gate: Gate) -> float:
    """Opening width in mm, falling back to the family default when unset."""
    if gate.type == GateType.OPENING_CUSTOM or gate.opening_mm > 0:
        return gate.opening_mm
    return default_gate_width_mm(gate.type)


def normalize_gate_width(gate: Gate) -> Gate:
    """Clamp a gate's opening into its family's rules and onto the width step."""
    if gate.type == GateType.OPENING_CUSTOM:
        return gate
    rules = gate_width_rules(gate.type)
    current_m = gate.opening_mm / 1000.0
    if not math.isfinite(current_m) or current_m <= 0:
        return gate.model_copy(update={"opening_mm": default_gate_width_mm(gate.type)})
    stepped = round(current_m / rules["step_m"]) * rules["step_m"]
    clamped = clamp_gate_width_m(stepped, gate.type)
    return gate.model_copy(update={"opening_mm": float(round(clamped * 1000))})


def sliding_return_side(gate: Gate) -> str:
    if gate.sliding_return_side:
        return gate.sliding_return_side
    return "a" if gate.sliding_return_direction == "left" else "b"


def compute_sliding_gate_return(gate_line: Line, side: str, return_length: float) -> SlidingReturn:
    """Return segment leaving the gate line from the chosen end, continuing its direction."""
    dx = gate_line.b.x - gate_line.a.x
    dy = gate_line.b.y - gate_line.a.y
    length = math.hypot(dx, dy) or 1.0
    ux, uy = dx / length, dy / length
    if side == "a":
        direction = Point(x=-ux, y=-uy)
        start = gate_line.a
    else:
        direction = Point(x=ux, y=uy)
        start = gate_line.b
    return SlidingReturn(
        start=start,
        end=Point(x=start.x + direction.x * return_length, y=start.y + direction.y * return_length),
        center=Point(x=start.x + direction.x * return_length / 2, y=start.y + direction.y * return_length / 2),
        direction=direction,
    )


def validate_sliding_return(gate: Gate, line: Line, all_lines: List[Line],
                            geographic: bool = False) -> Optional[str]:
    """Warning text if a run next to a sliding gate is too short for its return."""
    if gate_width_family(gate.type) != "sliding":
        return None

    required_mm = gate.return_length_mm or DEFAULT_RETURN_LENGTH_MM
    connected = line.a if sliding_return_side(gate) == "a" else line.b
    connected_mm = to_plane_mm(connected, geographic)

    for adjacent in all_lines:
        if adjacent.id == line.id:
            continue
        touches = any(
            distance(to_plane_mm(p, geographic), connected_mm) < RETURN_POINT_TOLERANCE_MM
            for p in (adjacent.a, adjacent.b)
        )
        if touches and adjacent.measured_length_mm() < required_mm:
            return (
                f"Sliding gate requires {required_mm / 1000:.1f}m return space. "
                f"Adjacent run is only {adjacent.measured_length_mm() / 1000:.2f}m."
            )
    return None
