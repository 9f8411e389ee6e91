"""
Data contracts shared by the planning engine and the HTTP layer.

Geometry is planar millimetres unless a function says otherwise.
Pricing heights and widths are metres, matching the catalog.
"""

import enum
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel


# --- Enums ---

class PostCategory(str, enum.Enum):
    END = "end"
    CORNER = "corner"
    LINE = "line"
    T = "t"


class PostSource(str, enum.Enum):
    VERTEX = "vertex"
    PANEL = "panel"


class SnapKind(str, enum.Enum):
    ENDPOINT = "endpoint"
    SEGMENT = "segment"


class Axis(str, enum.Enum):
    X = "x"
    Y = "y"


class BoardDirection(str, enum.Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class OffsetDirection(str, enum.Enum):
    INWARD = "inward"
    OUTWARD = "outward"


class EdgeMode(str, enum.Enum):
    FREE = "free"
    LOCKED = "locked"


class GateType(str, enum.Enum):
    SINGLE_900 = "single_900"
    SINGLE_1800 = "single_1800"
    DOUBLE_900 = "double_900"
    DOUBLE_1800 = "double_1800"
    SLIDING_4800 = "sliding_4800"
    OPENING_CUSTOM = "opening_custom"


class ProductType(str, enum.Enum):
    PANEL = "Panel"
    LINE_POST = "Line Post"
    END_POST = "End Post"
    CORNER_POST = "Corner Post"
    BLANK_POST = "Blank Post"
    SINGLE_GATE = "Single Gate"
    DOUBLE_GATE = "Double Gate"
    SLIDING_GATE = "Sliding Gate"


class Colour(str, enum.Enum):
    WHITE = "White"
    COLOURED = "Coloured"


class ResolutionErrorType(str, enum.Enum):
    MISSING_SKU = "missing_sku"
    INVALID_INPUT = "invalid_input"
    SKU_BUILD_FAILED = "sku_build_failed"


# --- Geometry ---

class Point(BaseModel):
    x: float
    y: float


class Bounds(BaseModel):
    min_x: float
    min_y: float
    max_x: float
    max_y: float


class LineFeature(BaseModel):
    type: str  # panel | gate | opening
    id: Optional[str] = None


class GateMetadata(BaseModel):
    gate_id: Optional[str] = None
    is_gate_line: bool = False
    openings: List[str] = []
    gates: List[str] = []
    segments: List[LineFeature] = []

    def is_blocking(self) -> bool:
        """Gate or opening references make a line non-mergeable."""
        has_opening_segment = any(s.type in ("gate", "opening") for s in self.segments)
        return bool(
            self.is_gate_line
            or self.gate_id
            or self.openings
            or self.gates
            or has_opening_segment
        )


class Line(BaseModel):
    id: str
    a: Point
    b: Point
    length_mm: float = 0.0
    locked_orthogonal: bool = False
    even_spacing: bool = False
    gate_metadata: Optional[GateMetadata] = None

    def has_blocking_features(self) -> bool:
        return self.gate_metadata is not None and self.gate_metadata.is_blocking()

    def measured_length_mm(self) -> float:
        """Stored run length, or the planar distance when none was recorded."""
        if self.length_mm and self.length_mm > 0:
            return self.length_mm
        return ((self.b.x - self.a.x) ** 2 + (self.b.y - self.a.y) ** 2) ** 0.5


class SnapResult(BaseModel):
    point: Point
    kind: SnapKind
    line_id: str
    t: float


class EdgeConstraint(BaseModel):
    mode: EdgeMode = EdgeMode.FREE
    length_mm: Optional[float] = None


# --- Panel fitting ---

class PanelSegment(BaseModel):
    id: str
    run_id: str
    start_mm: float
    end_mm: float
    length_mm: float
    uses_leftover_id: Optional[str] = None
    is_remainder: bool = False


class Leftover(BaseModel):
    id: str
    length_mm: float
    consumed: bool = False


class PanelFitResult(BaseModel):
    segments: List[PanelSegment] = []
    panel_positions: List[float] = []
    new_leftovers: List[Leftover] = []
    warnings: List[str] = []


class PanelPlan(BaseModel):
    """Fit results for several runs sharing one leftover pool."""
    runs: Dict[str, PanelFitResult] = {}
    panel_positions: Dict[str, List[float]] = {}
    leftovers: List[Leftover] = []
    boards_purchased: int = 0
    warnings: List[str] = []


# --- Posts, spans, gates, breakers ---

class Post(BaseModel):
    id: str
    pos: Point
    category: PostCategory
    source: PostSource = PostSource.VERTEX


class OrderedPostStation(BaseModel):
    post: Post
    station_m: float


class PostSpan(BaseModel):
    id: str
    from_post_id: str
    to_post_id: str
    length_m: float


class PostSpanResult(BaseModel):
    ordered_posts: List[OrderedPostStation] = []
    spans: List[PostSpan] = []


class Gate(BaseModel):
    id: str
    type: GateType
    opening_mm: float = 0.0
    run_id: str
    sliding_return_side: Optional[str] = None  # "a" | "b"
    sliding_return_direction: str = "left"
    return_length_mm: Optional[float] = None
    leaf_count: Optional[int] = None


class SlidingReturn(BaseModel):
    start: Point
    end: Point
    center: Point
    direction: Point


class BreakerLine(BaseModel):
    id: str
    axis: Axis
    pos_mm: float


# --- Catalog & pricing ---

class WidthRange(BaseModel):
    min: float
    max: float

    def contains(self, width: float) -> bool:
        return self.min <= width <= self.max

    def label(self) -> str:
        return f"{self.min}-{self.max}"


class PricingRow(BaseModel):
    category: str = "Residential"
    type: ProductType
    style: str
    colour: Optional[Colour] = None
    height_m: float
    width: Union[WidthRange, float, None] = None
    sku: str
    unit_price: float


class Selection(BaseModel):
    type: ProductType
    fence_style: str
    colour: Colour = Colour.WHITE
    height_m: float
    gate_width_m: Optional[float] = None


class Resolved(BaseModel):
    sku: str
    unit_price: float
    priced_width_m: Optional[float] = None
    requested_width_m: Optional[float] = None
    width_snapped: Optional[bool] = None


class ResolutionContext(BaseModel):
    selection: Selection
    generated_sku: Optional[str] = None
    available_skus: Optional[List[str]] = None
    width_range: Optional[WidthRange] = None
    width_ranges: Optional[List[WidthRange]] = None


class ResolutionError(BaseModel):
    type: ResolutionErrorType
    message: str
    context: ResolutionContext


class ResolveResult(BaseModel):
    success: bool
    resolved: Optional[Resolved] = None
    error: Optional[ResolutionError] = None


class QuoteLineItem(BaseModel):
    name: str
    item_type: str  # panel | post | gate
    quantity: int
    sku: str
    unit_price: float
    line_total: float
    gate_width_m: Optional[float] = None
    gate_width_range: Optional[str] = None
    debug_info: Optional[Dict[str, Any]] = None


class QuoteSummary(BaseModel):
    line_items: List[QuoteLineItem] = []
    missing_items: List[QuoteLineItem] = []
    priced_total: float = 0.0
    grand_total: float = 0.0
    total_length_mm: float = 0.0


class CatalogStatus(BaseModel):
    source: str = "none"  # upstream | cache | seed | none
    row_count: int = 0
    last_attempt_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    last_error: Optional[str] = None


# --- HTTP request / response bodies ---

class PanelFitRequest(BaseModel):
    lines: List[Line]
    leftovers: List[Leftover] = []


class PostsRequest(BaseModel):
    lines: List[Line]
    panel_positions: Dict[str, List[float]] = {}


class PostsResponse(BaseModel):
    posts: List[Post]
    ordered_posts: List[OrderedPostStation] = []
    spans: List[PostSpan] = []


class SnapRequest(BaseModel):
    point: Point
    lines: List[Line]
    tolerance_mm: Optional[float] = None


class OffsetRequest(BaseModel):
    polygon: List[Point]
    distance_mm: float
    direction: OffsetDirection = OffsetDirection.INWARD


class OffsetResponse(BaseModel):
    polygon: List[Point]
    area_mm2: float


class BreakerDefaultsRequest(BaseModel):
    polygon: List[Point]
    board_direction: BoardDirection = BoardDirection.HORIZONTAL


class BreakerSnapRequest(BaseModel):
    polygon: List[Point]
    axis: Axis
    pos_mm: float


class QuoteRequest(BaseModel):
    fence_style: str
    colour: Colour = Colour.WHITE
    height_m: float
    lines: List[Line]
    gates: List[Gate] = []
    leftovers: List[Leftover] = []


class DeckRequest(BaseModel):
    polygon: List[Point]
    board_direction: BoardDirection = BoardDirection.HORIZONTAL
    breakers: Optional[List[BreakerLine]] = None
