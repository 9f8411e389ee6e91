"""
Shared test fixtures: test client, sample catalog rows, built pricing index.
"""

import os
import pytest
from fastapi.testclient import TestClient

# Never reach for the upstream sheet during tests; the store falls back to the seed file
os.environ["PRICING_SHEET_ID"] = ""

from fence_planner.main import app
from fence_planner.pricing.catalog_index import PricingIndex
from fence_planner.schemas import Colour, PricingRow, ProductType, WidthRange


def _row(type_, style, height_m, sku, unit_price, colour=None, width=None):
    return PricingRow(
        type=type_, style=style, colour=colour, height_m=height_m,
        width=width, sku=sku, unit_price=unit_price,
    )


def sample_rows():
    """A small residential catalog covering every product family."""
    return [
        _row(ProductType.PANEL, "Bellbrae", 1.6, "Bellbrae-White-1.6m", 303.88, Colour.WHITE),
        _row(ProductType.PANEL, "Bellbrae", 1.6, "Bellbrae-Colour-1.6m", 349.46, Colour.COLOURED),
        _row(ProductType.PANEL, "Jabiru", 1.2, "Picket-Jabiru-White-1.2m", 198.70, Colour.WHITE),
        _row(ProductType.END_POST, "Picket", 1.6, "ResPost-End-Wht-1.6m", 64.90, Colour.WHITE),
        _row(ProductType.CORNER_POST, "Picket", 1.6, "ResPost-Corner-Wht-1.6m", 71.50, Colour.WHITE),
        _row(ProductType.LINE_POST, "Picket", 1.6, "ResPost-Line-Wht-1.6m", 58.30, Colour.WHITE),
        _row(ProductType.SINGLE_GATE, "Picket", 1.6, "Gate-Picket-Single-1.6H-0.9W", 612.40, width=0.9),
        _row(ProductType.SINGLE_GATE, "Picket", 1.6, "Gate-Picket-Single-1.6H-2.35W", 913.76, width=2.35),
        _row(ProductType.DOUBLE_GATE, "Picket", 1.6, "Gate-Picket-Double-1.6H-4.7W", 1768.36, width=4.7),
        _row(ProductType.SINGLE_GATE, "Mystique Solid", 1.6, "Gate-Mystique-Single-1.6H-2.35", 996.82, width=2.35),
        _row(ProductType.SLIDING_GATE, "Picket", 1.6, "Gate-Pick-Sliding-1.6H-4.6/5.0", 5631.67,
             width=WidthRange(min=4.6, max=5.0)),
        _row(ProductType.SLIDING_GATE, "Picket", 1.6, "Gate-Pick-Sliding-1.6H-3.1/3.6", 4280.15,
             width=WidthRange(min=3.1, max=3.6)),
    ]


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def rows():
    return sample_rows()


@pytest.fixture
def index():
    """Pricing index over the sample catalog."""
    return PricingIndex.build(sample_rows())
