"""
HTTP endpoint tests. The pricing endpoints run against the bundled seed
catalog because no upstream sheet is configured under test.
"""

import pytest

from fence_planner.pricing.catalog_loader import CatalogUnavailableError
from fence_planner.routers import pricing as pricing_router


def _line(line_id, a, b, **extra):
    return {"id": line_id, "a": {"x": a[0], "y": a[1]}, "b": {"x": b[0], "y": b[1]}, **extra}


def _rect(width, height):
    return [{"x": 0, "y": 0}, {"x": width, "y": 0}, {"x": width, "y": height}, {"x": 0, "y": height}]


def _fence():
    return [
        _line("l1", (0, 0), (5000, 0), length_mm=5000),
        _line("l2", (5000, 0), (5000, 3000), length_mm=3000),
    ]


# --- Health ---

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# --- Planning ---

def test_plan_panels(client):
    response = client.post("/api/planning/panels", json={"lines": [_line("l1", (0, 0), (5000, 0))]})
    assert response.status_code == 200
    data = response.json()
    assert len(data["runs"]["l1"]["segments"]) == 3
    assert data["boards_purchased"] == 3
    assert data["leftovers"][0]["length_mm"] == pytest.approx(1870)
    assert data["warnings"][0].startswith("l1: Short segment")


def test_plan_posts(client):
    response = client.post("/api/planning/posts", json={
        "lines": _fence(),
        "panel_positions": {"l1": [2390, 4780]},
    })
    assert response.status_code == 200
    data = response.json()
    categories = sorted(p["category"] for p in data["posts"])
    assert categories == ["corner", "end", "end", "line", "line"]
    assert len(data["spans"]) == 4


def test_snap(client):
    gate_line = _line("gate", (0, 0), (380, 0), gate_metadata={"is_gate_line": True})
    response = client.post("/api/planning/snap", json={
        "point": {"x": 40, "y": 0}, "lines": [gate_line], "tolerance_mm": 200,
    })
    assert response.status_code == 200
    assert response.json()["kind"] == "endpoint"

    miss = client.post("/api/planning/snap", json={"point": {"x": 9000, "y": 9000}, "lines": [gate_line]})
    assert miss.status_code == 200
    assert miss.json() is None


def test_offset(client):
    response = client.post("/api/planning/offset", json={
        "polygon": _rect(1000, 500), "distance_mm": 50, "direction": "outward",
    })
    assert response.status_code == 200
    assert response.json()["area_mm2"] == pytest.approx(1100 * 600)


def test_offset_degenerate_is_422(client):
    response = client.post("/api/planning/offset", json={
        "polygon": _rect(1000, 500), "distance_mm": 250, "direction": "inward",
    })
    assert response.status_code == 422


def test_breakers(client):
    response = client.post("/api/planning/breakers", json={"polygon": _rect(12000, 4000)})
    assert response.status_code == 200
    assert [b["pos_mm"] for b in response.json()] == [5400, 10800]

    snapped = client.post("/api/planning/breakers/snap", json={
        "polygon": _rect(12000, 4000), "axis": "x", "pos_mm": 5,
    })
    assert snapped.json()["pos_mm"] == 70

    bad = client.post("/api/planning/breakers", json={"polygon": _rect(1, 1)[:2]})
    assert bad.status_code == 422


def test_deck_cutting_list(client):
    response = client.post("/api/planning/deck", json={"polygon": _rect(6000, 1000)})
    assert response.status_code == 200
    data = response.json()
    assert len(data["breakers"]) == 1
    assert data["board_count"] == 14


# --- Pricing ---

def test_resolve(client):
    response = client.post("/api/pricing/resolve", json={
        "type": "Double Gate", "fence_style": "Bellbrae", "colour": "White",
        "height_m": 1.6, "gate_width_m": 4.7,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["success"]
    assert data["resolved"]["sku"] == "Gate-Picket-Double-1.6H-4.7W"
    assert data["resolved"]["unit_price"] == 1768.36


def test_resolve_failure_is_typed(client):
    response = client.post("/api/pricing/resolve", json={
        "type": "Sliding Gate", "fence_style": "Bellbrae", "height_m": 1.6,
    })
    assert response.status_code == 200
    assert response.json()["error"]["type"] == "invalid_input"


def test_quote(client):
    response = client.post("/api/pricing/quote", json={
        "fence_style": "Bellbrae",
        "colour": "White",
        "height_m": 1.6,
        "lines": _fence(),
        "gates": [
            {"id": "g1", "type": "single_900", "run_id": "l1"},
            {"id": "g2", "type": "sliding_4800", "run_id": "l2"},
        ],
    })
    assert response.status_code == 200
    data = response.json()
    names = [item["name"] for item in data["line_items"]]
    assert names == [
        "Bellbrae Panel 1.6m", "End Posts", "Corner Posts", "Line Posts",
        "Single Gate 0.9m", "Sliding Gate 4.8m",
    ]
    assert data["missing_items"] == []
    # 4 panels, 2 end, 1 corner, 3 line posts, one single and one sliding gate
    assert data["grand_total"] == pytest.approx(
        4 * 303.88 + 2 * 64.90 + 71.50 + 3 * 58.30 + 612.40 + 5631.67
    )
    assert data["total_length_mm"] == 8000


def test_catalog_status_after_load(client):
    client.post("/api/pricing/resolve", json={
        "type": "Panel", "fence_style": "Bellbrae", "height_m": 1.6,
    })
    status = client.get("/api/pricing/catalog/status").json()
    assert status["source"] == "seed"
    assert status["row_count"] == 29


def test_catalog_options(client):
    data = client.get("/api/pricing/catalog/options").json()
    assert "Bellbrae" in data["options"]["styles"]
    assert len(data["options"]["gate_widths"]["sliding"]) == 4


def test_catalog_unavailable_is_502(client, monkeypatch):
    def _unavailable():
        raise CatalogUnavailableError("no catalog")

    monkeypatch.setattr(pricing_router.catalog_store, "get_index", _unavailable)
    response = client.post("/api/pricing/resolve", json={
        "type": "Panel", "fence_style": "Bellbrae", "height_m": 1.6,
    })
    assert response.status_code == 502
