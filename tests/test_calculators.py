"""
Calculator tests — material quantities, costs, and the metered submit endpoint.

Tests:
1-4.   Quantities and costs per calculator
5-7.   Input validation and the registry
8-13.  Endpoints (quota, page views, bad input, materials log, status, admin reset)
"""

import pytest

from mjengo.calculators.base import CalculatorInputError
from mjengo.calculators.concrete import ConcreteCalculator
from mjengo.calculators.excavation import ExcavationCalculator
from mjengo.calculators.materials_log import format_entry
from mjengo.calculators.plaster import PlasterCalculator
from mjengo.calculators.registry import get_calculator, list_calculators
from mjengo.calculators.walling import WallingCalculator
from mjengo.config import settings


CONCRETE = {
    "concrete_volume": "1",
    "concrete_ratio": "1:2:4",
    "cement_price": "750",
    "sand_price": "2000",
    "ballast_price": "2500",
    "labor_price": "10",
}


def _quantities(result) -> list:
    return [item["quantity"] for item in result["line_items"]]


# ============================================================
# Quantities and costs
# ============================================================

def test_concrete():
    result = ConcreteCalculator().calculate(CONCRETE)
    assert _quantities(result) == [7, 1, 2]
    assert [item["unit"] for item in result["line_items"]] == ["bags", "tons", "tons"]
    assert result["materials_cost"] == 12250
    assert result["labor_cost"] == 1225
    assert result["total_cost"] == 13475


def test_concrete_custom_descriptions():
    result = ConcreteCalculator().calculate({**CONCRETE, "cement": "Bamburi 42.5", "sand": "River sand"})
    assert result["line_items"][0]["description"] == "Bamburi 42.5"
    assert result["line_items"][1]["description"] == "River sand"
    assert result["line_items"][2]["description"] == "ballast"


def test_plaster():
    result = PlasterCalculator().calculate({
        "plaster_area": 10,
        "plaster_thickness": 12,
        "plaster_ratio": "1:4",
        "cement_price": 750,
        "sand_price": 2000,
        "labor_price": 20,
    })
    assert _quantities(result) == [1, 1]
    assert result["materials_cost"] == 2750
    assert result["labor_cost"] == 550
    assert result["total_cost"] == 3300


def test_excavation():
    result = ExcavationCalculator().calculate({
        "excavation_volume": 20,
        "excavation_rate": 300,
        "labor_price": 10,
    })
    assert result["line_items"][0]["cost"] == 6000
    assert result["labor_cost"] == 600
    assert result["total_cost"] == 6600


def test_walling():
    result = WallingCalculator().calculate({
        "wall_area": 10,
        "block_size": "400x200x200",
        "block_price": 50,
        "mortar_ratio": "1:3",
        "cement_price": 750,
        "sand_price": 2000,
        "labor_price": 0,
    })
    assert _quantities(result) == [109, 3, 1]
    assert result["line_items"][0]["description"] == "400x200x200 blocks"
    assert result["materials_cost"] == 9700
    assert result["labor_cost"] == 0
    assert result["total_cost"] == 9700


# ============================================================
# Validation / registry
# ============================================================

@pytest.mark.parametrize("override", [
    {"concrete_volume": ""},
    {"concrete_volume": "abc"},
    {"concrete_volume": "-1"},
    {"concrete_volume": "0"},
    {"concrete_ratio": "1:2"},
    {"concrete_ratio": "a:b:c"},
    {"cement_price": "nan"},
])
def test_concrete_rejects_bad_input(override):
    with pytest.raises(CalculatorInputError):
        ConcreteCalculator().calculate({**CONCRETE, **override})


def test_walling_rejects_bad_block_size():
    with pytest.raises(CalculatorInputError):
        WallingCalculator().parse_block_size("400x200")
    with pytest.raises(CalculatorInputError):
        WallingCalculator().parse_block_size("400x0x200")


def test_registry():
    assert list_calculators() == ["concrete", "walling", "plaster", "excavation"]
    assert isinstance(get_calculator("plaster"), PlasterCalculator)
    with pytest.raises(ValueError):
        get_calculator("roofing")


def test_materials_log_entry():
    result = ExcavationCalculator().calculate({"excavation_volume": 2, "excavation_rate": 100, "labor_price": 0})
    entry = format_entry(result, "builder@gmail.com")
    assert "excavation" in entry
    assert "builder@gmail.com" in entry
    assert "subtotal ... 200" in entry


# ============================================================
# Endpoints
# ============================================================

@pytest.fixture
def materials_log(tmp_path, monkeypatch):
    path = tmp_path / "materials.txt"
    monkeypatch.setattr(settings, "MATERIALS_LOG_PATH", str(path))
    return path


def test_list_calculators(client):
    names = [c["name"] for c in client.get("/api/calculators").json()]
    assert names == ["concrete", "walling", "plaster", "excavation"]


def test_submit_requires_session(client, materials_log):
    response = client.post("/api/calculators/concrete/submit", json=CONCRETE)
    assert response.status_code == 401


def test_free_quota_then_paywall(client, auth_headers, free_limit, materials_log):
    for used in range(1, free_limit + 1):
        response = client.post("/api/calculators/concrete/submit", json=CONCRETE, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total_cost"] == 13475
        assert response.json()["calculations_used"] == used

    response = client.post("/api/calculators/concrete/submit", json=CONCRETE, headers=auth_headers)
    assert response.status_code == 403
    detail = response.json()["detail"]
    assert detail["calculations_used"] == free_limit
    assert detail["subscribe_url"].endswith("/api/paystack/subscribe?email=builder%40gmail.com")

    # Page view is denied once the quota is gone
    assert client.get("/api/calculators/concrete", headers=auth_headers).status_code == 403

    assert materials_log.read_text().count("builder@gmail.com") == free_limit


def test_page_views_are_free(client, auth_headers):
    for _ in range(5):
        response = client.get("/api/calculators/walling", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["calculations_used"] == 0
    assert "wall_area" in response.json()["fields"]
    assert client.get("/api/calculators/roofing", headers=auth_headers).status_code == 404


def test_bad_input_does_not_consume(client, auth_headers, materials_log):
    response = client.post(
        "/api/calculators/concrete/submit",
        json={**CONCRETE, "concrete_volume": "lots"},
        headers=auth_headers,
    )
    assert response.status_code == 422
    status = client.get("/api/user/status", params={"email": "builder@gmail.com"}).json()
    assert status["calculations_used"] == 0


def test_subscriber_is_not_metered(client, auth_headers, free_limit, materials_log):
    client.post("/webhook/paystack", json={
        "event": "charge.success",
        "data": {"reference": "sub_1", "amount": 50000, "customer": {"email": "builder@gmail.com"}},
    })
    for _ in range(free_limit + 2):
        response = client.post("/api/calculators/plaster/submit", json={
            "plaster_area": 10, "plaster_thickness": 12, "plaster_ratio": "1:4",
            "cement_price": 750, "sand_price": 2000, "labor_price": 20,
        }, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["calculations_used"] == 0


def test_user_status(client, free_limit):
    data = client.get("/api/user/status", params={"email": "unknown@gmail.com"}).json()
    assert data["calculations_used"] == 0
    assert data["free_remaining"] == free_limit
    assert data["subscription_active"] is False


def test_admin_reset_usage(client, auth_headers, free_limit, materials_log):
    for _ in range(free_limit):
        client.post("/api/calculators/excavation/submit", json={
            "excavation_volume": 1, "excavation_rate": 100, "labor_price": 0,
        }, headers=auth_headers)

    url = "/api/admin/users/builder@gmail.com/reset-usage"
    assert client.post(url).status_code == 403
    assert client.post(url, headers={"X-Admin-Key": "wrong"}).status_code == 403

    response = client.post(url, headers={"X-Admin-Key": "test-admin-key"})
    assert response.status_code == 200
    assert response.json()["calculations_used"] == 0
    assert response.json()["free_remaining"] == free_limit

    missing = client.post("/api/admin/users/ghost@gmail.com/reset-usage", headers={"X-Admin-Key": "test-admin-key"})
    assert missing.status_code == 404
