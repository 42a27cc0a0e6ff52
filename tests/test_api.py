from fastapi import FastAPI
from fastapi.testclient import TestClient

from gexflow.api import attach_routes


def _client():
    app = FastAPI()
    attach_routes(app)
    return TestClient(app)


def _rows(strikes, oi):
    return [
        {"strike": k, "impliedVolatility": 0.2, "openInterest": oi, "volume": 10, "lastPrice": 1.0}
        for k in strikes
    ]


def _analysis_body(**overrides):
    expirations = [
        {
            "expiration": expiration,
            "calls": _rows([100, 102, 105], 1000 + 50 * i),
            "puts": _rows([95, 98, 100], 900),
        }
        for i, expiration in enumerate(["2024-01-09", "2024-01-10", "2024-01-11", "2024-01-12", "2024-01-16"])
    ]
    body = {"current_price": 100.0, "as_of": "2024-01-08T10:00:00", "expirations": expirations}
    body.update(overrides)
    return body


def test_recommendations_endpoint():
    response = _client().post(
        "/recommendations", json={"support": 390, "resistance": 410, "current_price": 400}
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["bands"]) == 6
    assert data["current_band"]["status"] == "Neutral"


def test_recommendations_validation_error():
    response = _client().post(
        "/recommendations", json={"support": -1, "resistance": 410, "current_price": 400}
    )
    assert response.status_code == 422


def test_analysis_endpoint():
    response = _client().post("/analysis", json=_analysis_body())

    assert response.status_code == 200
    data = response.json()
    assert len(data["time_series"]) == 5
    assert len(data["recommendations"]) == 6
    assert "projection" not in data


def test_analysis_endpoint_with_projection():
    body = _analysis_body(projection={"current_price": 50.0, "beta": -1.0})
    response = _client().post("/analysis", json=body)

    assert response.status_code == 200
    projection = response.json()["projection"]
    assert projection["polarity"] == "inverse"
    assert projection["support"]["level"] <= projection["resistance"]["level"]


def test_analysis_endpoint_without_usable_data():
    body = _analysis_body(expirations=[{"expiration": "2024-01-05", "calls": _rows([100], 10)}])
    response = _client().post("/analysis", json=body)
    assert response.status_code == 404


def test_analysis_endpoint_rejects_missing_expirations():
    response = _client().post("/analysis", json=_analysis_body(expirations=[]))
    assert response.status_code == 422


def test_beta_endpoint():
    closes = {f"2024-01-{day:02d}": 100.0 + day * (1 if day % 2 else -0.5) for day in range(2, 31)}
    response = _client().post(
        "/beta",
        json={"ticker_closes": closes, "benchmark_closes": closes, "lookback_months": 3},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["beta"] == 1.0
    assert data["sample_size"] == 28


def test_beta_endpoint_lookback_bounds():
    response = _client().post(
        "/beta",
        json={"ticker_closes": {}, "benchmark_closes": {}, "lookback_months": 36},
    )
    assert response.status_code == 422
