"""HTTP API against a temp DuckDB."""

import pytest
from fastapi.testclient import TestClient

import predindex.api.main as api_main
from predindex.config import Settings
from predindex.errors import CancellationError
from predindex.models import HistoryPoint
from predindex.storage.db import get_connection
from predindex.storage.history import append_history_point

ADDR = "0x" + "ab" * 32


@pytest.fixture
def client(temp_db, db_path, monkeypatch):
    temp_db.close()
    monkeypatch.setattr(api_main, "_get_conn", lambda write=False: get_connection(db_path))
    monkeypatch.setattr(api_main, "get_settings", lambda profile=None: Settings())
    return TestClient(api_main.app)


def _create(client, **overrides):
    body = {"name": "Rain tomorrow?", "address": ADDR, "end_date": "2030-01-01"}
    body.update(overrides)
    resp = client.post("/markets", json=body)
    assert resp.status_code == 201
    return resp.json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "indexer_running": False}


def test_create_and_list(client):
    created = _create(client)
    assert created["options"] == ["Yes", "No"]
    assert created["resolved"] is False
    assert created["total_volume"] == 0

    listing = client.get("/markets").json()
    assert listing["total"] == 1
    assert listing["markets"][0]["market_id"] == created["market_id"]


def test_create_rejects_single_option(client):
    resp = client.post("/markets", json={"name": "x", "address": ADDR, "options": ["Only"]})
    assert resp.status_code == 422


def test_history_unknown_market_is_404(client):
    resp = client.get("/markets/999/history")
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_history_empty_window_is_flat(client):
    created = _create(client, options=["A", "B", "C", "D"])
    body = client.get(f"/markets/{created['market_id']}/history", params={"range": "1h"}).json()
    assert body["range"] == "1h"
    assert len(body["points"]) == 2
    assert all(p["odds"] == [0.25] * 4 and p["volume"] == 0 for p in body["points"])


def test_history_returns_stored_points(client, db_path):
    created = _create(client)
    conn = get_connection(db_path)
    try:
        append_history_point(conn, HistoryPoint(market_id=created["market_id"], timestamp=4_000_000_000_000, odds=[0.25, 0.75], volume=4.0))
        append_history_point(conn, HistoryPoint(market_id=created["market_id"], timestamp=3_999_999_999_000, odds=[0.5, 0.5], volume=2.0))
    finally:
        conn.close()
    # Future timestamps fall inside any lookback window
    body = client.get(f"/markets/{created['market_id']}/history", params={"range": "bogus"}).json()
    assert body["range"] == "1M"
    assert [p["odds"] for p in body["points"]] == [[0.5, 0.5], [0.25, 0.75]]


def test_delete(client):
    created = _create(client)
    assert client.delete(f"/markets/{created['market_id']}").status_code == 204
    assert client.delete(f"/markets/{created['market_id']}").status_code == 404
    assert client.get("/markets").json()["total"] == 0


def test_cancel_without_signer_is_503(client):
    created = _create(client)
    resp = client.post(f"/markets/{created['market_id']}/cancel")
    assert resp.status_code == 503
    assert resp.json()["code"] == "no_signer"


class _FakeCanceller:
    fail = False

    def __init__(self, signer_url):
        self.signer_url = signer_url

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def cancel_market(self, address):
        if self.fail:
            raise CancellationError("signer unreachable")
        return "digest-1"


def test_cancel_through_signer(client, monkeypatch):
    monkeypatch.setattr(api_main, "get_settings", lambda profile=None: Settings(expiry={"signer_url": "http://signer"}))
    monkeypatch.setattr(api_main, "SignerServiceCanceller", _FakeCanceller)
    created = _create(client)
    resp = client.post(f"/markets/{created['market_id']}/cancel")
    assert resp.status_code == 200
    assert resp.json() == {"market_id": created["market_id"], "digest": "digest-1", "status": "submitted"}

    assert client.post("/markets/999/cancel").status_code == 404

    monkeypatch.setattr(_FakeCanceller, "fail", True)
    resp = client.post(f"/markets/{created['market_id']}/cancel")
    assert resp.status_code == 502
    assert resp.json()["code"] == "cancel_failed"
