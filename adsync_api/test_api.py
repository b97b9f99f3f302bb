"""
HTTP API tests with the engine entry points replaced by fakes.
"""
import pytest
from fastapi.testclient import TestClient

from adsync.database import db_connect, db_init, db_insert_account, db_insert_proxy
from adsync.models import ActionResult, ActionType, Listing, ListingStatus
from adsync_api.config import Config
from adsync_api.main import app
from adsync_api.routes import ads as ads_routes

LISTINGS = [
    Listing(ad_id="2745123456", title="Leather Sofa", price="120 € VB", image="", href="https://www.kleinanzeigen.de/s-anzeige/leder-sofa/2745123456-88-3331",
            status=ListingStatus.RESERVED, views=12, favorites=3, account_id=1, account_label="Anna"),
    Listing(ad_id="2745999000", title="Fahrrad 28 Zoll", price="80 €", image="", href="",
            account_id=1, account_label="Anna"),
]


@pytest.fixture
def store(tmp_path, monkeypatch):
    path = str(tmp_path / "adsync.db")
    conn = db_connect(path)
    db_init(conn)
    proxy_id = db_insert_proxy(conn, host="10.0.0.5", port=3128)
    account_id = db_insert_account(conn, cookie="a=1", proxy_id=proxy_id, profile_name="Anna")
    conn.close()
    monkeypatch.setattr(Config, "DB_PATH", path)
    return {"account_id": account_id, "proxy_id": proxy_id}


@pytest.fixture
def client(store):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def engine(monkeypatch):
    calls = {"sync": [], "action": []}
    state = {"result": ActionResult(success=True, confirmed=True, removed=False, message="OK")}

    async def fake_fetch_active_ads(accounts, proxies, update_account=None, config=None):
        calls["sync"].append(([a.id for a in accounts], [p.id for p in proxies]))
        return LISTINGS

    async def fake_perform_ad_action(account, proxy, ad_id, action, ad_href="", ad_title="", config=None):
        calls["action"].append((account.id, proxy.id if proxy else None, ad_id, action, ad_href, ad_title))
        return state["result"]

    monkeypatch.setattr(ads_routes, "fetch_active_ads", fake_fetch_active_ads)
    monkeypatch.setattr(ads_routes, "perform_ad_action", fake_perform_ad_action)
    calls["state"] = state
    return calls


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_active_ads(client, store, engine):
    response = client.get("/api/ads/active")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["items"][0]["status"] == "Reserved"
    assert data["items"][0]["views"] == 12
    assert data["items"][1]["favorites"] is None
    assert engine["sync"] == [([store["account_id"]], [store["proxy_id"]])]


def test_export_csv(client, engine):
    response = client.get("/api/ads/export/csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0].startswith("ad_id,title,price,status")


def test_action_runs_for_stored_account(client, store, engine):
    response = client.post(
        "/api/ads/2745999000/Reserve",
        json={"account_id": store["account_id"], "ad_title": "Fahrrad 28 Zoll"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "confirmed": True, "removed": False, "message": "OK"}
    assert engine["action"] == [
        (store["account_id"], store["proxy_id"], "2745999000", ActionType.RESERVE, "", "Fahrrad 28 Zoll"),
    ]


def test_failed_action_is_reported_in_the_body(client, store, engine):
    engine["state"]["result"] = ActionResult.failure("RESERVE_BUTTON_NOT_FOUND")
    response = client.post("/api/ads/2745123456/reserve", json={"account_id": store["account_id"]})
    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "RESERVE_BUTTON_NOT_FOUND"}


def test_unknown_action_is_400(client, store, engine):
    response = client.post("/api/ads/2745123456/archive", json={"account_id": store["account_id"]})
    assert response.status_code == 400
    assert response.json()["detail"] == "UNKNOWN_ACTION"
    assert engine["action"] == []


def test_unknown_account_is_404(client, engine):
    response = client.post("/api/ads/2745123456/delete", json={"account_id": 999})
    assert response.status_code == 404
    assert engine["action"] == []
