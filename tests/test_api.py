import hashlib

import pytest

from API.app import create_app
from Utils.allowlist import AllowListStore
from Utils.pending import PendingLedger
from Utils.systems import find_system

API_KEY = "payhip-secret"
SIGNATURE = hashlib.sha256(API_KEY.encode()).hexdigest()


@pytest.fixture
def ledger(tmp_path):
    return PendingLedger(str(tmp_path / "pending_licenses.json"))


@pytest.fixture
def allowlists(tmp_path):
    return AllowListStore(str(tmp_path))


@pytest.fixture
def client(ledger, allowlists):
    app = create_app(ledger=ledger, allowlists=allowlists, api_key=API_KEY)
    app.config['TESTING'] = True
    return app.test_client()


def _paid(items, **extra):
    body = {"signature": SIGNATURE, "type": "paid", "email": "buyer@example.com", "items": items}
    body.update(extra)
    return body


def test_webhook_rejects_bad_signature(client, ledger):
    response = client.post("/payhip-webhook", json=_paid(
        [{"product_key": "K1", "product_name": "Blasters"}], signature="forged"))

    assert response.status_code == 400
    assert response.get_data(as_text=True) == "Invalid signature"
    assert ledger.all() == {}


def test_webhook_ignores_non_paid(client, ledger):
    response = client.post("/payhip-webhook", json=_paid(
        [{"product_key": "K1", "product_name": "Blasters"}], type="refunded"))

    assert response.status_code == 200
    assert response.get_data(as_text=True) == "Ignored non-paid event"
    assert ledger.all() == {}


def test_webhook_records_each_known_item(client, ledger):
    response = client.post("/payhip-webhook", json=_paid([
        {"product_key": "K1", "product_name": "Blasters"},
        {"product_key": "K2", "product_name": "morph gui"},
        {"product_key": "K3", "product_name": "Hoverboards"},
    ]))

    assert response.status_code == 200
    assert set(ledger.all()) == {"K1", "K2"}
    assert ledger.get("K2").system == "Morph GUI"
    assert ledger.get("K1").email == "buyer@example.com"


def test_webhook_malformed_body(client):
    assert client.post("/payhip-webhook", data="nope", content_type="text/plain").status_code == 400
    assert client.post("/payhip-webhook", json=_paid("not-a-list")).status_code == 400


def test_whitelist_is_plain_text(client, allowlists):
    blasters = find_system("Blasters")
    allowlists.add(blasters, "111")
    allowlists.add(blasters, "222")

    response = client.get("/whitelist/BLASTERS")

    assert response.status_code == 200
    assert response.mimetype == "text/plain"
    assert response.get_data(as_text=True) == "111\n222"


def test_whitelist_with_space_in_name(client, allowlists):
    allowlists.add(find_system("Ship System"), "333")

    assert client.get("/whitelist/ship%20system").get_data(as_text=True) == "333"


def test_whitelist_unknown_system(client):
    response = client.get("/whitelist/hoverboards")

    assert response.status_code == 404
    assert response.get_data(as_text=True) == "No such system"


def test_whitelist_file_missing(client):
    response = client.get("/whitelist/Utilities")

    assert response.status_code == 404
    assert response.get_data(as_text=True) == "Whitelist file not found"


def test_status(client):
    response = client.get("/status")

    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
    assert "Lightsabers" in response.get_json()["systems"]


@pytest.mark.parametrize("signature", ["é", 12345, ["x"]])
def test_webhook_odd_signature_is_rejected(client, ledger, signature):
    response = client.post("/payhip-webhook", json=_paid(
        [{"product_key": "K1", "product_name": "Blasters"}], signature=signature))

    assert response.status_code == 400
    assert response.get_data(as_text=True) == "Invalid signature"
    assert ledger.all() == {}
