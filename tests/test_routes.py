"""
Integration tests for the JSON API.

Runs the real app factory with the testing config (memory store, no probe,
no debounce) and a mocked remote order store.
"""

from unittest.mock import MagicMock

import pytest

from app import create_app
from core.exceptions import RemoteNetworkError, RemoteValidationError
from core.remote_store import RemoteOrderStore, RemoteReceipt


# Fixtures

@pytest.fixture
def remote_store():
    store = MagicMock(spec=RemoteOrderStore)
    store.create_order.return_value = RemoteReceipt("uuid-1", 501)
    store.ping.return_value = True
    return store


@pytest.fixture
def app(remote_store):
    app = create_app("config.TestingConfig", remote_store=remote_store)
    yield app
    app.config["CLEANUP"]()


@pytest.fixture
def client(app):
    return app.test_client()


def add(client, item_id, **fields):
    return client.post("/api/cart/items", json={"item_id": item_id, **fields})


def go_offline(client):
    client.post("/api/network/offline")


# Tests for reference data and health

class TestReferenceData:

    def test_catalog(self, client):
        response = client.get("/api/catalog")

        assert response.status_code == 200
        data = response.get_json()
        assert "Lechon & Grills" in data["categories"]
        assert any(item["id"] == "l1" and item["pricing_mode"] == "WEIGHTED" for item in data["items"])

    def test_catalog_by_category(self, client):
        data = client.get("/api/catalog?category=Extras").get_json()
        assert {item["id"] for item in data["items"]} == {"e1", "e2", "e3"}

    def test_staff_lists_active_servers(self, client):
        data = client.get("/api/staff").get_json()
        assert [member["id"] for member in data["servers"]] == ["s1", "s2"]

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "ok"
        assert data["checks"]["network"] == "online"
        assert data["checks"]["probe"] == "not_running"
        assert data["checks"]["pending_orders"] == 0


# Tests for the cart

class TestCartRoutes:

    def test_add_fixed_item(self, client):
        response = add(client, "c1", quantity=2)

        assert response.status_code == 201
        data = response.get_json()
        assert data["line"]["line_total"] == "440.00"
        assert data["cart"]["subtotal"] == "440.00"

    def test_add_weighted_by_price(self, client):
        data = add(client, "l1", price="350").get_json()

        assert data["line"]["weight_kg"] == "0.500000"
        assert data["line"]["line_total"] == "350.00"

    def test_add_variant(self, client):
        data = add(client, "e3", variant="1.5L").get_json()
        assert data["line"]["line_total"] == "85.00"

    def test_missing_item_id(self, client):
        response = client.post("/api/cart/items", json={})

        assert response.status_code == 400
        assert response.get_json()["error"] == "invalid_input"

    def test_unknown_item(self, client):
        response = add(client, "nope")

        assert response.status_code == 404
        assert response.get_json()["error"] == "item_not_found"

    def test_body_must_be_object(self, client):
        response = client.post("/api/cart/items", json=["c1"])
        assert response.status_code == 400

    def test_change_quantity_and_remove(self, client):
        line_id = add(client, "c1").get_json()["line"]["line_id"]

        data = client.patch(f"/api/cart/lines/{line_id}", json={"delta": 2}).get_json()
        assert data["line"]["quantity"] == 3

        data = client.delete(f"/api/cart/lines/{line_id}").get_json()
        assert data["cart"]["lines"] == []

    def test_discount(self, client):
        add(client, "c1", quantity=2)
        add(client, "e1", quantity=4)

        response = client.put("/api/cart/discount", json={
            "type": "SENIOR",
            "total_pax": 2,
            "eligible_count": 1,
            "holder_name": "<b>Lola</b> Nena",
        })

        cart = response.get_json()["cart"]
        assert cart["discount_amount"] == "50.00"
        assert cart["total"] == "450.00"
        assert cart["discount"]["holder_name"] == "Lola Nena"

    def test_discount_more_ids_than_pax(self, client):
        response = client.put("/api/cart/discount", json={"total_pax": 1, "eligible_count": 2})
        assert response.status_code == 400

    def test_server_selection(self, client):
        response = client.put("/api/cart/server", json={"staff_id": "s3"})
        assert response.status_code == 400

        cart = client.put("/api/cart/server", json={"staff_id": "s1"}).get_json()["cart"]
        assert cart["server"]["name"] == "Maria Santos"


# Tests for checkout

class TestCheckout:

    def test_online_checkout(self, client, remote_store):
        add(client, "c1", quantity=2)

        response = client.post("/api/checkout", json={"payment": {"method": "CASH", "tendered": "500"}})

        assert response.status_code == 201
        data = response.get_json()
        assert data["mode"] == "ONLINE"
        assert data["message"] == "Order saved"
        assert data["order"]["remote_id"] == "uuid-1"
        assert data["order"]["change"] == "60.00"
        assert client.get("/api/cart").get_json()["lines"] == []
        remote_store.create_order.assert_called_once()

    def test_offline_checkout_then_recovery(self, client, remote_store):
        """Test order saved offline is synced when the network returns."""
        go_offline(client)
        add(client, "c1")

        response = client.post("/api/checkout", json={"method": "CASH", "tendered": 220})

        assert response.status_code == 202
        data = response.get_json()
        assert data["mode"] == "OFFLINE"
        assert data["receipt_number"] == "000001"
        remote_store.create_order.assert_not_called()

        pending = client.get("/api/sync/pending").get_json()["pending"]
        assert len(pending) == 1

        result = client.post("/api/network/online").get_json()

        assert result["changed"] is True
        assert result["status"]["pending"] == 0
        remote_store.create_order.assert_called_once()

    def test_network_failure_falls_back_offline(self, client, remote_store):
        remote_store.create_order.side_effect = RemoteNetworkError("timed out")
        add(client, "c1")

        response = client.post("/api/checkout", json={"tendered": "220"})

        assert response.status_code == 202
        assert client.get("/api/sync/status").get_json()["online"] is False

    def test_insufficient_cash(self, client):
        add(client, "c1")

        response = client.post("/api/checkout", json={"tendered": "200"})

        assert response.status_code == 402
        assert response.get_json()["error"] == "payment_insufficient"
        assert len(client.get("/api/cart").get_json()["lines"]) == 1

    def test_cash_within_tolerance(self, client):
        add(client, "c1")
        response = client.post("/api/checkout", json={"tendered": "219.95"})
        assert response.status_code == 201

    def test_digital_requires_reference(self, client):
        add(client, "c1")

        response = client.post("/api/checkout", json={"method": "GCASH"})

        assert response.status_code == 402
        assert response.get_json()["error"] == "missing_reference"

    def test_digital_payment(self, client, remote_store):
        add(client, "c1")

        response = client.post("/api/checkout", json={"method": "GCASH", "reference": "REF123"})

        assert response.status_code == 201
        assert response.get_json()["order"]["change"] == "0.00"

    def test_empty_cart(self, client):
        response = client.post("/api/checkout", json={"tendered": "100"})

        assert response.status_code == 400
        assert response.get_json()["error"] == "empty_order"

    def test_bad_tendered_amount(self, client):
        add(client, "c1")
        response = client.post("/api/checkout", json={"tendered": "lots"})
        assert response.status_code == 400

    def test_remote_rejection(self, client, remote_store):
        remote_store.create_order.side_effect = RemoteValidationError("bad row", status_code=400)
        add(client, "c1")

        response = client.post("/api/checkout", json={"tendered": "220"})

        assert response.status_code == 422
        assert response.get_json()["error"] == "remote_validation"
        assert len(client.get("/api/cart").get_json()["lines"]) == 1

    def test_cart_locked_during_payment(self, app, client):
        """Test changes sent while a payment is being written get 409."""
        add(client, "c1")
        app.config["POS_TERMINAL"]._checkout_in_progress = True

        response = add(client, "e1")

        assert response.status_code == 409
        assert response.get_json()["error"] == "checkout_in_progress"
        assert client.get("/api/cart").get_json()["checkout_in_progress"] is True


# Tests for sync endpoints

class TestSyncRoutes:

    def test_status(self, client):
        data = client.get("/api/sync/status").get_json()

        assert data["state"] == "IDLE"
        assert data["online"] is True
        assert data["pending"] == 0

    def test_sync_now_reports_failures(self, client, remote_store):
        go_offline(client)
        add(client, "c1")
        client.post("/api/checkout", json={"tendered": "220"})
        remote_store.create_order.side_effect = RemoteValidationError("rejected", status_code=400)

        data = client.post("/api/sync/now").get_json()

        assert data["report"]["attempted"] == 1
        assert data["report"]["failures"][0]["retryable"] is False
        assert data["status"]["needs_attention"] == 1

        health = client.get("/health")
        assert health.status_code == 503
        assert health.get_json()["status"] == "degraded"

    def test_network_toggle_without_change(self, client):
        data = client.post("/api/network/online").get_json()
        assert data["changed"] is False


# Tests for parked orders

class TestParkedRoutes:

    def test_park_list_restore(self, client):
        add(client, "c1")

        response = client.post("/api/parked", json={"label": "Table <i>7</i>"})

        assert response.status_code == 201
        parked = response.get_json()["parked"]
        assert parked["label"] == "Table 7"
        assert client.get("/api/cart").get_json()["lines"] == []

        listed = client.get("/api/parked").get_json()["parked"]
        assert [p["id"] for p in listed] == [parked["id"]]

        data = client.post(f"/api/parked/{parked['id']}/restore").get_json()
        assert len(data["cart"]["lines"]) == 1
        assert client.get("/api/parked").get_json()["parked"] == []

    def test_park_empty_cart(self, client):
        response = client.post("/api/parked", json={"label": "Nothing"})
        assert response.status_code == 400

    def test_delete_unknown(self, client):
        response = client.delete("/api/parked/abc123")

        assert response.status_code == 404
        assert response.get_json()["error"] == "parked_not_found"

    def test_delete(self, client):
        add(client, "c1")
        parked_id = client.post("/api/parked", json={"label": "A"}).get_json()["parked"]["id"]

        response = client.delete(f"/api/parked/{parked_id}")

        assert response.get_json() == {"deleted": parked_id}
        assert client.get("/api/parked").get_json()["parked"] == []


def test_unknown_route_is_json(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"
