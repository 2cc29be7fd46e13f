"""
Unit tests for the HTTP remote order store client.

The requests session is replaced by a MagicMock; no network traffic.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from core.exceptions import RemoteNetworkError, RemoteValidationError
from core.remote_store import HttpOrderStore, RemoteReceipt


BASE_URL = "https://remote.test"


def make_response(status_code, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def store(session):
    return HttpOrderStore(BASE_URL, api_key="secret", timeout_seconds=3.0, session=session)


class TestCreateOrder:
    """Header insert, then items insert."""

    def test_success(self, store, session, make_order):
        session.request.side_effect = [
            make_response(201, [{"id": "uuid-1", "order_number": 77}]),
            make_response(201),
        ]
        order = make_order(2)

        receipt = store.create_order(order)

        assert receipt == RemoteReceipt("uuid-1", 77)
        header_call, items_call = session.request.call_args_list

        assert header_call.args == ("POST", f"{BASE_URL}/rest/v1/orders")
        assert header_call.kwargs["headers"]["Prefer"] == "return=representation"
        assert header_call.kwargs["headers"]["apikey"] == "secret"
        assert header_call.kwargs["headers"]["Authorization"] == "Bearer secret"
        assert header_call.kwargs["timeout"] == 3.0
        row = header_call.kwargs["json"][0]
        assert row["client_ref"] == order.local_id
        assert row["total_amount"] == "875.00"
        assert row["payment_method"] == "CASH"

        assert items_call.args == ("POST", f"{BASE_URL}/rest/v1/order_items")
        items = items_call.kwargs["json"]
        assert items[0]["order_id"] == "uuid-1"
        assert items[0]["quantity"] == 2
        assert items[0]["price_at_time"] == "437.50"

    def test_receipt_without_order_number(self, store, session, make_order):
        session.request.side_effect = [
            make_response(201, [{"id": 15}]),
            make_response(201),
        ]
        receipt = store.create_order(make_order())
        assert receipt == RemoteReceipt("15", None)

    def test_items_failure_rolls_back_header(self, store, session, make_order):
        """Test a failed items insert deletes the header and raises."""
        session.request.side_effect = [
            make_response(201, [{"id": "uuid-1"}]),
            make_response(400, text="invalid menu_item_id"),
            make_response(204),
        ]

        with pytest.raises(RemoteValidationError):
            store.create_order(make_order())

        rollback = session.request.call_args_list[2]
        assert rollback.args == ("DELETE", f"{BASE_URL}/rest/v1/orders")
        assert rollback.kwargs["params"] == {"id": "eq.uuid-1"}

    def test_items_server_error_rolls_back_and_is_retryable(self, store, session, make_order):
        session.request.side_effect = [
            make_response(201, [{"id": "uuid-1"}]),
            make_response(503),
            make_response(204),
        ]

        with pytest.raises(RemoteNetworkError):
            store.create_order(make_order())

        assert session.request.call_args_list[2].args[0] == "DELETE"

    def test_duplicate_client_ref_returns_existing(self, store, session, make_order):
        """Test a retried order already in the store is not inserted twice."""
        order = make_order()
        session.request.side_effect = [
            make_response(409, text="duplicate key value violates unique constraint"),
            make_response(200, [{"id": "uuid-9", "order_number": 12}]),
            make_response(200, [{"id": 1}]),
        ]

        receipt = store.create_order(order)

        assert receipt == RemoteReceipt("uuid-9", 12)
        lookup = session.request.call_args_list[1]
        assert lookup.args == ("GET", f"{BASE_URL}/rest/v1/orders")
        assert lookup.kwargs["params"]["client_ref"] == f"eq.{order.local_id}"
        items_lookup = session.request.call_args_list[2]
        assert items_lookup.args == ("GET", f"{BASE_URL}/rest/v1/order_items")
        assert items_lookup.kwargs["params"]["order_id"] == "eq.uuid-9"
        assert session.request.call_count == 3

    def test_duplicate_header_without_items_gets_items(self, store, session, make_order):
        """Test a header left without lines by an earlier attempt is completed."""
        session.request.side_effect = [
            make_response(409, text="duplicate key"),
            make_response(200, [{"id": "uuid-9"}]),
            make_response(200, []),
            make_response(201),
        ]

        receipt = store.create_order(make_order(3))

        assert receipt.assigned_id == "uuid-9"
        insert = session.request.call_args_list[3]
        assert insert.args == ("POST", f"{BASE_URL}/rest/v1/order_items")
        assert insert.kwargs["json"][0]["order_id"] == "uuid-9"
        assert insert.kwargs["json"][0]["quantity"] == 3

    def test_conflict_without_existing_row_is_validation_error(self, store, session, make_order):
        session.request.side_effect = [
            make_response(409, text="conflict"),
            make_response(200, []),
        ]
        with pytest.raises(RemoteValidationError):
            store.create_order(make_order())


class TestStockDeduction:
    """Recipe usage recorded once per newly written order."""

    @pytest.fixture
    def stocking_store(self, session):
        return HttpOrderStore(BASE_URL, api_key="secret", session=session, deduct_stock=True)

    def test_usage_recorded_after_items(self, stocking_store, session, make_order):
        """Test each recipe ingredient gets a USAGE row and lower stock."""
        session.request.side_effect = [
            make_response(201, [{"id": "uuid-1", "order_number": 77}]),
            make_response(201),
            make_response(200, [{"inventory_item_id": "inv-pork", "quantity_required": "0.5"}]),
            make_response(201),
            make_response(200, [{"current_stock": 10}]),
            make_response(204),
        ]

        receipt = stocking_store.create_order(make_order(2))

        assert receipt.assigned_id == "uuid-1"
        calls = session.request.call_args_list
        assert [c.args for c in calls[2:]] == [
            ("GET", f"{BASE_URL}/rest/v1/recipes"),
            ("POST", f"{BASE_URL}/rest/v1/inventory_transactions"),
            ("GET", f"{BASE_URL}/rest/v1/inventory_items"),
            ("PATCH", f"{BASE_URL}/rest/v1/inventory_items"),
        ]
        assert calls[2].kwargs["params"]["menu_item_id"] == "eq.lp1"
        usage = calls[3].kwargs["json"][0]
        assert usage["item_id"] == "inv-pork"
        assert usage["transaction_type"] == "USAGE"
        assert Decimal(usage["quantity"]) == Decimal("1")
        assert calls[5].kwargs["params"] == {"id": "eq.inv-pork"}
        assert Decimal(calls[5].kwargs["json"]["current_stock"]) == Decimal("9")

    def test_item_without_recipe_touches_no_stock(self, stocking_store, session, make_order):
        session.request.side_effect = [
            make_response(201, [{"id": "uuid-1"}]),
            make_response(201),
            make_response(200, []),
        ]

        stocking_store.create_order(make_order())

        assert session.request.call_count == 3

    def test_not_repeated_for_existing_order(self, stocking_store, session, make_order):
        """Test a retried order whose items are already stored deducts nothing."""
        session.request.side_effect = [
            make_response(409, text="duplicate key"),
            make_response(200, [{"id": "uuid-9"}]),
            make_response(200, [{"id": 1}]),
        ]

        stocking_store.create_order(make_order())

        assert session.request.call_count == 3

    def test_failure_does_not_fail_order(self, stocking_store, session, make_order):
        session.request.side_effect = [
            make_response(201, [{"id": "uuid-1", "order_number": 5}]),
            make_response(201),
            make_response(503),
        ]

        receipt = stocking_store.create_order(make_order())

        assert receipt == RemoteReceipt("uuid-1", 5)

    def test_unreachable_inventory_does_not_fail_order(self, stocking_store, session, make_order):
        session.request.side_effect = [
            make_response(201, [{"id": "uuid-1"}]),
            make_response(201),
            requests.ConnectionError("dropped"),
        ]

        assert stocking_store.create_order(make_order()).assigned_id == "uuid-1"

    def test_disabled_by_default(self, store, session, make_order):
        session.request.side_effect = [
            make_response(201, [{"id": "uuid-1"}]),
            make_response(201),
        ]

        store.create_order(make_order())

        assert not store.deduct_stock
        assert session.request.call_count == 2


class TestErrorClassification:
    """Network-class vs validation-class failures."""

    @pytest.mark.parametrize("status", [500, 502, 503, 504, 408, 429])
    def test_retryable_statuses(self, store, session, make_order, status):
        session.request.return_value = make_response(status)
        with pytest.raises(RemoteNetworkError) as exc_info:
            store.create_order(make_order())
        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_validation_statuses(self, store, session, make_order, status):
        session.request.return_value = make_response(status, text="rejected")
        with pytest.raises(RemoteValidationError) as exc_info:
            store.create_order(make_order())
        assert exc_info.value.status_code == status

    def test_timeout_is_network_error(self, store, session, make_order):
        session.request.side_effect = requests.Timeout("read timed out")
        order = make_order()

        with pytest.raises(RemoteNetworkError) as exc_info:
            store.create_order(order)

        assert exc_info.value.order_ref == order.local_id

    def test_connection_error_is_network_error(self, store, session, make_order):
        session.request.side_effect = requests.ConnectionError("no route to host")
        with pytest.raises(RemoteNetworkError):
            store.create_order(make_order())

    def test_malformed_response_is_network_error(self, store, session, make_order):
        session.request.return_value = make_response(201, ValueError("not json"))
        with pytest.raises(RemoteNetworkError):
            store.create_order(make_order())

    def test_response_without_id_is_network_error(self, store, session, make_order):
        session.request.return_value = make_response(201, [{}])
        with pytest.raises(RemoteNetworkError):
            store.create_order(make_order())


class TestPing:

    def test_reachable(self, store, session):
        session.get.return_value = make_response(200)
        assert store.ping() is True
        assert session.get.call_args.args[0] == f"{BASE_URL}/rest/v1/"

    def test_client_error_still_reachable(self, store, session):
        session.get.return_value = make_response(401)
        assert store.ping() is True

    def test_server_error_unreachable(self, store, session):
        session.get.return_value = make_response(503)
        assert store.ping() is False

    def test_connection_error_unreachable(self, store, session):
        session.get.side_effect = requests.ConnectionError("down")
        assert store.ping() is False


def test_base_url_required():
    with pytest.raises(ValueError):
        HttpOrderStore("")
