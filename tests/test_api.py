"""
Integration tests for the HTTP API.
"""
import uuid
from typing import Any, AsyncGenerator, Callable, Dict
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from payment_orchestrator.api.auth import TokenService
from payment_orchestrator.api.dependencies import get_gateway_client
from payment_orchestrator.api.main import app
from payment_orchestrator.api.routes import mask_credential
from payment_orchestrator.config import Settings, get_settings
from payment_orchestrator.database.connection import get_db
from payment_orchestrator.integrations.authorize_net import GatewayResponse

PURCHASE_BODY: Dict[str, Any] = {
    "customer_id": "CUST_12345",
    "amount": "100.50",
    "credit_card": {
        "card_number": "4111111111111111",
        "expiration_month": 12,
        "expiration_year": 2030,
        "cvv": "123",
        "name_on_card": "John Doe",
    },
    "description": "Product purchase - Order #12345",
}


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, gateway: AsyncMock, test_settings: Settings
) -> AsyncGenerator[AsyncClient, Any]:
    """API client bound to the in-memory database and the gateway stub."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, Any]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway_client] = lambda: gateway
    app.dependency_overrides[get_settings] = lambda: test_settings

    token = TokenService(test_settings).generate_token("admin", ["Admin"])
    headers = {"Authorization": f"Bearer {token}"}

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test", headers=headers
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


class TestPaymentEndpoints:
    """Test suite for /api/payments."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_purchase_success(self, client: AsyncClient) -> None:
        """An approved purchase returns 200 with the order number."""
        response = await client.post("/api/payments/purchase", json=PURCHASE_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "Captured"
        assert data["amount"] == "100.50"
        assert data["gateway_transaction_id"] == "60123456789"
        assert data["order_number"].startswith("ORD_")
        assert data["transaction_id"].startswith("TXN_")
        assert "X-Request-ID" in response.headers

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_largest_amount_is_returned_exactly(self, client: AsyncClient) -> None:
        """Amounts are serialized as exact decimal strings, never floats."""
        body = {**PURCHASE_BODY, "amount": "9999999999999999.99", "currency": "usd"}

        response = await client.post("/api/payments/purchase", json=body)

        assert response.status_code == 200
        assert response.json()["amount"] == "9999999999999999.99"

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", ["capture", "refund"])
    async def test_follow_up_amount_over_maximum(
        self, client: AsyncClient, gateway: AsyncMock, action: str
    ) -> None:
        """Capture and refund amounts are bounded like purchases."""
        response = await client.post(
            f"/api/payments/{action}/TXN_1", json={"amount": "10000000000000000.00"}
        )

        assert response.status_code == 422
        gateway.submit_transaction.assert_not_called()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_purchase_declined_returns_400(
        self,
        client: AsyncClient,
        gateway: AsyncMock,
        declined_response: Callable[..., GatewayResponse],
    ) -> None:
        """A declined purchase returns 400 with the decline message."""
        gateway.submit_transaction.return_value = declined_response()

        response = await client.post("/api/payments/purchase", json=PURCHASE_BODY)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["status"] == "Failed"
        assert data["message"] == "This transaction has been declined."
        assert data["error_code"] == "2"

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field,value",
        [
            ("amount", "0"),
            ("amount", "10000000000000000.00"),
            ("amount", "12.345"),
            ("currency", "12$"),
            ("customer_id", ""),
        ],
    )
    async def test_purchase_validation(
        self, client: AsyncClient, gateway: AsyncMock, field: str, value: Any
    ) -> None:
        """Invalid bodies are rejected before the orchestrator runs."""
        body = {**PURCHASE_BODY, field: value}

        response = await client.post("/api/payments/purchase", json=body)

        assert response.status_code == 422
        gateway.submit_transaction.assert_not_called()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_purchase_invalid_month(self, client: AsyncClient) -> None:
        """Card expiration month must be 1-12."""
        body = {**PURCHASE_BODY, "credit_card": {**PURCHASE_BODY["credit_card"], "expiration_month": 13}}

        response = await client.post("/api/payments/purchase", json=body)

        assert response.status_code == 422

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_authorize_then_capture(
        self,
        client: AsyncClient,
        gateway: AsyncMock,
        approved_response: Callable[..., GatewayResponse],
    ) -> None:
        """Capture of an authorization moves the order to Captured."""
        gateway.submit_transaction.return_value = approved_response(transaction_id="60000000001")
        auth = (await client.post("/api/payments/authorize", json=PURCHASE_BODY)).json()
        assert auth["status"] == "Authorized"

        gateway.submit_transaction.return_value = approved_response(transaction_id="60000000002")
        response = await client.post(
            f"/api/payments/capture/{auth['transaction_id']}", json={"amount": "80.00"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Captured"
        assert data["amount"] == "80.00"
        assert data["order_number"] == auth["order_number"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_void(self, client: AsyncClient) -> None:
        """Voiding a purchase returns Voided."""
        purchase = (await client.post("/api/payments/purchase", json=PURCHASE_BODY)).json()

        response = await client.post(f"/api/payments/void/{purchase['transaction_id']}")

        assert response.status_code == 200
        assert response.json()["status"] == "Voided"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_refund(self, client: AsyncClient) -> None:
        """A partial refund of a purchase returns Refunded."""
        purchase = (await client.post("/api/payments/purchase", json=PURCHASE_BODY)).json()

        response = await client.post(
            f"/api/payments/refund/{purchase['transaction_id']}",
            json={"amount": "50.25", "reason": "Customer requested refund"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "Refunded"
        assert response.json()["amount"] == "50.25"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_transaction_returns_400(self, client: AsyncClient, gateway: AsyncMock) -> None:
        """Follow-ups on unknown ids fail without a gateway call."""
        response = await client.post("/api/payments/void/TXN_unknown")

        assert response.status_code == 400
        assert response.json()["status"] == "Error"
        gateway.submit_transaction.assert_not_called()


class TestOrderEndpoints:
    """Test suite for /api/orders."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_get_order(self, client: AsyncClient) -> None:
        """Orders come back with their transactions."""
        purchase = (await client.post("/api/payments/purchase", json=PURCHASE_BODY)).json()
        orders = (await client.get("/api/orders")).json()
        order_id = orders[0]["id"]

        response = await client.get(f"/api/orders/{order_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["order_number"] == purchase["order_number"]
        assert data["status"] == "Captured"
        assert data["amount"] == "100.50"
        assert [t["transaction_id"] for t in data["transactions"]] == [purchase["transaction_id"]]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_get_missing_order(self, client: AsyncClient) -> None:
        """Unknown order ids are 404."""
        response = await client.get(f"/api/orders/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Order not found"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_orders_clamps_paging(self, client: AsyncClient) -> None:
        """Out-of-range paging falls back to page 1 and the default size."""
        for _ in range(3):
            await client.post("/api/payments/purchase", json=PURCHASE_BODY)

        response = await client.get("/api/orders", params={"page": 0, "page_size": 1000})

        assert response.status_code == 200
        assert len(response.json()) == 3

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_order_transactions(self, client: AsyncClient) -> None:
        """Transactions of an order are listed newest first."""
        purchase = (await client.post("/api/payments/purchase", json=PURCHASE_BODY)).json()
        refund = (
            await client.post(
                f"/api/payments/refund/{purchase['transaction_id']}", json={"amount": "10.00"}
            )
        ).json()
        order_id = (await client.get("/api/orders")).json()[0]["id"]

        response = await client.get(f"/api/orders/{order_id}/transactions")

        assert response.status_code == 200
        ids = {t["transaction_id"] for t in response.json()}
        assert ids == {purchase["transaction_id"], refund["transaction_id"]}


class TestDiagnosticsEndpoints:
    """Test suite for /api/diagnostics."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_config_test_masks_credentials(self, client: AsyncClient) -> None:
        """Credentials are reported by prefix only."""
        response = await client.get("/api/diagnostics/config-test")

        assert response.status_code == 200
        data = response.json()
        assert data["authorize_net_configured"] is True
        assert data["api_login_id_masked"] == "5KP***"
        assert data["transaction_key_masked"] == "346***"
        assert data["environment"] == "Sandbox"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,masked",
        [
            ("", "Not configured"),
            ("your-api-login-id", "Using placeholder values - UPDATE REQUIRED"),
            ("abc", "***"),
            ("5KP3u95bQpv", "5KP***"),
        ],
    )
    def test_mask_credential(self, value: str, masked: str) -> None:
        """Masking handles empty, placeholder, short and real values."""
        assert mask_credential(value) == masked

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_database_test(self, client: AsyncClient) -> None:
        """Row counts reflect what was written."""
        await client.post("/api/payments/purchase", json=PURCHASE_BODY)

        response = await client.get("/api/diagnostics/database-test")

        assert response.status_code == 200
        data = response.json()
        assert data["can_connect"] is True
        assert data["order_count"] == 1
        assert data["transaction_count"] == 1

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_refund_check(self, client: AsyncClient) -> None:
        """A fresh purchase is advised to wait or void."""
        purchase = (await client.post("/api/payments/purchase", json=PURCHASE_BODY)).json()

        response = await client.get(
            f"/api/diagnostics/transaction-refund-check/{purchase['transaction_id']}"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["can_be_refunded"] is False
        assert data["should_use_void"] is True
        assert data["recommended_action"].startswith("WAIT or use VOID")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_refund_check_honours_settlement_window(
        self, client: AsyncClient, test_settings: Settings
    ) -> None:
        """A zero-minute window makes a fresh purchase refundable."""
        test_settings.refund_settlement_window_minutes = 0
        purchase = (await client.post("/api/payments/purchase", json=PURCHASE_BODY)).json()

        data = (
            await client.get(f"/api/diagnostics/transaction-refund-check/{purchase['transaction_id']}")
        ).json()

        assert data["is_old_enough_for_refund"] is True
        assert data["can_be_refunded"] is True

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_refund_check_unknown(self, client: AsyncClient) -> None:
        """Unknown transactions are 404."""
        response = await client.get("/api/diagnostics/transaction-refund-check/TXN_unknown")

        assert response.status_code == 404
        assert response.json() == {"message": "Transaction not found"}


class TestMonitoringEndpoints:
    """Test suite for probes and metrics."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient) -> None:
        """Liveness does not touch dependencies."""
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient) -> None:
        """Prometheus metrics include payment counters after a purchase."""
        await client.post("/api/payments/purchase", json=PURCHASE_BODY)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "payment_operations_total" in response.text
        assert "http_requests_total" in response.text

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client: AsyncClient) -> None:
        """A caller-supplied request id comes back unchanged."""
        response = await client.get("/", headers={"X-Request-ID": "req-42"})

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "req-42"
        assert response.json()["service"]
