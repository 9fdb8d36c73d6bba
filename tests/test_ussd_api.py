"""Tests for the HTTP surface: USSD callbacks, networks and health probes."""

from __future__ import annotations

from collections.abc import Iterator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ussdkit.main import app
from ussdkit.services.account_menu import AccountRecord, InMemoryAccountDirectory, build_account_router
from ussdkit.services.flow import SessionFlowController
from ussdkit.services.session_store import InMemorySessionStore
from ussdkit.services.telemetry import SessionTelemetry
from ussdkit.services.transfer import LoggingTransferGateway, build_transfer_flow

PHONE = "+254712345678"


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client with fresh in-memory collaborators on ``app.state``."""
    with TestClient(app) as test_client:
        store = InMemorySessionStore()
        gateway = LoggingTransferGateway()
        directory = InMemoryAccountDirectory(
            [AccountRecord(phone_number=PHONE, account_number="ACC1001", balance=Decimal("2500.5"))]
        )
        app.state.session_store = store
        app.state.transfer_gateway = gateway
        app.state.flow_controller = SessionFlowController(
            build_transfer_flow(gateway),
            store,
            reference_factory=lambda: "TXNAPI0000001",
        )
        app.state.account_menu = build_account_router(directory)
        app.state.telemetry = SessionTelemetry()
        yield test_client


def _hop(text: str, session_id: str = "ATUid_api") -> dict[str, str]:
    return {
        "sessionId": session_id,
        "serviceCode": "*384*123#",
        "phoneNumber": PHONE,
        "text": text,
        "networkCode": "63902",
    }


# -----------------------------------------------------------------------
# POST /api/v1/ussd
# -----------------------------------------------------------------------


class TestUssdCallback:
    """Stateful transfer flow over HTTP."""

    def test_first_hop_returns_plain_text_con(self, client: TestClient) -> None:
        response = client.post("/api/v1/ussd", data=_hop(""))
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain"), "gateway expects plain text"
        assert response.text == "CON Welcome to Money Transfer\n\nPlease enter recipient's name:"

    def test_full_transfer_session(self, client: TestClient) -> None:
        texts = ["", "Alice", "Alice*500", "Alice*500*1"]
        bodies = [client.post("/api/v1/ussd", data=_hop(text)).text for text in texts]
        assert bodies[1] == "CON Enter amount to send (KES):"
        assert bodies[2].startswith("CON Confirm transfer:")
        assert bodies[3] == "END Success!\n\nSent KES 500.00 to Alice\n\nTransaction ID: TXNAPI0000001"
        assert len(app.state.transfer_gateway.orders) == 1

        again = client.post("/api/v1/ussd", data=_hop("Alice*500*1"))
        assert again.text == "END Session already completed."

    def test_json_body_accepted(self, client: TestClient) -> None:
        response = client.post("/api/v1/ussd", json=_hop("", session_id="json-session"))
        assert response.status_code == 200
        assert response.text.startswith("CON ")

    def test_missing_session_id_is_422(self, client: TestClient) -> None:
        payload = _hop("")
        del payload["sessionId"]
        response = client.post("/api/v1/ussd", data=payload)
        assert response.status_code == 422, "malformed gateway payload should be rejected"

    def test_malformed_json_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/ussd",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 422

    def test_json_array_is_422(self, client: TestClient) -> None:
        response = client.post("/api/v1/ussd", json=["sessionId"])
        assert response.status_code == 422


# -----------------------------------------------------------------------
# POST /api/v1/ussd/menu
# -----------------------------------------------------------------------


class TestUssdMenu:
    """Stateless account menu over HTTP."""

    def test_main_menu(self, client: TestClient) -> None:
        response = client.post("/api/v1/ussd/menu", data=_hop(""))
        assert response.status_code == 200
        assert response.text == "CON What would you like to check?\n1. My account\n2. My phone number\n3. Help"

    def test_balance(self, client: TestClient) -> None:
        response = client.post("/api/v1/ussd/menu", data=_hop("1*2"))
        assert response.text == "END Your account balance is KES 2500.50"

    def test_invalid_choice(self, client: TestClient) -> None:
        response = client.post("/api/v1/ussd/menu", data=_hop("9"))
        assert response.text == "END Invalid option. Please try again."


# -----------------------------------------------------------------------
# Notifications and stats
# -----------------------------------------------------------------------


class TestUssdNotify:
    """End-of-session notification endpoint."""

    def test_notify_and_stats(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/ussd/notify",
            data={
                "date": "2024-01-15 10:30:00",
                "sessionId": "ATUid_api",
                "serviceCode": "*384*123#",
                "networkCode": "63902",
                "phoneNumber": PHONE,
                "status": "Success",
                "cost": "KES 0.0500",
                "durationInMillis": "9000",
                "hopsCount": "4",
                "input": "Alice*500*1",
                "lastAppResponse": "END Success!",
            },
        )
        assert response.status_code == 200
        assert response.json() == {"status": "received"}

        stats = client.get("/api/v1/ussd/stats").json()
        assert stats["total_sessions"] == 1
        assert stats["by_status"]["Success"] == 1
        assert stats["by_network"] == {"Safaricom Kenya": 1}
        assert stats["average_duration_ms"] == 9000.0

    def test_invalid_notification_is_422(self, client: TestClient) -> None:
        response = client.post("/api/v1/ussd/notify", data={"sessionId": "x"})
        assert response.status_code == 422


# -----------------------------------------------------------------------
# Networks
# -----------------------------------------------------------------------


class TestNetworksApi:
    """Carrier directory endpoints."""

    def test_list_networks(self, client: TestClient) -> None:
        data = client.get("/api/v1/networks").json()
        assert data["total"] == 30
        assert len(data["networks"]) == 30

    def test_filter_by_country(self, client: TestClient) -> None:
        data = client.get("/api/v1/networks", params={"country": "kenya"}).json()
        assert data["total"] == 4
        assert {n["code"] for n in data["networks"]} == {"63902", "63903", "63907", "63999"}

    def test_network_detail(self, client: TestClient) -> None:
        data = client.get("/api/v1/networks/62130").json()
        assert data == {"code": "62130", "name": "MTN Nigeria", "country": "Nigeria", "is_known": True}

    def test_unknown_network_is_404(self, client: TestClient) -> None:
        assert client.get("/api/v1/networks/00000").status_code == 404


# -----------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------


class TestHealthApi:
    """Liveness and readiness probes."""

    def test_liveness(self, client: TestClient) -> None:
        data = client.get("/api/v1/health").json()
        assert data["status"] == "healthy"
        assert data["version"] == app.version

    def test_readiness(self, client: TestClient) -> None:
        data = client.get("/api/v1/health/ready").json()
        assert data["status"] == "ready"
        assert data["checks"]["session_store"] == "ok"

    def test_api_info(self, client: TestClient) -> None:
        data = client.get("/api").json()
        assert data["endpoints"]["ussd"] == "/api/v1/ussd"


# -----------------------------------------------------------------------
# Lifespan
# -----------------------------------------------------------------------


class TestLifespan:
    def test_in_memory_store_is_swept_in_background(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("ussdkit.main.settings.redis_url", "")
        with TestClient(app):
            task = app.state.session_purge_task
            assert isinstance(app.state.session_store, InMemorySessionStore)
            assert task is not None, "in-memory store needs an expiry sweep"
            assert not task.done(), "sweep should keep running while the app is up"
        assert task.cancelled(), "sweep should be cancelled on shutdown"
