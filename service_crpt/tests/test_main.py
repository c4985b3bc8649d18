"""
Unit tests for the document gateway service.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from service_crpt.app.main import DocumentsService
from service_crpt.app.domain.documents import Document, Product
from shared.config import get_config


def build_service(handler) -> DocumentsService:
    """Create a service whose outbound calls go to `handler`."""
    config = get_config(
        env="test",
        api_url="https://crpt.test",
        request_limit=2,
        time_unit_seconds=60
    )
    return DocumentsService(config=config, transport=httpx.MockTransport(handler))


class TestDocumentsService:
    """Test cases for DocumentsService."""

    @pytest.fixture
    def forwarded(self):
        """Requests forwarded to the stub CRPT endpoint."""
        return []

    @pytest.fixture
    def service(self, forwarded):
        """Create DocumentsService backed by a stub endpoint."""
        def handler(request: httpx.Request) -> httpx.Response:
            forwarded.append(request)
            return httpx.Response(200, text='{"value": "created"}')

        return build_service(handler)

    @pytest.fixture
    def client(self, service):
        """Create test client with the service lifecycle running."""
        with TestClient(service.app) as client:
            yield client

    @pytest.fixture
    def document_payload(self):
        """Wire-format document."""
        document = Document(
            doc_id="doc-http",
            doc_type="LP_INTRODUCE_GOODS",
            products=[Product(uit_code="0104611111111111", tnved_code="6401100000")]
        )
        return document.to_json()

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "crpt"
        assert "create_document" in data["capabilities"]

    def test_health_endpoint(self, client):
        """Test health endpoint reports the gate."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        gate = data["dependencies"]["admission_gate"]
        assert gate["capacity"] == 2
        assert gate["running"] is True

    def test_create_document_relays_body(self, client, forwarded, document_payload):
        """Test that the remote body comes back verbatim."""
        response = client.post(
            "/api/v1/documents",
            content=document_payload,
            headers={"Signature": "sig-123", "Content-Type": "application/json"}
        )

        assert response.status_code == 200
        assert response.text == '{"value": "created"}'
        assert response.headers["content-type"].startswith("text/plain")

        assert len(forwarded) == 1
        assert str(forwarded[0].url) == "https://crpt.test/api/v3/lk/documents/create"
        assert forwarded[0].headers["Signature"] == "sig-123"
        assert json.loads(forwarded[0].content)["docId"] == "doc-http"

    def test_missing_signature_rejected(self, client, forwarded, document_payload):
        """Test that the Signature header is required."""
        response = client.post("/api/v1/documents", content=document_payload)

        assert response.status_code == 422
        assert forwarded == []

    def test_invalid_document_rejected(self, client, forwarded):
        """Test that an undecodable body maps to a serialization error."""
        response = client.post(
            "/api/v1/documents",
            content="{not json",
            headers={"Signature": "sig"}
        )

        assert response.status_code == 422
        assert response.json()["code"] == "SERIALIZATION_ERROR"
        assert forwarded == []

    def test_transport_failure_maps_to_bad_gateway(self, document_payload):
        """Test that an unreachable endpoint yields 502."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Name or service not known", request=request)

        service = build_service(handler)
        with TestClient(service.app) as client:
            response = client.post(
                "/api/v1/documents",
                content=document_payload,
                headers={"Signature": "sig"}
            )

        assert response.status_code == 502
        data = response.json()
        assert data["code"] == "TRANSPORT_ERROR"
        assert data["message"].startswith("crpt:")

    def test_metrics_endpoint(self, client, document_payload):
        """Test that submission metrics are exposed."""
        client.post(
            "/api/v1/documents",
            content=document_payload,
            headers={"Signature": "sig"}
        )

        response = client.get("/metrics")

        assert response.status_code == 200
        assert 'document_submissions_total{outcome="completed"} 1.0' in response.text
        assert 'gate_available_permits{gate="crpt"} 1.0' in response.text

    def test_gate_stopped_on_shutdown(self, service):
        """Test that the lifespan stops the replenisher."""
        with TestClient(service.app):
            assert service.client.gate.running is True

        assert service.client.gate.running is False
