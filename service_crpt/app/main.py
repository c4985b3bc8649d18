"""
CRPT document gateway service.

Accepts documents over HTTP and forwards them to CRPT through the
rate-limited document client.
"""

from typing import Any, Dict, Optional

import httpx
from fastapi import Header, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from shared.base_service import BaseService
from shared.config import CrptConfig, get_config
from shared.errors import SerializationError

from .adapters.crpt_client import CrptDocumentClient
from .domain.documents import Document


class DocumentsService(BaseService):
    """Document gateway service implementation."""

    def __init__(
        self,
        config: Optional[CrptConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = config or get_config()
        super().__init__(config.service_name, config)

        self.client = CrptDocumentClient(
            config.time_unit,
            config.request_limit,
            base_url=config.api_url,
            timeout=config.request_timeout_seconds,
            transport=transport,
            metrics=self.metrics
        )

        self._setup_document_routes()

    async def on_startup(self):
        await self.client.start()
        self.logger.info(
            "Document gateway started",
            api_url=self.client.url,
            request_limit=self.config.request_limit,
            window_seconds=self.config.time_unit_seconds
        )

    async def on_shutdown(self):
        await self.client.close()

    def _setup_document_routes(self):
        """Set up document-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "CRPT document gateway",
                "version": "1.0.0",
                "capabilities": ["create_document"]
            }

        @self.app.post("/api/v1/documents", response_class=PlainTextResponse)
        async def create_document(request: Request, signature: str = Header(..., alias="Signature")):
            """Forward a document to CRPT and relay the response body verbatim."""
            payload = await request.body()
            try:
                document = Document.from_json(payload)
            except ValidationError as e:
                raise SerializationError(
                    "Request body is not a valid document",
                    details={"errors": [error["msg"] for error in e.errors()]}
                ) from e

            body = await self.client.submit(document, signature)
            return PlainTextResponse(body)

    async def _check_dependencies(self) -> Dict[str, Dict[str, Any]]:
        gate_state = self.client.gate.get_state()
        gate_state["status"] = "error" if gate_state["broken"] else "ok"
        return {"admission_gate": gate_state}


def create_app():
    """Create document gateway application."""
    service = DocumentsService()
    return service.app


if __name__ == "__main__":
    service = DocumentsService()
    service.run()
