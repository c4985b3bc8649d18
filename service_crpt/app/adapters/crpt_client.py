"""
CRPT "True Sign" document client.
"""

import asyncio
import json
import time
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional, Union

import httpx
from opentelemetry import trace
from pydantic_core import PydanticSerializationError

from shared.errors import Cancelled, SerializationError, TransportError
from shared.logging import get_logger, set_document_context
from shared.metrics import MetricsCollector, get_metrics_collector

from ..domain.documents import Document
from ..ratelimit.admission_gate import AdmissionGate


DEFAULT_API_URL = "https://ismp.crpt.ru"
CREATE_DOCUMENT_PATH = "/api/v3/lk/documents/create"
DEFAULT_TIMEOUT_SECONDS = 60.0

tracer = trace.get_tracer(__name__)


class CrptDocumentClient:
    """
    Submits documents to CRPT, at most ``request_limit`` per ``time_unit``.

    Every ``submit`` takes a permit from the admission gate before doing any
    work. The remote response body is returned as-is; its status code is not
    inspected. Failures are not retried.
    """

    def __init__(
        self,
        time_unit: timedelta,
        request_limit: int,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        gate: Optional[AdmissionGate] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.metrics = metrics or get_metrics_collector("crpt")
        self.gate = gate or AdmissionGate(time_unit, request_limit, metrics=self.metrics)
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger("crpt.document_client")

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._start_lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return f"{self.base_url}{CREATE_DOCUMENT_PATH}"

    async def start(self):
        """Open the HTTP client and start the gate's replenishment task."""
        async with self._start_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout),
                    transport=self._transport
                )
            await self.gate.start()

    async def close(self):
        """Stop the gate and close the HTTP client."""
        await self.gate.stop()
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.logger.info("CRPT document client closed")

    async def __aenter__(self) -> "CrptDocumentClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def submit(self, document: Union[Document, Mapping[str, Any]], signature: str) -> str:
        """
        Create a document in CRPT and return the raw response body.

        Raises ``SerializationError`` when the document cannot be encoded (no
        request is sent), ``TransportError`` on network failure or when the
        call exceeds the timeout, and ``Cancelled`` when the caller is
        cancelled while waiting for a permit or for the response.
        """
        if self._client is None or not self.gate.running:
            try:
                await self.start()
            except asyncio.CancelledError as e:
                raise Cancelled(
                    "Cancelled while starting the CRPT client",
                    details={"url": self.url}
                ) from e

        await self.gate.acquire()

        try:
            body = self.serialize(document)
        except SerializationError as e:
            self.metrics.record_submission("serialization_error")
            self.logger.error("Document serialization failed", error=e.message)
            raise

        doc_id = document.doc_id if isinstance(document, Document) else None
        set_document_context(doc_id)

        with tracer.start_as_current_span("crpt.create_document") as span:
            span.set_attribute("crpt.doc_id", doc_id or "")
            return await self._send(body, signature)

    @staticmethod
    def serialize(document: Union[Document, Mapping[str, Any]]) -> str:
        """Encode a document as JSON using wire field names."""
        try:
            if isinstance(document, Document):
                return document.to_json()
            if isinstance(document, Mapping):
                return json.dumps(dict(document), ensure_ascii=False)
        except (TypeError, ValueError, PydanticSerializationError) as e:
            raise SerializationError(
                f"Unable to encode document: {e}",
                details={"error": str(e)}
            ) from e

        raise SerializationError(
            f"Unsupported document type: {type(document).__name__}",
            details={"type": type(document).__name__}
        )

    def _build_headers(self, signature: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Signature": signature
        }

    async def _send(self, body: str, signature: str) -> str:
        """POST the encoded document; the timeout bounds the whole call."""
        start_time = time.perf_counter()

        try:
            response = await asyncio.wait_for(
                self._client.post(
                    self.url,
                    content=body.encode("utf-8"),
                    headers=self._build_headers(signature)
                ),
                timeout=self.timeout
            )

        except asyncio.TimeoutError as e:
            self.metrics.record_submission("timeout", time.perf_counter() - start_time)
            self.logger.error("CRPT request timed out", url=self.url, timeout=self.timeout)
            raise TransportError(
                service="crpt",
                message=f"Request timed out after {self.timeout}s",
                details={"url": self.url, "timeout": self.timeout}
            ) from e

        except httpx.HTTPError as e:
            self.metrics.record_submission("transport_error", time.perf_counter() - start_time)
            self.logger.error("CRPT request failed", url=self.url, error=str(e))
            raise TransportError(
                service="crpt",
                message=str(e) or type(e).__name__,
                details={"url": self.url, "http_error": type(e).__name__}
            ) from e

        except asyncio.CancelledError as e:
            self.metrics.record_submission("cancelled", time.perf_counter() - start_time)
            self.logger.info("CRPT request cancelled", url=self.url)
            raise Cancelled(
                "Cancelled while waiting for the CRPT response",
                details={"url": self.url}
            ) from e

        duration = time.perf_counter() - start_time
        self.metrics.record_submission("completed", duration)
        self.logger.info(
            "Document submitted",
            url=self.url,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )
        return response.text
