"""
Adapters package for the document gateway.

Contains the HTTP client for the CRPT API. The adapter encapsulates:

- The base URL and request shape
- Admission through the rate-limiting gate
- Error handling that maps to shared errors

No retries are performed here.
"""

from .crpt_client import CrptDocumentClient

__all__ = ["CrptDocumentClient"]
