"""
Domain records for the document gateway.
"""

from .documents import Document, Product

__all__ = [
    "Document",
    "Product",
]
