"""
Rate limiting package for the document gateway.

Holds the fixed-window admission gate that caps outbound CRPT calls per
time unit.
"""

from .admission_gate import AdmissionGate

__all__ = ["AdmissionGate"]
