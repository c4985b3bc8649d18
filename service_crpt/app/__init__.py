"""
CRPT document gateway package.

Forwards goods-introduction documents to the CRPT "create document"
endpoint while keeping outbound calls under a per-window cap.

Structure:
- app.domain: Document and Product records.
- app.ratelimit: Fixed-window admission gate.
- app.adapters: HTTP client for the CRPT endpoint.
- app.main: FastAPI front door, routes, and lifecycle wiring.
"""
