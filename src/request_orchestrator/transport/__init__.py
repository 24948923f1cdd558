"""
request_orchestrator.transport

HTTP transport boundary.

Responsibilities:
- Build the injected `httpx.AsyncClient` (base url, timeouts, bearer auth).
- Turn a resolved call into a single physical HTTP request.
- Classify responses into service-level signals (outage, maintenance, proxy timeout).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Connection pooling, TLS and transport-level retries stay inside httpx.
