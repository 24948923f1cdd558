"""
request_orchestrator.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Per-call tracing spans forwarded to a distributed tracing backend.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Exporters are owned by the host application; this package only talks to the
# OpenTelemetry API surface.
