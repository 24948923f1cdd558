"""
request_orchestrator.services

Service layer.

Responsibilities:
- Public orchestrator facade and its composition root.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Store actions should depend on this layer, not on the tracking internals.
