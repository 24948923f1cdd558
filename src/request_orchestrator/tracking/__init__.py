"""
request_orchestrator.tracking

Request tracking core.

Responsibilities:
- Request descriptors and tracking keys.
- The per-key debouncer state machine and its records.
- Status projection, optimistic updates and the conflict registry.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Call sites should go through `services.orchestrator`; these modules are its building blocks.
