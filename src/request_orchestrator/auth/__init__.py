"""
request_orchestrator.auth

Bearer-token plumbing for outgoing calls.

Responsibilities:
- Issue/validate service JWTs.
- Provide token providers consumed by the transport's auth hook.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Token acquisition for end users (login, refresh) belongs to the host application;
# this package only supplies tokens for injection.
