"""
request_orchestrator.tracking.keys

Tracking key resolution.

Responsibilities:
- Derive a stable string key from an action id plus caller discriminators
  (e.g. `FETCH_THING`, `FETCH_THING%42`, `GET_OAUTH_ACCOUNT%google%abc123`).
"""

from __future__ import annotations

from collections.abc import Iterable

from request_orchestrator.errors import PreconditionError

TRACKING_KEY_SEPARATOR = "%"

Discriminator = str | int | float | bool | None


def resolve_tracking_key(action_id: str, discriminators: Iterable[Discriminator] = ()) -> str:
    """
    Deterministic and order-preserving, so status readers can recompute the key a
    dispatch used. `None` and empty strings are dropped.
    """

    if not action_id:
        raise PreconditionError("action id is required")
    if TRACKING_KEY_SEPARATOR in action_id:
        raise PreconditionError(f"action id {action_id!r} contains {TRACKING_KEY_SEPARATOR!r}")

    parts = [action_id]
    for raw in discriminators:
        if raw is None or raw == "":
            continue
        value = str(raw)
        if TRACKING_KEY_SEPARATOR in value:
            raise PreconditionError(
                f"discriminator {value!r} contains reserved separator {TRACKING_KEY_SEPARATOR!r}"
            )
        parts.append(value)
    return TRACKING_KEY_SEPARATOR.join(parts)


# --- Module Notes -----------------------------------------------------------
# Unlike a falsy filter, 0 and False are kept as discriminators.
