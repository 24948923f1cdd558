"""
request_orchestrator.tracking.optimistic

Optimistic local mutation with rollback on failure.

Responsibilities:
- Run the caller's mutation strictly before the physical call.
- Hold the returned rollback and run it at most once, only if the call fails.
"""

from __future__ import annotations

import inspect

from request_orchestrator.tracking.descriptor import OptimisticFn, Rollback


class PendingRollback:
    def __init__(self, fn: Rollback) -> None:
        self._fn = fn
        self._settled = False

    @property
    def settled(self) -> bool:
        return self._settled

    async def run(self) -> None:
        if self._settled:
            return
        self._settled = True
        # Errors propagate: optimistic state is unknown once a rollback fails.
        outcome = self._fn()
        if inspect.isawaitable(outcome):
            await outcome

    def discard(self) -> None:
        self._settled = True


class OptimisticUpdateCoordinator:
    async def apply(self, mutation: OptimisticFn, request_id: str) -> PendingRollback | None:
        rollback = mutation(request_id)
        if inspect.isawaitable(rollback):
            rollback = await rollback
        if rollback is None:
            return None
        if not callable(rollback):
            raise TypeError(f"optimistic update must return a callable rollback, got {rollback!r}")
        return PendingRollback(rollback)


# --- Module Notes -----------------------------------------------------------
# On success the rollback is discarded; the success hook reconciles optimistic state.
