"""
request_orchestrator.errors

Exception hierarchy for the orchestration layer.

Responsibilities:
- Separate programmer errors (fatal preconditions) from ordinary request failures.
- Provide an exception form of a failed result for callers that prefer raising.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from request_orchestrator.tracking.results import Failure


class OrchestratorError(Exception):
    pass


class PreconditionError(OrchestratorError):
    """
    A caller broke the contract (missing target, bad discriminator, sync action...).
    Reported immediately; never converted into a failure result and never retried.
    """


class UnknownConflictError(OrchestratorError, KeyError):
    def __init__(self, request_id: str) -> None:
        super().__init__(request_id)
        self.request_id = request_id

    def __str__(self) -> str:
        return f"no conflict registered for request {self.request_id}"


class RequestFailedError(OrchestratorError):
    """
    Raised by `unwrap` when a result is a failure.
    """

    def __init__(self, failure: Failure) -> None:
        super().__init__(failure.error.message)
        self.failure = failure

    @property
    def status_code(self) -> int | None:
        return self.failure.status_code

    @property
    def body(self) -> Any:
        return self.failure.err_body


# --- Module Notes -----------------------------------------------------------
# Ordinary HTTP failures never cross the orchestration boundary as exceptions; they are
# returned as `Failure` results (see `tracking.results`).
