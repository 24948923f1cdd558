"""
request_orchestrator.tracking.results

Discriminated request outcomes.

Responsibilities:
- Define the classified failure (`RequestError`) and its taxonomy.
- Define `Success` / `Failure` results resolved on the shared completion signal.
- Provide `unwrap` for callers that prefer exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal

from request_orchestrator.errors import RequestFailedError
from request_orchestrator.transport.classifiers import ServiceSignal


class FailureKind(StrEnum):
    NETWORK = "network"  # no response received
    HTTP = "http"  # status >= 400
    CONFLICT = "conflict"  # status the descriptor marks as conflict-worthy (409 by default)
    HOOK = "hook"  # a success/context-switch hook raised


def body_error_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    inner = body.get("error")
    if isinstance(inner, dict) and inner.get("message"):
        return str(inner["message"])
    if body.get("message"):
        return str(body["message"])
    return None


def body_error_code(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    inner = body.get("error")
    if isinstance(inner, dict) and inner.get("type"):
        return str(inner["type"])
    return None


def synthesized_body(message: str) -> dict[str, Any]:
    # Same shape as API error bodies so status readers need one extraction path.
    return {"error": {"message": message}}


@dataclass(frozen=True, slots=True)
class RequestError:
    kind: FailureKind
    message: str
    body: Any = None
    status_code: int | None = None
    reason: str | None = None
    signal: ServiceSignal | None = None
    exception: BaseException | None = field(default=None, repr=False, compare=False)

    @property
    def is_conflict(self) -> bool:
        return self.kind is FailureKind.CONFLICT


@dataclass(frozen=True, slots=True)
class Success:
    data: Any
    request_id: str
    status_code: int | None = None
    success: Literal[True] = True


@dataclass(frozen=True, slots=True)
class Failure:
    error: RequestError
    request_id: str
    success: Literal[False] = False

    @property
    def err(self) -> RequestError:
        return self.error

    @property
    def err_body(self) -> Any:
        return self.error.body

    @property
    def status_code(self) -> int | None:
        return self.error.status_code


Result = Success | Failure


def unwrap(result: Result) -> Any:
    if isinstance(result, Failure):
        raise RequestFailedError(result)
    return result.data


# --- Module Notes -----------------------------------------------------------
# Callers branch on `result.success`; ordinary HTTP failures are never raised.
