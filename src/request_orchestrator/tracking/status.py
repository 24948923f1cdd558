"""
request_orchestrator.tracking.status

Per-key request records and the status projected from them.

Responsibilities:
- Define the mutable `RequestRecord` held by the debouncer for each tracking key.
- Project a record into read-only status flags (`project`).
- Combine several statuses and reduce a status to a coarse load state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from request_orchestrator.tracking.results import (
    RequestError,
    Result,
    body_error_code,
    body_error_message,
)


@dataclass(slots=True)
class RequestRecord:
    request_id: str
    requested_at: datetime
    payload: Any
    completion: asyncio.Future[Result]
    label: str | None = None
    received_at: datetime | None = None
    # Carried over from the previous record for the key so "never succeeded" and
    # "succeeded before, now refreshing" stay distinguishable.
    last_success_at: datetime | None = None
    error: RequestError | None = None


@dataclass(frozen=True, slots=True)
class RequestStatus:
    is_requested: bool = False
    is_pending: bool = False
    is_first_load: bool = False
    is_success: bool = False
    is_error: bool = False
    error_message: str | None = None
    error_code: str | None = None

    requested_at: datetime | None = None
    received_at: datetime | None = None
    last_success_at: datetime | None = None
    payload: Any = None
    error: RequestError | None = None


IDLE_STATUS = RequestStatus()


def error_message(error: RequestError | None) -> str | None:
    if error is None:
        return None
    return body_error_message(error.body) or error.reason


def project(record: RequestRecord | None) -> RequestStatus:
    if record is None:
        return IDLE_STATUS

    received = record.received_at is not None
    return RequestStatus(
        is_requested=True,
        is_pending=not received,
        is_first_load=not received and record.last_success_at is None,
        is_success=received and record.error is None,
        is_error=record.error is not None,
        error_message=error_message(record.error),
        error_code=body_error_code(record.error.body) if record.error else None,
        requested_at=record.requested_at,
        received_at=record.received_at,
        last_success_at=record.last_success_at,
        payload=record.payload,
        error=record.error,
    )


def combine_statuses(statuses: Iterable[RequestStatus]) -> RequestStatus:
    items = list(statuses)
    return RequestStatus(
        is_requested=all(s.is_requested for s in items),
        is_first_load=any(s.is_first_load for s in items),
        is_pending=any(s.is_pending for s in items),
        is_success=all(s.is_success for s in items),
        is_error=any(s.is_error for s in items),
    )


class LoadStatus(StrEnum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    ERROR = "error"
    SUCCESS = "success"


def load_status(status: RequestStatus) -> LoadStatus:
    if status.is_pending:
        return LoadStatus.LOADING
    if status.is_error:
        return LoadStatus.ERROR
    if status.is_success:
        return LoadStatus.SUCCESS
    return LoadStatus.UNINITIALIZED


# --- Module Notes -----------------------------------------------------------
# `project` is pure; it is safe to call on every read without copying the record.
