"""
request_orchestrator.tracking.debouncer

Per-key request debouncer (the request lifecycle state machine).

Responsibilities:
- Keep at most one physical call in flight per tracking key; identical concurrent
  requests (same key, equal params) share one completion future.
- Record the lifecycle (requested -> received, last success) on a per-key record.
- Run hooks in a fixed order: optimistic mutation -> call -> context switch ->
  success/failure -> rollback on failure.
- Classify outcomes (network, http, conflict, hook) and resolve the shared future.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import uuid
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from request_orchestrator.observability.logging import get_logger
from request_orchestrator.observability.tracing import NetworkTimingRecorder, TracingEmitter
from request_orchestrator.tracking.descriptor import Method, RequestDescriptor
from request_orchestrator.tracking.optimistic import OptimisticUpdateCoordinator, PendingRollback
from request_orchestrator.tracking.results import (
    Failure,
    FailureKind,
    RequestError,
    Result,
    Success,
    body_error_message,
    synthesized_body,
)
from request_orchestrator.tracking.status import RequestRecord
from request_orchestrator.transport.classifiers import (
    DEFAULT_CLASSIFIERS,
    ResponseClassifier,
    classify_response,
)
from request_orchestrator.transport.http import REQUEST_ID_HEADER, HttpTransport
from request_orchestrator.transport.signals import SignalDispatcher, SignalEvent

log = get_logger(__name__)

FORCE_CONTEXT_SWITCH_HEADER = "force_change_set_id"

ConflictCallback = Callable[[str, RequestRecord, RequestDescriptor, RequestError], None]


def _now() -> datetime:
    return datetime.now(tz=UTC)


async def _call_hook(fn: Callable[..., Any], *args: Any) -> Any:
    outcome = fn(*args)
    if inspect.isawaitable(outcome):
        return await outcome
    return outcome


def _same_payload(a: Any, b: Any) -> bool:
    # Type-strict deep equality: True, 1 and 1.0 serialize to different bodies.
    if type(a) is not type(b):
        return False
    if isinstance(a, dict):
        return a.keys() == b.keys() and all(_same_payload(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(_same_payload(x, y) for x, y in zip(a, b))
    return a == b


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    if "json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


def _network_error(exc: httpx.HTTPError) -> RequestError:
    message = str(exc) or exc.__class__.__name__
    return RequestError(
        kind=FailureKind.NETWORK,
        message=message,
        body=synthesized_body(message),
        exception=exc,
    )


def _hook_error(exc: Exception, *, status_code: int | None) -> RequestError:
    message = str(exc) or exc.__class__.__name__
    return RequestError(
        kind=FailureKind.HOOK,
        message=message,
        body=synthesized_body(message),
        status_code=status_code,
        exception=exc,
    )


class RequestDebouncer:
    """
    Owns the record table. Records are only mutated here; readers go through `get`.

    `dispatch` is synchronous up to the point where the record is installed, so the
    dedup check and the record swap are atomic with respect to other coroutines.
    Each caller gets a shielded view of the shared completion, so a caller that is
    cancelled stops waiting without cancelling the outcome for the others.
    """

    def __init__(
        self,
        *,
        transport: HttpTransport,
        tracing: TracingEmitter,
        classifiers: Iterable[ResponseClassifier] = DEFAULT_CLASSIFIERS,
        signals: SignalDispatcher | None = None,
        optimistic: OptimisticUpdateCoordinator | None = None,
        artificial_delay_ms: int | None = None,
        context_switch_header: str = FORCE_CONTEXT_SWITCH_HEADER,
        on_conflict: ConflictCallback | None = None,
    ) -> None:
        self._transport = transport
        self._tracing = tracing
        self._classifiers = tuple(classifiers)
        self._signals = signals
        self._optimistic = optimistic or OptimisticUpdateCoordinator()
        self._artificial_delay_ms = artificial_delay_ms
        self._context_switch_header = context_switch_header
        self._on_conflict = on_conflict

        self._records: dict[str, RequestRecord] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    # -- read side ---------------------------------------------------------------

    def get(self, key: str) -> RequestRecord | None:
        return self._records.get(key)

    def keys(self) -> Iterator[str]:
        return iter(list(self._records))

    def drop(self, key: str) -> bool:
        # Does not cancel an in-flight call; see `_settle`.
        return self._records.pop(key, None) is not None

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # -- dispatch ----------------------------------------------------------------

    def dispatch(
        self, key: str, descriptor: RequestDescriptor, *, label: str | None = None
    ) -> Awaitable[Result]:
        url, url_template = descriptor.describe()

        current = self._records.get(key)
        payload = descriptor.params if descriptor.params is not None else {}
        if current is not None and current.received_at is None:
            if _same_payload(current.payload, payload):
                log.debug("request.deduplicated", tracking_key=key, request_id=current.request_id)
                return asyncio.shield(current.completion)
            log.warning(
                "request.superseding",
                tracking_key=key,
                in_flight_request_id=current.request_id,
            )

        loop = asyncio.get_running_loop()
        record = RequestRecord(
            request_id=str(uuid.uuid4()),
            requested_at=_now(),
            payload=copy.deepcopy(payload),
            completion=loop.create_future(),
            label=label,
            last_success_at=current.last_success_at if current is not None else None,
        )
        self._records[key] = record

        task = loop.create_task(self._run(key, record, descriptor, url, url_template))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return asyncio.shield(record.completion)

    async def _run(
        self,
        key: str,
        record: RequestRecord,
        descriptor: RequestDescriptor,
        url: str,
        url_template: str,
    ) -> None:
        with structlog.contextvars.bound_contextvars(
            tracking_key=key, request_id=record.request_id
        ):
            try:
                result = await self._execute(key, record, descriptor, url, url_template)
            except asyncio.CancelledError:
                record.completion.cancel()
                raise
            except Exception as e:
                # Rollback failures and optimistic-mutation errors are fatal; every
                # waiter on the shared future receives the exception.
                log.exception("request.fatal", error=str(e))
                self._settle(key, record)
                if not record.completion.done():
                    record.completion.set_exception(e)
                return

            self._settle(key, record)
            if not record.completion.done():
                record.completion.set_result(result)

    async def _execute(
        self,
        key: str,
        record: RequestRecord,
        descriptor: RequestDescriptor,
        url: str,
        url_template: str,
    ) -> Result:
        rollback: PendingRollback | None = None
        if descriptor.optimistic is not None:
            rollback = await self._optimistic.apply(descriptor.optimistic, record.request_id)

        method = descriptor.method.value
        timings = NetworkTimingRecorder()
        with self._tracing.call_span(
            method=method,
            url=url,
            url_template=url_template,
            request_id=record.request_id,
            params=record.payload,
            multipart=descriptor.is_multipart,
        ) as span:
            headers = span.inject_headers(
                {**descriptor.headers, REQUEST_ID_HEADER: record.request_id}
            )
            await self._delay(descriptor)

            data: Any = None
            status_code: int | None = None
            error: RequestError | None = None
            log.info("request.dispatched", method=method, url=url)
            try:
                response = await self._transport.send(
                    method=method,
                    url=url,
                    params=descriptor.params,
                    form_data=descriptor.form_data if descriptor.method is not Method.GET else None,
                    headers=headers,
                    timeout=descriptor.timeout,
                    extensions={"trace": timings},
                )
            except httpx.HTTPError as e:
                error = _network_error(e)
            else:
                status_code = response.status_code
                data = _parse_body(response)
                if response.is_error:
                    error = await self._http_error(response, data, descriptor)
                else:
                    error = await self._maybe_switch_context(response, data, descriptor)
            finally:
                span.record_timings(timings)

            if error is None:
                record.received_at = record.last_success_at = _now()
                try:
                    if descriptor.on_success is not None:
                        await _call_hook(descriptor.on_success, data)
                except Exception as e:
                    error = _hook_error(e, status_code=status_code)
                else:
                    if rollback is not None:
                        rollback.discard()
                    span.finish(status_code=status_code)
                    log.info("request.succeeded", status_code=status_code)
                    return Success(data=data, request_id=record.request_id, status_code=status_code)

            span.finish(status_code=status_code)
            return await self._fail(key, record, descriptor, error, rollback)

    async def _fail(
        self,
        key: str,
        record: RequestRecord,
        descriptor: RequestDescriptor,
        error: RequestError,
        rollback: PendingRollback | None,
    ) -> Failure:
        if record.received_at is None:
            record.received_at = _now()
        if descriptor.on_failure is not None:
            try:
                replacement = await _call_hook(descriptor.on_failure, error)
            except Exception:
                # The original error stands; only rollback failures are fatal.
                log.exception("request.failure_hook_failed", kind=error.kind.value)
            else:
                if replacement is not None:
                    error = replace(error, body=replacement)

        record.error = error
        if rollback is not None:
            await rollback.run()

        log.info(
            "request.failed",
            kind=error.kind.value,
            status_code=error.status_code,
            error=error.message,
        )
        if error.is_conflict and self._on_conflict is not None:
            self._on_conflict(key, record, descriptor, error)
        return Failure(error=error, request_id=record.request_id)

    async def _http_error(
        self, response: httpx.Response, body: Any, descriptor: RequestDescriptor
    ) -> RequestError:
        status_code = response.status_code
        signal = classify_response(response, self._classifiers)
        if signal is not None and self._signals is not None:
            await self._signals.emit(
                SignalEvent(signal=signal, status_code=status_code, url=str(response.url), body=body)
            )
        kind = FailureKind.CONFLICT if status_code in descriptor.conflict_statuses else FailureKind.HTTP
        return RequestError(
            kind=kind,
            message=body_error_message(body) or response.reason_phrase or f"HTTP {status_code}",
            body=body,
            status_code=status_code,
            reason=response.reason_phrase or None,
            signal=signal,
        )

    async def _maybe_switch_context(
        self, response: httpx.Response, body: Any, descriptor: RequestDescriptor
    ) -> RequestError | None:
        context_id = response.headers.get(self._context_switch_header)
        if not context_id or descriptor.on_context_switch is None:
            return None
        log.info("request.context_switch", context_id=context_id)
        try:
            await _call_hook(descriptor.on_context_switch, context_id, body)
        except Exception as e:
            return _hook_error(e, status_code=response.status_code)
        return None

    async def _delay(self, descriptor: RequestDescriptor) -> None:
        delay_ms = self._artificial_delay_ms or descriptor.artificial_delay_ms
        if delay_ms:
            await asyncio.sleep(delay_ms / 1000.0)

    def _settle(self, key: str, record: RequestRecord) -> None:
        current = self._records.get(key)
        if current is None:
            # Status was cleared mid-flight; the finished call re-creates the record.
            self._records[key] = record
        elif current is not record:
            log.warning(
                "request.superseded",
                superseded_by=current.request_id,
            )

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# --- Module Notes -----------------------------------------------------------
# A superseded call (same key, different params, still in flight) runs to completion and
# still invokes its own hooks; its bookkeeping stays on its own record and never
# overwrites the newer record that replaced it in the table.
