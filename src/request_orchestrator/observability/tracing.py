"""
request_orchestrator.observability.tracing

Per-call tracing spans (OpenTelemetry API).

Responsibilities:
- Open one CLIENT span per physical HTTP call, named `"<METHOD> <url-template>"`.
- Attach request attributes (body summary, url, method, request id, caller tags).
- Propagate trace context into outgoing headers.
- Collect best-effort network timings through the httpx `trace` extension.
- Close the span with the resulting HTTP status code.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from opentelemetry import propagate, trace
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

MULTIPART_BODY_MARKER = "multipart form"

TagsProvider = Callable[[], Mapping[str, Any]]


def summarize_body(params: Any, *, multipart: bool) -> str:
    if multipart:
        return MULTIPART_BODY_MARKER
    return json.dumps(params, default=str)


def _clean_attributes(raw: Mapping[str, Any]) -> dict[str, Any]:
    # OTel rejects None and nested values; tags like an unset change-set id are dropped.
    out: dict[str, Any] = {}
    for k, v in raw.items():
        if v is None:
            continue
        out[k] = v if isinstance(v, str | bool | int | float) else str(v)
    return out


class NetworkTimingRecorder:
    """
    Async trace callback for httpx (`extensions={"trace": recorder}`).

    Only real httpcore connections emit these events, and only when a new connection is
    opened; pooled connections and in-process transports report nothing.
    """

    _EVENTS = {
        "connection.connect_tcp": "tcp_duration",
        "connection.start_tls": "tls_duration",
    }

    def __init__(self) -> None:
        self._started: dict[str, float] = {}
        self.durations_ms: dict[str, float] = {}

    async def __call__(self, event_name: str, info: dict[str, Any]) -> None:
        prefix, _, phase = event_name.rpartition(".")
        attr = self._EVENTS.get(prefix)
        if attr is None:
            return
        if phase == "started":
            self._started[attr] = time.perf_counter()
        elif phase == "complete" and attr in self._started:
            self.durations_ms[attr] = (time.perf_counter() - self._started.pop(attr)) * 1000.0


class CallSpan:
    def __init__(self, span: Span) -> None:
        self._span = span

    @property
    def span(self) -> Span:
        return self._span

    def inject_headers(self, headers: dict[str, str]) -> dict[str, str]:
        propagate.inject(headers, context=trace.set_span_in_context(self._span))
        return headers

    def record_timings(self, recorder: NetworkTimingRecorder) -> None:
        if recorder.durations_ms:
            self._span.set_attributes(recorder.durations_ms)

    def finish(self, *, status_code: int | None) -> None:
        if status_code is not None:
            self._span.set_attribute("http.status_code", status_code)
            if status_code >= 400:
                self._span.set_status(Status(StatusCode.ERROR))
        else:
            self._span.set_status(Status(StatusCode.ERROR, "no response"))


class TracingEmitter:
    """
    Injected tracing client.

    Owns the provider only when one is passed in explicitly; `shutdown` then flushes and
    closes it. With no provider, the process-global one from the OTel API is used.
    """

    def __init__(
        self,
        *,
        tracer_name: str,
        tracer_provider: trace.TracerProvider | None = None,
        tags: TagsProvider | None = None,
    ) -> None:
        self._provider = tracer_provider
        self._tracer = trace.get_tracer(tracer_name, tracer_provider=tracer_provider)
        self._tags = tags

    @contextmanager
    def call_span(
        self,
        *,
        method: str,
        url: str,
        url_template: str,
        request_id: str,
        params: Any,
        multipart: bool,
    ) -> Iterator[CallSpan]:
        attributes: dict[str, Any] = {
            "http.body": summarize_body(params, multipart=multipart),
            "http.url": url,
            "http.method": method,
            "request.id": request_id,
        }
        if multipart and params:
            attributes["http.params"] = json.dumps(params, default=str)
        if self._tags is not None:
            attributes.update(self._tags())

        with self._tracer.start_as_current_span(
            f"{method} {url_template}",
            kind=SpanKind.CLIENT,
            attributes=_clean_attributes(attributes),
        ) as span:
            yield CallSpan(span)

    def shutdown(self) -> None:
        if self._provider is None:
            return
        for name in ("force_flush", "shutdown"):
            fn = getattr(self._provider, name, None)
            if callable(fn):
                fn()


# --- Module Notes -----------------------------------------------------------
# Span names use the low-cardinality url template (placeholders as `:name`); the
# concrete url only appears as the `http.url` attribute.
