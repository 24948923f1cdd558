"""
tests.conftest

Shared fixtures: an in-process fake API backend and orchestrators wired to it.

Responsibilities:
- Serve scripted responses from a FastAPI app through `httpx.ASGITransport`.
- Hold responses pending on demand so concurrent dispatches can be observed.
- Capture spans with the OpenTelemetry SDK in-memory exporter.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from starlette.responses import JSONResponse, Response

from request_orchestrator.services.orchestrator import create_orchestrator
from request_orchestrator.settings import Settings

BASE_URL = "http://test/api"


@dataclass
class Reply:
    status: int = 200
    body: Any = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    content_type: str = "application/json"
    # When set, the backend holds the response until the event is set.
    gate: asyncio.Event | None = None


@dataclass(frozen=True)
class RecordedCall:
    method: str
    path: str
    query: dict[str, str]
    headers: dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


class FakeBackend:
    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._replies: dict[tuple[str, str], list[Reply]] = {}
        self.app = FastAPI()

        @self.app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
        async def handle(path: str, request: Request) -> Response:
            self.calls.append(
                RecordedCall(
                    method=request.method,
                    path=f"/{path}",
                    query=dict(request.query_params),
                    headers=dict(request.headers),
                    body=await request.body(),
                )
            )
            reply = self._next_reply(request.method, f"/{path}")
            if reply.gate is not None:
                await reply.gate.wait()
            if reply.content_type == "application/json":
                return JSONResponse(reply.body, status_code=reply.status, headers=reply.headers)
            return Response(
                content=reply.body,
                status_code=reply.status,
                headers=reply.headers,
                media_type=reply.content_type,
            )

    def script(self, method: str, path: str, *replies: Reply) -> None:
        self._replies[(method, path)] = list(replies)

    def _next_reply(self, method: str, path: str) -> Reply:
        queue = self._replies.get((method, path))
        if not queue:
            return Reply(status=404, body={"error": {"message": f"no route {method} {path}"}})
        # The last reply repeats once the script is exhausted.
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def calls_to(self, method: str, path: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.method == method and c.path == path]

    async def wait_for_calls(self, count: int) -> None:
        for _ in range(1000):
            if len(self.calls) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {count} calls, saw {len(self.calls)}")


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {"env": "test", "api_base_url": BASE_URL, "api_token": "test-token"}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> TracerProvider:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


@pytest_asyncio.fixture
async def make_orchestrator(backend: FakeBackend, tracer_provider: TracerProvider):
    created = []

    def factory(*, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None, **kwargs: Any):
        orchestrator = create_orchestrator(
            settings=settings or make_settings(),
            http_transport=transport or httpx.ASGITransport(app=backend.app),
            tracer_provider=tracer_provider,
            **kwargs,
        )
        created.append(orchestrator)
        return orchestrator

    yield factory

    for orchestrator in created:
        await orchestrator.aclose()


@pytest_asyncio.fixture
async def orchestrator(make_orchestrator):
    return make_orchestrator(tags={"workspace.id": "ws-1", "change_set.id": None})


# --- Module Notes -----------------------------------------------------------
# Paths recorded by the backend are relative to the `/api` base path.
