"""
request_orchestrator.transport.http

HTTP client boundary used by the request debouncer.

Responsibilities:
- Build an `httpx.AsyncClient` configured from settings.
- Inject `Authorization: Bearer <token>` on every request via `httpx.Auth`.
- Send one physical call: querystring for GET, JSON or multipart body otherwise.
"""

from __future__ import annotations

from collections.abc import Generator, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from request_orchestrator.auth.tokens import TokenProvider
from request_orchestrator.settings import Settings

REQUEST_ID_HEADER = "X-Request-Id"


@dataclass(frozen=True, slots=True)
class FormData:
    """
    Multipart body. `files` values follow httpx: content, or (filename, content[, type]).
    """

    fields: Mapping[str, Any] = field(default_factory=dict)
    files: Mapping[str, Any] = field(default_factory=dict)


class BearerTokenAuth(httpx.Auth):
    def __init__(self, provider: TokenProvider) -> None:
        self._provider = provider

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._provider()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


def build_http_client(
    *,
    settings: Settings,
    token_provider: TokenProvider,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    # No default Content-Type: httpx sets JSON or multipart (with boundary) per request.
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        headers={"Accept": "application/json"},
        timeout=httpx.Timeout(settings.request_timeout_s),
        follow_redirects=settings.follow_redirects,
        auth=BearerTokenAuth(token_provider),
        transport=transport,
    )


class HttpTransport:
    def __init__(self, *, http: httpx.AsyncClient) -> None:
        self._http = http

    @property
    def client(self) -> httpx.AsyncClient:
        return self._http

    async def send(
        self,
        *,
        method: str,
        url: str,
        params: Mapping[str, Any] | None,
        form_data: FormData | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": dict(headers or {})}
        if timeout is not None:
            kwargs["timeout"] = timeout
        if extensions:
            kwargs["extensions"] = extensions

        if method == "GET":
            # GET never carries a body, multipart or otherwise.
            kwargs["params"] = dict(params) if params else None
        elif form_data is not None:
            kwargs["data"] = dict(form_data.fields)
            kwargs["files"] = dict(form_data.files)
            kwargs["params"] = dict(params) if params else None
        elif params is not None:
            kwargs["json"] = params

        return await self._http.request(method, url, **kwargs)

    async def aclose(self) -> None:
        await self._http.aclose()


# --- Module Notes -----------------------------------------------------------
# Status codes are not raised here (no `raise_for_status`); the debouncer classifies
# every response itself. Only transport errors (`httpx.HTTPError`) escape `send`.
