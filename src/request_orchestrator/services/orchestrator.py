"""
request_orchestrator.services.orchestrator

Public entry point for store actions.

Responsibilities:
- Wrap descriptor-returning actions: resolve the tracking key and delegate to the debouncer.
- Expose read-side helpers (status, batch statuses, clear).
- Record conflicts and retry them on request.
- Own the lifecycle of the injected HTTP client and tracing client.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, ParamSpec

import httpx
from opentelemetry import trace

from request_orchestrator.auth.tokens import TokenProvider, token_provider_from_settings
from request_orchestrator.errors import PreconditionError
from request_orchestrator.observability.logging import configure_logging, get_logger
from request_orchestrator.observability.tracing import TagsProvider, TracingEmitter
from request_orchestrator.settings import Settings
from request_orchestrator.tracking.conflicts import ConflictRegistry
from request_orchestrator.tracking.debouncer import RequestDebouncer
from request_orchestrator.tracking.descriptor import NOOP, RequestDescriptor
from request_orchestrator.tracking.keys import Discriminator, resolve_tracking_key
from request_orchestrator.tracking.results import RequestError, Result
from request_orchestrator.tracking.status import RequestRecord, RequestStatus, project
from request_orchestrator.transport.classifiers import DEFAULT_CLASSIFIERS, ResponseClassifier
from request_orchestrator.transport.http import HttpTransport, build_http_client
from request_orchestrator.transport.signals import ProxyTimeoutHandler, SignalDispatcher

log = get_logger(__name__)

P = ParamSpec("P")


class Orchestrator:
    def __init__(
        self,
        *,
        transport: HttpTransport,
        tracing: TracingEmitter,
        classifiers: Iterable[ResponseClassifier] = DEFAULT_CLASSIFIERS,
        signals: SignalDispatcher | None = None,
        artificial_delay_ms: int | None = None,
    ) -> None:
        self._transport = transport
        self._tracing = tracing
        self.signals = signals or SignalDispatcher()
        self.conflicts = ConflictRegistry(dispatch=self.run)
        self._debouncer = RequestDebouncer(
            transport=transport,
            tracing=tracing,
            classifiers=classifiers,
            signals=self.signals,
            artificial_delay_ms=artificial_delay_ms,
            on_conflict=self._record_conflict,
        )

    @property
    def debouncer(self) -> RequestDebouncer:
        return self._debouncer

    async def run(self, action_id: str, descriptor: RequestDescriptor) -> Result:
        if not isinstance(descriptor, RequestDescriptor):
            raise PreconditionError(
                f"action {action_id!r} must return a RequestDescriptor, got {type(descriptor).__name__}"
            )
        key = resolve_tracking_key(action_id, descriptor.key_by)
        return await self._debouncer.dispatch(key, descriptor, label=action_id)

    def action(
        self, action_id: str | None = None
    ) -> Callable[[Callable[P, Awaitable[Any]]], Callable[P, Awaitable[Result | None]]]:
        """
        Decorates an async store action returning a `RequestDescriptor` (or `NOOP`).
        The action id defaults to the function name.
        """

        def decorator(fn: Callable[P, Awaitable[Any]]) -> Callable[P, Awaitable[Result | None]]:
            name = action_id or fn.__name__
            if not inspect.iscoroutinefunction(fn):
                raise PreconditionError(f"api actions must be async - mark {name} as async")

            @functools.wraps(fn)
            async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result | None:
                descriptor = await fn(*args, **kwargs)
                if descriptor is NOOP:
                    return None
                return await self.run(name, descriptor)

            return wrapper

        return decorator

    # -- read side ---------------------------------------------------------------

    def get_status(self, action_id: str, *discriminators: Discriminator) -> RequestStatus:
        return project(self._debouncer.get(resolve_tracking_key(action_id, discriminators)))

    def get_statuses(
        self, action_id: str, discriminators: Iterable[Discriminator]
    ) -> dict[Discriminator, RequestStatus]:
        return {d: self.get_status(action_id, d) for d in discriminators}

    def clear_status(self, action_id: str, *discriminators: Discriminator) -> None:
        self._debouncer.drop(resolve_tracking_key(action_id, discriminators))

    # -- conflicts ---------------------------------------------------------------

    def _record_conflict(
        self, key: str, record: RequestRecord, descriptor: RequestDescriptor, error: RequestError
    ) -> None:
        self.conflicts.record(record.request_id, record.label or key, descriptor)

    async def retry_conflict(self, request_id: str) -> Result:
        return await self.conflicts.retry(request_id)

    # -- lifecycle ---------------------------------------------------------------

    async def aclose(self) -> None:
        await self._debouncer.drain()
        await self._transport.aclose()
        self._tracing.shutdown()
        log.info("orchestrator.closed")

    async def __aenter__(self) -> Orchestrator:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


def create_orchestrator(
    *,
    settings: Settings,
    token_provider: TokenProvider | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
    tracer_provider: trace.TracerProvider | None = None,
    tags: TagsProvider | Mapping[str, Any] | None = None,
    classifiers: Iterable[ResponseClassifier] = DEFAULT_CLASSIFIERS,
    proxy_timeout_redirect: Callable[[str], Any] | None = None,
    track_event: Callable[[str, dict[str, Any]], Any] | None = None,
    configure_logs: bool = False,
) -> Orchestrator:
    """
    Composition root: builds the http client, tracing client and signal wiring.
    Pass `configure_logs=True` when the orchestrator owns process logging.
    """

    if configure_logs:
        configure_logging(
            service_name=settings.service_name,
            level=settings.log_level,
            json_logs=settings.log_json,
        )

    if isinstance(tags, Mapping):
        tags = functools.partial(dict, tags)

    http = build_http_client(
        settings=settings,
        token_provider=token_provider or token_provider_from_settings(settings),
        transport=http_transport,
    )
    tracing = TracingEmitter(
        tracer_name=settings.tracer_name,
        tracer_provider=tracer_provider,
        tags=tags,
    )
    signals = SignalDispatcher()
    if proxy_timeout_redirect is not None:
        ProxyTimeoutHandler(
            redirect=proxy_timeout_redirect,
            track_event=track_event,
            delay_s=settings.proxy_timeout_redirect_delay_ms / 1000.0,
            path=settings.proxy_timeout_redirect_path,
        ).attach(signals)

    log.info("orchestrator.created", base_url=settings.api_base_url, env=settings.env)
    return Orchestrator(
        transport=HttpTransport(http=http),
        tracing=tracing,
        classifiers=classifiers,
        signals=signals,
        artificial_delay_ms=settings.artificial_delay_ms,
    )


# --- Module Notes -----------------------------------------------------------
# Context tags (e.g. {"workspace.id": ..., "change_set.id": ...}) are read at span
# creation time, so a callable provider sees context switches made by earlier requests.
