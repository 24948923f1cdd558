"""
request_orchestrator.transport.signals

Fan-out of service-level signals produced by the classifiers.

Responsibilities:
- Let the host subscribe to outage/maintenance/proxy-timeout signals (toasts, banners...).
- Provide the default proxy-timeout reaction: track a telemetry event, then redirect
  after a short delay so the event has a chance to be sent.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from request_orchestrator.observability.logging import get_logger
from request_orchestrator.transport.classifiers import ServiceSignal

log = get_logger(__name__)

PROXY_TIMEOUT_EVENT = "api_404_timeout"


@dataclass(frozen=True, slots=True)
class SignalEvent:
    signal: ServiceSignal
    status_code: int
    url: str
    body: Any


SignalListener = Callable[[SignalEvent], Awaitable[None] | None]


class SignalDispatcher:
    def __init__(self) -> None:
        self._listeners: dict[ServiceSignal, list[SignalListener]] = defaultdict(list)

    def subscribe(self, signal: ServiceSignal, listener: SignalListener) -> None:
        self._listeners[signal].append(listener)

    async def emit(self, event: SignalEvent) -> None:
        log.info(f"signal.{event.signal.value}", status_code=event.status_code, url=event.url)
        for listener in list(self._listeners.get(event.signal, ())):
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                # A broken banner/toast listener must not change the request's outcome.
                log.exception("signal.listener_failed", signal=event.signal.value)


class ProxyTimeoutHandler:
    def __init__(
        self,
        *,
        redirect: Callable[[str], Any],
        track_event: Callable[[str, dict[str, Any]], Any] | None = None,
        delay_s: float = 0.5,
        path: str = "/oops",
    ) -> None:
        self._redirect = redirect
        self._track_event = track_event
        self._delay_s = delay_s
        self._path = path
        self._pending: set[asyncio.TimerHandle] = set()
        self._redirects: set[asyncio.Future[Any]] = set()

    def attach(self, dispatcher: SignalDispatcher) -> None:
        dispatcher.subscribe(ServiceSignal.PROXY_TIMEOUT, self)

    async def __call__(self, event: SignalEvent) -> None:
        if self._track_event is not None:
            outcome = self._track_event(PROXY_TIMEOUT_EVENT, {"url": event.url})
            if inspect.isawaitable(outcome):
                await outcome
        log.info("signal.proxy_timeout.redirect_scheduled", path=self._path, delay_s=self._delay_s)

        def fire() -> None:
            self._pending.discard(handle)
            outcome = self._redirect(self._path)
            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(outcome)
                self._redirects.add(task)
                task.add_done_callback(self._redirect_done)

        handle = asyncio.get_running_loop().call_later(self._delay_s, fire)
        self._pending.add(handle)

    def _redirect_done(self, task: asyncio.Future[Any]) -> None:
        self._redirects.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error(
                "signal.proxy_timeout.redirect_failed",
                path=self._path,
                exc_info=task.exception(),
            )

    @property
    def pending(self) -> int:
        return len(self._pending) + len(self._redirects)

    def cancel(self) -> None:
        for handle in self._pending:
            handle.cancel()
        for task in list(self._redirects):
            task.cancel()
        self._pending.clear()


# --- Module Notes -----------------------------------------------------------
# Listeners run after the response is classified and before caller hooks, so a banner
# can be shown even if the caller never inspects the result.
