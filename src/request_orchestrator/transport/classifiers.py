"""
request_orchestrator.transport.classifiers

Pluggable response classifiers.

Responsibilities:
- Map response status classes to service-level signals the host can react to.
- Isolate the proxy-timeout heuristic (404 + non-JSON content type) so it can be swapped
  without touching the debouncer.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import Protocol

import httpx


class ServiceSignal(StrEnum):
    SERVER_ERROR = "server_error"
    UNSCHEDULED_DOWNTIME = "unscheduled_downtime"
    MAINTENANCE = "maintenance"
    PROXY_TIMEOUT = "proxy_timeout"


class ResponseClassifier(Protocol):
    def classify(self, response: httpx.Response) -> ServiceSignal | None: ...


class OutageClassifier:
    _by_status = {
        500: ServiceSignal.SERVER_ERROR,
        502: ServiceSignal.UNSCHEDULED_DOWNTIME,
        503: ServiceSignal.MAINTENANCE,
        504: ServiceSignal.UNSCHEDULED_DOWNTIME,
    }

    def classify(self, response: httpx.Response) -> ServiceSignal | None:
        return self._by_status.get(response.status_code)


class ProxyTimeoutClassifier:
    """
    A reverse proxy that gives up on the upstream answers 404 with its own HTML page;
    the API itself always answers JSON.
    """

    def classify(self, response: httpx.Response) -> ServiceSignal | None:
        if response.status_code != 404:
            return None
        media_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        if media_type == "application/json":
            return None
        return ServiceSignal.PROXY_TIMEOUT


DEFAULT_CLASSIFIERS: tuple[ResponseClassifier, ...] = (
    ProxyTimeoutClassifier(),
    OutageClassifier(),
)


def classify_response(
    response: httpx.Response, classifiers: Iterable[ResponseClassifier]
) -> ServiceSignal | None:
    for classifier in classifiers:
        signal = classifier.classify(response)
        if signal is not None:
            return signal
    return None


# --- Module Notes -----------------------------------------------------------
# First non-None signal wins, so order matters when classifiers overlap.
