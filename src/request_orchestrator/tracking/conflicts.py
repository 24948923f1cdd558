"""
request_orchestrator.tracking.conflicts

Registry of requests that failed with a version conflict.

Responsibilities:
- Keep conflicted requests (by request id) until the caller retries or discards them.
- Re-dispatch the original descriptor, unchanged, on explicit retry.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime

from request_orchestrator.errors import UnknownConflictError
from request_orchestrator.observability.logging import get_logger
from request_orchestrator.tracking.descriptor import RequestDescriptor
from request_orchestrator.tracking.results import Result

log = get_logger(__name__)

Redispatch = Callable[[str, RequestDescriptor], Awaitable[Result]]


@dataclass(frozen=True, slots=True)
class ConflictEntry:
    request_id: str
    # Action id the request was issued under; retries are tracked under the same key.
    label: str
    descriptor: RequestDescriptor
    recorded_at: datetime


class ConflictRegistry:
    def __init__(self, *, dispatch: Redispatch) -> None:
        self._dispatch = dispatch
        self._entries: dict[str, ConflictEntry] = {}

    def record(self, request_id: str, label: str, descriptor: RequestDescriptor) -> ConflictEntry:
        entry = ConflictEntry(
            request_id=request_id,
            label=label,
            descriptor=descriptor,
            recorded_at=datetime.now(tz=UTC),
        )
        self._entries[request_id] = entry
        log.info("conflict.recorded", request_id=request_id, label=label)
        return entry

    def get(self, request_id: str) -> ConflictEntry | None:
        return self._entries.get(request_id)

    def entries(self) -> list[ConflictEntry]:
        return list(self._entries.values())

    def discard(self, request_id: str) -> bool:
        return self._entries.pop(request_id, None) is not None

    async def retry(self, request_id: str) -> Result:
        # Removed before re-dispatch: a retry that conflicts again registers a new entry
        # under its own request id.
        entry = self._entries.pop(request_id, None)
        if entry is None:
            raise UnknownConflictError(request_id)
        log.info("conflict.retry", request_id=request_id, label=entry.label)
        return await self._dispatch(entry.label, entry.descriptor)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))


# --- Module Notes -----------------------------------------------------------
# Entries never expire on their own.
