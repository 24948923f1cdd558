"""
request_orchestrator.tracking.descriptor

Immutable per-call request specification supplied by store actions.

Responsibilities:
- Define `RequestDescriptor` with its optional hooks (success, failure, context switch,
  optimistic mutation).
- Resolve literal or segmented targets into a concrete url and a low-cardinality
  url template used for span names.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from request_orchestrator.errors import PreconditionError
from request_orchestrator.tracking.keys import Discriminator
from request_orchestrator.transport.http import FormData

if TYPE_CHECKING:
    from request_orchestrator.tracking.results import RequestError


class Method(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class Placeholder:
    """
    A named url segment, e.g. `Placeholder("component_id", cid)` renders as the id in the
    url and as `:component_id` in the template.
    """

    name: str
    value: str | int | None


Segment = str | Placeholder | Mapping[str, Any]
Target = str | Sequence[Segment]

Rollback = Callable[[], Awaitable[None] | None]
OptimisticFn = Callable[[str], Rollback | None | Awaitable[Rollback | None]]
SuccessHook = Callable[[Any], Awaitable[None] | None]
FailureHook = Callable[["RequestError"], Any]
ContextSwitchHook = Callable[[str, Any], Awaitable[None] | None]


class _Noop:
    def __repr__(self) -> str:
        return "NOOP"


# Returned by an action that decides no request is needed.
NOOP = _Noop()


def _segment(segment: Segment, target: Target) -> tuple[str, str]:
    if isinstance(segment, str):
        return segment, segment
    if isinstance(segment, Placeholder):
        name, value = segment.name, segment.value
    elif isinstance(segment, Mapping) and segment:
        name, value = next(iter(segment.items()))
    else:
        raise PreconditionError(f"bad url segment {segment!r} in {target!r}")
    if value is None or value == "":
        raise PreconditionError(f"url placeholder {name!r} is unbound in {target!r}")
    return str(value), f":{name}"


def describe_target(target: Target | None) -> tuple[str, str]:
    """
    Returns `(url, url_template)`. A literal path is used as-is for both.
    """

    if isinstance(target, str):
        if not target:
            raise PreconditionError("url is required")
        return target, target
    if not target:
        raise PreconditionError("url is required")

    url: list[str] = []
    template: list[str] = []
    for segment in target:
        concrete, named = _segment(segment, target)
        url.append(concrete)
        template.append(named)
    return "/".join(url), "/".join(template)


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    target: Target
    method: Method = Method.GET
    # Querystring for GET, JSON body otherwise (querystring when `form_data` is the body).
    params: Mapping[str, Any] | None = None
    form_data: FormData | None = None
    key_by: tuple[Discriminator, ...] = ()

    on_success: SuccessHook | None = None
    # May return a replacement error body.
    on_failure: FailureHook | None = None
    on_context_switch: ContextSwitchHook | None = None
    # Called with the request id before the call; may return a rollback.
    optimistic: OptimisticFn | None = None

    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None
    conflict_statuses: frozenset[int] = frozenset({409})
    artificial_delay_ms: int | None = None

    def __post_init__(self) -> None:
        try:
            method = Method(str(self.method).upper())
        except ValueError as e:
            raise PreconditionError(f"unsupported method {self.method!r}") from e
        object.__setattr__(self, "method", method)

        key_by = self.key_by
        if key_by is None or isinstance(key_by, str | int | float | bool):
            key_by = (key_by,)
        object.__setattr__(self, "key_by", tuple(key_by))
        object.__setattr__(self, "conflict_statuses", frozenset(self.conflict_statuses))

    def describe(self) -> tuple[str, str]:
        return describe_target(self.target)

    @property
    def is_multipart(self) -> bool:
        return self.method is not Method.GET and self.form_data is not None


# --- Module Notes -----------------------------------------------------------
# Mapping segments (`{"change_set_id": cid}`) are accepted for callers that build
# targets from plain data; only the first item is used.
