"""
tests.test_conflicts

Conflict detection and explicit retry.
"""

from __future__ import annotations

import pytest

from request_orchestrator.errors import UnknownConflictError
from request_orchestrator.tracking.descriptor import RequestDescriptor
from request_orchestrator.tracking.results import Failure, FailureKind
from tests.conftest import Reply


def _update(**overrides) -> RequestDescriptor:
    values = {"target": "components/c-1", "method": "PUT", "params": {"name": "x", "version": 3}}
    values.update(overrides)
    return RequestDescriptor(**values)


@pytest.mark.asyncio
async def test_409_is_registered_and_retry_reexecutes(orchestrator, backend) -> None:
    backend.script(
        "PUT",
        "/components/c-1",
        Reply(status=409, body={"error": {"message": "stale version", "type": "Conflict"}}),
        Reply(body={"name": "x"}),
    )

    result = await orchestrator.run("UPDATE_COMPONENT", _update())

    assert isinstance(result, Failure)
    assert result.status_code == 409
    assert result.err.kind is FailureKind.CONFLICT
    assert result.request_id in orchestrator.conflicts
    entry = orchestrator.conflicts.get(result.request_id)
    assert entry.label == "UPDATE_COMPONENT"

    retried = await orchestrator.retry_conflict(result.request_id)

    assert retried.success
    assert result.request_id not in orchestrator.conflicts
    assert len(orchestrator.conflicts) == 0
    calls = backend.calls_to("PUT", "/components/c-1")
    assert len(calls) == 2
    assert calls[1].json() == {"name": "x", "version": 3}
    assert orchestrator.get_status("UPDATE_COMPONENT").is_success


@pytest.mark.asyncio
async def test_retry_that_conflicts_again_gets_a_new_entry(orchestrator, backend) -> None:
    backend.script("PUT", "/components/c-1", Reply(status=409, body={}))

    first = await orchestrator.run("UPDATE_COMPONENT", _update())
    second = await orchestrator.retry_conflict(first.request_id)

    assert isinstance(second, Failure)
    assert list(orchestrator.conflicts) == [second.request_id]


@pytest.mark.asyncio
async def test_descriptor_can_mark_other_statuses_as_conflicts(orchestrator, backend) -> None:
    backend.script("PUT", "/components/c-1", Reply(status=412, body={}))

    result = await orchestrator.run("UPDATE_COMPONENT", _update(conflict_statuses={409, 412}))

    assert result.err.is_conflict
    assert result.request_id in orchestrator.conflicts


@pytest.mark.asyncio
async def test_plain_bad_request_is_not_registered(orchestrator, backend) -> None:
    backend.script("PUT", "/components/c-1", Reply(status=400, body={}))

    result = await orchestrator.run("UPDATE_COMPONENT", _update())

    assert result.err.kind is FailureKind.HTTP
    assert len(orchestrator.conflicts) == 0


@pytest.mark.asyncio
async def test_entries_stay_until_discarded(orchestrator, backend) -> None:
    backend.script("PUT", "/components/c-1", Reply(status=409, body={}))

    result = await orchestrator.run("UPDATE_COMPONENT", _update())
    await orchestrator.run("UPDATE_COMPONENT", _update(params={"name": "y"}))

    assert result.request_id in orchestrator.conflicts
    assert len(orchestrator.conflicts) == 2
    assert orchestrator.conflicts.discard(result.request_id)
    assert not orchestrator.conflicts.discard(result.request_id)


@pytest.mark.asyncio
async def test_retry_of_unknown_request_raises(orchestrator) -> None:
    with pytest.raises(UnknownConflictError):
        await orchestrator.retry_conflict("nope")


@pytest.mark.asyncio
async def test_conflict_is_registered_when_failure_hook_raises(orchestrator, backend) -> None:
    backend.script("PUT", "/components/c-1", Reply(status=409, body={"error": {"message": "stale version"}}))
    rolled_back: list[str] = []

    def on_failure(err) -> None:
        raise RuntimeError("toast failed")

    result = await orchestrator.run(
        "UPDATE_COMPONENT",
        _update(on_failure=on_failure, optimistic=lambda rid: (lambda: rolled_back.append(rid))),
    )

    assert isinstance(result, Failure)
    assert result.err.kind is FailureKind.CONFLICT
    assert result.err_body == {"error": {"message": "stale version"}}
    assert result.request_id in orchestrator.conflicts
    assert rolled_back == [result.request_id]
    assert orchestrator.get_status("UPDATE_COMPONENT").error_message == "stale version"
