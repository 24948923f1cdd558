"""
tests.test_descriptor

Request descriptors and target resolution.
"""

from __future__ import annotations

import pytest

from request_orchestrator.errors import PreconditionError
from request_orchestrator.tracking.descriptor import (
    Method,
    Placeholder,
    RequestDescriptor,
    describe_target,
)
from request_orchestrator.transport.http import FormData


def test_literal_target_is_used_as_is() -> None:
    assert describe_target("change_sets/list") == ("change_sets/list", "change_sets/list")


def test_segmented_target_builds_url_and_template() -> None:
    url, template = describe_target(
        ["v2", "change-sets", Placeholder("change_set_id", "cs-1"), "components", {"component_id": 42}]
    )
    assert url == "v2/change-sets/cs-1/components/42"
    assert template == "v2/change-sets/:change_set_id/components/:component_id"


@pytest.mark.parametrize("target", [None, "", []])
def test_missing_target_is_a_precondition_error(target) -> None:
    with pytest.raises(PreconditionError):
        describe_target(target)


def test_unbound_placeholder_is_a_precondition_error() -> None:
    with pytest.raises(PreconditionError):
        describe_target(["things", Placeholder("thing_id", None)])


def test_method_defaults_to_get_and_is_normalized() -> None:
    assert RequestDescriptor(target="x").method is Method.GET
    assert RequestDescriptor(target="x", method="post").method is Method.POST


def test_unknown_method_is_rejected() -> None:
    with pytest.raises(PreconditionError):
        RequestDescriptor(target="x", method="TRACE")


def test_scalar_key_by_becomes_a_tuple() -> None:
    assert RequestDescriptor(target="x", key_by="abc").key_by == ("abc",)
    assert RequestDescriptor(target="x", key_by=["a", 1]).key_by == ("a", 1)


def test_get_is_never_multipart() -> None:
    form = FormData(fields={"a": "b"})
    assert not RequestDescriptor(target="x", form_data=form).is_multipart
    assert RequestDescriptor(target="x", method="PUT", form_data=form).is_multipart
