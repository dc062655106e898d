from __future__ import annotations

from typing import List

import pytest

from admission.core.models import ReviewDecision, ReviewRequest, RuleWithOperations, allowed
from admission.webhooks.registry import (
    Dispatcher,
    DuplicateRouteError,
    WebhookRegistry,
    build_default_registry,
    get_default_dispatcher,
)


class _EchoHook:
    kind = "Thing"

    def __init__(self, name: str, uri: str) -> None:
        self.name = name
        self.uri = uri

    def validate(self, request: ReviewRequest) -> bool:
        return True

    def authorize(self, request: ReviewRequest) -> ReviewDecision:
        return allowed("echo").for_request(request)

    def rules(self) -> List[RuleWithOperations]:
        return []

    def failure_policy(self) -> str:
        return "Fail"


def test_default_registry_has_all_webhooks() -> None:
    reg = build_default_registry()
    assert reg.names() == [
        "namespace-validation",
        "group-validation",
        "identity-validation",
        "regular-user-validation",
        "subscription-validation",
    ]


def test_default_dispatcher_routes() -> None:
    dispatcher = get_default_dispatcher()
    uris = sorted(uri for uri, _ in dispatcher.all_routes())
    assert uris == [
        "/group-validation",
        "/identity-validation",
        "/namespace-validation",
        "/regular-user-validation",
        "/subscription-validation",
    ]
    assert dispatcher.get("/group-validation").name == "group-validation"
    assert dispatcher.get("/nope") is None
    # Cached process-wide.
    assert get_default_dispatcher() is dispatcher


def test_factories_invoked_once_per_name() -> None:
    calls: List[str] = []

    def _factory(name: str, uri: str):  # type: ignore[no-untyped-def]
        def _make() -> _EchoHook:
            calls.append(name)
            return _EchoHook(name, uri)

        return _make

    reg = WebhookRegistry()
    reg.register("a", _factory("a", "/a"))
    reg.register("b", _factory("b", "/b"))
    dispatcher = Dispatcher.from_registry(reg)

    assert calls == ["a", "b"]
    assert dispatcher.get("/a") is dispatcher.get("/a")


def test_duplicate_route_is_fatal() -> None:
    reg = WebhookRegistry()
    reg.register("first", lambda: _EchoHook("first", "/same"))
    reg.register("second", lambda: _EchoHook("second", "/same"))
    with pytest.raises(DuplicateRouteError) as ei:
        Dispatcher.from_registry(reg)
    assert "/same" in str(ei.value)
    assert "second" in str(ei.value)


def test_duplicate_name_rejected() -> None:
    reg = WebhookRegistry()
    reg.register("a", lambda: _EchoHook("a", "/a"))
    with pytest.raises(ValueError):
        reg.register("a", lambda: _EchoHook("a", "/other"))


def test_route_table_is_immutable() -> None:
    reg = WebhookRegistry()
    reg.register("a", lambda: _EchoHook("a", "/a"))
    dispatcher = Dispatcher.from_registry(reg)
    with pytest.raises(TypeError):
        dispatcher._hooks["/b"] = _EchoHook("b", "/b")  # type: ignore[index]


def test_describe_exposes_stable_registration_fields() -> None:
    descriptors = {d.name: d for d in get_default_dispatcher().describe()}

    identity = descriptors["identity-validation"]
    assert identity.uri == "/identity-validation"
    assert identity.failure_policy == "Ignore"
    assert identity.match_policy == "Exact"
    assert identity.timeout_seconds == 2
    assert identity.rules[0].resources == ["identities"]
    assert identity.rules[0].scope == "Cluster"

    regular = descriptors["regular-user-validation"]
    assert len(regular.rules) == 4
    assert regular.rules[0].operations == ["*"]
    assert "machine.openshift.io" in regular.rules[0].api_groups

    dumped = identity.model_dump(mode="json", by_alias=True)
    assert set(dumped) >= {"name", "uri", "rules", "failurePolicy"}
    assert dumped["rules"][0]["apiGroups"] == ["user.openshift.io"]


def test_describe_custom_hook_defaults() -> None:
    reg = WebhookRegistry()
    reg.register("a", lambda: _EchoHook("a", "/a"))
    (desc,) = Dispatcher.from_registry(reg).describe()
    assert desc.failure_policy == "Fail"
    assert desc.timeout_seconds == 2
    assert desc.side_effects == "None"


def test_registration_closes_once_dispatcher_is_built() -> None:
    reg = WebhookRegistry()
    reg.register("a", lambda: _EchoHook("a", "/a"))
    assert not reg.sealed

    dispatcher = Dispatcher.from_registry(reg)
    assert reg.sealed
    with pytest.raises(RuntimeError, match="already built"):
        reg.register("late", lambda: _EchoHook("late", "/late"))

    assert reg.names() == ["a"]
    assert dispatcher.get("/late") is None
