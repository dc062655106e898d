from __future__ import annotations

import pytest

from admission.webhooks.base import handle_review
from admission.webhooks.identity import IdentityWebhook
from conftest import named_object


def _identity(provider: str) -> dict:
    return named_object(f"{provider}:someone", providerName=provider, providerUserName="someone")


def _review_identity(  # type: ignore[no-untyped-def]
    review_body, *, provider: str, username: str, groups=None, operation: str = "UPDATE"
):
    obj = _identity(provider)
    kwargs = {"obj": obj} if operation != "DELETE" else {"old_obj": obj}
    body = review_body(
        uid="id-1", kind="Identity", username=username, groups=groups or [], operation=operation, **kwargs
    )
    decision, _ = handle_review(IdentityWebhook(), body, "application/json")
    return decision


@pytest.mark.parametrize(
    "username",
    ["kube:admin", "system:admin", "system:serviceaccount:openshift-authentication:oauth-openshift"],
)
def test_privileged_users_allowed_for_sre_provider(review_body, username) -> None:  # type: ignore[no-untyped-def]
    d = _review_identity(review_body, provider="OpenShift_SRE", username=username)
    assert d.allowed is True
    assert d.uid == "id-1"


@pytest.mark.parametrize("operation", ["CREATE", "UPDATE", "DELETE"])
def test_sre_provider_requires_admin_group(review_body, operation) -> None:  # type: ignore[no-untyped-def]
    d = _review_identity(
        review_body, provider="OpenShift_SRE", username="test-user", groups=["dedicated-admins"], operation=operation
    )
    assert d.allowed is False
    assert d.reason == "Permission denied"

    d = _review_identity(
        review_body, provider="OpenShift_SRE", username="test-user", groups=["osd-sre-admins"], operation=operation
    )
    assert d.allowed is True


def test_other_providers_left_to_rbac(review_body) -> None:  # type: ignore[no-untyped-def]
    d = _review_identity(review_body, provider="github", username="test-user", groups=["dedicated-admins"])
    assert d.allowed is True
    assert d.reason == "Allowed by RBAC"


def test_identity_undecodable_object_is_bad_request(review_body) -> None:  # type: ignore[no-untyped-def]
    body = review_body(uid="id-bad", kind="Identity", obj={"metadata": {"name": "x"}, "providerName": 42})
    decision, _ = handle_review(IdentityWebhook(), body, "application/json")
    assert decision.uid == "id-bad"
    assert decision.http_status == 400
