from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from admission.api.normalize import MalformedRequest, parse_review_request
from admission.core.models import (
    HookDescriptor,
    ReviewDecision,
    ReviewRequest,
    RuleWithOperations,
    errored,
)

logger = logging.getLogger(__name__)

_P = TypeVar("_P", bound=BaseModel)


class DecodeFailure(Exception):
    """The request's object payload does not have the shape the webhook expects."""


class PolicyWebhook(Protocol):
    """
    Admission webhook contract.

    Webhooks are:
    - stateless across requests and immutable after construction (safe for concurrent callers)
    - pure: `authorize` is a function of the decoded request only (no outbound calls)
    """

    name: str
    uri: str
    kind: str

    def validate(self, request: ReviewRequest) -> bool:
        """Return True if the request is well-formed for this webhook."""

    def authorize(self, request: ReviewRequest) -> ReviewDecision:
        """Return the allow/deny decision, stamped with the request uid."""

    def rules(self) -> List[RuleWithOperations]:
        """Resources/operations the webhook should be registered for."""

    def failure_policy(self) -> str:
        """What the API server should do if the webhook is unreachable (Ignore/Fail)."""


class _Metadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    namespace: str = ""


class ObjectFragment(BaseModel):
    """The part of any Kubernetes object most webhooks care about."""

    model_config = ConfigDict(extra="ignore")

    metadata: _Metadata = Field(default_factory=_Metadata)


def decode_payload(raw: Optional[Any], model: Type[_P] = ObjectFragment) -> _P:  # type: ignore[assignment]
    if raw is None:
        raise DecodeFailure("request carries no object to decode")
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise DecodeFailure(f"couldn't decode {model.__name__}: {e}") from e


def describe(hook: PolicyWebhook) -> HookDescriptor:
    return HookDescriptor(
        name=hook.name,
        uri=hook.uri,
        rules=hook.rules(),
        failure_policy=hook.failure_policy(),
        timeout_seconds=getattr(hook, "timeout_seconds", 2),
        side_effects=getattr(hook, "side_effects", "None"),
        match_policy=getattr(hook, "match_policy", "Equivalent"),
    )


def handle_review(
    hook: PolicyWebhook, body: Optional[bytes], content_type: Optional[str]
) -> Tuple[ReviewDecision, str]:
    """
    Run one AdmissionReview through a webhook: decode, validate, authorize.

    Never raises; every failure becomes an errored decision carrying whatever uid could
    be recovered. Returns (decision, apiVersion to echo back).
    """
    try:
        request, _, api_version = parse_review_request(body, content_type)
    except MalformedRequest as e:
        logger.error("%s: error parsing HTTP request body: %s", hook.name, e)
        return errored(400, e).model_copy(update={"uid": e.uid}), e.api_version

    if not hook.validate(request):
        kind = getattr(hook, "kind", "") or "object"
        return errored(400, f"Could not parse {kind} from request").for_request(request), api_version

    try:
        decision = hook.authorize(request)
    except DecodeFailure as e:
        logger.error("%s: couldn't decode object from request uid=%s: %s", hook.name, request.uid, e)
        return errored(400, e).for_request(request), api_version
    except Exception as e:
        logger.exception("%s: unexpected error authorizing request uid=%s", hook.name, request.uid)
        return errored(500, f"internal error: {e}").for_request(request), api_version

    return decision.for_request(request), api_version
