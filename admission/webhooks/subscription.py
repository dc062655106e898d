from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from admission.config import load_config
from admission.core.groups import is_dedicated_admin
from admission.core.models import ReviewDecision, ReviewRequest, RuleWithOperations, allowed, denied
from admission.webhooks.base import decode_payload

logger = logging.getLogger(__name__)

WEBHOOK_NAME = "subscription-validation"


class SubscriptionWebhook:
    """Dedicated admins may only manage Subscriptions in safelisted namespaces."""

    name = WEBHOOK_NAME
    uri = "/subscription-validation"
    kind = "Subscription"
    timeout_seconds = 2
    side_effects = "None"
    match_policy = "Equivalent"

    def __init__(self, safelisted_namespaces: Optional[Iterable[str]] = None) -> None:
        if safelisted_namespaces is None:
            safelisted_namespaces = load_config().subscription_namespaces
        self.safelisted_namespaces = frozenset(safelisted_namespaces)

    def validate(self, request: ReviewRequest) -> bool:
        return bool(request.username) and request.resource_kind == self.kind

    def rules(self) -> List[RuleWithOperations]:
        return [
            RuleWithOperations(
                operations=["CREATE", "UPDATE", "DELETE"],
                api_groups=["operators.coreos.com"],
                api_versions=["*"],
                resources=["subscriptions"],
                scope="Namespaced",
            )
        ]

    def failure_policy(self) -> str:
        return "Ignore"

    def authorize(self, request: ReviewRequest) -> ReviewDecision:
        if not is_dedicated_admin(request.groups):
            return allowed("RBAC allowed").for_request(request)

        sub = decode_payload(request.authoritative_object()).metadata
        # Objects created through the API may omit metadata.namespace; the request has it.
        namespace = sub.namespace or request.namespace
        logger.info(
            "Checking if dedicated admin %s can %s a Subscription (name=%s) in namespace %s (safelisted=%s)",
            request.username,
            request.operation,
            sub.name,
            namespace,
            sorted(self.safelisted_namespaces),
        )
        if namespace in self.safelisted_namespaces:
            return allowed("Dedicated-admin may access").for_request(request)
        return denied("Dedicated-admins may not access").for_request(request)
