from __future__ import annotations

from typing import List

from pydantic import ConfigDict, Field

from admission.core.groups import CLUSTER_ADMIN_USERS, is_sre_admin
from admission.core.models import ReviewDecision, ReviewRequest, RuleWithOperations, allowed, denied
from admission.webhooks.base import ObjectFragment, decode_payload

WEBHOOK_NAME = "identity-validation"
DEFAULT_IDENTITY_PROVIDER = "OpenShift_SRE"

PRIVILEGED_USERS = CLUSTER_ADMIN_USERS | {"system:serviceaccount:openshift-authentication:oauth-openshift"}


class IdentityObject(ObjectFragment):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    provider_name: str = Field(default="", alias="providerName")


class IdentityWebhook:
    """Identities from the SRE identity provider may only be changed by SRE admins."""

    name = WEBHOOK_NAME
    uri = "/identity-validation"
    kind = "Identity"
    timeout_seconds = 2
    side_effects = "None"
    match_policy = "Exact"

    def validate(self, request: ReviewRequest) -> bool:
        return bool(request.username) and request.resource_kind == self.kind

    def rules(self) -> List[RuleWithOperations]:
        return [
            RuleWithOperations(
                operations=["UPDATE", "CREATE", "DELETE"],
                api_groups=["user.openshift.io"],
                api_versions=["*"],
                resources=["identities"],
                scope="Cluster",
            )
        ]

    def failure_policy(self) -> str:
        return "Ignore"

    def authorize(self, request: ReviewRequest) -> ReviewDecision:
        identity = decode_payload(request.authoritative_object(), IdentityObject)

        if request.username in PRIVILEGED_USERS:
            return allowed("Allowed").for_request(request)

        if identity.provider_name == DEFAULT_IDENTITY_PROVIDER:
            if is_sre_admin(request.groups):
                return allowed("SRE admins may access").for_request(request)
            return denied("Permission denied").for_request(request)

        return allowed("Allowed by RBAC").for_request(request)
