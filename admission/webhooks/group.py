from __future__ import annotations

import re
from typing import List

from admission.core.groups import is_cluster_admin, is_sre_admin
from admission.core.models import ReviewDecision, ReviewRequest, RuleWithOperations, allowed, denied
from admission.webhooks.base import decode_payload

WEBHOOK_NAME = "group-validation"

PROTECTED_GROUPS_RE = re.compile(r"(^osd-sre.*|^dedicated-admins$|^cluster-admins$|^layered-cs-sre-admins$)")


class GroupWebhook:
    """Only SRE admins may change the groups that grant SRE/admin access."""

    name = WEBHOOK_NAME
    uri = "/group-validation"
    kind = "Group"
    timeout_seconds = 2
    side_effects = "None"
    match_policy = "Equivalent"

    def validate(self, request: ReviewRequest) -> bool:
        return bool(request.username) and request.resource_kind == self.kind

    def rules(self) -> List[RuleWithOperations]:
        return [
            RuleWithOperations(
                operations=["CREATE", "UPDATE", "DELETE"],
                api_groups=["user.openshift.io"],
                api_versions=["*"],
                resources=["groups"],
                scope="Cluster",
            )
        ]

    def failure_policy(self) -> str:
        return "Ignore"

    def authorize(self, request: ReviewRequest) -> ReviewDecision:
        if is_cluster_admin(request.username):
            return allowed("Cluster admins may access").for_request(request)

        group_name = decode_payload(request.authoritative_object()).metadata.name
        if PROTECTED_GROUPS_RE.search(group_name):
            if is_sre_admin(request.groups):
                return allowed("SRE admins may access protected groups").for_request(request)
            return denied(f"Protected group {group_name} may only be changed by SRE admins").for_request(request)

        return allowed("RBAC allowed").for_request(request)
