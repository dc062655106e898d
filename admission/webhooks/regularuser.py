from __future__ import annotations

import logging
from typing import List

from admission.core.groups import UNAUTHENTICATED_USER, is_sre_admin
from admission.core.models import ReviewDecision, ReviewRequest, RuleWithOperations, allowed, denied

logger = logging.getLogger(__name__)

WEBHOOK_NAME = "regular-user-validation"

_RULES = [
    RuleWithOperations(
        operations=["*"],
        api_groups=[
            "autoscaling.openshift.io",
            "cloudcredential.openshift.io",
            "machine.openshift.io",
            "admissionregistration.k8s.io",
            "cloudingress.managed.openshift.io",
            "veleros.managed.openshift.io",
        ],
        api_versions=["*"],
        resources=["*/*"],
        scope="*",
    ),
    RuleWithOperations(
        operations=["*"],
        api_groups=["config.openshift.io"],
        api_versions=["*"],
        resources=["clusterversions", "clusterversions/status"],
        scope="*",
    ),
    RuleWithOperations(
        operations=["*"],
        api_groups=[""],
        api_versions=["*"],
        resources=["nodes", "nodes/*"],
        scope="*",
    ),
    RuleWithOperations(
        operations=["*"],
        api_groups=["managed.openshift.io"],
        api_versions=["*"],
        resources=["subjectpermissions", "subjectpermissions/*"],
        scope="*",
    ),
]


class RegularUserWebhook:
    """
    Keep regular users away from platform-managed resources.

    Unlike the other webhooks this one is registered for many resource kinds, so
    structural validation only requires a username.
    """

    name = WEBHOOK_NAME
    uri = "/regular-user-validation"
    kind = ""
    timeout_seconds = 2
    side_effects = "None"
    match_policy = "Equivalent"

    def validate(self, request: ReviewRequest) -> bool:
        return bool(request.username)

    def rules(self) -> List[RuleWithOperations]:
        return list(_RULES)

    def failure_policy(self) -> str:
        return "Ignore"

    def authorize(self, request: ReviewRequest) -> ReviewDecision:
        if request.username == UNAUTHENTICATED_USER:
            # An unauthenticated user should have no permissions at all; reaching the
            # webhook points at an RBAC misconfiguration.
            logger.warning(
                "%s made a webhook request (uid=%s kind=%s operation=%s). Check RBAC rules",
                UNAUTHENTICATED_USER,
                request.uid,
                request.resource_kind,
                request.operation,
            )
            return denied("Unauthenticated").for_request(request)

        if request.username.startswith("kube:"):
            return allowed("Cluster-internal user").for_request(request)

        if is_sre_admin(request.groups):
            return allowed("SRE admins may access").for_request(request)

        return denied("Denied").for_request(request)
