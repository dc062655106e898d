from __future__ import annotations

import logging
import re
from typing import List

from admission.core.groups import is_cluster_admin, is_sre_admin
from admission.core.models import ReviewDecision, ReviewRequest, RuleWithOperations, allowed, denied
from admission.webhooks.base import decode_payload

logger = logging.getLogger(__name__)

WEBHOOK_NAME = "namespace-validation"

PRIVILEGED_NAMESPACE_RE = re.compile(r"(^kube.*|^openshift.*|^default$|^redhat.*)")
# Service accounts put their namespace in the group name: system:serviceaccounts:<ns>
PRIVILEGED_SERVICE_ACCOUNTS_RE = re.compile(r"^system:serviceaccounts:(kube.*|openshift.*|default|redhat.*)")
LAYERED_PRODUCT_NAMESPACE_RE = re.compile(r"^redhat.*")
LAYERED_PRODUCT_ADMIN_GROUP = "layered-sre-cluster-admins"


class NamespaceWebhook:
    """Protect kube*, openshift*, default and redhat* namespaces from non-admins."""

    name = WEBHOOK_NAME
    uri = "/namespace-validation"
    kind = "Namespace"
    timeout_seconds = 2
    side_effects = "None"
    match_policy = "Equivalent"

    def validate(self, request: ReviewRequest) -> bool:
        return bool(request.username) and request.resource_kind == self.kind

    def rules(self) -> List[RuleWithOperations]:
        return [
            RuleWithOperations(
                operations=["CREATE", "UPDATE", "DELETE"],
                api_groups=[""],
                api_versions=["*"],
                resources=["namespaces"],
                scope="Cluster",
            )
        ]

    def failure_policy(self) -> str:
        return "Ignore"

    def authorize(self, request: ReviewRequest) -> ReviewDecision:
        ns_name = decode_payload(request.authoritative_object()).metadata.name

        # Deliberately broad: a privileged service account may touch any namespace,
        # not just its own. RBAC is what actually restricts it.
        for group in request.groups:
            if PRIVILEGED_SERVICE_ACCOUNTS_RE.search(group):
                return allowed("Privileged service accounts may access").for_request(request)

        # Must come before the privileged namespace check: redhat* is also privileged.
        if LAYERED_PRODUCT_ADMIN_GROUP in request.groups and LAYERED_PRODUCT_NAMESPACE_RE.search(ns_name):
            return allowed("Layered product admins may access").for_request(request)

        if PRIVILEGED_NAMESPACE_RE.search(ns_name):
            if is_cluster_admin(request.username) or is_sre_admin(request.groups):
                return allowed("Cluster and SRE admins may access").for_request(request)
            logger.info(
                "Denied %s on privileged namespace %s for user %s", request.operation, ns_name, request.username
            )
            return denied("Non-admin access attempt to privileged namespace").for_request(request)

        return allowed("RBAC allowed").for_request(request)
