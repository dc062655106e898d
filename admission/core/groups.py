"""Well-known users and groups shared by several webhooks."""

from __future__ import annotations

from typing import Iterable

DEDICATED_ADMIN_GROUP = "dedicated-admins"

# Users that are cluster admins regardless of group membership.
CLUSTER_ADMIN_USERS = frozenset({"kube:admin", "system:admin"})

# SRE admin groups; treated as fully privileged for infrastructure objects.
SRE_ADMIN_GROUPS = frozenset({"osd-sre-admins", "osd-sre-cluster-admins"})

UNAUTHENTICATED_USER = "system:unauthenticated"


def is_dedicated_admin(groups: Iterable[str]) -> bool:
    return DEDICATED_ADMIN_GROUP in set(groups or [])


def in_any_group(groups: Iterable[str], wanted: Iterable[str]) -> bool:
    wanted_set = set(wanted)
    return any(g in wanted_set for g in (groups or []))


def is_sre_admin(groups: Iterable[str]) -> bool:
    return in_any_group(groups, SRE_ADMIN_GROUPS)


def is_cluster_admin(username: str) -> bool:
    return username in CLUSTER_ADMIN_USERS
