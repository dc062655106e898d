"""Canonical admission models (single source of truth).

This file is the one place where we define the shapes shared across:
- decoding AdmissionReview requests (normalizer)
- policy evaluation (webhooks)
- encoding AdmissionReview responses
- registration metadata (registry descriptors)

Wire models accept camelCase aliases and ignore unknown fields, because the API
server sends more of the AdmissionRequest than any policy reads (dryRun, options, ...).
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ADMISSION_API_VERSION = "admission.k8s.io/v1beta1"

Operation = Literal["CREATE", "UPDATE", "DELETE", "CONNECT"]


class BaseModelWire(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GroupVersionKind(BaseModelWire):
    group: str = ""
    version: str = ""
    kind: str = ""


class GroupVersionResource(BaseModelWire):
    group: str = ""
    version: str = ""
    resource: str = ""


class UserInfo(BaseModelWire):
    username: str = ""
    uid: str = ""
    groups: List[str] = Field(default_factory=list)

    @field_validator("groups", mode="before")
    @classmethod
    def _null_groups(cls, v: Any) -> Any:
        # `groups: null` is common for service accounts with no extra groups.
        return [] if v is None else v


class ReviewRequest(BaseModelWire):
    uid: str = ""
    kind: GroupVersionKind = Field(default_factory=GroupVersionKind)
    resource: Optional[GroupVersionResource] = None
    name: str = ""
    namespace: str = ""
    operation: Operation
    user_info: UserInfo = Field(default_factory=UserInfo, alias="userInfo")
    object: Optional[Any] = None
    old_object: Optional[Any] = Field(default=None, alias="oldObject")

    @property
    def resource_kind(self) -> str:
        return self.kind.kind

    @property
    def username(self) -> str:
        return self.user_info.username

    @property
    def groups(self) -> List[str]:
        return self.user_info.groups

    def authoritative_object(self) -> Optional[Any]:
        """The payload a policy should look at: `oldObject` on DELETE, `object` otherwise."""
        if self.operation == "DELETE":
            return self.old_object
        return self.object


class AdmissionReviewRequest(BaseModelWire):
    api_version: str = Field(default=DEFAULT_ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = "AdmissionReview"
    request: Optional[ReviewRequest] = None


class ReviewDecision(BaseModel):
    model_config = ConfigDict(extra="forbid")

    uid: str = ""
    allowed: bool = False
    reason: str = ""
    # Only set on structural (errored) decisions.
    http_status: Optional[int] = None

    @property
    def errored(self) -> bool:
        return self.http_status is not None

    def for_request(self, request: ReviewRequest) -> "ReviewDecision":
        """Return a copy stamped with the request's correlation id."""
        return self.model_copy(update={"uid": request.uid})

    def to_admission_response(self) -> Dict[str, Any]:
        if self.http_status is not None:
            status: Dict[str, Any] = {"code": self.http_status, "message": self.reason}
        else:
            status = {"code": 200 if self.allowed else 403}
            if self.reason:
                status["reason"] = self.reason
        return {"uid": self.uid, "allowed": self.allowed, "status": status}


def allowed(reason: str = "") -> ReviewDecision:
    return ReviewDecision(allowed=True, reason=reason)


def denied(reason: str = "") -> ReviewDecision:
    return ReviewDecision(allowed=False, reason=reason)


def errored(code: int, err: Any) -> ReviewDecision:
    return ReviewDecision(allowed=False, reason=str(err), http_status=int(code))


class RuleWithOperations(BaseModelWire):
    operations: List[str]
    api_groups: List[str] = Field(alias="apiGroups")
    api_versions: List[str] = Field(default_factory=lambda: ["*"], alias="apiVersions")
    resources: List[str]
    scope: Literal["Cluster", "Namespaced", "*"] = "*"


class HookDescriptor(BaseModelWire):
    """Everything an external manifest generator needs to register one webhook."""

    name: str
    uri: str
    rules: List[RuleWithOperations] = Field(default_factory=list)
    failure_policy: Literal["Ignore", "Fail"] = Field(default="Ignore", alias="failurePolicy")
    timeout_seconds: int = Field(default=2, alias="timeoutSeconds")
    side_effects: str = Field(default="None", alias="sideEffects")
    match_policy: Literal["Exact", "Equivalent"] = Field(default="Equivalent", alias="matchPolicy")
