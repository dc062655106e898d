"""
CA bundle injection for ValidatingWebhookConfigurations.

Webhook configurations annotated with `<annotation>: <namespace>/<configmap>` get the
CA certificate from that ConfigMap's `service-ca.crt` embedded into every webhook's
clientConfig.caBundle. Runs are idempotent: nothing is patched when every embedded
bundle already matches.
"""

from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from admission.config import DEFAULT_CABUNDLE_ANNOTATION, DEFAULT_CABUNDLE_CONFIGMAP_KEY
from admission.providers.k8s_provider import K8sProvider, get_k8s_provider

logger = logging.getLogger(__name__)


class InjectionError(Exception):
    """A single registration could not be brought up to date."""

    def __init__(self, registration: str, message: str) -> None:
        super().__init__(f"{registration}: {message}")
        self.registration = registration


class MalformedAnnotation(InjectionError):
    pass


class SourceNotFound(InjectionError):
    pass


class MissingTrustField(InjectionError):
    pass


class PatchFailed(InjectionError):
    pass


@dataclass
class InjectionResult:
    examined: int = 0
    patched: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    faults: List[InjectionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.faults


def encode_ca_bundle(cert: str) -> str:
    """Trim, then base64 with the standard alphabet and no padding."""
    return base64.b64encode(cert.strip().encode("utf-8")).decode("ascii").rstrip("=")


def wire_ca_bundle(encoded: str) -> str:
    """
    caBundle is a byte field; on the wire (and in the python client) it is the standard
    base64 of the embedded bytes.
    """
    return base64.b64encode(encoded.encode("ascii")).decode("ascii")


def parse_annotation(registration: str, value: Optional[str]) -> Tuple[str, str]:
    parts = (value or "").split("/")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise MalformedAnnotation(registration, f"expected <namespace>/<configmap>, got {value!r}")
    return parts[0].strip(), parts[1].strip()


def _attr(obj: Any, *path: str) -> Any:
    cur = obj
    for p in path:
        if cur is None:
            return None
        cur = getattr(cur, p, None)
    return cur


class CertInjector:
    """Single-flight CA bundle synchronizer; overlapping `synchronize()` calls serialize."""

    def __init__(
        self,
        provider: Optional[K8sProvider] = None,
        *,
        annotation_key: str = DEFAULT_CABUNDLE_ANNOTATION,
        configmap_key: str = DEFAULT_CABUNDLE_CONFIGMAP_KEY,
    ) -> None:
        self._provider = provider or get_k8s_provider()
        self._lock = threading.Lock()
        self.annotation_key = annotation_key
        self.configmap_key = configmap_key

    def _get_ca_cert(self, registration: str, namespace: str, name: str) -> str:
        try:
            data = self._provider.read_config_map_data(namespace, name)
        except Exception as e:
            raise InjectionError(registration, f"couldn't read ConfigMap {namespace}/{name}: {e}") from e
        if data is None:
            raise SourceNotFound(registration, f"ConfigMap {namespace}/{name} not found")
        if self.configmap_key not in data:
            raise MissingTrustField(registration, f"no {self.configmap_key} found in ConfigMap {namespace}/{name}")
        return data[self.configmap_key]

    def _annotated_hooks(self) -> List[Any]:
        try:
            hooks = self._provider.list_validating_webhook_configurations()
        except Exception as e:
            raise InjectionError("*", f"couldn't list ValidatingWebhookConfigurations: {e}") from e
        return [h for h in hooks if self.annotation_key in (_attr(h, "metadata", "annotations") or {})]

    def _inject_one(self, hook: Any) -> bool:
        """Bring one configuration up to date. Returns True if a patch was issued."""
        name = _attr(hook, "metadata", "name") or ""
        source = (_attr(hook, "metadata", "annotations") or {}).get(self.annotation_key)
        namespace, configmap = parse_annotation(name, source)

        wire = wire_ca_bundle(encode_ca_bundle(self._get_ca_cert(name, namespace, configmap)))

        changed: List[Dict[str, Any]] = []
        for webhook in _attr(hook, "webhooks") or []:
            if _attr(webhook, "client_config", "ca_bundle") != wire:
                changed.append({"name": webhook.name, "clientConfig": {"caBundle": wire}})
        if not changed:
            return False

        body: Dict[str, Any] = {"webhooks": changed}
        resource_version = _attr(hook, "metadata", "resource_version")
        if resource_version:
            # Optimistic lock on the observed version.
            body["metadata"] = {"resourceVersion": resource_version}
        try:
            self._provider.patch_validating_webhook_configuration(name, body)
        except Exception as e:
            status = getattr(e, "status", None)
            what = "update conflict" if status == 409 else "patch failed"
            raise PatchFailed(name, f"{what}: {e}") from e
        logger.info("Injected CA bundle from %s/%s into %d webhook(s) of %s", namespace, configmap, len(changed), name)
        return True

    def synchronize(self) -> InjectionResult:
        """
        Inject CA bundles into every annotated ValidatingWebhookConfiguration.

        Registrations are independent: a fault in one is recorded and logged, and the rest
        are still processed. Only a failure to list registrations raises.
        """
        with self._lock:
            result = InjectionResult()
            for hook in self._annotated_hooks():
                result.examined += 1
                name = _attr(hook, "metadata", "name") or ""
                try:
                    if self._inject_one(hook):
                        result.patched.append(name)
                    else:
                        result.unchanged.append(name)
                except InjectionError as e:
                    logger.error("CA bundle injection skipped: %s", e)
                    result.faults.append(e)
            logger.info(
                "CA bundle sync: examined=%d patched=%d unchanged=%d faults=%d",
                result.examined,
                len(result.patched),
                len(result.unchanged),
                len(result.faults),
            )
            return result


def run_periodically(injector: CertInjector, interval_seconds: float, stop_event: threading.Event) -> int:
    """Call `synchronize()` every `interval_seconds` until `stop_event` is set. Returns the run count."""
    runs = 0
    while not stop_event.is_set():
        try:
            injector.synchronize()
        except InjectionError as e:
            logger.error("CA bundle sync failed: %s", e)
        runs += 1
        if stop_event.wait(max(1.0, float(interval_seconds))):
            break
    return runs
