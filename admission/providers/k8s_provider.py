"""Kubernetes API access for the CA bundle injector (ConfigMaps + ValidatingWebhookConfigurations)."""

import threading
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

_core_v1_api = None
_admissionregistration_v1_api = None
_config_loaded = False
_init_lock = threading.Lock()


@runtime_checkable
class K8sProvider(Protocol):
    def list_validating_webhook_configurations(self) -> List[Any]: ...

    def read_config_map_data(self, namespace: str, name: str) -> Optional[Dict[str, str]]: ...

    def patch_validating_webhook_configuration(self, name: str, body: Dict[str, Any]) -> Any: ...


class DefaultK8sProvider:
    def list_validating_webhook_configurations(self) -> List[Any]:
        return list_validating_webhook_configurations()

    def read_config_map_data(self, namespace: str, name: str) -> Optional[Dict[str, str]]:
        return read_config_map_data(namespace, name)

    def patch_validating_webhook_configuration(self, name: str, body: Dict[str, Any]) -> Any:
        return patch_validating_webhook_configuration(name, body)


def get_k8s_provider() -> K8sProvider:
    return DefaultK8sProvider()


def _load_config_once(config) -> None:  # type: ignore[no-untyped-def]
    """Load in-cluster config, falling back to kubeconfig for local runs. Caller holds _init_lock."""
    global _config_loaded
    if _config_loaded:
        return
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()
    _config_loaded = True


def _get_core_v1():
    """
    Return a cached CoreV1Api client.

    Both config loading (in-cluster or kubeconfig) and the API client object are cached,
    so repeated injector runs don't pay the initialization cost again.
    """
    global _core_v1_api

    if _core_v1_api is not None:
        return _core_v1_api

    with _init_lock:
        if _core_v1_api is not None:
            return _core_v1_api

        # Imported lazily: the webhook server never talks to the API server.
        from kubernetes import client, config

        _load_config_once(config)
        _core_v1_api = client.CoreV1Api()
        return _core_v1_api


def _get_admissionregistration_v1():
    """Return a cached AdmissionregistrationV1Api client (thread-safe lazy init)."""
    global _admissionregistration_v1_api
    if _admissionregistration_v1_api is not None:
        return _admissionregistration_v1_api

    with _init_lock:
        if _admissionregistration_v1_api is not None:
            return _admissionregistration_v1_api
        from kubernetes import client, config

        _load_config_once(config)
        _admissionregistration_v1_api = client.AdmissionregistrationV1Api()
        return _admissionregistration_v1_api


def list_validating_webhook_configurations() -> List[Any]:
    api = _get_admissionregistration_v1()
    return list(api.list_validating_webhook_configuration().items or [])


def read_config_map_data(namespace: str, name: str) -> Optional[Dict[str, str]]:
    """
    Read a ConfigMap's `data`.

    Returns None when the ConfigMap does not exist; other API errors propagate.
    """
    from kubernetes.client.rest import ApiException

    v1 = _get_core_v1()
    try:
        cm = v1.read_namespaced_config_map(name=name, namespace=namespace)
    except ApiException as e:
        if e.status == 404:
            return None
        raise
    return dict(cm.data or {})


def patch_validating_webhook_configuration(name: str, body: Dict[str, Any]) -> Any:
    """Strategic-merge patch; `webhooks` entries merge by name."""
    api = _get_admissionregistration_v1()
    return api.patch_validating_webhook_configuration(name=name, body=body)
