from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List

DEFAULT_SUBSCRIPTION_NAMESPACE = "openshift-marketplace"
DEFAULT_CABUNDLE_ANNOTATION = "managed.openshift.io/inject-cabundle-from"
DEFAULT_CABUNDLE_CONFIGMAP_KEY = "service-ca.crt"


@dataclass(frozen=True)
class WebhookConfig:
    # Logging
    log_level: str

    # Server
    host: str
    port: int

    # Subscription webhook: namespaces dedicated admins may manage Subscriptions in
    subscription_namespaces: List[str]

    # CA bundle injection
    cabundle_annotation: str
    cabundle_configmap_key: str


def _split_csv(raw: str) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_subscription_namespaces() -> List[str]:
    """
    Namespaces in which dedicated admins may change Subscriptions.

    Unset means the single marketplace namespace. When the variable is set, its
    comma-separated value replaces the default entirely (an empty value therefore
    safelists nothing).
    """
    raw = os.getenv("SUBSCRIPTION_VALIDATION_NAMESPACES")
    if raw is None:
        return [DEFAULT_SUBSCRIPTION_NAMESPACE]
    return _split_csv(raw)


@lru_cache(maxsize=1)
def load_config() -> WebhookConfig:
    """
    Load webhook configuration from environment variables (ConfigMap friendly).

    Recognized vars:
    - LOG_LEVEL=info
    - WEBHOOK_HOST=0.0.0.0
    - WEBHOOK_PORT=5000
    - SUBSCRIPTION_VALIDATION_NAMESPACES=openshift-marketplace,my-ns
    - CABUNDLE_ANNOTATION=managed.openshift.io/inject-cabundle-from
    - CABUNDLE_CONFIGMAP_KEY=service-ca.crt
    """
    return WebhookConfig(
        log_level=(os.getenv("LOG_LEVEL", "") or "info").strip().lower() or "info",
        host=(os.getenv("WEBHOOK_HOST", "") or "0.0.0.0").strip() or "0.0.0.0",
        port=_env_int("WEBHOOK_PORT", 5000),
        subscription_namespaces=load_subscription_namespaces(),
        cabundle_annotation=(os.getenv("CABUNDLE_ANNOTATION", "") or "").strip() or DEFAULT_CABUNDLE_ANNOTATION,
        cabundle_configmap_key=(os.getenv("CABUNDLE_CONFIGMAP_KEY", "") or "").strip()
        or DEFAULT_CABUNDLE_CONFIGMAP_KEY,
    )
