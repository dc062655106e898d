from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from admission.core.models import HookDescriptor
from admission.webhooks.base import PolicyWebhook, describe

logger = logging.getLogger(__name__)

WebhookFactory = Callable[[], PolicyWebhook]


class DuplicateRouteError(RuntimeError):
    """Two webhooks claim the same URI. A deployment error; the process must not start."""


@dataclass
class WebhookRegistry:
    """Name -> factory table, filled during initialization only; sealed once a Dispatcher is built from it."""

    factories: Dict[str, WebhookFactory] = field(default_factory=dict)
    _sealed: bool = field(default=False, init=False, repr=False)

    def register(self, name: str, factory: WebhookFactory) -> None:
        if self._sealed:
            raise RuntimeError(f"cannot register webhook {name!r}: registry already built")
        if name in self.factories:
            raise ValueError(f"webhook {name!r} is already registered")
        self.factories[name] = factory

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def names(self) -> List[str]:
        return list(self.factories)


class Dispatcher:
    """Immutable URI -> webhook table, one long-lived instance per registered name."""

    def __init__(self, hooks: Mapping[str, PolicyWebhook], names: Mapping[str, str]) -> None:
        self._hooks = MappingProxyType(dict(hooks))
        self._names = MappingProxyType(dict(names))

    @classmethod
    def from_registry(cls, registry: WebhookRegistry) -> "Dispatcher":
        registry.seal()
        hooks: Dict[str, PolicyWebhook] = {}
        names: Dict[str, str] = {}
        for name, factory in registry.factories.items():
            hook = factory()
            uri = hook.uri
            if uri in hooks:
                raise DuplicateRouteError(
                    f"Duplicate webhook {name!r} trying to listen on {uri} (owned by {names[uri]!r})"
                )
            hooks[uri] = hook
            names[uri] = name
            logger.info("Registered webhook %s at %s", name, uri)
        return cls(hooks, names)

    def get(self, uri: str) -> Optional[PolicyWebhook]:
        return self._hooks.get(uri)

    def all_routes(self) -> List[Tuple[str, PolicyWebhook]]:
        return list(self._hooks.items())

    def describe(self) -> List[HookDescriptor]:
        return [describe(hook) for hook in self._hooks.values()]


def _default_webhooks() -> Tuple[Tuple[str, WebhookFactory], ...]:
    # Explicit composition (single source of truth for what the server exposes).
    from admission.webhooks.group import WEBHOOK_NAME as GROUP, GroupWebhook
    from admission.webhooks.identity import WEBHOOK_NAME as IDENTITY, IdentityWebhook
    from admission.webhooks.namespace import WEBHOOK_NAME as NAMESPACE, NamespaceWebhook
    from admission.webhooks.regularuser import WEBHOOK_NAME as REGULAR_USER, RegularUserWebhook
    from admission.webhooks.subscription import WEBHOOK_NAME as SUBSCRIPTION, SubscriptionWebhook

    return (
        (NAMESPACE, NamespaceWebhook),
        (GROUP, GroupWebhook),
        (IDENTITY, IdentityWebhook),
        (REGULAR_USER, RegularUserWebhook),
        (SUBSCRIPTION, SubscriptionWebhook),
    )


def build_default_registry() -> WebhookRegistry:
    reg = WebhookRegistry()
    for name, factory in _default_webhooks():
        reg.register(name, factory)
    return reg


_DEFAULT_DISPATCHER: Dispatcher | None = None
_dispatcher_lock = threading.Lock()


def get_default_dispatcher() -> Dispatcher:
    global _DEFAULT_DISPATCHER
    if _DEFAULT_DISPATCHER is not None:
        return _DEFAULT_DISPATCHER
    with _dispatcher_lock:
        if _DEFAULT_DISPATCHER is None:
            _DEFAULT_DISPATCHER = Dispatcher.from_registry(build_default_registry())
        return _DEFAULT_DISPATCHER
