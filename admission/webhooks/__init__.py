"""Admission policy webhooks.

Each webhook is a flat, stateless implementation of `PolicyWebhook`; the registry
composes them into a URI -> webhook dispatcher at startup.
"""

from .base import DecodeFailure, PolicyWebhook, handle_review
from .registry import Dispatcher, DuplicateRouteError, WebhookRegistry, get_default_dispatcher

__all__ = [
    "DecodeFailure",
    "Dispatcher",
    "DuplicateRouteError",
    "PolicyWebhook",
    "WebhookRegistry",
    "get_default_dispatcher",
    "handle_review",
]
