"""CA bundle injection into ValidatingWebhookConfigurations (runs outside the request path)."""

from admission.certinjector.inject import (
    CertInjector,
    InjectionError,
    InjectionResult,
    MalformedAnnotation,
    MissingTrustField,
    PatchFailed,
    SourceNotFound,
    run_periodically,
)

__all__ = [
    "CertInjector",
    "InjectionError",
    "InjectionResult",
    "MalformedAnnotation",
    "MissingTrustField",
    "PatchFailed",
    "SourceNotFound",
    "run_periodically",
]
