"""
Pytest config.

Pins the repo root on sys.path so `import admission` works when a global `pytest`
entrypoint is used without installing the project, and provides AdmissionReview
builders shared by the webhook tests.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


def build_review(
    *,
    uid: str = "test-uid",
    kind: str = "Namespace",
    username: str = "test-user",
    groups: Optional[List[str]] = None,
    operation: str = "CREATE",
    obj: Optional[Dict[str, Any]] = None,
    old_obj: Optional[Dict[str, Any]] = None,
    api_version: str = "admission.k8s.io/v1beta1",
) -> Dict[str, Any]:
    request: Dict[str, Any] = {
        "uid": uid,
        "kind": {"group": "", "version": "v1", "kind": kind},
        "resource": {"group": "", "version": "v1", "resource": kind.lower() + "s"},
        "operation": operation,
        "userInfo": {"username": username, "groups": groups if groups is not None else []},
    }
    if obj is not None:
        request["object"] = obj
    if old_obj is not None:
        request["oldObject"] = old_obj
    return {"apiVersion": api_version, "kind": "AdmissionReview", "request": request}


def named_object(name: str, namespace: str = "", **extra: Any) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"name": name, "uid": "obj-uid", "creationTimestamp": "2020-05-10T07:51:00Z"}
    if namespace:
        meta["namespace"] = namespace
    out: Dict[str, Any] = {"metadata": meta}
    out.update(extra)
    return out


@pytest.fixture
def review_body() -> Callable[..., bytes]:
    def _body(**kwargs: Any) -> bytes:
        return json.dumps(build_review(**kwargs)).encode("utf-8")

    return _body


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep cluster-specific overrides from leaking into tests."""
    monkeypatch.delenv("SUBSCRIPTION_VALIDATION_NAMESPACES", raising=False)
    from admission.config import load_config

    load_config.cache_clear()
