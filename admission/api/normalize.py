"""
AdmissionReview request decoding.

Turns a raw HTTP body + Content-Type into a `ReviewRequest`. Pure: no I/O, no logging
of request payloads (they can contain Secrets).
"""

from __future__ import annotations

import json
from typing import Any, Optional, Tuple

from pydantic import ValidationError

from admission.core.models import (
    DEFAULT_ADMISSION_API_VERSION,
    AdmissionReviewRequest,
    ReviewDecision,
    ReviewRequest,
)

VALID_CONTENT_TYPE = "application/json"


class MalformedRequest(Exception):
    """The HTTP request could not be decoded into an AdmissionReview request."""

    def __init__(self, message: str, *, uid: str = "", api_version: str = DEFAULT_ADMISSION_API_VERSION) -> None:
        super().__init__(message)
        self.uid = uid
        self.api_version = api_version


def _salvage(payload: Any) -> Tuple[str, str]:
    """Best-effort (uid, apiVersion) from a payload that failed validation."""
    if not isinstance(payload, dict):
        return "", DEFAULT_ADMISSION_API_VERSION
    api_version = payload.get("apiVersion")
    if not isinstance(api_version, str) or not api_version:
        api_version = DEFAULT_ADMISSION_API_VERSION
    req = payload.get("request")
    uid = req.get("uid") if isinstance(req, dict) else None
    return (uid if isinstance(uid, str) else ""), api_version


def parse_review_request(
    body: Optional[bytes], content_type: Optional[str]
) -> Tuple[ReviewRequest, ReviewDecision, str]:
    """
    Decode an AdmissionReview body.

    Returns (request, empty decision stamped with the request uid, apiVersion).
    Raises MalformedRequest for nil/empty bodies, a wrong content type, or anything
    that is not an AdmissionReview carrying a request.
    """
    if body is None:
        raise MalformedRequest("request body is nil")
    if len(body) == 0:
        raise MalformedRequest("request body is empty")

    decode_error: Optional[Exception] = None
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        payload, decode_error = None, e
    uid, api_version = _salvage(payload)

    if content_type != VALID_CONTENT_TYPE:
        raise MalformedRequest(
            f"contentType={content_type or ''}, expected {VALID_CONTENT_TYPE}",
            uid=uid,
            api_version=api_version,
        )
    if decode_error is not None:
        raise MalformedRequest(f"couldn't decode AdmissionReview: {decode_error}") from decode_error

    if not isinstance(payload, dict):
        raise MalformedRequest("couldn't decode AdmissionReview: not an object")
    if payload.get("kind") not in (None, "AdmissionReview"):
        raise MalformedRequest(
            f"couldn't decode AdmissionReview: unexpected kind {payload.get('kind')!r}",
            uid=uid,
            api_version=api_version,
        )

    try:
        review = AdmissionReviewRequest.model_validate(payload)
    except ValidationError as e:
        raise MalformedRequest(f"couldn't decode AdmissionReview: {e}", uid=uid, api_version=api_version) from e

    if review.request is None:
        raise MalformedRequest("AdmissionReview has no request", uid=uid, api_version=api_version)

    return review.request, ReviewDecision(uid=review.request.uid), review.api_version
