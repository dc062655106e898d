from __future__ import annotations

import json
import logging

from admission.core.models import DEFAULT_ADMISSION_API_VERSION, ReviewDecision, errored

logger = logging.getLogger(__name__)


def review_response_dict(decision: ReviewDecision, api_version: str = DEFAULT_ADMISSION_API_VERSION) -> dict:
    return {
        "apiVersion": api_version or DEFAULT_ADMISSION_API_VERSION,
        "kind": "AdmissionReview",
        "response": decision.to_admission_response(),
    }


def encode_review_response(decision: ReviewDecision, api_version: str = DEFAULT_ADMISSION_API_VERSION) -> bytes:
    """
    Serialize a decision into an AdmissionReview response body.

    If encoding fails, fall back to a generic internal-error decision (same uid) so the
    API server always gets an answer it can correlate.
    """
    try:
        return json.dumps(review_response_dict(decision, api_version)).encode("utf-8")
    except (TypeError, ValueError) as e:
        logger.exception("Failed to encode AdmissionReview response (uid=%s)", decision.uid)
        fallback = errored(500, f"failed to encode response: {e}").model_copy(update={"uid": decision.uid})
        return json.dumps(review_response_dict(fallback, DEFAULT_ADMISSION_API_VERSION)).encode("utf-8")
