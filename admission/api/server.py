"""
Admission webhook server.

Exposes one POST route per registered webhook. Every request gets an AdmissionReview
answer with HTTP 200; policy denials and malformed requests are carried in
`response.allowed` / `response.status`, never as transport errors.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response

from admission.api.response import encode_review_response
from admission.config import load_config
from admission.webhooks.base import PolicyWebhook, handle_review
from admission.webhooks.registry import Dispatcher, get_default_dispatcher

logger = logging.getLogger(__name__)


def _make_endpoint(hook: PolicyWebhook):  # type: ignore[no-untyped-def]
    async def _endpoint(request: Request) -> Response:
        body = await request.body()
        decision, api_version = handle_review(hook, body, request.headers.get("content-type"))
        logger.debug(
            "%s uid=%s allowed=%s status=%s reason=%s",
            hook.name,
            decision.uid,
            decision.allowed,
            decision.http_status,
            decision.reason,
        )
        return Response(content=encode_review_response(decision, api_version), media_type="application/json")

    _endpoint.__name__ = f"review_{hook.name.replace('-', '_')}"
    return _endpoint


def create_app(dispatcher: Optional[Dispatcher] = None) -> FastAPI:
    dispatcher = dispatcher or get_default_dispatcher()
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Log all incoming HTTP requests."""
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
            raise

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"ok": True}

    for uri, hook in dispatcher.all_routes():
        app.add_api_route(uri, _make_endpoint(hook), methods=["POST"])
        logger.info("Listening: webhook=%s uri=%s", hook.name, uri)

    return app


app = create_app()


def run(
    host: str = "0.0.0.0",
    port: int = 5000,
    *,
    tls_cert: Optional[str] = None,
    tls_key: Optional[str] = None,
    ca_cert: Optional[str] = None,
) -> None:
    import uvicorn

    # Configure logging for the application
    log_level = load_config().log_level.upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    ssl_kwargs: Dict[str, Any] = {}
    if tls_cert or tls_key:
        if not (tls_cert and tls_key):
            raise ValueError("TLS requires both a certificate and a key")
        ssl_kwargs = {"ssl_certfile": tls_cert, "ssl_keyfile": tls_key}
        if ca_cert:
            ssl_kwargs["ssl_ca_certs"] = ca_cert

    logger.info(
        "Starting admission webhook server on %s:%d (tls=%s, log_level=%s)", host, port, bool(ssl_kwargs), log_level
    )
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level, **ssl_kwargs)
