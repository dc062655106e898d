#!/usr/bin/env python3
"""
Admission validation webhooks - server, CA bundle injector, and hook listing.
"""

import argparse
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

logger = logging.getLogger(__name__)

#
# NOTE: Keep admission imports lazy (inside functions) so `--inject-cabundle` does not
# build the webhook app and `--serve-webhook` does not import the kubernetes client.
#


def list_hooks() -> None:
    """Print every registered webhook's registration descriptor as JSON."""
    from admission.webhooks.registry import get_default_dispatcher

    hooks = [d.model_dump(mode="json", by_alias=True) for d in get_default_dispatcher().describe()]
    print(json.dumps(hooks, indent=2, sort_keys=False))


def inject_cabundle(interval: float = 0.0) -> int:
    """Run the CA bundle injector once, or forever when `interval` > 0. Returns an exit code."""
    import threading

    from admission.certinjector import CertInjector, InjectionError, run_periodically
    from admission.config import load_config

    cfg = load_config()
    injector = CertInjector(annotation_key=cfg.cabundle_annotation, configmap_key=cfg.cabundle_configmap_key)

    if interval > 0:
        stop = threading.Event()
        try:
            run_periodically(injector, interval, stop)
        except KeyboardInterrupt:
            stop.set()
        return 0

    try:
        result = injector.synchronize()
    except InjectionError as e:
        logger.error("CA bundle injection failed: %s", e)
        return 1
    return 0 if result.ok else 1


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Admission validation webhooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve all webhooks over TLS
  python main.py --serve-webhook --port 5000 --tls-cert tls.crt --tls-key tls.key

  # Inject the service CA into annotated ValidatingWebhookConfigurations once
  python main.py --inject-cabundle

  # Show registration details for every webhook
  python main.py --list-hooks
        """,
    )

    parser.add_argument("--serve-webhook", action="store_true", help="Run the admission webhook HTTP server")
    parser.add_argument(
        "--inject-cabundle",
        action="store_true",
        help="Inject CA bundles into ValidatingWebhookConfigurations annotated for injection",
    )
    parser.add_argument(
        "--inject-interval",
        type=float,
        default=0.0,
        metavar="SECONDS",
        help="With --inject-cabundle: keep re-running every SECONDS (default: run once)",
    )
    parser.add_argument("--list-hooks", action="store_true", help="Print registered webhooks as JSON and exit")
    parser.add_argument("--host", default=None, help="Webhook server bind host (default: WEBHOOK_HOST or 0.0.0.0)")
    parser.add_argument(
        "--port", type=int, default=None, help="Webhook server listen port (default: WEBHOOK_PORT or 5000)"
    )
    parser.add_argument("--tls-cert", help="TLS certificate file")
    parser.add_argument("--tls-key", help="TLS key file")
    parser.add_argument("--ca-cert", help="CA certificate file")

    args = parser.parse_args()

    try:
        if args.list_hooks:
            list_hooks()
            return

        if args.inject_cabundle:
            sys.exit(inject_cabundle(args.inject_interval))

        if args.serve_webhook:
            from admission.api.server import run as run_webhook
            from admission.config import load_config

            cfg = load_config()
            run_webhook(
                host=args.host or cfg.host,
                port=args.port or cfg.port,
                tls_cert=args.tls_cert,
                tls_key=args.tls_key,
                ca_cert=args.ca_cert,
            )
            return

        parser.print_help()
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
