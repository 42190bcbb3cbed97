#!/usr/bin/env python3
"""
main.py
- Wires the controller together and runs it.
- Sets up:
    - Loguru logging (coloured text or JSON lines)
    - Optional Sentry error reporting (SENTRY_DSN)
    - Kubernetes API handles and the startup reachability check
    - /healthz and /metrics status API in a background thread
    - SIGTERM/SIGINT handling for cooperative shutdown
"""

import os
import sys

import sentry_sdk
from loguru import logger

from preoomkiller import __version__
from preoomkiller.core.errors import ConfigError
from preoomkiller.core.kube_client import build_clients, wait_for_api
from preoomkiller.lib.eviction import PodEvictor
from preoomkiller.lib.metrics.usage import PodMetricsSource
from preoomkiller.lib.pods import PodLister
from preoomkiller.runner.reconcile import Controller
from preoomkiller.runner.scheduler import Scheduler, install_signal_handlers
from preoomkiller.runner.status_api import create_app, start_api

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(debug=False, log_json=False):
    logger.remove()
    level = "DEBUG" if debug else "INFO"
    if log_json:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, colorize=True, format=LOG_FORMAT)


def init_sentry(dsn=None):
    dsn = dsn or os.getenv("SENTRY_DSN")
    if not dsn:
        return False
    sentry_sdk.init(dsn=dsn, release=f"preoomkiller@{__version__}", traces_sample_rate=0.0)
    logger.info("[main] Sentry error reporting enabled")
    return True


def build_controller(settings, clients):
    lister = PodLister(
        clients.core,
        settings.label_selector,
        settings.threshold_annotation,
        namespace=settings.namespace,
        request_timeout=settings.request_timeout,
    )
    metrics_source = PodMetricsSource(clients.custom, request_timeout=settings.request_timeout)
    evictor = PodEvictor(clients.core, request_timeout=settings.request_timeout)
    return Controller(
        lister,
        metrics_source,
        evictor,
        settings.label_key,
        settings.label_value,
        dry_run=settings.dry_run,
    )


def run(settings, command="run"):
    """
    Run the controller.

    Args:
        settings (Settings): Resolved configuration.
        command (str): "run" loops until a shutdown signal, "once" runs one cycle.

    Returns:
        int: Process exit status.
    """
    configure_logging(settings.debug, settings.log_json)
    init_sentry()

    logger.info(
        f"[main] preoomkiller {__version__} starting "
        f"(selector={settings.label_selector}, namespace={settings.namespace or '<all>'}, dry_run={settings.dry_run})"
    )

    try:
        clients = build_clients(settings)
    except ConfigError as e:
        logger.error(f"[main] {e}")
        return 2

    try:
        wait_for_api(clients, settings.request_timeout)
    except Exception as e:
        logger.warning(f"[main] API server not reachable yet ({e}); cycles will keep trying")

    scheduler = Scheduler(build_controller(settings, clients), settings.interval)

    if command == "once":
        return 0 if scheduler.tick() is not None else 1

    if settings.api_port:
        start_api(create_app(settings.interval, dry_run=settings.dry_run), settings.api_port)

    install_signal_handlers(scheduler)
    scheduler.run()
    return 0


if __name__ == "__main__":
    from preoomkiller.cli.entrypoint import main as cli_main

    sys.exit(cli_main())
