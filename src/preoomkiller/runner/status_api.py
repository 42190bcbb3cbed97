"""
status_api.py
- Small FastAPI app served next to the controller loop:
    - /healthz  liveness, 503 once the loop stops attempting cycles
    - /metrics  Prometheus text exposition of the controller counters
- Runs uvicorn in a daemon thread so it never holds up shutdown.
"""

import time
from threading import Thread

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from preoomkiller import __version__
from preoomkiller.core.constants import STALE_AFTER_INTERVALS
from preoomkiller.runner import reconcile, scheduler


def create_app(interval, dry_run=False, started_at=None):
    api = FastAPI(title="preoomkiller", version=__version__)
    started_at = time.time() if started_at is None else started_at
    stale_after = interval * STALE_AFTER_INTERVALS

    @api.get("/healthz")
    async def health():
        now = time.time()
        # liveness follows attempted cycles: a failing API must not get the controller restarted
        age = now - (scheduler.last_cycle_attempted_at or started_at)
        success_age = now - (scheduler.last_cycle_completed_at or started_at)
        body = {
            "status": "ok" if age <= stale_after else "stale",
            "cycles_total": scheduler.cycles_total,
            "cycle_errors_total": scheduler.cycle_errors_total,
            "seconds_since_last_cycle": round(age, 3),
            "seconds_since_last_successful_cycle": round(success_age, 3),
            "dry_run": dry_run,
        }
        return JSONResponse(body, status_code=200 if body["status"] == "ok" else 503)

    @api.get("/metrics")
    async def metrics():
        return PlainTextResponse(
            f"""# HELP preoomkiller_cycles_total Total completed reconciliation cycles
# TYPE preoomkiller_cycles_total counter
preoomkiller_cycles_total {scheduler.cycles_total}
# HELP preoomkiller_cycle_errors_total Total cycles aborted by an error
# TYPE preoomkiller_cycle_errors_total counter
preoomkiller_cycle_errors_total {scheduler.cycle_errors_total}
# HELP preoomkiller_last_cycle_duration_seconds Duration of the last cycle in seconds
# TYPE preoomkiller_last_cycle_duration_seconds gauge
preoomkiller_last_cycle_duration_seconds {scheduler.last_cycle_duration_seconds}
# HELP preoomkiller_last_cycle_timestamp_seconds Unix time the last cycle completed
# TYPE preoomkiller_last_cycle_timestamp_seconds gauge
preoomkiller_last_cycle_timestamp_seconds {scheduler.last_cycle_completed_at}
# HELP preoomkiller_candidates_total Total opted-in pods evaluated
# TYPE preoomkiller_candidates_total counter
preoomkiller_candidates_total {reconcile.candidates_seen_total}
# HELP preoomkiller_candidates_skipped_total Pods skipped for a bad threshold or missing metrics
# TYPE preoomkiller_candidates_skipped_total counter
preoomkiller_candidates_skipped_total {reconcile.candidates_skipped_total}
# HELP preoomkiller_evictions_total Evictions issued (including pods already gone)
# TYPE preoomkiller_evictions_total counter
preoomkiller_evictions_total {reconcile.evictions_total}
# HELP preoomkiller_eviction_throttled_total Evictions refused with 429 and deferred
# TYPE preoomkiller_eviction_throttled_total counter
preoomkiller_eviction_throttled_total {reconcile.eviction_throttled_total}
# HELP preoomkiller_eviction_failures_total Evictions that failed for any other reason
# TYPE preoomkiller_eviction_failures_total counter
preoomkiller_eviction_failures_total {reconcile.eviction_failures_total}
""",
            media_type="text/plain",
        )

    return api


def start_api(app, port, host="0.0.0.0"):
    def serve():
        uvicorn.run(app, host=host, port=port, log_level="warning")

    thread = Thread(target=serve, name="status-api", daemon=True)
    thread.start()
    logger.info(f"[api] Serving /healthz and /metrics on {host}:{port}")
    return thread
