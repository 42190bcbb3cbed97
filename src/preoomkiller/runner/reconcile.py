"""
reconcile.py
- One reconciliation pass over every opted-in pod:
    list -> parse threshold -> sum usage -> compare -> evict when usage > threshold
- Per-pod failures skip that pod only; a listing failure aborts the pass.
- Holds no state between passes apart from the process-wide counters below.
"""

from dataclasses import dataclass
from time import monotonic

from loguru import logger

from preoomkiller.core.errors import MetricsUnavailable, ThresholdInvalid
from preoomkiller.lib.eviction import EvictionOutcome, evict_pod
from preoomkiller.lib.quantity import format_bytes, parse_threshold

# --- Metrics ---
candidates_seen_total = 0
candidates_skipped_total = 0
evictions_total = 0
eviction_throttled_total = 0
eviction_failures_total = 0


@dataclass
class CycleResult:
    candidates: int = 0
    evicted: int = 0
    throttled: int = 0
    failed: int = 0
    skipped: int = 0
    within_threshold: int = 0
    duration_seconds: float = 0.0

    @property
    def evictions(self):
        return self.evicted

    def record(self, outcome):
        if outcome.handled:
            self.evicted += 1
        elif outcome is EvictionOutcome.THROTTLED:
            self.throttled += 1
        else:
            self.failed += 1


class Controller:
    """
    Evicts opted-in pods whose memory usage exceeds their declared threshold.

    Args:
        lister: Object with list_candidates() -> list[Candidate].
        metrics_source: Object with pod_memory_usage(namespace, name) -> Decimal bytes.
        evictor: Object with evict(namespace, name), used by evict_pod.
        label_key (str), label_value (str): The opt-in marker, matched exactly.
        dry_run (bool): Log evictions instead of issuing them.
    """

    def __init__(self, lister, metrics_source, evictor, label_key, label_value, dry_run=False):
        self.lister = lister
        self.metrics_source = metrics_source
        self.evictor = evictor
        self.label_key = label_key
        self.label_value = label_value
        self.dry_run = dry_run

    def run_once(self):
        """
        Run a single reconciliation pass.

        Returns:
            CycleResult: Counts for this pass.

        Raises:
            EnumerationFailure: If the candidate pods cannot be listed.
        """
        start_time = monotonic()
        result = CycleResult()

        candidates = self.lister.list_candidates()
        logger.info(f"[reconcile] Checking {len(candidates)} pod(s) for memory threshold violations...")

        for candidate in candidates:
            if not candidate.has_label(self.label_key, self.label_value):
                logger.debug(f"[reconcile] Ignoring {candidate}: missing {self.label_key}={self.label_value}")
                continue
            result.candidates += 1
            try:
                self.reconcile_candidate(candidate, result)
            except Exception as e:
                logger.exception(f"[reconcile] Unexpected error evaluating {candidate}: {e}")
                result.skipped += 1

        result.duration_seconds = monotonic() - start_time
        _record_totals(result)
        return result

    def reconcile_candidate(self, candidate, result):
        try:
            threshold = parse_threshold(candidate.threshold_annotation)
        except ThresholdInvalid as e:
            logger.warning(f"[reconcile] Skipping {candidate}: {e}")
            result.skipped += 1
            return
        logger.debug(f"[reconcile] Memory threshold for {candidate}: {format_bytes(threshold)}")

        try:
            usage = self.metrics_source.pod_memory_usage(candidate.namespace, candidate.name)
        except MetricsUnavailable as e:
            logger.warning(f"[reconcile] Skipping {candidate}: {e}")
            result.skipped += 1
            return

        if usage <= threshold:
            logger.debug(f"[reconcile] {candidate} within threshold ({format_bytes(usage)} <= {format_bytes(threshold)})")
            result.within_threshold += 1
            return

        logger.warning(
            f"[reconcile] {candidate} exceeds memory threshold ({format_bytes(usage)} > {format_bytes(threshold)}), evicting"
        )
        outcome = evict_pod(self.evictor, candidate, dry_run=self.dry_run)
        result.record(outcome)


def _record_totals(result):
    global candidates_seen_total, candidates_skipped_total, evictions_total
    global eviction_throttled_total, eviction_failures_total

    candidates_seen_total += result.candidates
    candidates_skipped_total += result.skipped
    evictions_total += result.evicted
    eviction_throttled_total += result.throttled
    eviction_failures_total += result.failed
