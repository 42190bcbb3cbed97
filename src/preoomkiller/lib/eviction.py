"""
eviction.py
- Issues graceful evictions through the policy/v1 Eviction subresource.
- Classifies every attempt into an EvictionOutcome:
    - SUCCEEDED     — the API accepted the eviction (or dry-run)
    - ALREADY_GONE  — 404, the pod no longer exists; counted as handled
    - THROTTLED     — 429, a PodDisruptionBudget or rate limit blocks it; next cycle retries
    - FAILED        — anything else; logged and left for the next cycle
- Never retries within a call.
"""

from enum import Enum

from kubernetes import client
from kubernetes.client.exceptions import ApiException
from loguru import logger


class EvictionOutcome(Enum):
    SUCCEEDED = "succeeded"
    ALREADY_GONE = "already_gone"
    THROTTLED = "throttled"
    FAILED = "failed"

    @property
    def handled(self):
        return self in (EvictionOutcome.SUCCEEDED, EvictionOutcome.ALREADY_GONE)


class PodEvictor:
    """Posts Eviction objects with the API server's default delete options."""

    def __init__(self, core_api, request_timeout=None):
        self.core_api = core_api
        self.request_timeout = request_timeout

    def evict(self, namespace, name):
        body = client.V1Eviction(
            api_version="policy/v1",
            kind="Eviction",
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
            delete_options=client.V1DeleteOptions(),
        )
        self.core_api.create_namespaced_pod_eviction(
            name,
            namespace,
            body,
            _request_timeout=self.request_timeout,
        )


def evict_pod(evictor, candidate, dry_run=False):
    """
    Attempt one eviction and classify the result.

    Args:
        evictor: Object with evict(namespace, name), e.g. PodEvictor.
        candidate (Candidate): Pod to evict.
        dry_run (bool): Skip the API call and report SUCCEEDED.

    Returns:
        EvictionOutcome
    """
    if dry_run:
        logger.info(f"[evict] Dry-run: would evict pod {candidate}")
        return EvictionOutcome.SUCCEEDED

    try:
        evictor.evict(candidate.namespace, candidate.name)
    except ApiException as e:
        if e.status == 429:
            logger.warning(f"[evict] Eviction of {candidate} throttled (ignoring until next cycle): {e.reason}")
            return EvictionOutcome.THROTTLED
        if e.status == 404:
            logger.info(f"[evict] Pod {candidate} not found when evicting, already gone")
            return EvictionOutcome.ALREADY_GONE
        logger.error(f"[evict] Error evicting pod {candidate}: {e.status} {e.reason}")
        return EvictionOutcome.FAILED
    except Exception as e:
        logger.error(f"[evict] Error evicting pod {candidate}: {e}")
        return EvictionOutcome.FAILED

    logger.warning(f"[evict] Evicted pod {candidate}")
    return EvictionOutcome.SUCCEEDED
