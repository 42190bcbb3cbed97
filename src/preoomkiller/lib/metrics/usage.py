"""
usage.py
- Reads pod memory usage from the metrics.k8s.io API (metrics-server).
- Sums per-container readings into one byte count per pod.
"""

from decimal import Decimal

from kubernetes.client.exceptions import ApiException
from loguru import logger

from preoomkiller.core.constants import METRICS_GROUP, METRICS_PLURAL, METRICS_VERSION
from preoomkiller.core.errors import MetricsUnavailable
from preoomkiller.lib.quantity import format_bytes, to_bytes


def sum_memory_usage(containers):
    """
    Sum the memory usage of every container in a PodMetrics object.

    Args:
        containers (list[dict]): The "containers" list of a PodMetrics object.

    Returns:
        Decimal: Total usage in bytes. Zero when no container has reported yet.

    Raises:
        MetricsUnavailable: If a container reports a malformed memory reading.
    """
    total = Decimal(0)
    for container in containers or []:
        name = container.get("name", "unknown")
        usage = container.get("usage") or {}
        memory = usage.get("memory")
        if memory is None:
            logger.debug(f"[metrics] Container {name} has no memory reading yet")
            continue
        try:
            total += to_bytes(memory)
        except ValueError as e:
            raise MetricsUnavailable(f"container {name} reported unusable memory usage: {e}") from None
        logger.debug(f"[metrics] Container metrics for {name}: {usage.get('cpu', '?')} (cpu), {memory} (mem)")
    return total


class PodMetricsSource:
    """Fetches PodMetrics through CustomObjectsApi."""

    def __init__(self, custom_api, request_timeout=None):
        self.custom_api = custom_api
        self.request_timeout = request_timeout

    def get_pod_metrics(self, namespace, name):
        try:
            return self.custom_api.get_namespaced_custom_object(
                group=METRICS_GROUP,
                version=METRICS_VERSION,
                namespace=namespace,
                plural=METRICS_PLURAL,
                name=name,
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                raise MetricsUnavailable(f"no metrics reported yet for {namespace}/{name}") from None
            raise MetricsUnavailable(f"metrics API error for {namespace}/{name}: {e.status} {e.reason}") from None
        except Exception as e:
            raise MetricsUnavailable(f"metrics API unreachable for {namespace}/{name}: {e}") from e

    def pod_memory_usage(self, namespace, name):
        pod_metrics = self.get_pod_metrics(namespace, name) or {}
        usage = sum_memory_usage(pod_metrics.get("containers"))
        logger.debug(f"[metrics] Pod memory usage for {namespace}/{name}: {format_bytes(usage)}")
        return usage
