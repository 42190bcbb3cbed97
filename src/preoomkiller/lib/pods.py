"""
pods.py
- Lists opted-in pods and turns them into immutable Candidate records.
- Listing is the only step whose failure aborts a whole cycle.
"""

from dataclasses import dataclass, field

from loguru import logger

from preoomkiller.core.errors import EnumerationFailure


@dataclass(frozen=True)
class Candidate:
    name: str
    namespace: str
    labels: dict = field(default_factory=dict, compare=False, hash=False)
    threshold_annotation: str = None

    def __str__(self):
        return f"{self.namespace}/{self.name}"

    def has_label(self, key, value):
        return self.labels.get(key) == value


def candidate_from_pod(pod, threshold_annotation):
    metadata = pod.metadata
    annotations = metadata.annotations or {}
    return Candidate(
        name=metadata.name,
        namespace=metadata.namespace,
        labels=dict(metadata.labels or {}),
        threshold_annotation=annotations.get(threshold_annotation),
    )


class PodLister:
    """Lists pods matching the opt-in label selector, cluster-wide or in one namespace."""

    def __init__(self, core_api, label_selector, threshold_annotation, namespace="", request_timeout=None):
        self.core_api = core_api
        self.label_selector = label_selector
        self.threshold_annotation = threshold_annotation
        self.namespace = namespace
        self.request_timeout = request_timeout

    def list_candidates(self):
        try:
            if self.namespace:
                pod_list = self.core_api.list_namespaced_pod(
                    self.namespace,
                    label_selector=self.label_selector,
                    _request_timeout=self.request_timeout,
                )
            else:
                pod_list = self.core_api.list_pod_for_all_namespaces(
                    label_selector=self.label_selector,
                    _request_timeout=self.request_timeout,
                )
        except Exception as e:
            raise EnumerationFailure(f"listing pods for label selector {self.label_selector} failed: {e}") from e

        candidates = [candidate_from_pod(pod, self.threshold_annotation) for pod in pod_list.items]
        logger.debug(f"[pods] {len(candidates)} pod(s) matched {self.label_selector}")
        return candidates
