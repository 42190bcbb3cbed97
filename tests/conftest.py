import pytest
from loguru import logger

from preoomkiller.core.constants import DEFAULT_THRESHOLD_ANNOTATION
from preoomkiller.lib.pods import Candidate
from preoomkiller.lib.quantity import to_bytes
from preoomkiller.runner import reconcile, scheduler

ELIGIBLE = {"preoomkiller-enabled": "true"}


def make_candidate(name, threshold, namespace="default", labels=None):
    return Candidate(
        name=name,
        namespace=namespace,
        labels=dict(ELIGIBLE if labels is None else labels),
        threshold_annotation=threshold,
    )


class FakeLister:
    def __init__(self, candidates=(), error=None):
        self.candidates = list(candidates)
        self.error = error
        self.calls = 0

    def list_candidates(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.candidates)


class FakeMetrics:
    """Usage keyed by pod name: a quantity string or an exception to raise."""

    def __init__(self, usage):
        self.usage = dict(usage)
        self.calls = []

    def pod_memory_usage(self, namespace, name):
        self.calls.append((namespace, name))
        value = self.usage[name]
        if isinstance(value, Exception):
            raise value
        return to_bytes(value)


class FakeEvictor:
    """Records evictions; `errors` maps pod name to an exception or a list consumed per call."""

    def __init__(self, errors=None):
        self.errors = dict(errors or {})
        self.calls = []

    def evict(self, namespace, name):
        self.calls.append((namespace, name))
        error = self.errors.get(name)
        if isinstance(error, list):
            error = error.pop(0) if error else None
        if error is not None:
            raise error


class FakePodApi:
    """Stands in for CoreV1Api: list and eviction calls."""

    def __init__(self, pod_list=None, error=None):
        self.pod_list = pod_list
        self.error = error
        self.calls = []

    def list_pod_for_all_namespaces(self, **kwargs):
        self.calls.append(("all", None, kwargs))
        if self.error is not None:
            raise self.error
        return self.pod_list

    def list_namespaced_pod(self, namespace, **kwargs):
        self.calls.append(("namespaced", namespace, kwargs))
        if self.error is not None:
            raise self.error
        return self.pod_list

    def create_namespaced_pod_eviction(self, name, namespace, body, **kwargs):
        self.calls.append(("evict", (namespace, name), dict(kwargs, body=body)))
        if self.error is not None:
            raise self.error


@pytest.fixture
def threshold_annotation():
    return DEFAULT_THRESHOLD_ANNOTATION


@pytest.fixture
def log_records():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def reset_counters(monkeypatch):
    for name in (
        "candidates_seen_total",
        "candidates_skipped_total",
        "evictions_total",
        "eviction_throttled_total",
        "eviction_failures_total",
    ):
        monkeypatch.setattr(reconcile, name, 0)
    monkeypatch.setattr(scheduler, "cycles_total", 0)
    monkeypatch.setattr(scheduler, "cycle_errors_total", 0)
    monkeypatch.setattr(scheduler, "last_cycle_duration_seconds", 0.0)
    monkeypatch.setattr(scheduler, "last_cycle_completed_at", 0.0)
    monkeypatch.setattr(scheduler, "last_cycle_attempted_at", 0.0)
