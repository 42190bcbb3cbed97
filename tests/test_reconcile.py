import pytest
from kubernetes.client.exceptions import ApiException

from conftest import FakeEvictor, FakeLister, FakeMetrics, make_candidate
from preoomkiller.core.errors import EnumerationFailure, MetricsUnavailable
from preoomkiller.runner import reconcile
from preoomkiller.runner.reconcile import Controller


def controller(candidates, usage, evictor=None, dry_run=False, lister=None):
    return Controller(
        lister or FakeLister(candidates),
        FakeMetrics(usage),
        evictor or FakeEvictor(),
        "preoomkiller-enabled",
        "true",
        dry_run=dry_run,
    )


def test_mixed_cycle_evicts_only_violators():
    candidates = [
        make_candidate("a", "512Mi"),
        make_candidate("b", "512Mi"),
        make_candidate("c", "512Mi"),
        make_candidate("d", "abc"),
    ]
    usage = {"a": "600Mi", "b": "400Mi", "c": "512Mi", "d": "900Mi"}
    evictor = FakeEvictor()
    ctrl = controller(candidates, usage, evictor)

    result = ctrl.run_once()

    assert evictor.calls == [("default", "a")]
    assert result.evictions == 1
    assert result.within_threshold == 2
    assert result.skipped == 1
    assert result.candidates == 4
    # "d" is skipped before its usage is ever fetched
    assert ("default", "d") not in ctrl.metrics_source.calls


def test_usage_equal_to_threshold_is_not_evicted():
    evictor = FakeEvictor()
    result = controller([make_candidate("c", "1Gi")], {"c": "1024Mi"}, evictor).run_once()
    assert evictor.calls == []
    assert result.evictions == 0


def test_pods_without_the_marker_are_never_evicted():
    candidates = [
        make_candidate("off", "1Mi", labels={"preoomkiller-enabled": "false"}),
        make_candidate("upper", "1Mi", labels={"preoomkiller-enabled": "TRUE"}),
        make_candidate("none", "1Mi", labels={}),
    ]
    evictor = FakeEvictor()
    result = controller(candidates, {"off": "1Gi", "upper": "1Gi", "none": "1Gi"}, evictor).run_once()

    assert evictor.calls == []
    assert result.candidates == 0


def test_missing_threshold_annotation_skips_pod():
    evictor = FakeEvictor()
    candidates = [make_candidate("bare", None), make_candidate("a", "1Mi")]
    result = controller(candidates, {"bare": "1Gi", "a": "2Mi"}, evictor).run_once()

    assert evictor.calls == [("default", "a")]
    assert result.skipped == 1


def test_metrics_unavailable_skips_only_that_pod():
    candidates = [make_candidate("new", "1Mi"), make_candidate("a", "1Mi")]
    usage = {"new": MetricsUnavailable("no metrics reported yet"), "a": "2Mi"}
    evictor = FakeEvictor()

    result = controller(candidates, usage, evictor).run_once()

    assert evictor.calls == [("default", "a")]
    assert result.skipped == 1
    assert result.evictions == 1


def test_unexpected_error_on_one_pod_does_not_abort_cycle(log_records):
    candidates = [make_candidate("bad", "1Mi"), make_candidate("a", "1Mi")]
    usage = {"bad": KeyError("containers"), "a": "2Mi"}
    evictor = FakeEvictor()

    result = controller(candidates, usage, evictor).run_once()

    assert evictor.calls == [("default", "a")]
    assert result.skipped == 1
    assert any("bad" in r["message"] for r in log_records if r["level"].name == "ERROR")


def test_listing_failure_aborts_cycle():
    lister = FakeLister(error=EnumerationFailure("api down"))
    evictor = FakeEvictor()
    with pytest.raises(EnumerationFailure):
        controller([], {}, evictor, lister=lister).run_once()
    assert evictor.calls == []


def test_throttled_eviction_is_attempted_once_and_retried_next_cycle():
    throttled = ApiException(status=429, reason="Too Many Requests")
    evictor = FakeEvictor({"a": [throttled]})
    ctrl = controller([make_candidate("a", "512Mi")], {"a": "600Mi"}, evictor)

    first = ctrl.run_once()
    assert evictor.calls == [("default", "a")]
    assert first.evictions == 0
    assert first.throttled == 1

    second = ctrl.run_once()
    assert evictor.calls == [("default", "a"), ("default", "a")]
    assert second.evictions == 1


def test_already_gone_counts_as_handled(log_records):
    evictor = FakeEvictor({"a": ApiException(status=404, reason="Not Found")})
    result = controller([make_candidate("a", "1Mi")], {"a": "2Mi"}, evictor).run_once()

    assert result.evictions == 1
    assert result.failed == 0
    assert not [r for r in log_records if r["level"].name == "ERROR"]


def test_failed_eviction_does_not_abort_cycle():
    evictor = FakeEvictor({"a": ApiException(status=500, reason="Internal Server Error")})
    candidates = [make_candidate("a", "1Mi"), make_candidate("b", "1Mi")]
    result = controller(candidates, {"a": "2Mi", "b": "2Mi"}, evictor).run_once()

    assert evictor.calls == [("default", "a"), ("default", "b")]
    assert result.failed == 1
    assert result.evictions == 1


def test_dry_run_counts_without_evicting():
    evictor = FakeEvictor()
    result = controller([make_candidate("a", "1Mi")], {"a": "2Mi"}, evictor, dry_run=True).run_once()
    assert evictor.calls == []
    assert result.evictions == 1


def test_cycles_share_no_state():
    evictor = FakeEvictor()
    ctrl = controller([make_candidate("a", "1Mi")], {"a": "2Mi"}, evictor)
    ctrl.run_once()
    ctrl.metrics_source.usage["a"] = "1Ki"
    result = ctrl.run_once()

    assert evictor.calls == [("default", "a")]
    assert result.evictions == 0
    assert result.within_threshold == 1


def test_process_counters_accumulate():
    evictor = FakeEvictor({"b": ApiException(status=429, reason="Too Many Requests")})
    candidates = [make_candidate("a", "1Mi"), make_candidate("b", "1Mi"), make_candidate("c", "junk")]
    ctrl = controller(candidates, {"a": "2Mi", "b": "2Mi", "c": "2Mi"}, evictor)

    ctrl.run_once()

    assert reconcile.candidates_seen_total == 3
    assert reconcile.evictions_total == 1
    assert reconcile.eviction_throttled_total == 1
    assert reconcile.candidates_skipped_total == 1
    assert reconcile.eviction_failures_total == 0


def test_lowercase_binary_suffix_typo_is_skipped_not_evicted():
    evictor = FakeEvictor()
    result = controller([make_candidate("a", "512mi")], {"a": "100Mi"}, evictor).run_once()

    assert evictor.calls == []
    assert result.skipped == 1
    assert result.evictions == 0
