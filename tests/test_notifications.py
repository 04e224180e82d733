"""Tests for RestartNotifier metrics."""

from unittest.mock import MagicMock, patch

import threading
import time

import requests
from prometheus_client import CollectorRegistry

from memory_watchdog.errors import AdapterError
from memory_watchdog.notifications import RestartNotifier

LABELS = {"namespace": "default", "deployment": "web"}


def make_notifier(**kwargs):
    registry = CollectorRegistry()
    return RestartNotifier("default", "web", registry=registry, **kwargs), registry


class TestMetrics:
    """Tests for recorded metric values."""

    def test_record_usage_sets_gauge(self):
        notifier, registry = make_notifier()

        notifier.record_usage(1234)

        assert registry.get_sample_value("pod_memory_watchdog_usage_mi", {"namespace": "default"}) == 1234

    def test_record_restart_counts_and_timestamps(self):
        notifier, registry = make_notifier()

        notifier.record_restart()
        notifier.record_restart()

        assert registry.get_sample_value("pod_memory_watchdog_restarts_total", LABELS) == 2
        assert registry.get_sample_value("pod_memory_watchdog_last_restart_timestamp", LABELS) > 0

    def test_record_failures(self):
        notifier, registry = make_notifier()

        notifier.record_query_failure(AdapterError("error executing kubectl top pods"))
        notifier.record_restart_failure(AdapterError("error restarting deployment"))

        assert registry.get_sample_value(
            "pod_memory_watchdog_query_failures_total", {"namespace": "default"}
        ) == 1
        assert registry.get_sample_value("pod_memory_watchdog_restart_failures_total", LABELS) == 1


class TestPushgateway:
    """Tests for pushing metrics to a Pushgateway."""

    def test_no_push_without_url(self):
        notifier, _ = make_notifier()

        with patch("memory_watchdog.notifications.requests.put") as put:
            notifier.record_usage(10)

        put.assert_not_called()

    def test_pushes_exposition_to_job_url(self):
        notifier, _ = make_notifier(pushgateway_url="http://pushgateway:9091/", job_name="watchdog_test")

        with patch("memory_watchdog.notifications.requests.put") as put:
            put.return_value = MagicMock(status_code=200)
            notifier.record_restart()
            notifier.join(5)

        args, kwargs = put.call_args
        assert args[0] == "http://pushgateway:9091/metrics/job/watchdog_test"
        assert b"pod_memory_watchdog_restarts_total" in kwargs["data"]
        assert kwargs["timeout"] == 10

    def test_push_failure_is_not_raised(self):
        notifier, registry = make_notifier(pushgateway_url="http://pushgateway:9091")

        with patch("memory_watchdog.notifications.requests.put",
                   side_effect=requests.ConnectionError("refused")):
            notifier.record_restart()
            notifier.join(5)

        assert registry.get_sample_value("pod_memory_watchdog_restarts_total", LABELS) == 1

    def test_record_does_not_wait_for_slow_pushgateway(self):
        notifier, registry = make_notifier(pushgateway_url="http://pushgateway:9091")
        release = threading.Event()

        def slow_put(*args, **kwargs):
            release.wait(10)
            return MagicMock(status_code=200)

        with patch("memory_watchdog.notifications.requests.put", side_effect=slow_put) as put:
            start = time.monotonic()
            notifier.record_usage(10)
            notifier.record_restart()
            assert time.monotonic() - start < 1
            release.set()
            notifier.join(5)

        assert put.called
        assert registry.get_sample_value("pod_memory_watchdog_restarts_total", LABELS) == 1
