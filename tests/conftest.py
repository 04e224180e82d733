"""Shared fixtures for the watchdog tests."""

import time

import pytest

from memory_watchdog.cancellation import CancelToken
from memory_watchdog.cluster_client import ClusterClient
from memory_watchdog.config import WatchdogConfig
from memory_watchdog.errors import Cancelled


class FakeClusterClient(ClusterClient):
    """In-memory ClusterClient with scripted usage values and errors."""

    def __init__(self, usages=(0,), query_error=None, restart_error=None,
                 cancel_after=None, block=False, delay=0.0):
        self.usages = list(usages)
        self.query_error = query_error
        self.restart_error = restart_error
        self.cancel_after = cancel_after
        self.block = block
        self.delay = delay
        self.query_count = 0
        self.restart_count = 0

    def get_memory_usage(self, cancel: CancelToken) -> int:
        self.query_count += 1
        if self.delay:
            time.sleep(self.delay)
        if self.cancel_after is not None and self.query_count >= self.cancel_after:
            cancel.cancel()
        if self.block:
            cancel.wait()
            raise Cancelled(cancel.reason)
        if self.query_error is not None:
            raise self.query_error
        index = min(self.query_count, len(self.usages)) - 1
        return self.usages[index]

    def restart_workload(self, cancel: CancelToken) -> None:
        self.restart_count += 1
        if self.restart_error is not None:
            raise self.restart_error


@pytest.fixture
def make_config():
    """Factory for WatchdogConfig with test friendly defaults."""
    def factory(**overrides):
        values = {
            "namespace": "default",
            "deployment": "web",
            "memory_threshold": 2000,
            "check_interval": 0.02,
            "verbose": True,
        }
        values.update(overrides)
        return WatchdogConfig(**values)
    return factory


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep watchdog environment variables from leaking into tests."""
    for key in ("NAMESPACE", "DEPLOYMENT", "MEMORY_THRESHOLD", "CHECK_INTERVAL",
                "KUBECTL_PATH", "CLIENT_TYPE", "COMMAND_TIMEOUT", "LOG_FORMAT",
                "VERBOSE", "PROMETHEUS_PUSHGATEWAY_URL", "PROMETHEUS_JOB_NAME"):
        monkeypatch.delenv(key, raising=False)
