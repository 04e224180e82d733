"""
Prometheus metrics for watchdog checks and restarts
"""

import logging
import threading
import time
from typing import Optional

import requests
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, generate_latest

logger = logging.getLogger(__name__)


class RestartNotifier:
    """Records usage samples and restart outcomes, optionally pushing them to a Pushgateway"""

    def __init__(self, namespace: str, deployment: str,
                 pushgateway_url: Optional[str] = None,
                 job_name: str = "pod_memory_watchdog",
                 registry: Optional[CollectorRegistry] = None):
        self.namespace = namespace
        self.deployment = deployment
        self.pushgateway_url = pushgateway_url.rstrip("/") if pushgateway_url else None
        self.job_name = job_name
        self.registry = registry or CollectorRegistry()
        self._send_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._queued = False
        self._sender: Optional[threading.Thread] = None

        self.usage = Gauge(
            "pod_memory_watchdog_usage_mi",
            "Total memory usage of the namespace pods in Mi",
            ["namespace"],
            registry=self.registry,
        )
        self.restarts = Counter(
            "pod_memory_watchdog_restarts",
            "Deployment restarts issued by the watchdog",
            ["namespace", "deployment"],
            registry=self.registry,
        )
        self.restart_failures = Counter(
            "pod_memory_watchdog_restart_failures",
            "Deployment restarts that did not succeed",
            ["namespace", "deployment"],
            registry=self.registry,
        )
        self.query_failures = Counter(
            "pod_memory_watchdog_query_failures",
            "Memory usage queries that did not succeed",
            ["namespace"],
            registry=self.registry,
        )
        self.last_restart = Gauge(
            "pod_memory_watchdog_last_restart_timestamp",
            "Unix time of the last successful restart",
            ["namespace", "deployment"],
            registry=self.registry,
        )

    def record_usage(self, usage_mi: int) -> None:
        self.usage.labels(namespace=self.namespace).set(usage_mi)
        self._push()

    def record_query_failure(self, error: Exception) -> None:
        self.query_failures.labels(namespace=self.namespace).inc()
        logger.debug(f"Recorded query failure for {self.namespace}: {error}")
        self._push()

    def record_restart(self) -> None:
        labels = {"namespace": self.namespace, "deployment": self.deployment}
        self.restarts.labels(**labels).inc()
        self.last_restart.labels(**labels).set(time.time())
        self._push()

    def record_restart_failure(self, error: Exception) -> None:
        self.restart_failures.labels(namespace=self.namespace, deployment=self.deployment).inc()
        logger.debug(f"Recorded restart failure for {self.namespace}/{self.deployment}: {error}")
        self._push()

    def _push(self) -> None:
        """Queue a push of the registry on a background thread"""
        if not self.pushgateway_url:
            return

        with self._state_lock:
            # A queued push has not read the registry yet and will carry this update
            if self._queued:
                return
            self._queued = True

        self._sender = threading.Thread(target=self._send, daemon=True)
        self._sender.start()

    def _send(self) -> None:
        """Push the registry to the Pushgateway; failures are logged only"""
        with self._send_lock:
            with self._state_lock:
                self._queued = False

            url = f"{self.pushgateway_url}/metrics/job/{self.job_name}"
            try:
                response = requests.put(
                    url,
                    data=generate_latest(self.registry),
                    headers={"Content-Type": CONTENT_TYPE_LATEST},
                    timeout=10,
                )
                response.raise_for_status()
                logger.debug(f"Successfully pushed metrics to Pushgateway at {url}")
            except requests.RequestException as e:
                logger.error(f"Failed to push to Pushgateway: {e}")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the most recently started push to finish"""
        sender = self._sender
        if sender is not None:
            sender.join(timeout)
