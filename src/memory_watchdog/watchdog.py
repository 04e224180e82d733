"""
Memory watchdog loop: polls namespace memory usage and restarts the
deployment when it reaches the threshold.
"""

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from .cancellation import CANCELLED, CancelToken
from .cluster_client import ClusterClient
from .config import WatchdogConfig
from .errors import AdapterError, Cancelled, WatchdogError
from .logger import WatchdogLogger
from .notifications import RestartNotifier

logger = logging.getLogger(__name__)


class WatchdogState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class UsageSample:
    """Memory usage observed in a single poll"""
    namespace: str
    total_mi: int
    taken_at: float


class Watchdog:
    """Monitors memory usage and restarts the deployment when needed"""

    def __init__(self, cluster_client: ClusterClient, config: WatchdogConfig,
                 notifier: Optional[RestartNotifier] = None):
        self.client = cluster_client
        self.config = config
        self.notifier = notifier
        self.log = WatchdogLogger(config.namespace, config.deployment)
        self.state = WatchdogState.IDLE
        self.lock = threading.Lock()

    def run(self, cancel: CancelToken) -> str:
        """
        Poll every check interval until the token is cancelled.

        The first check happens one full interval after start. Errors in a
        cycle are logged and the next tick retries; only cancellation ends
        the loop. Returns the cancellation reason.
        """
        with self.lock:
            if self.state is not WatchdogState.IDLE:
                raise WatchdogError(f"Watchdog cannot run from state {self.state.value}")
            self.state = WatchdogState.RUNNING

        interval = self.config.check_interval
        try:
            next_tick = time.monotonic() + interval
            while True:
                # A cancelled token wins over a tick that is already due
                if cancel.wait(max(0.0, next_tick - time.monotonic())):
                    break
                self._run_cycle(cancel)
                next_tick = self._next_tick(next_tick, interval)
        except Cancelled:
            pass
        finally:
            with self.lock:
                self.state = WatchdogState.STOPPED

        reason = cancel.reason or CANCELLED
        self.log.log_stopped(reason)
        return reason

    def check_and_restart(self, cancel: CancelToken) -> bool:
        """
        Run one poll: query usage and restart when usage >= threshold.

        Returns True when a restart was issued. AdapterError from the query
        or the restart propagates to the caller; there is no retry within
        the cycle.
        """
        try:
            usage = self.client.get_memory_usage(cancel)
        except AdapterError as e:
            if self.notifier:
                self.notifier.record_query_failure(e)
            raise

        sample = UsageSample(self.config.namespace, usage, time.monotonic())
        if self.notifier:
            self.notifier.record_usage(sample.total_mi)

        if sample.total_mi < self.config.memory_threshold:
            if self.config.verbose:
                self.log.log_usage(sample.total_mi, self.config.memory_threshold)
            return False

        self.log.log_threshold_exceeded(sample.total_mi, self.config.memory_threshold)
        try:
            self.client.restart_workload(cancel)
        except AdapterError as e:
            if self.notifier:
                self.notifier.record_restart_failure(e)
            raise

        self.log.log_restarted()
        if self.notifier:
            self.notifier.record_restart()
        return True

    def _run_cycle(self, cancel: CancelToken) -> None:
        try:
            self.check_and_restart(cancel)
        except Cancelled:
            raise
        except AdapterError as e:
            self.log.log_error(e, context="check_and_restart")
        except Exception as e:
            logger.exception(f"Unexpected error during check: {e}")

    @staticmethod
    def _next_tick(previous: float, interval: float) -> float:
        """Next tick on the fixed cadence, dropping ticks missed by a slow cycle"""
        next_tick = previous + interval
        now = time.monotonic()
        if next_tick <= now:
            next_tick += (int((now - next_tick) // interval) + 1) * interval
        return next_tick
