"""
Cancellation signal shared by the watchdog loop and the cluster adapters
"""

import threading
import time
from typing import Any, Callable, Optional

from .errors import Cancelled

CANCELLED = "cancelled"
DEADLINE_EXCEEDED = "deadline exceeded"


class CancelToken:
    """Thread-safe cancellation flag with an optional overall deadline"""

    def __init__(self, deadline: Optional[float] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._deadline_at = time.monotonic() + deadline if deadline is not None else None

    def cancel(self, reason: str = CANCELLED) -> None:
        """Request cancellation; the first reason wins"""
        with self._lock:
            if self._reason is None:
                self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline_at is not None and time.monotonic() >= self._deadline_at:
            self.cancel(DEADLINE_EXCEEDED)
            return True
        return False

    @property
    def reason(self) -> Optional[str]:
        if self.cancelled:
            return self._reason
        return None

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None without one"""
        if self._deadline_at is None:
            return None
        return max(0.0, self._deadline_at - time.monotonic())

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until cancelled or until timeout seconds pass.

        Returns True when the token is cancelled, so a caller racing a
        timer against cancellation always sees cancellation first.
        """
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            timeout = remaining
        self._event.wait(timeout)
        return self.cancelled

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise Cancelled(self._reason)


def run_cancellable(func: Callable[[], Any], cancel: CancelToken,
                    timeout: Optional[float] = None, poll_interval: float = 0.1) -> Any:
    """
    Run a blocking call on a daemon thread and wait for it.

    Raises Cancelled as soon as the token fires and TimeoutError once
    timeout seconds pass; the abandoned call keeps running in the
    background until its own transport gives up.
    """
    cancel.raise_if_cancelled()

    outcome = {}
    done = threading.Event()

    def target():
        try:
            outcome["result"] = func()
        except BaseException as e:
            outcome["error"] = e
        finally:
            done.set()

    worker = threading.Thread(target=target, daemon=True)
    worker.start()

    deadline = time.monotonic() + timeout if timeout is not None else None
    while True:
        step = poll_interval
        if deadline is not None:
            step = min(step, max(0.0, deadline - time.monotonic()))
        if done.wait(step):
            break
        if cancel.cancelled:
            raise Cancelled(cancel.reason)
        if deadline is not None and time.monotonic() >= deadline:
            raise TimeoutError(f"call did not finish within {timeout:g}s")

    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")
