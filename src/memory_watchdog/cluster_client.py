"""
Cluster capabilities the watchdog depends on
"""

from abc import ABC, abstractmethod

from .cancellation import CancelToken


class ClusterClient(ABC):
    """
    Query and restart operations against one namespace and deployment.

    Implementations raise AdapterError when a call fails and Cancelled
    when the token fires before the call returns. Each call must be
    bounded by the adapter's own timeout.
    """

    @abstractmethod
    def get_memory_usage(self, cancel: CancelToken) -> int:
        """Return the total memory used by the namespace's pods, in Mi"""

    @abstractmethod
    def restart_workload(self, cancel: CancelToken) -> None:
        """Trigger a rollout restart of the configured deployment"""
