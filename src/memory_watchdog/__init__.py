"""
Pod Memory Watchdog - Kubernetes namespace memory guard

Samples the total memory used by the pods of a namespace and restarts a
deployment when the total reaches a threshold.
"""

from .cancellation import CancelToken
from .cluster_client import ClusterClient
from .config import WatchdogConfig, load_config
from .errors import AdapterError, Cancelled, ConfigurationError, WatchdogError
from .report_parser import parse_total_memory
from .watchdog import UsageSample, Watchdog, WatchdogState

__version__ = "1.0.0"
__author__ = "Pod Memory Watchdog Team"

__all__ = [
    "AdapterError",
    "Cancelled",
    "CancelToken",
    "ClusterClient",
    "ConfigurationError",
    "UsageSample",
    "Watchdog",
    "WatchdogConfig",
    "WatchdogError",
    "WatchdogState",
    "load_config",
    "parse_total_memory",
]
