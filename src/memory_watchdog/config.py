"""
Configuration management for Pod Memory Watchdog
"""

import argparse
import os
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables
load_dotenv()

CLIENT_TYPES = ("kubectl", "api")
LOG_FORMATS = ("console", "json")

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"([0-9]*\.?[0-9]+)(ns|us|µs|μs|ms|s|m|h)")
_BARE_NUMBER = re.compile(r"^[0-9]*\.?[0-9]+$")


@dataclass(frozen=True)
class WatchdogConfig:
    """Configuration class for Pod Memory Watchdog"""

    # Target workload
    namespace: str = "default"
    deployment: str = ""

    # Threshold in Mi and check interval in seconds
    memory_threshold: int = 5000
    check_interval: float = 300.0

    # Logging configuration
    verbose: bool = False
    log_format: str = "console"

    # Cluster access
    client_type: str = "kubectl"
    kubectl_path: str = "/usr/local/bin/kubectl"
    command_timeout: float = 60.0

    # Metrics
    pushgateway_url: Optional[str] = None
    metrics_job_name: str = "pod_memory_watchdog"

    def validate(self) -> None:
        """Raise ConfigurationError unless the watchdog can start with these settings"""
        if not self.deployment:
            raise ConfigurationError(
                "Deployment name is required. Use --deployment flag or set DEPLOYMENT environment variable."
            )
        if not self.namespace:
            raise ConfigurationError("Namespace must not be empty")
        if self.memory_threshold <= 0:
            raise ConfigurationError(f"Memory threshold must be positive, got {self.memory_threshold}")
        if self.check_interval <= 0:
            raise ConfigurationError(f"Check interval must be positive, got {self.check_interval}")
        if self.command_timeout <= 0:
            raise ConfigurationError(f"Command timeout must be positive, got {self.command_timeout}")
        if self.client_type not in CLIENT_TYPES:
            raise ConfigurationError(
                f"Unknown client type {self.client_type!r}, expected one of {', '.join(CLIENT_TYPES)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_duration(value: str) -> float:
    """
    Parse a duration such as "5m", "1m30s" or "250ms" into seconds.

    A bare number is taken as seconds.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if _BARE_NUMBER.match(text):
        return sign * float(text)

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text) or position == 0:
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


def get_env(key: str, fallback: str) -> str:
    return os.environ.get(key, fallback)


def get_env_int(key: str, fallback: int) -> int:
    """Integer from the environment, or fallback when unset or invalid"""
    value = os.environ.get(key)
    if value is None:
        return fallback
    try:
        return int(value)
    except ValueError:
        return fallback


def get_env_duration(key: str, fallback: float) -> float:
    """Duration in seconds from the environment, or fallback when unset or invalid"""
    value = os.environ.get(key)
    if value is None:
        return fallback
    try:
        return parse_duration(value)
    except ValueError:
        return fallback


def get_env_bool(key: str, fallback: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return fallback
    return value.strip().lower() in ("1", "true", "yes", "on")


def _duration_arg(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    """Command line flags, defaulting to environment variables"""
    defaults = WatchdogConfig()
    parser = argparse.ArgumentParser(
        prog="pod-memory-watchdog",
        description="Restart a deployment when the pods of its namespace use too much memory.",
    )
    parser.add_argument("--interval", type=_duration_arg,
                        default=get_env_duration("CHECK_INTERVAL", defaults.check_interval),
                        help="Check interval, e.g. 30s or 5m (env CHECK_INTERVAL)")
    parser.add_argument("--namespace", default=get_env("NAMESPACE", defaults.namespace),
                        help="Kubernetes namespace (env NAMESPACE)")
    parser.add_argument("--deployment", default=get_env("DEPLOYMENT", defaults.deployment),
                        help="Deployment name to restart (env DEPLOYMENT)")
    parser.add_argument("--threshold", type=int,
                        default=get_env_int("MEMORY_THRESHOLD", defaults.memory_threshold),
                        help="Memory threshold in Mi (env MEMORY_THRESHOLD)")
    parser.add_argument("--kubectl", default=get_env("KUBECTL_PATH", defaults.kubectl_path),
                        help="Path to kubectl binary (env KUBECTL_PATH)")
    parser.add_argument("--client", choices=CLIENT_TYPES,
                        default=get_env("CLIENT_TYPE", defaults.client_type),
                        help="Cluster access method (env CLIENT_TYPE)")
    parser.add_argument("--timeout", type=_duration_arg,
                        default=get_env_duration("COMMAND_TIMEOUT", defaults.command_timeout),
                        help="Timeout for each cluster call (env COMMAND_TIMEOUT)")
    parser.add_argument("--log-format", choices=LOG_FORMATS,
                        default=get_env("LOG_FORMAT", defaults.log_format),
                        help="Log output format (env LOG_FORMAT)")
    parser.add_argument("--verbose", action="store_true",
                        default=get_env_bool("VERBOSE", defaults.verbose),
                        help="Enable verbose logging (env VERBOSE)")
    return parser


def load_config(argv: Optional[List[str]] = None) -> WatchdogConfig:
    """Build the configuration from flags and environment; does not validate"""
    args = build_parser().parse_args(argv)
    return WatchdogConfig(
        namespace=args.namespace,
        deployment=args.deployment,
        memory_threshold=args.threshold,
        check_interval=args.interval,
        verbose=args.verbose,
        log_format=args.log_format,
        client_type=args.client,
        kubectl_path=args.kubectl,
        command_timeout=args.timeout,
        pushgateway_url=os.environ.get("PROMETHEUS_PUSHGATEWAY_URL") or None,
        metrics_job_name=get_env("PROMETHEUS_JOB_NAME", WatchdogConfig.metrics_job_name),
    )
