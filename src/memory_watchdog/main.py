#!/usr/bin/env python3
"""
Pod Memory Watchdog - Main Application
"""

import signal
import sys
from typing import List, Optional

from .cancellation import CancelToken
from .cluster_client import ClusterClient
from .config import WatchdogConfig, load_config
from .errors import ConfigurationError
from .kubectl_client import KubectlClient
from .logger import get_logger, setup_logging
from .notifications import RestartNotifier
from .watchdog import Watchdog


def create_client(config: WatchdogConfig) -> ClusterClient:
    """Build the ClusterClient selected by the configuration"""
    if config.client_type == "api":
        from .kubernetes_client import KubernetesApiClient
        return KubernetesApiClient(config)
    return KubectlClient(config)


def install_signal_handlers(cancel: CancelToken, logger) -> None:
    """Cancel the token on SIGINT or SIGTERM"""
    def handle(signum, frame):
        name = signal.Signals(signum).name
        logger.info("Received shutdown signal. Shutting down...", signal=name)
        cancel.cancel(f"signal {name}")

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


def main(argv: Optional[List[str]] = None, cancel: Optional[CancelToken] = None) -> int:
    """Main application entry point"""
    config = load_config(argv)
    setup_logging(config.verbose, config.log_format)
    logger = get_logger("main")

    try:
        config.validate()
        cluster_client = create_client(config)
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1

    notifier = RestartNotifier(
        config.namespace,
        config.deployment,
        pushgateway_url=config.pushgateway_url,
        job_name=config.metrics_job_name,
    )
    watchdog = Watchdog(cluster_client, config, notifier=notifier)
    watchdog.log.log_startup(config.to_dict())

    if cancel is None:
        cancel = CancelToken()
        install_signal_handlers(cancel, logger)

    reason = watchdog.run(cancel)
    logger.info("Shutdown complete", reason=reason)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
