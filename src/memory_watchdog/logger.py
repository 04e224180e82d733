"""
Logging configuration for Pod Memory Watchdog
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from colorama import init as colorama_init

# Initialize colorama for cross-platform colored output
colorama_init()


def setup_logging(verbose: bool = False, log_format: str = "console") -> None:
    """Setup structured logging for the application"""

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if verbose:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
    ]

    # Configure structlog
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if verbose else logging.INFO,
        force=True,
    )

    # Suppress verbose kubernetes client logs
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


class WatchdogLogger:
    """Specialized logger for watchdog operations"""

    def __init__(self, namespace: str, deployment: str):
        self.logger = get_logger("memory-watchdog").bind(namespace=namespace)
        self.deployment = deployment

    def log_startup(self, config_dict: Dict[str, Any]) -> None:
        """Log application startup"""
        self.logger.info(
            "Pod Memory Watchdog starting up",
            version="1.0.0",
            config=config_dict
        )

    def log_usage(self, usage_mi: int, threshold_mi: int) -> None:
        """Log the usage observed in a cycle that needed no action"""
        self.logger.info(
            f"Total memory usage: {usage_mi}Mi. Memory usage is within threshold. No action needed.",
            usage_mi=usage_mi,
            threshold_mi=threshold_mi
        )

    def log_threshold_exceeded(self, usage_mi: int, threshold_mi: int) -> None:
        """Log a breach that is about to trigger a restart"""
        self.logger.warning(
            f"Memory usage exceeded threshold ({threshold_mi}Mi). Restarting deployment '{self.deployment}'...",
            usage_mi=usage_mi,
            threshold_mi=threshold_mi,
            deployment=self.deployment
        )

    def log_restarted(self) -> None:
        """Log a successful restart"""
        self.logger.info(
            "Deployment successfully restarted.",
            deployment=self.deployment
        )

    def log_stopped(self, reason: Optional[str]) -> None:
        """Log the end of the monitoring loop"""
        self.logger.info(
            "Watchdog stopped",
            reason=reason
        )

    def log_error(self, error: Exception, context: str = None) -> None:
        """Log errors with context"""
        self.logger.error(
            "Error during check",
            error=str(error),
            error_type=type(error).__name__,
            context=context
        )

    def log_debug(self, message: str, **kwargs) -> None:
        """Log debug information"""
        self.logger.debug(message, **kwargs)
