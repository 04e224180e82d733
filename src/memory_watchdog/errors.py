"""
Error types raised by the Pod Memory Watchdog
"""


class WatchdogError(Exception):
    """Base class for watchdog errors"""


class ConfigurationError(WatchdogError):
    """Raised when required configuration is missing or invalid"""


class AdapterError(WatchdogError):
    """Raised when a cluster query or restart does not succeed"""

    def __init__(self, message, diagnostic=""):
        super().__init__(message)
        self.diagnostic = diagnostic

    def __str__(self):
        message = super().__str__()
        if self.diagnostic:
            return f"{message}: {self.diagnostic}"
        return message


class Cancelled(WatchdogError):
    """Raised when the cancel token fires while a call is in flight"""

    def __init__(self, reason="cancelled"):
        super().__init__(reason)
        self.reason = reason
