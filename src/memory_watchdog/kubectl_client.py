"""
ClusterClient backed by the kubectl command line tool
"""

import logging
import os
import signal
import subprocess
import time

from .cancellation import CancelToken
from .cluster_client import ClusterClient
from .config import WatchdogConfig
from .errors import AdapterError, Cancelled
from .report_parser import parse_total_memory

logger = logging.getLogger(__name__)


class KubectlClient(ClusterClient):
    """Runs kubectl as a subprocess for every query and restart"""

    def __init__(self, config: WatchdogConfig, poll_interval: float = 0.1):
        self.config = config
        self.poll_interval = poll_interval

    def get_memory_usage(self, cancel: CancelToken) -> int:
        """Return the total memory of the namespace from `kubectl top pods`"""
        args = ["top", "pods", "-n", self.config.namespace]
        returncode, output = self._run(args, cancel)
        if returncode != 0:
            raise AdapterError(
                f"error executing kubectl top pods (exit code {returncode})", output.strip()
            )

        total = parse_total_memory(output)
        if total == 0 and len(output.strip().splitlines()) > 1:
            logger.debug(f"kubectl top pods reported rows for {self.config.namespace} but no usable memory values")
        return total

    def restart_workload(self, cancel: CancelToken) -> None:
        """Run `kubectl rollout restart` for the configured deployment"""
        args = [
            "rollout", "restart",
            f"deployment/{self.config.deployment}",
            "-n", self.config.namespace,
        ]
        returncode, output = self._run(args, cancel)
        if returncode != 0:
            raise AdapterError(
                f"error restarting deployment (exit code {returncode})", output.strip()
            )
        logger.debug(f"kubectl rollout restart output: {output.strip()}")

    def _run(self, args, cancel: CancelToken):
        """Run kubectl with combined output, honoring cancellation and the command timeout"""
        cancel.raise_if_cancelled()
        command = [self.config.kubectl_path, *args]
        logger.debug(f"Running {' '.join(command)}")

        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                start_new_session=(os.name == "posix"),
            )
        except OSError as e:
            raise AdapterError(f"error executing {command[0]}", str(e)) from e

        deadline = time.monotonic() + self.config.command_timeout
        while True:
            try:
                output, _ = process.communicate(timeout=self.poll_interval)
                return process.returncode, output or ""
            except subprocess.TimeoutExpired:
                pass

            if cancel.cancelled:
                self._kill(process)
                raise Cancelled(cancel.reason)
            if time.monotonic() >= deadline:
                output = self._kill(process)
                raise AdapterError(
                    f"kubectl {args[0]} timed out after {self.config.command_timeout:g}s", output.strip()
                )

    @staticmethod
    def _kill(process) -> str:
        """Kill kubectl and anything it spawned, returning the output collected so far"""
        if os.name == "posix":
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
        else:
            process.kill()
        output, _ = process.communicate()
        return output or ""
