import logging
import os
from datetime import datetime, timezone

import yaml
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from .cancellation import CancelToken, run_cancellable
from .cluster_client import ClusterClient
from .config import WatchdogConfig
from .errors import AdapterError, ConfigurationError
from .report_parser import parse_quantity_mi

logger = logging.getLogger(__name__)

METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"
RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"

KUBECONFIG_PATHS = [
    os.path.expanduser("~/.kube/config"),
    "/etc/kubernetes/admin.conf",
    "/etc/rancher/k3s/k3s.yaml",
]


def _load_kubeconfig_file(path):
    try:
        config.load_kube_config(config_file=path)
    except (ConfigException, yaml.YAMLError, OSError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid kubeconfig {path}: {e}") from e


def load_kube_config():
    """Load cluster credentials from KUBECONFIG, in-cluster, or a known kubeconfig path"""
    kubeconfig_path = os.getenv('KUBECONFIG')
    if kubeconfig_path and os.path.exists(kubeconfig_path):
        logger.info(f"Loading kubeconfig from KUBECONFIG environment: {kubeconfig_path}")
        _load_kubeconfig_file(kubeconfig_path)
        return

    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
        return
    except ConfigException:
        pass

    try:
        config.load_kube_config()
        logger.info("Loaded kubeconfig from default location")
        return
    except ConfigException:
        pass
    except (yaml.YAMLError, OSError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid kubeconfig at default location: {e}") from e

    for kube_path in KUBECONFIG_PATHS:
        if os.path.exists(kube_path):
            logger.info(f"Loading kubeconfig from: {kube_path}")
            _load_kubeconfig_file(kube_path)
            return

    raise ConfigurationError(
        "Could not load Kubernetes configuration. "
        "Set KUBECONFIG, run inside a cluster, or use --client kubectl"
    )


class KubernetesApiClient(ClusterClient):
    """ClusterClient backed by the Kubernetes API and metrics-server"""

    def __init__(self, watchdog_config: WatchdogConfig, custom_api=None, apps_api=None):
        self.config = watchdog_config

        if custom_api is None or apps_api is None:
            try:
                load_kube_config()
            except ConfigException as e:
                raise ConfigurationError(f"Failed to load Kubernetes configuration: {e}") from e

        self.custom_api = custom_api or client.CustomObjectsApi()
        self.apps_api = apps_api or client.AppsV1Api()

    def get_memory_usage(self, cancel: CancelToken) -> int:
        """Sum container memory from the metrics.k8s.io pod metrics of the namespace"""
        metrics = self._call(
            lambda: self.custom_api.list_namespaced_custom_object(
                group=METRICS_GROUP,
                version=METRICS_VERSION,
                namespace=self.config.namespace,
                plural="pods",
                _request_timeout=self.config.command_timeout,
            ),
            cancel,
            "error listing pod metrics",
        )

        total = 0
        for pod_metrics in metrics.get("items", []):
            pod_name = (pod_metrics.get("metadata") or {}).get("name", "")
            for container in pod_metrics.get("containers") or []:
                quantity = (container.get("usage") or {}).get("memory")
                try:
                    total += parse_quantity_mi(quantity)
                except (ValueError, TypeError):
                    logger.debug(f"Skipping unparseable memory usage {quantity!r} of pod {pod_name}")
        return total

    def restart_workload(self, cancel: CancelToken) -> None:
        """Restart the deployment the way `kubectl rollout restart` does"""
        restarted_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        body = {
            "spec": {
                "template": {
                    "metadata": {
                        "annotations": {RESTARTED_AT_ANNOTATION: restarted_at}
                    }
                }
            }
        }
        self._call(
            lambda: self.apps_api.patch_namespaced_deployment(
                name=self.config.deployment,
                namespace=self.config.namespace,
                body=body,
                _request_timeout=self.config.command_timeout,
            ),
            cancel,
            "error restarting deployment",
        )
        logger.info(f"✅ Patched {RESTARTED_AT_ANNOTATION}={restarted_at} on "
                    f"{self.config.namespace}/{self.config.deployment}")

    def _call(self, func, cancel: CancelToken, message: str):
        try:
            return run_cancellable(func, cancel, timeout=self.config.command_timeout)
        except ApiException as e:
            raise AdapterError(f"{message} (status {e.status})", e.reason or str(e.body)) from e
        except TimeoutError as e:
            raise AdapterError(message, str(e)) from e
        except (HTTPError, OSError, ValueError) as e:
            raise AdapterError(message, str(e)) from e
