"""Thin wrapper over the official kubernetes client for one kubeconfig context."""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

import urllib3
import yaml
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

from infra_monitor.providers.config import KubernetesConfig
from infra_monitor.providers.exceptions import (
    ProviderAuthError,
    ProviderConnectionError,
    ProviderResponseError,
)

logger = logging.getLogger(__name__)

METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"
IN_CLUSTER_CONTEXT = "in-cluster"


def _raise_for_api_error(e: ApiException, what: str):
    if e.status in (401, 403):
        raise ProviderAuthError(f"Kubernetes API denied {what}: {e.status} {e.reason}") from e
    raise ProviderResponseError(f"Kubernetes API error on {what}: {e.status} {e.reason}", status_code=e.status) from e


class KubernetesClient:
    """Blocking access to core, version and metrics APIs of one cluster."""

    def __init__(self, api_client: k8s_client.ApiClient, context_name: str, timeout: float):
        self.api_client = api_client
        self.context_name = context_name
        self.timeout = timeout
        self.core_api = k8s_client.CoreV1Api(api_client)
        self.custom_api = k8s_client.CustomObjectsApi(api_client)
        self.version_api = k8s_client.VersionApi(api_client)

    @classmethod
    def from_config(cls, config: KubernetesConfig, context: Optional[str], timeout: float) -> "KubernetesClient":
        """
        Build a client from the provider config.

        Args:
            config: Kubernetes provider config
            context: kubeconfig context, None for the current context
            timeout: Per-request timeout in seconds

        Raises:
            ProviderConnectionError: If the kubeconfig cannot be loaded
        """
        try:
            if config.in_cluster:
                configuration = k8s_client.Configuration()
                k8s_config.load_incluster_config(client_configuration=configuration)
                return cls(k8s_client.ApiClient(configuration), IN_CLUSTER_CONTEXT, timeout)

            if config.kube_config_data:
                config_dict = yaml.safe_load(base64.b64decode(config.kube_config_data))
                api_client = k8s_config.new_client_from_config_dict(config_dict, context=context)
                context_name = context or config_dict.get("current-context") or config.name
                return cls(api_client, context_name, timeout)

            api_client = k8s_config.new_client_from_config(
                config_file=config.kube_config_path, context=context
            )
            if context is None:
                _, active = k8s_config.list_kube_config_contexts(config_file=config.kube_config_path)
                context = active.get("name") if active else None
            return cls(api_client, context or config.name, timeout)
        except (k8s_config.ConfigException, OSError, ValueError, binascii.Error, yaml.YAMLError) as e:
            raise ProviderConnectionError(f"Failed to load Kubernetes config for '{config.name}': {e}") from e

    def _call(self, what: str, func, *args, **kwargs):
        try:
            return func(*args, _request_timeout=self.timeout, **kwargs)
        except ApiException as e:
            _raise_for_api_error(e, what)
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise ProviderConnectionError(f"Kubernetes API unreachable ({what}): {e}") from e
        except ValueError as e:
            # raised by the model deserializer on payloads missing required fields
            raise ProviderResponseError(f"Malformed Kubernetes API response ({what}): {e}") from e

    def get_version(self) -> Any:
        return self._call("version", self.version_api.get_code)

    def list_nodes(self) -> List[Any]:
        return self._call("node list", self.core_api.list_node).items

    def read_node(self, name: str) -> Any:
        return self._call(f"node {name}", self.core_api.read_node, name)

    def list_pods(self, node_name: str, namespace: Optional[str] = None) -> List[Any]:
        """Pods scheduled on a node, filtered server-side by spec.nodeName."""
        selector = f"spec.nodeName={node_name}"
        if namespace:
            result = self._call(
                "pod list", self.core_api.list_namespaced_pod, namespace, field_selector=selector
            )
        else:
            result = self._call(
                "pod list", self.core_api.list_pod_for_all_namespaces, field_selector=selector
            )
        return result.items

    def list_node_metrics(self) -> Dict[str, Any]:
        return self._call(
            "node metrics",
            self.custom_api.list_cluster_custom_object,
            METRICS_GROUP, METRICS_VERSION, "nodes"
        )

    def get_node_metrics(self, name: str) -> Dict[str, Any]:
        return self._call(
            f"node metrics {name}",
            self.custom_api.get_cluster_custom_object,
            METRICS_GROUP, METRICS_VERSION, "nodes", name
        )

    def list_pod_metrics(self, namespace: Optional[str] = None) -> Dict[str, Any]:
        if namespace:
            return self._call(
                "pod metrics",
                self.custom_api.list_namespaced_custom_object,
                METRICS_GROUP, METRICS_VERSION, namespace, "pods"
            )
        return self._call(
            "pod metrics",
            self.custom_api.list_cluster_custom_object,
            METRICS_GROUP, METRICS_VERSION, "pods"
        )

    def close(self):
        self.api_client.close()
