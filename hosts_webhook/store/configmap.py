"""
ConfigMap store module for the Hosts Webhook Provider.

This module keeps the hosts-format table in one key of a Kubernetes
ConfigMap. Saving is a check-then-act sequence (list, then create or merge
patch) and is not atomic against other writers.
"""

import logging
from pathlib import Path
from typing import Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from hosts_webhook.hosts import codec
from hosts_webhook.hosts.codec import HostTable
from hosts_webhook.store.base import HostStore, HostStoreError

SERVICE_ACCOUNT_NAMESPACE = Path(
    "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
)
MERGE_PATCH = "application/merge-patch+json"


def default_namespace() -> str:
    """
    Namespace of the running pod, or ``default`` outside a cluster.

    Returns:
        str: Namespace name
    """
    try:
        namespace = SERVICE_ACCOUNT_NAMESPACE.read_text().strip()
    except OSError:
        return "default"
    return namespace or "default"


def load_kube_client() -> client.CoreV1Api:
    """
    Build a CoreV1Api client from the in-cluster or kubeconfig settings.

    Returns:
        client.CoreV1Api: API client
    """
    try:
        config.load_incluster_config()
    except ConfigException:
        config.load_kube_config()
    return client.CoreV1Api()


class ConfigMapHostStore(HostStore):
    """
    Store that keeps the host table in a ConfigMap data key.
    """

    def __init__(
        self,
        name: str,
        namespace: Optional[str] = None,
        key: str = "hosts",
        api: Optional[client.CoreV1Api] = None,
    ):
        """
        Initialize a ConfigMapHostStore.

        Args:
            name: ConfigMap name
            namespace: ConfigMap namespace, defaults to the pod namespace
            key: Data key holding the hosts text
            api: Kubernetes API client, built from the environment if omitted
        """
        self.name = name
        self.namespace = namespace or default_namespace()
        self.key = key
        self.api = api or load_kube_client()
        self.logger = logging.getLogger("hosts-webhook.store.configmap")

    @property
    def description(self) -> str:
        return f"configmap {self.namespace}/{self.name} key {self.key}"

    def load(self) -> HostTable:
        """
        Read the host table from the ConfigMap.

        A missing ConfigMap or data key yields an empty table.

        Returns:
            HostTable: Current host table

        Raises:
            HostStoreError: If the API call fails for any other reason
        """
        try:
            configmap = self.api.read_namespaced_config_map(self.name, self.namespace)
        except ApiException as e:
            if e.status == 404:
                self.logger.info(
                    f"ConfigMap {self.namespace}/{self.name} does not exist yet, using empty table"
                )
                return {}
            self.logger.error(
                f"Kubernetes API error reading ConfigMap {self.namespace}/{self.name}: {e.status} {e.reason}"
            )
            raise HostStoreError(
                f"Failed to read ConfigMap {self.namespace}/{self.name}: {e.reason}"
            ) from e
        except (HTTPError, OSError) as e:
            self.logger.error(
                f"Could not reach Kubernetes API reading ConfigMap {self.namespace}/{self.name}: {e}"
            )
            raise HostStoreError(
                f"Failed to read ConfigMap {self.namespace}/{self.name}: {e}"
            ) from e

        data = configmap.data or {}
        if self.key not in data:
            self.logger.info(
                f"ConfigMap {self.namespace}/{self.name} has no key {self.key}, using empty table"
            )
            return {}

        return codec.parse(data[self.key] or "")

    def save(self, table: HostTable) -> None:
        """
        Create the ConfigMap, or merge-patch its data key if it exists.

        Args:
            table: Host table to persist

        Raises:
            HostStoreError: If any API call fails
        """
        content = codec.serialize(table)
        try:
            if self._exists():
                self.logger.debug(f"Patching ConfigMap {self.namespace}/{self.name}")
                self.api.patch_namespaced_config_map(
                    self.name,
                    self.namespace,
                    {"data": {self.key: content}},
                    _content_type=MERGE_PATCH,
                )
            else:
                self.logger.debug(f"Creating ConfigMap {self.namespace}/{self.name}")
                body = client.V1ConfigMap(
                    metadata=client.V1ObjectMeta(name=self.name, namespace=self.namespace),
                    data={self.key: content},
                )
                self.api.create_namespaced_config_map(self.namespace, body)
        except ApiException as e:
            self.logger.error(
                f"Kubernetes API error writing ConfigMap {self.namespace}/{self.name}: {e.status} {e.reason}"
            )
            raise HostStoreError(
                f"Failed to write ConfigMap {self.namespace}/{self.name}: {e.reason}"
            ) from e
        except (HTTPError, OSError) as e:
            self.logger.error(
                f"Could not reach Kubernetes API writing ConfigMap {self.namespace}/{self.name}: {e}"
            )
            raise HostStoreError(
                f"Failed to write ConfigMap {self.namespace}/{self.name}: {e}"
            ) from e

        self.logger.info(f"Wrote {len(table)} names to {self.description}")

    def _exists(self) -> bool:
        configmaps = self.api.list_namespaced_config_map(
            self.namespace, field_selector=f"metadata.name={self.name}"
        )
        return any(item.metadata.name == self.name for item in configmaps.items)
