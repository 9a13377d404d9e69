"""
Store selection for the Hosts Webhook Provider.
"""

from hosts_webhook.config.config import Config
from hosts_webhook.store.base import HostStore
from hosts_webhook.store.configmap import ConfigMapHostStore
from hosts_webhook.store.file import FileHostStore


def create_store(config: Config) -> HostStore:
    """
    Build the host table store selected by the configuration.

    Args:
        config: Application configuration

    Returns:
        HostStore: Configured store

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = config.host_backend.lower()
    if backend == "file":
        return FileHostStore(config.host_file_path)
    if backend == "configmap":
        return ConfigMapHostStore(
            config.host_configmap_name,
            namespace=config.host_configmap_namespace,
            key=config.host_configmap_key,
        )
    raise ValueError(f"Unknown host backend: {config.host_backend!r}")
