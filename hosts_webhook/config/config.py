"""
Configuration module for the Hosts Webhook Provider.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Environment variables that override values loaded from YAML
ENV_OVERRIDES = {
    "LISTEN_ADDR": "listen_addr",
    "HEALTH_LISTEN_ADDR": "health_listen_addr",
    "DRY_RUN": "dry_run",
    "DEBUG": "debug",
    "HOST_BACKEND": "host_backend",
    "HOST_FILE_PATH": "host_file_path",
    "HOST_CM_NAME": "host_configmap_name",
    "HOST_CM_NAMESPACE": "host_configmap_namespace",
    "HOST_CM_KEY": "host_configmap_key",
    "DOMAINS_FILTER": "domain_filter.filters",
    "DOMAINS_EXCLUDE": "domain_filter.exclude",
    "DOMAINS_REGEX": "domain_filter.regex",
    # Misspelled name read by earlier releases, the correct spelling wins
    "DOMAINS_REGEX_EXCUDE": "domain_filter.regex_exclusion",
    "DOMAINS_REGEX_EXCLUDE": "domain_filter.regex_exclusion",
    "LOG_LEVEL": "log_level",
}


def _split_list(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class DomainFilter(BaseModel):
    """
    Domain filter advertised to external-dns during negotiation.

    The filter is frozen once built; it is handed to the webhook server at
    startup and never changed afterwards.
    """

    model_config = ConfigDict(frozen=True)

    filters: Tuple[str, ...] = (".local",)
    exclude: Tuple[str, ...] = ()
    regex: str = ""
    regex_exclusion: str = ""

    @field_validator("filters", "exclude", mode="before")
    @classmethod
    def _split(cls, value: Any) -> Any:
        value = _split_list(value)
        if isinstance(value, list):
            return tuple(value)
        return value

    def to_wire(self) -> Dict[str, Any]:
        """
        Serialize the filter for external-dns.

        Returns:
            Dict[str, Any]: Filter with camelCase keys
        """
        return {
            "filters": list(self.filters),
            "exclude": list(self.exclude),
            "regex": self.regex,
            "regexExclusion": self.regex_exclusion,
        }


class Config(BaseModel):
    """Configuration for the Hosts Webhook Provider."""

    # Server configuration
    listen_addr: str = "127.0.0.1:8888"
    health_listen_addr: str = "0.0.0.0:8080"
    shutdown_grace_period: float = 300.0
    dry_run: bool = False
    debug: bool = False

    # Host table configuration
    host_backend: str = "file"
    host_file_path: str = "/etc/hosts-webhook/hosts"
    host_configmap_name: str = "external-mdns"
    host_configmap_namespace: Optional[str] = None
    host_configmap_key: str = "hosts"

    # Domain filtering
    domain_filter: DomainFilter = Field(default_factory=DomainFilter)

    # Logging configuration
    log_level: str = "info"

    @field_validator("host_configmap_namespace", mode="before")
    @classmethod
    def _empty_namespace(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    @classmethod
    def from_yaml(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "Config":
        """
        Load configuration from a YAML file, then apply environment overrides.

        Args:
            config_path: Path to the YAML configuration file
            environ: Environment mapping, defaults to os.environ

        Returns:
            Config: Config instance populated with values from the YAML file
        """
        environ = os.environ if environ is None else environ

        # Default configuration paths to check
        default_paths = [
            Path("./hosts-webhook.yaml"),
            Path("./hosts-webhook.yml"),
            Path("/etc/hosts-webhook/config.yaml"),
        ]

        # If config_path is provided, use it
        if config_path:
            paths = [Path(config_path)]
        else:
            paths = default_paths

        # Try to load configuration from the first existing path
        config_data = {}
        for path in paths:
            if path.exists():
                with open(path, "r") as f:
                    yaml_content = f.read()
                    # Substitute environment variables
                    yaml_content = cls._substitute_env_vars(yaml_content, environ)
                    config_data = yaml.safe_load(yaml_content) or {}
                break

        flat_config = cls._flatten_config(config_data)
        cls._apply_env_overrides(flat_config, environ)

        return cls(**flat_config)

    @staticmethod
    def _substitute_env_vars(content: str, environ: Dict[str, str]) -> str:
        """
        Substitute environment variables in the configuration content.

        Args:
            content: Configuration content
            environ: Environment mapping

        Returns:
            str: Configuration content with environment variables substituted
        """
        # Pattern for ${ENV_VAR} or ${ENV_VAR:-default}
        pattern = r"\${([^}]+)}"

        def replace_env_var(match):
            env_var = match.group(1)
            if ":-" in env_var:
                env_var, default = env_var.split(":-", 1)
                return environ.get(env_var, default)
            return environ.get(env_var, "")

        return re.sub(pattern, replace_env_var, content)

    @staticmethod
    def _flatten_config(config_data: dict) -> dict:
        """
        Flatten nested configuration.

        Only keys present in the file are emitted, so model defaults apply
        to everything else.

        Args:
            config_data: Nested configuration data

        Returns:
            dict: Flattened configuration data
        """
        flat_config: Dict[str, Any] = {}

        def copy(section: dict, key: str, target: str) -> None:
            if key in section:
                flat_config[target] = section[key]

        server = config_data.get("server") or {}
        copy(server, "listen_addr", "listen_addr")
        copy(server, "health_listen_addr", "health_listen_addr")
        copy(server, "shutdown_grace_period", "shutdown_grace_period")
        copy(server, "dry_run", "dry_run")
        copy(server, "debug", "debug")

        hosts = config_data.get("hosts") or {}
        copy(hosts, "backend", "host_backend")
        copy(hosts, "file_path", "host_file_path")
        configmap = hosts.get("configmap") or {}
        copy(configmap, "name", "host_configmap_name")
        copy(configmap, "namespace", "host_configmap_namespace")
        copy(configmap, "key", "host_configmap_key")

        domains = config_data.get("domains") or {}
        domain_filter: Dict[str, Any] = {}
        for key, target in (
            ("include", "filters"),
            ("exclude", "exclude"),
            ("regex", "regex"),
            ("regex_exclude", "regex_exclusion"),
        ):
            if key in domains:
                domain_filter[target] = domains[key]
        if domain_filter:
            flat_config["domain_filter"] = domain_filter

        logging_config = config_data.get("logging") or {}
        copy(logging_config, "level", "log_level")

        return flat_config

    @staticmethod
    def _apply_env_overrides(flat_config: dict, environ: Dict[str, str]) -> None:
        for env_var, target in ENV_OVERRIDES.items():
            if env_var not in environ:
                continue
            value = environ[env_var]
            if target.startswith("domain_filter."):
                section = dict(flat_config.get("domain_filter") or {})
                section[target.split(".", 1)[1]] = value
                flat_config["domain_filter"] = section
            else:
                flat_config[target] = value


def parse_listen_addr(listen_addr: str) -> Tuple[str, int]:
    """
    Split a ``host:port`` listen address.

    Args:
        listen_addr: Address such as ``127.0.0.1:8888`` or ``[::1]:8888``

    Returns:
        Tuple[str, int]: Host and port

    Raises:
        ValueError: If the address has no valid port
    """
    host, sep, port = listen_addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid listen address: {listen_addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host or "0.0.0.0", int(port)

