"""Unit tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from hosts_webhook.__main__ import load_config, parse_args
from hosts_webhook.config.config import Config, DomainFilter, parse_listen_addr
from hosts_webhook.store.configmap import ConfigMapHostStore
from hosts_webhook.store.factory import create_store
from hosts_webhook.store.file import FileHostStore


def test_defaults_without_file_or_environment(tmp_path: Path) -> None:
    config = Config.from_yaml(tmp_path / "absent.yaml", environ={})

    assert config.listen_addr == "127.0.0.1:8888"
    assert config.health_listen_addr == "0.0.0.0:8080"
    assert config.host_backend == "file"
    assert config.host_configmap_name == "external-mdns"
    assert config.host_configmap_key == "hosts"
    assert config.host_configmap_namespace is None
    assert config.dry_run is False
    assert config.domain_filter.to_wire() == {
        "filters": [".local"],
        "exclude": [],
        "regex": "",
        "regexExclusion": "",
    }


def test_yaml_sections_are_flattened(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        """
server:
  listen_addr: 0.0.0.0:9999
  dry_run: true
hosts:
  backend: configmap
  configmap:
    name: lan-hosts
    namespace: ${NS:-kube-system}
    key: data
domains:
  include: [home.arpa, lan]
  regex_exclude: "^internal"
logging:
  level: debug
"""
    )

    config = Config.from_yaml(config_file, environ={})

    assert config.listen_addr == "0.0.0.0:9999"
    assert config.dry_run is True
    assert config.host_backend == "configmap"
    assert config.host_configmap_name == "lan-hosts"
    assert config.host_configmap_namespace == "kube-system"
    assert config.host_configmap_key == "data"
    assert config.domain_filter.filters == ("home.arpa", "lan")
    assert config.domain_filter.regex_exclusion == "^internal"
    assert config.log_level == "debug"


def test_environment_overrides_yaml(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text("server:\n  listen_addr: 0.0.0.0:9999\n")
    environ = {
        "LISTEN_ADDR": "127.0.0.1:7777",
        "DRY_RUN": "true",
        "HOST_CM_NAMESPACE": "",
        "DOMAINS_FILTER": "a.local, b.local,,",
        "DOMAINS_REGEX": ".*\\.lan$",
    }

    config = Config.from_yaml(config_file, environ=environ)

    assert config.listen_addr == "127.0.0.1:7777"
    assert config.dry_run is True
    assert config.host_configmap_namespace is None
    assert config.domain_filter.filters == ("a.local", "b.local")
    assert config.domain_filter.regex == ".*\\.lan$"


def test_misspelled_regex_exclusion_variable_is_accepted(tmp_path: Path) -> None:
    config = Config.from_yaml(tmp_path / "absent.yaml", environ={"DOMAINS_REGEX_EXCUDE": "^old"})

    assert config.domain_filter.regex_exclusion == "^old"


def test_correct_regex_exclusion_variable_wins_over_misspelling(tmp_path: Path) -> None:
    environ = {"DOMAINS_REGEX_EXCUDE": "^old", "DOMAINS_REGEX_EXCLUDE": "^new"}

    config = Config.from_yaml(tmp_path / "absent.yaml", environ=environ)

    assert config.domain_filter.regex_exclusion == "^new"


def test_domain_filter_is_immutable() -> None:
    domain_filter = DomainFilter()

    with pytest.raises(ValidationError):
        domain_filter.regex = "changed"


def test_command_line_flags_win(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("DRY_RUN", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)
    args = parse_args([str(tmp_path / "absent.yaml"), "--dry-run", "--debug"])

    config = load_config(args)

    assert config.dry_run is True
    assert config.debug is True


@pytest.mark.parametrize(
    "value,expected",
    [
        ("127.0.0.1:8888", ("127.0.0.1", 8888)),
        (":8080", ("0.0.0.0", 8080)),
        ("[::1]:9000", ("::1", 9000)),
    ],
)
def test_parse_listen_addr(value, expected) -> None:
    assert parse_listen_addr(value) == expected


@pytest.mark.parametrize("value", ["localhost", "localhost:http", ""])
def test_parse_listen_addr_rejects_invalid(value) -> None:
    with pytest.raises(ValueError):
        parse_listen_addr(value)


class TestCreateStore:
    """Tests for backend selection."""

    def test_file_backend(self, tmp_path: Path) -> None:
        config = Config(host_backend="file", host_file_path=str(tmp_path / "hosts"))

        store = create_store(config)

        assert isinstance(store, FileHostStore)
        assert store.path == tmp_path / "hosts"

    def test_configmap_backend(self, monkeypatch) -> None:
        monkeypatch.setattr("hosts_webhook.store.configmap.load_kube_client", lambda: object())
        config = Config(
            host_backend="configmap",
            host_configmap_name="lan",
            host_configmap_namespace="dns",
            host_configmap_key="table",
        )

        store = create_store(config)

        assert isinstance(store, ConfigMapHostStore)
        assert (store.name, store.namespace, store.key) == ("lan", "dns", "table")

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            create_store(Config(host_backend="etcd"))
