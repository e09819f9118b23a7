"""Brief: Tests for the SyncConfig pydantic model and validate_config().

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

from typing import Any, Dict

import pytest
from pydantic import ValidationError

from hostsync.config.config_schema import SyncConfig, validate_config
from hostsync.errors import ConfigurationError
from hostsync.registry import DEFAULT_REGISTRY_QUERY


def _base(**overrides: Any) -> Dict[str, Any]:
    cfg: Dict[str, Any] = {
        "target_address": "192.168.1.100",
        "domain_name": "hackerspace.lan",
        "external_domain": "example.org",
        "output_path": "/tmp/hosts",
        "registry_path": "/tmp/database.sqlite",
    }
    cfg.update(overrides)
    return cfg


def test_defaults() -> None:
    """Brief: Optional fields take their documented defaults."""

    cfg = validate_config(_base())
    assert cfg.local_suffix == ".local"
    assert cfg.debounce_seconds == 1.0
    assert cfg.poll_interval_seconds == 1.0
    assert cfg.watch_backend == "watchdog"
    assert cfg.registry_query == DEFAULT_REGISTRY_QUERY


def test_config_is_frozen() -> None:
    """Brief: A validated config cannot be mutated."""

    cfg = validate_config(_base())
    with pytest.raises(ValidationError):
        cfg.debounce_seconds = 5  # type: ignore[misc]


def test_ipv6_target_and_whitespace_stripped() -> None:
    """Brief: IPv6 literals are accepted and surrounding whitespace removed."""

    cfg = validate_config(_base(target_address=" fd00::1 ", registry_path=" /db "))
    assert cfg.target_address == "fd00::1"
    assert cfg.registry_path == "/db"


def test_domains_lose_surrounding_dots() -> None:
    """Brief: '.example.org.' is normalized to 'example.org'."""

    cfg = validate_config(_base(external_domain=".example.org.", domain_name="lan."))
    assert cfg.external_domain == "example.org"
    assert cfg.domain_name == "lan"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"target_address": "999.1.1.1"}, "target_address"),
        ({"domain_name": ""}, "domain_name"),
        ({"external_domain": "."}, "external_domain"),
        ({"debounce_seconds": -0.5}, "debounce_seconds"),
        ({"poll_interval_seconds": 0}, "poll_interval_seconds"),
        ({"watch_backend": "fanotify"}, "watch_backend"),
        ({"unexpected": True}, "unexpected"),
    ],
)
def test_invalid_values(overrides: Dict[str, Any], field: str) -> None:
    """Brief: Each invalid value raises ConfigurationError naming its field.

    Inputs:
      - overrides: invalid setting.
      - field: expected field name in the message.

    Outputs:
      - None; asserts ConfigurationError text.
    """

    with pytest.raises(ConfigurationError) as excinfo:
        validate_config(_base(**overrides))
    assert field in str(excinfo.value)


def test_missing_field_message() -> None:
    """Brief: Missing fields are reported as missing settings."""

    cfg = _base()
    del cfg["output_path"]
    with pytest.raises(ConfigurationError, match="output_path: required setting is missing"):
        validate_config(cfg)


def test_model_direct_construction() -> None:
    """Brief: SyncConfig can be built directly (used by tests and embedders)."""

    cfg = SyncConfig(**_base(local_suffix=None))
    assert cfg.local_suffix == ""
