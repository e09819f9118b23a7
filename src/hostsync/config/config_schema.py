"""Typed configuration model for hostsync.

Brief:
  SyncConfig is validated once at startup and is immutable afterwards. Use
  validate_config() to turn a raw mapping into a SyncConfig; validation
  failures surface as ConfigurationError listing every offending field.
"""

from __future__ import annotations

import ipaddress
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError
from ..registry import DEFAULT_REGISTRY_QUERY

REQUIRED_FIELDS = (
    "target_address",
    "domain_name",
    "external_domain",
    "output_path",
    "registry_path",
)


class SyncConfig(BaseModel):
    """Brief: Validated runtime settings.

    Inputs:
      - target_address: IP literal every published hostname resolves to.
      - domain_name: Local DNS suffix appended to simple hostnames.
      - external_domain: FQDN suffix whose subdomains are passed through.
      - output_path: Generated hosts file (read by dnsmasq).
      - registry_path: Watched SQLite registry database.
      - local_suffix: Extra alias suffix including its separator; '' disables it.
      - debounce_seconds: Quiet period after the last change before regenerating.
      - poll_interval_seconds: Maximum wait per run-loop iteration.
      - watch_backend: 'watchdog' (inotify close-write events) or 'poll'.
      - registry_query: SQL returning one JSON hostname array per row.
      - logging: Mapping passed to init_logging().

    Outputs:
      - SyncConfig instance (frozen).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    target_address: str = Field(min_length=1)
    domain_name: str = Field(min_length=1)
    external_domain: str = Field(min_length=1)
    output_path: str = Field(min_length=1)
    registry_path: str = Field(min_length=1)
    local_suffix: str = ".local"
    debounce_seconds: float = Field(default=1.0, ge=0)
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    watch_backend: Literal["watchdog", "poll"] = "watchdog"
    registry_query: str = Field(default=DEFAULT_REGISTRY_QUERY, min_length=1)
    logging: Dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "target_address",
        "domain_name",
        "external_domain",
        "output_path",
        "registry_path",
        mode="before",
    )
    @classmethod
    def _strip_required(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("target_address")
    @classmethod
    def _validate_address(cls, v: str) -> str:
        try:
            ipaddress.ip_address(v)
        except ValueError as exc:
            raise ValueError(f"not an IP address: {v!r}") from exc
        return v

    @field_validator("domain_name", "external_domain")
    @classmethod
    def _strip_dots(cls, v: str) -> str:
        v = v.strip(".")
        if not v:
            raise ValueError("domain must not be empty")
        return v

    @field_validator("local_suffix", mode="before")
    @classmethod
    def _none_suffix(cls, v: Any) -> Any:
        # An empty LOCAL_SUFFIX in YAML is parsed as null; both disable it.
        return "" if v is None else v


def _format_errors(exc: ValidationError) -> str:
    lines = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        if err.get("type") == "missing":
            lines.append(f"  - {loc}: required setting is missing")
        else:
            lines.append(f"  - {loc}: {err.get('msg')}")
    return "Invalid configuration:\n" + "\n".join(lines)


def validate_config(cfg: Dict[str, Any]) -> SyncConfig:
    """Brief: Validate a merged configuration mapping.

    Inputs:
      - cfg: Mapping of SyncConfig field names to raw values.

    Outputs:
      - SyncConfig.

    Raises:
      - ConfigurationError: with one line per invalid or missing field.

    Example:
      >>> validate_config({"target_address": "10.0.0.1", "domain_name": "lan",
      ...                  "external_domain": "example.org",
      ...                  "output_path": "/tmp/hosts", "registry_path": "/tmp/db"}).local_suffix
      '.local'
    """
    try:
        return SyncConfig(**cfg)
    except ValidationError as exc:
        raise ConfigurationError(_format_errors(exc)) from exc
