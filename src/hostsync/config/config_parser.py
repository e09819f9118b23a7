"""Configuration loading for hostsync.

Brief:
  Settings come from three layers, later layers overriding earlier ones:
    - an optional YAML file whose keys are SyncConfig field names
    - environment variables (TARGET_IP, DB_PATH, ...)
    - CLI `-v/--var KEY=VALUE` assignments using the same variable names

Inputs:
  - YAML config path, environment mapping, CLI assignments

Outputs:
  - A validated, immutable SyncConfig
"""

from __future__ import annotations

import os
import re
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .config_schema import REQUIRED_FIELDS, SyncConfig, validate_config
from ..errors import ConfigurationError

# Variable name -> SyncConfig field. Names match the container deployment.
VARIABLE_FIELDS: Dict[str, str] = {
    "TARGET_IP": "target_address",
    "DOMAIN_NAME": "domain_name",
    "EXTERNAL_DOMAIN": "external_domain",
    "DNSMASQ_PATH": "output_path",
    "DB_PATH": "registry_path",
    "LOCAL_SUFFIX": "local_suffix",
    "DEBOUNCE_SECONDS": "debounce_seconds",
    "POLL_INTERVAL_SECONDS": "poll_interval_seconds",
    "WATCH_BACKEND": "watch_backend",
    "REGISTRY_QUERY": "registry_query",
}

# Variable name -> key inside the `logging` mapping.
LOGGING_VARIABLES: Dict[str, str] = {
    "LOG_LEVEL": "level",
    "LOG_FILE": "file",
}

# Variables whose empty value is meaningful rather than "unset".
_EMPTY_ALLOWED = {"LOCAL_SUFFIX"}

_FIELD_VARIABLES = {field: var for var, field in VARIABLE_FIELDS.items()}


def _is_var_key(key: str) -> bool:
    """Brief: Validate whether a string is a supported variable key name.

    Inputs:
      - key: Candidate variable name.

    Outputs:
      - bool: True when the name is ALL_UPPERCASE and matches [A-Z_][A-Z0-9_]*.
    """

    if not key:
        return False
    if key != key.upper():
        return False
    return bool(re.fullmatch(r"[A-Z_][A-Z0-9_]*", key))


def _is_known(key: str) -> bool:
    return key in VARIABLE_FIELDS or key in LOGGING_VARIABLES


def parse_config_variables(
    *,
    cli_vars: Optional[List[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Brief: Collect hostsync variables from the environment and the CLI.

    Inputs:
      - cli_vars: Optional list of CLI `KEY=VALUE` assignments.
      - environ: Optional environment mapping (defaults to os.environ).

    Outputs:
      - dict: Known variable names to raw string values.

    Precedence:
      - CLI (-v/--var) overrides environment.

    Notes:
      - Unknown environment variables are ignored; unknown CLI names raise.
      - Empty values count as unset, except LOCAL_SUFFIX where '' disables
        the local alias.

    Example:
      >>> parse_config_variables(environ={"TARGET_IP": "10.0.0.1"}, cli_vars=["TARGET_IP=10.0.0.2"])
      {'TARGET_IP': '10.0.0.2'}
    """

    merged: Dict[str, str] = {}

    env = os.environ if environ is None else environ
    for k, v in env.items():
        if not isinstance(k, str) or not _is_known(k):
            continue
        merged[k] = str(v)

    for assignment in cli_vars or []:
        if "=" not in assignment:
            raise ConfigurationError(
                "Invalid -v/--var value (expected KEY=VALUE), got: %r" % assignment
            )
        k, raw = assignment.split("=", 1)
        k = str(k).strip()
        if not _is_var_key(k):
            raise ConfigurationError(
                "Invalid variable name %r (must be ALL_UPPERCASE and match [A-Z_][A-Z0-9_]*)"
                % k
            )
        if not _is_known(k):
            raise ConfigurationError("Unknown variable %r" % k)
        merged[k] = raw

    return {
        k: v for k, v in merged.items() if v.strip() != "" or k in _EMPTY_ALLOWED
    }


def read_config_file(config_path: str) -> Dict[str, Any]:
    """Brief: Read a YAML config file into a mapping.

    Inputs:
      - config_path: Path to the YAML file.

    Outputs:
      - dict: Parsed mapping (empty for an empty file).

    Raises:
      - ConfigurationError: unreadable file, invalid YAML, or non-mapping root.
    """

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(cfg, dict):
        raise ConfigurationError("Configuration root must be a mapping")
    return cfg


def apply_variables(cfg: Dict[str, Any], variables: Mapping[str, str]) -> Dict[str, Any]:
    """Brief: Overlay variables onto a config mapping (mutated in-place).

    Inputs:
      - cfg: Mapping of SyncConfig field names.
      - variables: Output of parse_config_variables().

    Outputs:
      - dict: The same cfg mapping.
    """

    for var, value in variables.items():
        if var in VARIABLE_FIELDS:
            cfg[VARIABLE_FIELDS[var]] = value

    log_overrides = {
        LOGGING_VARIABLES[var]: value
        for var, value in variables.items()
        if var in LOGGING_VARIABLES
    }
    if log_overrides:
        log_cfg = cfg.get("logging") or {}
        if not isinstance(log_cfg, dict):
            raise ConfigurationError("config.logging must be a mapping when present")
        cfg["logging"] = {**log_cfg, **log_overrides}
    return cfg


def load_config(
    config_path: Optional[str] = None,
    *,
    cli_vars: Optional[List[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SyncConfig:
    """Brief: Build the runtime SyncConfig from file, environment and CLI.

    Inputs:
      - config_path: Optional YAML file path.
      - cli_vars: Optional CLI `KEY=VALUE` assignments.
      - environ: Optional environment mapping (defaults to os.environ).

    Outputs:
      - SyncConfig.

    Raises:
      - ConfigurationError: when a required setting is missing (every
        missing variable is named) or any value is invalid.
    """

    cfg: Dict[str, Any] = read_config_file(config_path) if config_path else {}
    apply_variables(cfg, parse_config_variables(cli_vars=cli_vars, environ=environ))

    missing = [
        _FIELD_VARIABLES[field]
        for field in REQUIRED_FIELDS
        if cfg.get(field) is None or str(cfg.get(field)).strip() == ""
    ]
    if missing:
        raise ConfigurationError(
            "\n".join(f"Missing required environment variable: {v}" for v in missing)
        )

    return validate_config(cfg)
