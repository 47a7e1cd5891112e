# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/config/loader.py

import logging
import os
from pathlib import Path

import yaml

from .models import CephMonConfig

log = logging.getLogger("cephmon")

SECRETS_ENV = "CEPHMON_SECRETS_FILE"
# sections a secrets file may fill in; anything else belongs in the main config
SECRET_SECTIONS = {"status_ssh"}


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Merge *override* into *base* in place. Nested dicts are merged key by key;
    empty override values never clear a base value.
    """
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _deep_merge(current, value)
        elif value not in (None, ""):
            base[key] = value
    return base


def _find_secrets_file(config_path: Path) -> Path | None:
    """$CEPHMON_SECRETS_FILE if set, else secrets.yaml beside the config."""
    explicit = os.environ.get(SECRETS_ENV)
    if explicit:
        p = Path(explicit)
        if not p.is_file():
            log.warning("%s=%s does not exist, skipping", SECRETS_ENV, explicit)
            return None
        return p

    p = config_path.parent / "secrets.yaml"
    return p if p.is_file() else None


def _load_yaml(path: Path) -> dict:
    """Read one YAML document with ${ENV_VAR} references expanded."""
    data = yaml.safe_load(os.path.expandvars(path.read_text())) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _secret_overrides(path: Path) -> dict:
    secrets = _load_yaml(path)
    stray = sorted(set(secrets) - SECRET_SECTIONS)
    if stray:
        log.warning("ignoring non-secret sections %s in %s", stray, path)
    return {k: v for k, v in secrets.items() if k in SECRET_SECTIONS}


def load_config(path: str | Path) -> CephMonConfig:
    """
    Load and validate a cephmon YAML config.

    The SSH credentials used for mon status checks can be kept out of the
    main file in a secrets.yaml of the same shape. ${ENV_VAR} placeholders are
    expanded in both files before validation.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"cephmon config not found: {path}")
    data = _load_yaml(path)

    secrets_path = _find_secrets_file(path)
    if secrets_path:
        log.debug("merging secrets from %s", secrets_path)
        _deep_merge(data, _secret_overrides(secrets_path))

    return CephMonConfig.model_validate(data)
