# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/store/file.py

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional

import yaml

from ..mon.errors import PersistenceError

log = logging.getLogger("cephmon")

_SAFE_KEY = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class YamlFileStore:
    """
    One YAML file per record under a state directory. Writes go to a temp
    file in the same directory and are moved into place with os.replace, so
    a crash leaves either the old or the new record.
    """

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise PersistenceError(f"invalid record name '{key}'")
        return self.base_dir / f"{key}.yaml"

    def save(self, key: str, data: Dict[str, str]) -> None:
        path = self._path(key)
        payload = yaml.safe_dump({k: str(v) for k, v in data.items()}, default_flow_style=False)
        fd, tmp = tempfile.mkstemp(dir=self.base_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as exc:
            Path(tmp).unlink(missing_ok=True)
            raise PersistenceError(f"failed to write {path}: {exc}") from exc
        log.debug("wrote %s", path)

    def load(self, key: str) -> Optional[Dict[str, str]]:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise PersistenceError(f"failed to read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"{path} does not hold a mapping")
        return {str(k): "" if v is None else str(v) for k, v in data.items()}


class MemoryStore:
    """Process-local store, for dry runs and tests."""

    def __init__(self):
        self.records: Dict[str, Dict[str, str]] = {}

    def save(self, key: str, data: Dict[str, str]) -> None:
        self.records[key] = dict(data)

    def load(self, key: str) -> Optional[Dict[str, str]]:
        data = self.records.get(key)
        return dict(data) if data is not None else None
