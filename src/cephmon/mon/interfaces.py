# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/mon/interfaces.py

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from .identity import MonConfig
    from .node_usage import NodeRecord


class KeyValueStore(Protocol):
    """Durable flat string records, one dict per key."""

    def save(self, key: str, data: Dict[str, str]) -> None: ...

    def load(self, key: str) -> Optional[Dict[str, str]]:
        """Returns None when the record does not exist."""
        ...


class StatusExecutor(Protocol):
    def execute_for_status(self, command: str, args: Sequence[str]) -> str:
        """Run a status command and return its stdout. Raise on failure."""
        ...


class NodeInventory(Protocol):
    def list_nodes(self, selector: Optional[Dict[str, str]] = None) -> List["NodeRecord"]: ...


class DaemonProvider(Protocol):
    """
    Contract for running mon daemons.
    Implementations should be idempotent and safe to re-run.
    """

    def create_or_update_daemon(self, mon: "MonConfig") -> None: ...

    def ensure_service(self, mon: "MonConfig") -> str:
        """Make sure the mon has a stable service address and return it."""
        ...
