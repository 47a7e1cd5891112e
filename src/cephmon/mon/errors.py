# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/mon/errors.py
from __future__ import annotations

from typing import List, Optional


class MonError(RuntimeError):
    """Base class for monitor orchestration failures."""


class InvalidIdentifierError(MonError, ValueError):
    """Raised when a mon daemon id or resource name cannot be parsed."""


class NoSchedulableNodesError(MonError):
    """Raised when no eligible node is left for a new mon."""

    def __init__(self, daemon_name: str, placed: int = 0):
        super().__init__(
            f"no schedulable node for mon '{daemon_name}' "
            f"({placed} mon(s) placed in this pass)"
        )
        self.daemon_name = daemon_name
        self.placed = placed


class QuorumTimeoutError(MonError):
    """Raised when the mons did not confirm quorum before the deadline."""

    def __init__(
        self,
        expected: List[str],
        timeout: float,
        attempts: int,
        members: Optional[List[str]] = None,
    ):
        in_quorum = ", ".join(members or []) or "none"
        super().__init__(
            f"timed out after {timeout}s ({attempts} attempts) waiting for mons "
            f"{expected} to reach quorum; in quorum: {in_quorum}"
        )
        self.expected = list(expected)
        self.timeout = timeout
        self.attempts = attempts
        self.members = list(members or [])


class PersistenceError(MonError):
    """Raised when the durable store cannot be read or written."""


class DaemonCreationError(MonError):
    """Raised when the daemon provider rejects a mon create/update."""


class InvalidEndpointError(MonError, ValueError):
    """Raised when a mon endpoint is not of the form host:port."""
