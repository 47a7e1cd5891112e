# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one reconcile pass
    env: str          # dev/staging/prod
    context: Optional[str]  # ceph cluster (namespace)

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(env: str, context: Optional[str]) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": str(uuid.uuid4()),
        "env": env,
        "context": context,
    }


# ---------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class MonScheduled(BaseEvent):
    name: str
    node: str
    zone_count: int

@dataclass(frozen=True)
class NoSchedulableNodes(BaseEvent):
    name: str
    placed: int


# ---------------------------------------------------------------------
# Daemon lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class MonCreated(BaseEvent):
    name: str
    endpoint: str
    node: Optional[str] = None

@dataclass(frozen=True)
class MonUpdated(BaseEvent):
    name: str
    endpoint: str

@dataclass(frozen=True)
class MonRemoved(BaseEvent):
    name: str

@dataclass(frozen=True)
class MonStateSaved(BaseEvent):
    endpoints: str
    max_mon_id: int


# ---------------------------------------------------------------------
# Quorum
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class QuorumWaitStarted(BaseEvent):
    expected: List[str]
    timeout_s: float
    require_all: bool

@dataclass(frozen=True)
class QuorumCheckFailed(BaseEvent):
    attempt: int
    error: str

@dataclass(frozen=True)
class QuorumReached(BaseEvent):
    members: List[str]
    attempts: int

@dataclass(frozen=True)
class QuorumTimedOut(BaseEvent):
    expected: List[str]
    timeout_s: float
    attempts: int


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ReconcileSummary(BaseEvent):
    desired: int
    created: int
    total: int
    status: str          # "OK" | "DEGRADED" | "FAILED"
    error: Optional[str] = None
