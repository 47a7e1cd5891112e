# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/config/models.py

import logging
from typing import Dict, List, Optional, Literal
from pydantic import BaseModel, Field, field_validator

log = logging.getLogger("cephmon")

MIN_MON_COUNT = 1
MAX_MON_COUNT = 9


class Toleration(BaseModel):
    key: str = ""
    operator: Literal["Equal", "Exists"] = "Equal"
    value: Optional[str] = None
    effect: str = ""          # empty tolerates every effect


class PlacementSpec(BaseModel):
    node_selector: Dict[str, str] = Field(default_factory=dict)
    tolerations: List[Toleration] = Field(default_factory=list)


class NetworkSpec(BaseModel):
    host_network: bool = False


class MonSpec(BaseModel):
    count: int = 3
    allow_multiple_per_node: bool = False

    @field_validator("count")
    @classmethod
    def _check_count(cls, v: int) -> int:
        if not MIN_MON_COUNT <= v <= MAX_MON_COUNT:
            raise ValueError(f"mon count must be between {MIN_MON_COUNT} and {MAX_MON_COUNT}, got {v}")
        if v % 2 == 0:
            log.warning("mon count %d is even; an odd count is recommended for quorum", v)
        return v


class ClusterSpec(BaseModel):
    """Desired state of one Ceph cluster's mons."""
    namespace: str                      # also the ceph cluster name
    ceph_image: str = "quay.io/ceph/ceph:v18.2.1"
    data_dir_host_path: str = "/var/lib/rook"
    mon: MonSpec = MonSpec()
    network: NetworkSpec = NetworkSpec()
    placement: PlacementSpec = PlacementSpec()


class OrchestratorSettings(BaseModel):
    app_name: str = "rook-ceph"
    zone_label: str = "failure-domain.beta.kubernetes.io/zone"
    node_selector: Dict[str, str] = Field(default_factory=dict)   # inventory filter
    quorum_timeout_seconds: float = 300.0
    quorum_retry_interval_seconds: float = 15.0
    status_timeout_seconds: float = 30.0     # per mon_status call
    bootstrap_ip_prefix: Optional[str] = None


class StatusSSH(BaseModel):
    """Run mon_status on a remote host instead of locally."""
    host: str
    username: str = "ubuntu"
    port: int = 22
    password: Optional[str] = None
    pkey_path: Optional[str] = None


class CephMonConfig(BaseModel):
    context: Optional[str] = None       # Kubernetes context to use
    environment: Literal["dev", "staging", "prod"] = "dev"
    cluster: ClusterSpec
    orchestrator: OrchestratorSettings = OrchestratorSettings()
    status_ssh: Optional[StatusSSH] = None
