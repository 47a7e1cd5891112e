# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/mon/node_usage.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from ..config.models import Toleration
from .mapping import Mapping

log = logging.getLogger("cephmon")

ZONE_LABEL = "failure-domain.beta.kubernetes.io/zone"
TOPOLOGY_ZONE_LABEL = "topology.kubernetes.io/zone"
HOSTNAME_LABEL = "kubernetes.io/hostname"

# effects that keep a pod off a node unless tolerated
_BLOCKING_EFFECTS = {"NoSchedule", "NoExecute"}


class Taint(BaseModel):
    key: str
    value: Optional[str] = None
    effect: str = "NoSchedule"


class NodeRecord(BaseModel):
    """A node as reported by the inventory, validated at the boundary."""
    name: str
    labels: Dict[str, str] = Field(default_factory=dict)
    taints: List[Taint] = Field(default_factory=list)
    addresses: Dict[str, str] = Field(default_factory=dict)  # InternalIP / ExternalIP / Hostname
    ready: bool = True
    unschedulable: bool = False

    @property
    def hostname(self) -> str:
        return self.labels.get(HOSTNAME_LABEL) or self.addresses.get("Hostname") or self.name

    @property
    def address(self) -> str:
        for kind in ("InternalIP", "ExternalIP", "Hostname"):
            if self.addresses.get(kind):
                return self.addresses[kind]
        return ""

    def zone(self, zone_label: str = ZONE_LABEL) -> str:
        return self.labels.get(zone_label) or self.labels.get(TOPOLOGY_ZONE_LABEL, "")


@dataclass
class NodeUsage:
    node: NodeRecord
    mon_count: int = 0
    mon_valid: bool = False


def toleration_matches(toleration: Toleration, taint: Taint) -> bool:
    if toleration.effect and toleration.effect != taint.effect:
        return False
    if toleration.operator == "Exists":
        return not toleration.key or toleration.key == taint.key
    return toleration.key == taint.key and (toleration.value or "") == (taint.value or "")


def node_is_eligible(
    node: NodeRecord,
    *,
    node_selector: Optional[Dict[str, str]] = None,
    tolerations: Sequence[Toleration] = (),
) -> bool:
    """Schedulability only; occupancy is handled by the caller."""
    if not node.ready or node.unschedulable:
        return False
    for key, value in (node_selector or {}).items():
        if node.labels.get(key) != value:
            return False
    for taint in node.taints:
        if taint.effect not in _BLOCKING_EFFECTS:
            continue
        if not any(toleration_matches(t, taint) for t in tolerations):
            return False
    return True


def scan_node_usage(
    nodes: Iterable[NodeRecord],
    mapping: Mapping,
    *,
    allow_multiple_per_node: bool = False,
    node_selector: Optional[Dict[str, str]] = None,
    tolerations: Sequence[Toleration] = (),
    zone_label: str = ZONE_LABEL,
) -> List[List[NodeUsage]]:
    """
    Group the nodes by zone and annotate each with its mon count and whether
    a new mon may go there. Nodes that are no longer eligible but still hold
    mons are kept so their zone does not look empty.
    """
    zones: Dict[str, List[NodeUsage]] = {}
    for node in sorted(nodes, key=lambda n: n.name):
        count = mapping.mons_on_node(node.name)
        valid = node_is_eligible(node, node_selector=node_selector, tolerations=tolerations)
        if valid and count > 0 and not allow_multiple_per_node:
            valid = False
        zones.setdefault(node.zone(zone_label), []).append(
            NodeUsage(node=node, mon_count=count, mon_valid=valid)
        )

    for zone, usage in zones.items():
        log.debug(
            "zone '%s': %s",
            zone or "<none>",
            ", ".join(f"{u.node.name}(mons={u.mon_count}, valid={u.mon_valid})" for u in usage),
        )
    return list(zones.values())
