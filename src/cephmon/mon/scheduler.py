# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/mon/scheduler.py

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .identity import MonConfig
from .node_usage import NodeUsage

log = logging.getLogger("cephmon")


def _zone_choice(zone: Sequence[NodeUsage]) -> tuple[Optional[NodeUsage], int]:
    """Least loaded valid node of a zone, and the zone's total mon count."""
    choice: Optional[NodeUsage] = None
    zone_mon_count = 0
    for usage in zone:
        # invalid nodes still count: a stranded mon means the zone is not empty
        zone_mon_count += usage.mon_count
        if not usage.mon_valid:
            continue
        if choice is None or usage.mon_count < choice.mon_count:
            choice = usage
    return choice, zone_mon_count


def schedule_monitor(mon: MonConfig, zones: List[List[NodeUsage]]) -> Optional[NodeUsage]:
    """
    Pick the node for a new mon.

    An empty zone wins over any occupied zone so mons spread across failure
    domains first. Between occupied zones the node with the fewest mons wins.
    Ties go to the first candidate seen. Returns None if no valid node exists.
    """
    node_choice: Optional[NodeUsage] = None
    choice_zone_count = -1

    for zone in zones:
        zone_node, zone_count = _zone_choice(zone)
        if zone_node is None:
            continue

        if node_choice is None or (zone_count == 0 and choice_zone_count > 0):
            node_choice, choice_zone_count = zone_node, zone_count
            continue

        if choice_zone_count == 0:
            continue

        if zone_count > 0 and zone_node.mon_count < node_choice.mon_count:
            node_choice, choice_zone_count = zone_node, zone_count

    if node_choice is None:
        log.debug("no valid node for mon %s", mon.daemon_name)
    else:
        log.debug(
            "mon %s -> node %s (mons on node=%d)",
            mon.daemon_name, node_choice.node.name, node_choice.mon_count,
        )
    return node_choice
