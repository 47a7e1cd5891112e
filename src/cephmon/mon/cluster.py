# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/mon/cluster.py

from __future__ import annotations

import contextlib
import logging
import threading
import time
import uuid
from typing import Callable, List, Optional

from ..config.models import ClusterSpec, OrchestratorSettings
from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    MonCreated,
    MonRemoved,
    MonScheduled,
    MonStateSaved,
    MonUpdated,
    NoSchedulableNodes,
    ReconcileSummary,
)
from .errors import (
    DaemonCreationError,
    InvalidEndpointError,
    InvalidIdentifierError,
    MonError,
    NoSchedulableNodesError,
    QuorumTimeoutError,
)
from .identity import DEFAULT_MSGR1_PORT, MonConfig, gen_mon_config, index_to_name, mon_index
from .interfaces import DaemonProvider, KeyValueStore, NodeInventory, StatusExecutor
from .mapping import (
    ENDPOINT_DATA_KEY,
    ClusterInfo,
    Mapping,
    MonInfo,
    MonStateStore,
    NodeInfo,
    format_endpoints,
    split_endpoint,
)
from .node_usage import NodeRecord, scan_node_usage
from .quorum import QuorumPoller
from .scheduler import schedule_monitor

log = logging.getLogger("cephmon")


class MonCluster:
    """
    Reconciles the mons of one Ceph cluster.

    Owns the cluster's Mapping, ClusterInfo and max mon id. Every placed mon
    is persisted before the next one is scheduled, so a restarted
    orchestrator picks up exactly where the previous one stopped.
    """

    def __init__(
        self,
        store: KeyValueStore,
        inventory: NodeInventory,
        daemons: DaemonProvider,
        executor: StatusExecutor,
        settings: Optional[OrchestratorSettings] = None,
        *,
        bus: Optional[EventBus] = None,
        lock: Optional[threading.Lock] = None,
        env: str = "dev",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.state_store = MonStateStore(store)
        self.inventory = inventory
        self.daemons = daemons
        self.executor = executor
        self.settings = settings or OrchestratorSettings()
        self.bus = bus or EventBus()
        self.lock = lock
        self.env = env
        self.clock = clock
        self.sleep = sleep

        self.cluster_info: Optional[ClusterInfo] = None
        self.mapping = Mapping()
        self.max_mon_id = -1
        self.spec: Optional[ClusterSpec] = None
        self.version: Optional[str] = None
        self.last_verification_error: Optional[QuorumTimeoutError] = None
        self.run_ctx = new_ctx(env=env, context=None)

    # ------------------------------------------------------------------
    # Reconcile
    # ------------------------------------------------------------------

    def start(self, cluster_info: Optional[ClusterInfo], version: str, spec: ClusterSpec) -> ClusterInfo:
        """
        Run one reconcile pass and return the updated ClusterInfo.

        Safe to call repeatedly: mapped mons are refreshed, never moved.
        """
        self.spec = spec
        self.version = version
        self.run_ctx = new_ctx(env=self.env, context=spec.namespace)
        self.last_verification_error = None
        created: List[str] = []
        desired = spec.mon.count

        try:
            self._init_cluster_info(cluster_info)
            log.info(
                "reconciling %d mon(s) for cluster %s (version=%s, host_network=%s)",
                desired, spec.namespace, version, spec.network.host_network,
            )

            nodes = self.inventory.list_nodes(self.settings.node_selector or None)
            self._refresh_node_addresses(nodes)

            existing = self._existing_mon_configs()
            for mon in existing:
                node = self.mapping.node.get(mon.daemon_name)
                if node is not None:
                    mon.node_name = node.name
                    mon.host_network = self._placed_on_host_network(mon, node)
                    self._update_daemon(mon)

            # mons known from ClusterInfo but never scheduled
            for mon in existing:
                if mon.daemon_name not in self.mapping.node:
                    self._place_mon(mon, nodes, fresh=False, placed=len(created))
                    created.append(mon.daemon_name)

            if len(self.cluster_info.monitors) > desired:
                log.info(
                    "%d mons exist, %d desired; extra mons are left for decommissioning",
                    len(self.cluster_info.monitors), desired,
                )

            while len(self.cluster_info.monitors) < desired:
                mon = self._next_mon_config()
                self._place_mon(mon, nodes, fresh=True, placed=len(created))
                created.append(mon.daemon_name)

            self._verify_quorum(sorted(self.cluster_info.monitors), require_all=bool(created))

        except NoSchedulableNodesError as exc:
            self._summary(desired, created, "DEGRADED", str(exc))
            raise
        except Exception as exc:
            self._summary(desired, created, "FAILED", str(exc))
            raise

        status = "DEGRADED" if self.last_verification_error else "OK"
        error = str(self.last_verification_error) if self.last_verification_error else None
        self._summary(desired, created, status, error)
        return self.cluster_info

    def remove_mon(self, name: str, spec: Optional[ClusterSpec] = None) -> None:
        """
        Forget a decommissioned mon: drop it from ClusterInfo and the Mapping
        and persist. The max mon id is kept so the name is never reused.
        Stopping the daemon itself is up to the caller.
        """
        if self.cluster_info is None:
            if spec is None:
                raise MonError("cluster state not loaded; pass the cluster spec")
            self.spec = spec
            self.run_ctx = new_ctx(env=self.env, context=spec.namespace)
            self._init_cluster_info(None)

        if name not in self.cluster_info.monitors and name not in self.mapping.node:
            raise MonError(f"mon '{name}' is not known in cluster {self.cluster_info.name}")

        with self._locked():
            self.cluster_info.monitors.pop(name, None)
            node = self.mapping.node.pop(name, None)
            if node is not None and self.mapping.mons_on_node(node.name) == 0:
                self.mapping.port.pop(node.name, None)
            self.save_mon_config()

        log.info("removed mon %s from cluster %s", name, self.cluster_info.name)
        self.bus.emit(MonRemoved(name=name, **self.run_ctx))

    def save_mon_config(self) -> None:
        """Persist endpoints, mapping and max mon id as one record."""
        data = self.state_store.save(self.cluster_info.monitors, self.mapping, self.max_mon_id)
        self.bus.emit(MonStateSaved(endpoints=data[ENDPOINT_DATA_KEY], max_mon_id=self.max_mon_id, **self.run_ctx))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _init_cluster_info(self, cluster_info: Optional[ClusterInfo]) -> None:
        name = self.spec.namespace
        if cluster_info is None:
            cluster_info = self.cluster_info or ClusterInfo(name=name)
        if not cluster_info.name:
            cluster_info.name = name
        for mon_name, info in cluster_info.monitors.items():
            try:
                split_endpoint(info.endpoint)
            except InvalidEndpointError as exc:
                raise InvalidEndpointError(f"supplied mon {mon_name}: {exc}") from exc

        identity = self.state_store.load_identity()
        if identity is not None:
            _, cluster_info.fsid = identity
        else:
            if not cluster_info.fsid:
                cluster_info.fsid = str(uuid.uuid4())
            log.info("bootstrapping cluster %s (fsid=%s)", cluster_info.name, cluster_info.fsid)
            self.state_store.save_identity(cluster_info.name, cluster_info.fsid)

        persisted = self.state_store.load()
        dirty = persisted is None
        if persisted is not None:
            for mon_name in set(cluster_info.monitors) - set(persisted.monitors):
                dirty = True
                log.info("adopting mon %s from the supplied cluster info", mon_name)
            # persisted endpoints win
            cluster_info.monitors.update(persisted.monitors)
            self.mapping = persisted.mapping
            self.max_mon_id = max(self.max_mon_id, persisted.max_mon_id)

        for mon_name in cluster_info.monitors:
            try:
                self.max_mon_id = max(self.max_mon_id, mon_index(mon_name))
            except InvalidIdentifierError:
                log.warning("ignoring unparsable mon name %s for id allocation", mon_name)

        self.cluster_info = cluster_info
        if dirty:
            self.save_mon_config()

    def _existing_mon_configs(self) -> List[MonConfig]:
        mons = []
        for name in sorted(self.cluster_info.monitors):
            info = self.cluster_info.monitors[name]
            try:
                mons.append(self._gen(name, public_ip=info.address, port=info.port))
            except InvalidIdentifierError as exc:
                log.error("skipping mon %s: %s", name, exc)
        return mons

    def _next_mon_config(self) -> MonConfig:
        # committed to max_mon_id only once the mon is created
        return self._gen(index_to_name(self.max_mon_id + 1))

    def _gen(self, mon_id: str, **kwargs) -> MonConfig:
        return gen_mon_config(
            mon_id,
            app_name=self.settings.app_name,
            data_dir_host_path=self.spec.data_dir_host_path,
            bootstrap_ip_prefix=self.settings.bootstrap_ip_prefix,
            **kwargs,
        )

    def _refresh_node_addresses(self, nodes: List[NodeRecord]) -> None:
        """Follow address changes of nodes that already carry mons."""
        by_name = {n.name: n for n in nodes}
        changed = False
        for daemon_name, info in self.mapping.node.items():
            node = by_name.get(info.name)
            if node is None or not node.address or node.address == info.address:
                continue
            mon = self.cluster_info.monitors.get(daemon_name)
            if mon is not None and mon.address == info.address:
                mon.endpoint = f"{node.address}:{mon.port}"
            log.info(
                "node %s of mon %s moved from %s to %s",
                info.name, daemon_name, info.address, node.address,
            )
            info.address = node.address
            info.hostname = node.hostname
            changed = True
        if changed:
            with self._locked():
                self.save_mon_config()

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def _place_mon(self, mon: MonConfig, nodes: List[NodeRecord], *, fresh: bool, placed: int) -> None:
        zones = scan_node_usage(
            nodes,
            self.mapping,
            allow_multiple_per_node=self.spec.mon.allow_multiple_per_node,
            node_selector=self.spec.placement.node_selector,
            tolerations=self.spec.placement.tolerations,
            zone_label=self.settings.zone_label,
        )
        choice = schedule_monitor(mon, zones)
        if choice is None:
            log.warning("no schedulable node for mon %s", mon.daemon_name)
            self.bus.emit(NoSchedulableNodes(name=mon.daemon_name, placed=placed, **self.run_ctx))
            raise NoSchedulableNodesError(mon.daemon_name, placed=placed)

        node = NodeInfo(
            name=choice.node.name,
            hostname=choice.node.hostname,
            address=choice.node.address,
        )
        self.bus.emit(MonScheduled(
            name=mon.daemon_name, node=node.name, zone_count=len(zones), **self.run_ctx
        ))

        mon.node_name = node.name
        with self._locked():
            leased_port = self._assign_address(mon, node)
            self._create_daemon(mon)

            self.mapping.node[mon.daemon_name] = node
            if leased_port is not None:
                self.mapping.port[node.name] = leased_port
            if fresh:
                self.max_mon_id = max(self.max_mon_id, mon_index(mon.daemon_name))
            self.cluster_info.monitors[mon.daemon_name] = MonInfo(
                name=mon.daemon_name, endpoint=mon.endpoint
            )
            self.save_mon_config()

        log.info("mon %s created on node %s at %s", mon.daemon_name, node.name, mon.endpoint)
        self.bus.emit(MonCreated(name=mon.daemon_name, endpoint=mon.endpoint, node=node.name, **self.run_ctx))

    def _assign_address(self, mon: MonConfig, node: NodeInfo) -> Optional[int]:
        """
        Host networking binds to the node address on a leased port; otherwise
        the mon sits behind a stable service address on the default port.
        Returns the port to record for the node, if any.
        """
        if self.spec.network.host_network:
            leased = self.mapping.port.get(node.name)
            mon.host_network = True
            mon.public_ip = node.address or node.hostname
            mon.port = DEFAULT_MSGR1_PORT if leased is None else leased + 1
            return mon.port

        mon.host_network = False
        try:
            service_ip = self.daemons.ensure_service(mon)
        except Exception as exc:
            raise DaemonCreationError(f"failed to create service for mon {mon.daemon_name}: {exc}") from exc
        mon.public_ip = service_ip or mon.public_ip
        if not mon.public_ip:
            raise DaemonCreationError(
                f"service for mon {mon.daemon_name} has no cluster IP; cannot advertise an endpoint"
            )
        mon.port = DEFAULT_MSGR1_PORT
        return None

    @staticmethod
    def _placed_on_host_network(mon: MonConfig, node: NodeInfo) -> bool:
        """A mapped mon advertising its node's own address was placed with host networking."""
        return bool(mon.public_ip) and mon.public_ip in (node.address, node.hostname)

    def _create_daemon(self, mon: MonConfig) -> None:
        try:
            self.daemons.create_or_update_daemon(mon)
        except Exception as exc:
            raise DaemonCreationError(f"failed to create mon {mon.daemon_name}: {exc}") from exc

    def _update_daemon(self, mon: MonConfig) -> None:
        self._create_daemon(mon)
        self.bus.emit(MonUpdated(name=mon.daemon_name, endpoint=mon.endpoint, **self.run_ctx))

    # ------------------------------------------------------------------
    # Quorum
    # ------------------------------------------------------------------

    def _verify_quorum(self, expected: List[str], *, require_all: bool) -> None:
        poller = QuorumPoller(
            self.executor,
            cluster_name=self.cluster_info.name,
            interval=self.settings.quorum_retry_interval_seconds,
            clock=self.clock,
            sleep=self.sleep,
            bus=self.bus,
            run_ctx=self.run_ctx,
        )
        try:
            poller.wait_for_quorum(expected, self.settings.quorum_timeout_seconds, require_all)
        except QuorumTimeoutError as exc:
            if require_all:
                raise
            # nothing new was started; the mons already serve, report and go on
            log.warning("quorum re-check failed for cluster %s: %s", self.cluster_info.name, exc)
            self.last_verification_error = exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _locked(self):
        return self.lock if self.lock is not None else contextlib.nullcontext()

    def _summary(self, desired: int, created: List[str], status: str, error: Optional[str]) -> None:
        total = len(self.cluster_info.monitors) if self.cluster_info else 0
        log.info(
            "mon reconcile %s: desired=%d created=%d total=%d endpoints=%s",
            status, desired, len(created), total,
            format_endpoints(self.cluster_info.monitors) if self.cluster_info else "",
        )
        self.bus.emit(ReconcileSummary(
            desired=desired, created=len(created), total=total, status=status, error=error, **self.run_ctx
        ))
