# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/k8s/client.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ..mon.errors import PersistenceError
from ..mon.identity import MonConfig
from ..mon.node_usage import NodeRecord, Taint

log = logging.getLogger("cephmon")

MON_APP_LABEL = "rook-ceph-mon"


def load_kube_apis(kube_context: Optional[str] = None) -> Tuple[client.CoreV1Api, client.AppsV1Api]:
    """Load kubeconfig (or the in-cluster config) and return the API clients."""
    try:
        config.load_kube_config(context=kube_context)
    except config.ConfigException:
        log.debug("no kubeconfig, falling back to in-cluster config")
        config.load_incluster_config()
    return client.CoreV1Api(), client.AppsV1Api()


class ConfigMapStore:
    """Each record is one ConfigMap in the cluster namespace."""

    def __init__(self, core: client.CoreV1Api, namespace: str, labels: Optional[Dict[str, str]] = None):
        self.core = core
        self.namespace = namespace
        self.labels = labels or {}

    def save(self, key: str, data: Dict[str, str]) -> None:
        body = client.V1ConfigMap(
            metadata=client.V1ObjectMeta(name=key, namespace=self.namespace, labels=self.labels or None),
            data=dict(data),
        )
        try:
            self.core.replace_namespaced_config_map(key, self.namespace, body)
            return
        except ApiException as exc:
            if exc.status != 404:
                raise PersistenceError(f"failed to update configmap {key}: {exc.reason}") from exc
        try:
            self.core.create_namespaced_config_map(self.namespace, body)
        except ApiException as exc:
            raise PersistenceError(f"failed to create configmap {key}: {exc.reason}") from exc

    def load(self, key: str) -> Optional[Dict[str, str]]:
        try:
            cm = self.core.read_namespaced_config_map(key, self.namespace)
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise PersistenceError(f"failed to read configmap {key}: {exc.reason}") from exc
        return dict(cm.data or {})


def node_record_from_v1(node) -> NodeRecord:
    """Convert a V1Node into the fields the scheduler looks at."""
    meta = node.metadata
    spec = node.spec
    status = node.status

    ready = False
    for cond in (status.conditions or []) if status else []:
        if cond.type == "Ready":
            ready = cond.status == "True"

    addresses = {}
    for addr in (status.addresses or []) if status else []:
        addresses.setdefault(addr.type, addr.address)

    taints = [
        Taint(key=t.key, value=t.value, effect=t.effect)
        for t in ((spec.taints or []) if spec else [])
    ]
    return NodeRecord(
        name=meta.name,
        labels=dict(meta.labels or {}),
        taints=taints,
        addresses=addresses,
        ready=ready,
        unschedulable=bool(spec.unschedulable) if spec else False,
    )


class KubeNodeInventory:
    def __init__(self, core: client.CoreV1Api):
        self.core = core

    def list_nodes(self, selector: Optional[Dict[str, str]] = None) -> List[NodeRecord]:
        label_selector = ",".join(f"{k}={v}" for k, v in (selector or {}).items())
        resp = self.core.list_node(label_selector=label_selector or None)
        return [node_record_from_v1(n) for n in resp.items]


class KubeDaemonProvider:
    """
    Minimal Deployment + Service per mon. Full pod templating (keyrings,
    init containers, probes) is left to the operator that owns the cluster.
    """

    def __init__(
        self,
        core: client.CoreV1Api,
        apps: client.AppsV1Api,
        *,
        namespace: str,
        image: str,
    ):
        self.core = core
        self.apps = apps
        self.namespace = namespace
        self.image = image

    def _labels(self, mon: MonConfig) -> Dict[str, str]:
        return {"app": MON_APP_LABEL, "mon": mon.daemon_name, "mon_cluster": self.namespace}

    def ensure_service(self, mon: MonConfig) -> str:
        try:
            svc = self.core.read_namespaced_service(mon.resource_name, self.namespace)
            return svc.spec.cluster_ip or ""
        except ApiException as exc:
            if exc.status != 404:
                raise

        body = client.V1Service(
            metadata=client.V1ObjectMeta(name=mon.resource_name, labels=self._labels(mon)),
            spec=client.V1ServiceSpec(
                selector=self._labels(mon),
                ports=[client.V1ServicePort(name="msgr1", port=mon.port, protocol="TCP")],
            ),
        )
        svc = self.core.create_namespaced_service(self.namespace, body)
        log.debug("created service %s (%s)", mon.resource_name, svc.spec.cluster_ip)
        return svc.spec.cluster_ip or ""

    def _deployment(self, mon: MonConfig) -> client.V1Deployment:
        labels = self._labels(mon)
        paths = mon.data_path_map
        volumes, mounts = [], []
        if paths is not None and not paths.no_data_on_host:
            volumes.append(client.V1Volume(
                name="mon-data",
                host_path=client.V1HostPathVolumeSource(path=paths.host_data_dir),
            ))
            mounts.append(client.V1VolumeMount(name="mon-data", mount_path=paths.container_data_dir))

        container = client.V1Container(
            name="mon",
            image=self.image,
            command=["ceph-mon"],
            args=[
                "--foreground",
                f"--id={mon.daemon_name}",
                f"--public-addr={mon.endpoint}",
            ] + ([f"--mon-data={paths.container_data_dir}"] if paths else []),
            ports=[client.V1ContainerPort(name="msgr1", container_port=mon.port, protocol="TCP")],
            volume_mounts=mounts or None,
        )
        pod_spec = client.V1PodSpec(
            containers=[container],
            volumes=volumes or None,
            host_network=mon.host_network,
            dns_policy="ClusterFirstWithHostNet" if mon.host_network else None,
            node_name=mon.node_name,
        )
        return client.V1Deployment(
            metadata=client.V1ObjectMeta(name=mon.resource_name, labels=labels),
            spec=client.V1DeploymentSpec(
                replicas=1,
                selector=client.V1LabelSelector(match_labels=labels),
                strategy=client.V1DeploymentStrategy(type="Recreate"),
                template=client.V1PodTemplateSpec(
                    metadata=client.V1ObjectMeta(labels=labels),
                    spec=pod_spec,
                ),
            ),
        )

    def create_or_update_daemon(self, mon: MonConfig) -> None:
        body = self._deployment(mon)
        try:
            self.apps.replace_namespaced_deployment(mon.resource_name, self.namespace, body)
            log.debug("updated deployment %s", mon.resource_name)
            return
        except ApiException as exc:
            if exc.status != 404:
                raise
        self.apps.create_namespaced_deployment(self.namespace, body)
        log.debug("created deployment %s", mon.resource_name)
