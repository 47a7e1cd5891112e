# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/mon/mapping.py

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .errors import InvalidEndpointError, PersistenceError
from .interfaces import KeyValueStore

log = logging.getLogger("cephmon")

# Record names and keys are shared with existing clusters, do not rename.
ENDPOINT_CONFIGMAP_NAME = "rook-ceph-mon-endpoints"
ENDPOINT_DATA_KEY = "data"
MAPPING_KEY = "mapping"
MAX_MON_ID_KEY = "maxMonId"

IDENTITY_RECORD_NAME = "rook-ceph-mon"
FSID_KEY = "fsid"
CLUSTER_NAME_KEY = "cluster-name"


@dataclass
class NodeInfo:
    """Copy of the node facts a mon needs; not a handle into the inventory."""
    name: str
    hostname: str = ""
    address: str = ""

    def to_dict(self) -> Dict[str, str]:
        # field order is part of the persisted format
        return {"Name": self.name, "Hostname": self.hostname, "Address": self.address}

    @classmethod
    def from_dict(cls, data: Dict) -> "NodeInfo":
        return cls(
            name=data.get("Name", ""),
            hostname=data.get("Hostname", ""),
            address=data.get("Address", ""),
        )


@dataclass
class Mapping:
    node: Dict[str, NodeInfo] = field(default_factory=dict)   # daemon name -> node
    port: Dict[str, int] = field(default_factory=dict)        # node name -> leased port

    def to_json(self) -> str:
        data = {
            "node": {name: info.to_dict() for name, info in self.node.items()},
            "port": dict(self.port),
        }
        return json.dumps(data, separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> "Mapping":
        data = json.loads(raw) if raw else {}
        return cls(
            node={k: NodeInfo.from_dict(v) for k, v in (data.get("node") or {}).items()},
            port={k: int(v) for k, v in (data.get("port") or {}).items()},
        )

    def mons_on_node(self, node_name: str) -> int:
        return sum(1 for info in self.node.values() if info.name == node_name)

    def copy(self) -> "Mapping":
        return Mapping(
            node={k: NodeInfo(v.name, v.hostname, v.address) for k, v in self.node.items()},
            port=dict(self.port),
        )


def split_endpoint(endpoint: str) -> Tuple[str, int]:
    """"10.0.0.1:6789" -> ("10.0.0.1", 6789)."""
    host, sep, port = (endpoint or "").rpartition(":")
    if not sep or not host or not port.isdigit():
        raise InvalidEndpointError(f"mon endpoint '{endpoint}' is not host:port")
    return host, int(port)


@dataclass
class MonInfo:
    name: str
    endpoint: str   # ip:port

    @property
    def address(self) -> str:
        return split_endpoint(self.endpoint)[0]

    @property
    def port(self) -> int:
        return split_endpoint(self.endpoint)[1]


@dataclass
class ClusterInfo:
    name: str
    fsid: str = ""
    monitors: Dict[str, MonInfo] = field(default_factory=dict)

    def is_initialized(self) -> bool:
        return bool(self.name) and bool(self.fsid)


def format_endpoints(monitors: Dict[str, MonInfo]) -> str:
    return ",".join(f"{name}={monitors[name].endpoint}" for name in sorted(monitors))


def parse_endpoints(raw: str) -> Dict[str, MonInfo]:
    """Parse "a=1.2.3.1:6789,b=1.2.3.2:6789"."""
    monitors: Dict[str, MonInfo] = {}
    for item in (raw or "").split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, endpoint = item.partition("=")
        if not sep or not name:
            raise PersistenceError(f"malformed mon endpoint entry '{item}'")
        try:
            split_endpoint(endpoint)
        except InvalidEndpointError as exc:
            raise PersistenceError(f"malformed mon endpoint entry '{item}'") from exc
        monitors[name] = MonInfo(name=name, endpoint=endpoint)
    return monitors


@dataclass
class MonState:
    """Everything persisted for one cluster's mons."""
    monitors: Dict[str, MonInfo] = field(default_factory=dict)
    mapping: Mapping = field(default_factory=Mapping)
    max_mon_id: int = -1


class MonStateStore:
    """
    Reads and writes mon endpoints, the node/port mapping and the max mon id
    as flat string records in a KeyValueStore.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def save(self, monitors: Dict[str, MonInfo], mapping: Mapping, max_mon_id: int) -> Dict[str, str]:
        data = {
            ENDPOINT_DATA_KEY: format_endpoints(monitors),
            MAPPING_KEY: mapping.to_json(),
            MAX_MON_ID_KEY: str(max_mon_id),
        }
        try:
            self.store.save(ENDPOINT_CONFIGMAP_NAME, data)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"failed to save {ENDPOINT_CONFIGMAP_NAME}: {exc}") from exc
        log.debug("saved mon state: %s", data)
        return data

    def load(self) -> Optional[MonState]:
        data = self._load(ENDPOINT_CONFIGMAP_NAME)
        if data is None:
            return None
        try:
            mapping = Mapping.from_json(data.get(MAPPING_KEY, ""))
            max_id = int(data.get(MAX_MON_ID_KEY) or -1)
        except (ValueError, TypeError, AttributeError) as exc:
            raise PersistenceError(f"corrupt {ENDPOINT_CONFIGMAP_NAME} record: {exc}") from exc
        return MonState(
            monitors=parse_endpoints(data.get(ENDPOINT_DATA_KEY, "")),
            mapping=mapping,
            max_mon_id=max_id,
        )

    def save_identity(self, cluster_name: str, fsid: str) -> None:
        try:
            self.store.save(IDENTITY_RECORD_NAME, {FSID_KEY: fsid, CLUSTER_NAME_KEY: cluster_name})
        except Exception as exc:
            raise PersistenceError(f"failed to save {IDENTITY_RECORD_NAME}: {exc}") from exc

    def load_identity(self) -> Optional[Tuple[str, str]]:
        """Returns (cluster_name, fsid) or None on first bootstrap."""
        data = self._load(IDENTITY_RECORD_NAME)
        if not data or not data.get(FSID_KEY):
            return None
        return data.get(CLUSTER_NAME_KEY, ""), data[FSID_KEY]

    def _load(self, key: str) -> Optional[Dict[str, str]]:
        try:
            return self.store.load(key)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"failed to load {key}: {exc}") from exc
