# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/mon/identity.py

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidIdentifierError

DEFAULT_APP_NAME = "rook-ceph"
DEFAULT_MSGR1_PORT = 6789
DEFAULT_DATA_DIR_HOST_PATH = "/var/lib/rook"

_LEGACY_ID = re.compile(r"^mon(.*)$")
_ALPHABET_SIZE = 26


@dataclass(frozen=True)
class DataPathMap:
    """
    Where a mon keeps its store.
    host_data_dir is empty when the data lives only in the container.
    """
    host_data_dir: str
    container_data_dir: str

    @property
    def no_data_on_host(self) -> bool:
        return not self.host_data_dir


@dataclass
class MonConfig:
    resource_name: str        # e.g. rook-ceph-mon-a or rook-ceph-mon0
    daemon_name: str          # a / b / ... or legacy mon0 / mon1 / ...
    port: int = DEFAULT_MSGR1_PORT
    public_ip: str = ""       # service IP, node IP or hostname
    data_path_map: Optional[DataPathMap] = None
    node_name: Optional[str] = None   # set once the mon is placed
    host_network: bool = False        # fixed at placement, never toggled afterwards

    @property
    def endpoint(self) -> str:
        return f"{self.public_ip}:{self.port}"


def index_to_name(index: int) -> str:
    """0 -> a, 25 -> z, 26 -> aa, ..."""
    if index < 0:
        raise InvalidIdentifierError(f"negative mon index {index}")
    result = ""
    while True:
        result = chr(ord("a") + index % _ALPHABET_SIZE) + result
        index = index // _ALPHABET_SIZE - 1
        if index < 0:
            return result


def name_to_index(name: str) -> int:
    """Inverse of index_to_name."""
    if not name:
        raise InvalidIdentifierError("empty mon name")
    result = 0
    for c in name:
        if not "a" <= c <= "z":
            raise InvalidIdentifierError(f"invalid char '{c}' in mon name '{name}'")
        result = result * _ALPHABET_SIZE + (ord(c) - ord("a") + 1)
    return result - 1


def _legacy_index(mon_id: str) -> Optional[int]:
    m = _LEGACY_ID.match(mon_id)
    if not m:
        return None
    suffix = m.group(1)
    if not suffix.isdigit():
        raise InvalidIdentifierError(f"invalid legacy mon id '{mon_id}'")
    return int(suffix)


def mon_index(mon_id: str) -> int:
    legacy = _legacy_index(mon_id)
    if legacy is not None:
        return legacy
    return name_to_index(mon_id)


def resource_name(name: str, app_name: str = DEFAULT_APP_NAME) -> str:
    prefix = f"{app_name}-mon"
    if name.startswith(prefix):
        return name
    return f"{prefix}-{name}"


def full_name_to_index(name: str, app_name: str = DEFAULT_APP_NAME) -> int:
    """
    rook-ceph-mon-a -> 0, rook-ceph-mon123 -> 123.
    """
    prefix = f"{app_name}-mon"
    if not name.startswith(prefix) or len(name) == len(prefix):
        raise InvalidIdentifierError(f"unexpected mon resource name '{name}'")
    rest = name[len(prefix):]
    if rest.startswith("-"):
        return name_to_index(rest[1:])
    if not rest.isdigit():
        raise InvalidIdentifierError(f"unexpected mon resource name '{name}'")
    return int(rest)


def data_dir_relative_host_path(mon_id: str) -> str:
    return f"mon-{mon_id}"


def new_data_path_map(data_dir_host_path: str, mon_id: str) -> DataPathMap:
    host_dir = ""
    if data_dir_host_path:
        host_dir = posixpath.join(
            data_dir_host_path, data_dir_relative_host_path(mon_id), "data"
        )
    return DataPathMap(
        host_data_dir=host_dir,
        container_data_dir=f"/var/lib/ceph/mon/ceph-{mon_id}",
    )


def gen_mon_config(
    mon_id: str,
    *,
    app_name: str = DEFAULT_APP_NAME,
    data_dir_host_path: str = DEFAULT_DATA_DIR_HOST_PATH,
    public_ip: Optional[str] = None,
    port: int = DEFAULT_MSGR1_PORT,
    bootstrap_ip_prefix: Optional[str] = None,
) -> MonConfig:
    """
    Build the identity of one mon from its short id.

    Legacy ids (mon0, mon1, ...) keep their name as the moniker; new ids
    (a, b, ...) get a "mon-" moniker. Without an explicit public_ip the
    address stays empty, unless bootstrap_ip_prefix is given, in which case
    a per-index address <prefix>.<index+1> is used.
    """
    legacy = _legacy_index(mon_id)
    if legacy is not None:
        index = legacy
        moniker = mon_id
    else:
        index = name_to_index(mon_id)
        moniker = f"mon-{mon_id}"

    if public_ip is None:
        public_ip = f"{bootstrap_ip_prefix}.{index + 1}" if bootstrap_ip_prefix else ""

    return MonConfig(
        resource_name=f"{app_name}-{moniker}",
        daemon_name=mon_id,
        port=port,
        public_ip=public_ip,
        data_path_map=new_data_path_map(data_dir_host_path, mon_id),
    )
