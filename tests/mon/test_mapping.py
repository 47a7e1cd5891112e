# tests/mon/test_mapping.py
import pytest

from cephmon.mon.errors import InvalidEndpointError, PersistenceError
from cephmon.mon.mapping import (
    ENDPOINT_CONFIGMAP_NAME,
    ENDPOINT_DATA_KEY,
    MAPPING_KEY,
    MAX_MON_ID_KEY,
    ClusterInfo,
    Mapping,
    MonInfo,
    MonStateStore,
    NodeInfo,
    format_endpoints,
    parse_endpoints,
    split_endpoint,
)
from cephmon.store.file import MemoryStore


class BrokenStore:
    def save(self, key, data):
        raise OSError("etcd unavailable")

    def load(self, key):
        raise OSError("etcd unavailable")


def test_save_mon_state_initial_record():
    store = MemoryStore()
    MonStateStore(store).save({"a": MonInfo("a", "1.2.3.1:6789")}, Mapping(), -1)

    data = store.load(ENDPOINT_CONFIGMAP_NAME)
    assert data[ENDPOINT_DATA_KEY] == "a=1.2.3.1:6789"
    assert data[MAPPING_KEY] == '{"node":{},"port":{}}'
    assert data[MAX_MON_ID_KEY] == "-1"


def test_save_mon_state_exact_format():
    store = MemoryStore()
    mapping = Mapping()
    mapping.node["a"] = NodeInfo(name="node0", address="1.1.1.1", hostname="myhost")
    mapping.port["node0"] = 12345

    MonStateStore(store).save({"a": MonInfo("a", "2.3.4.5:6789")}, mapping, 2)

    data = store.load(ENDPOINT_CONFIGMAP_NAME)
    assert data[ENDPOINT_DATA_KEY] == "a=2.3.4.5:6789"
    assert data[MAPPING_KEY] == (
        '{"node":{"a":{"Name":"node0","Hostname":"myhost","Address":"1.1.1.1"}},'
        '"port":{"node0":12345}}'
    )
    assert data[MAX_MON_ID_KEY] == "2"


def test_round_trip_is_exact():
    mapping = Mapping(
        node={
            "a": NodeInfo("node0", "host0", "10.0.0.1"),
            "b": NodeInfo("node1", "host1", "10.0.0.2"),
            "c": NodeInfo("node0", "host0", "10.0.0.1"),
        },
        port={"node0": 6790, "node1": 6789},
    )
    monitors = {
        "a": MonInfo("a", "10.0.0.1:6789"),
        "b": MonInfo("b", "10.0.0.2:6789"),
        "c": MonInfo("c", "10.0.0.1:6790"),
    }
    states = MonStateStore(MemoryStore())
    states.save(monitors, mapping, 7)

    loaded = states.load()
    assert loaded.mapping == mapping
    assert loaded.monitors == monitors
    assert loaded.max_mon_id == 7
    assert loaded.mapping.to_json() == mapping.to_json()


def test_load_missing_record_is_none():
    assert MonStateStore(MemoryStore()).load() is None
    assert MonStateStore(MemoryStore()).load_identity() is None


def test_endpoints_are_sorted_and_parsed():
    monitors = {
        "c": MonInfo("c", "10.0.0.3:6789"),
        "a": MonInfo("a", "10.0.0.1:6789"),
    }
    raw = format_endpoints(monitors)
    assert raw == "a=10.0.0.1:6789,c=10.0.0.3:6789"
    parsed = parse_endpoints(raw)
    assert parsed["c"].address == "10.0.0.3"
    assert parsed["c"].port == 6789
    assert parse_endpoints("") == {}


def test_malformed_records_raise_persistence_error():
    with pytest.raises(PersistenceError):
        parse_endpoints("a10.0.0.1:6789")

    store = MemoryStore()
    store.save(ENDPOINT_CONFIGMAP_NAME, {ENDPOINT_DATA_KEY: "", MAPPING_KEY: "{oops", MAX_MON_ID_KEY: "1"})
    with pytest.raises(PersistenceError):
        MonStateStore(store).load()

    store.save(ENDPOINT_CONFIGMAP_NAME, {ENDPOINT_DATA_KEY: "", MAPPING_KEY: "", MAX_MON_ID_KEY: "two"})
    with pytest.raises(PersistenceError):
        MonStateStore(store).load()


def test_store_failures_are_wrapped():
    states = MonStateStore(BrokenStore())
    with pytest.raises(PersistenceError):
        states.save({}, Mapping(), -1)
    with pytest.raises(PersistenceError):
        states.load()
    with pytest.raises(PersistenceError):
        states.save_identity("ns", "fsid")


def test_identity_record():
    states = MonStateStore(MemoryStore())
    states.save_identity("ns", "1234-abcd")
    assert states.load_identity() == ("ns", "1234-abcd")


def test_mapping_helpers():
    mapping = Mapping(node={"a": NodeInfo("n1"), "b": NodeInfo("n1"), "c": NodeInfo("n2")})
    assert mapping.mons_on_node("n1") == 2
    assert mapping.mons_on_node("n3") == 0

    clone = mapping.copy()
    clone.node["a"].address = "changed"
    assert mapping.node["a"].address == ""


def test_cluster_info_initialized():
    assert not ClusterInfo(name="ns").is_initialized()
    assert ClusterInfo(name="ns", fsid="x").is_initialized()


def test_split_endpoint():
    assert split_endpoint("10.0.0.1:6789") == ("10.0.0.1", 6789)
    assert MonInfo("a", "host0.lab:6790").port == 6790
    for bad in ("10.0.0.1", ":6789", "10.0.0.1:", "10.0.0.1:msgr"):
        with pytest.raises(InvalidEndpointError):
            split_endpoint(bad)
    with pytest.raises(PersistenceError):
        parse_endpoints("a=10.0.0.1:msgr")
