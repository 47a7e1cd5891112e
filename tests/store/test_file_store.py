from pathlib import Path

import pytest

from cephmon.mon.errors import PersistenceError
from cephmon.mon.mapping import ENDPOINT_CONFIGMAP_NAME, Mapping, MonInfo, MonStateStore, NodeInfo
from cephmon.store.file import MemoryStore, YamlFileStore


def test_save_and_load(tmp_path: Path):
    store = YamlFileStore(tmp_path / "state")
    store.save("rook-ceph-mon-endpoints", {"data": "a=1.2.3.4:6789", "maxMonId": "0"})

    assert (tmp_path / "state" / "rook-ceph-mon-endpoints.yaml").is_file()
    assert store.load("rook-ceph-mon-endpoints") == {"data": "a=1.2.3.4:6789", "maxMonId": "0"}


def test_load_missing_is_none(tmp_path: Path):
    assert YamlFileStore(tmp_path).load("rook-ceph-mon") is None


def test_overwrite_leaves_no_temp_files(tmp_path: Path):
    store = YamlFileStore(tmp_path)
    store.save("rec", {"k": "1"})
    store.save("rec", {"k": "2"})
    assert store.load("rec") == {"k": "2"}
    assert sorted(p.name for p in tmp_path.iterdir()) == ["rec.yaml"]


def test_values_are_kept_as_strings(tmp_path: Path):
    store = YamlFileStore(tmp_path)
    store.save("rec", {"maxMonId": "-1", "data": "", "mapping": '{"node":{},"port":{}}'})
    assert store.load("rec") == {"maxMonId": "-1", "data": "", "mapping": '{"node":{},"port":{}}'}


@pytest.mark.parametrize("key", ["../escape", "", "a/b", ".hidden"])
def test_unsafe_keys_are_rejected(tmp_path: Path, key):
    with pytest.raises(PersistenceError):
        YamlFileStore(tmp_path).save(key, {"k": "v"})


def test_non_mapping_file_is_an_error(tmp_path: Path):
    (tmp_path / "rec.yaml").write_text("- just\n- a list\n")
    with pytest.raises(PersistenceError):
        YamlFileStore(tmp_path).load("rec")


def test_mon_state_through_file_store(tmp_path: Path):
    mapping = Mapping(node={"a": NodeInfo("node0", "host0", "10.0.0.1")}, port={"node0": 6789})
    MonStateStore(YamlFileStore(tmp_path)).save({"a": MonInfo("a", "10.0.0.1:6789")}, mapping, 0)

    state = MonStateStore(YamlFileStore(tmp_path)).load()
    assert state.mapping == mapping
    assert state.monitors["a"].endpoint == "10.0.0.1:6789"
    assert state.max_mon_id == 0


def test_memory_store_copies_records():
    store = MemoryStore()
    data = {"k": "v"}
    store.save(ENDPOINT_CONFIGMAP_NAME, data)
    data["k"] = "changed"
    loaded = store.load(ENDPOINT_CONFIGMAP_NAME)
    loaded["k"] = "also changed"
    assert store.load(ENDPOINT_CONFIGMAP_NAME) == {"k": "v"}
