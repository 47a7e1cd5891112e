# tests/mon/test_identity.py
import pytest

from cephmon.mon.errors import InvalidIdentifierError
from cephmon.mon.identity import (
    DEFAULT_MSGR1_PORT,
    full_name_to_index,
    gen_mon_config,
    index_to_name,
    name_to_index,
    resource_name,
)


def test_resource_name():
    assert resource_name("rook-ceph-mon-a") == "rook-ceph-mon-a"
    assert resource_name("rook-ceph-mon123") == "rook-ceph-mon123"
    assert resource_name("b") == "rook-ceph-mon-b"
    assert resource_name("b", app_name="ceph2") == "ceph2-mon-b"


def test_full_name_to_index():
    for bad in ("m", "mon", "rook-ceph-monitor0", "rook-ceph-mon", "rook-ceph-mon-A"):
        with pytest.raises(InvalidIdentifierError):
            full_name_to_index(bad)

    assert full_name_to_index("rook-ceph-mon-a") == 0
    assert full_name_to_index("rook-ceph-mon-c") == 2
    assert full_name_to_index("rook-ceph-mon123") == 123


def test_index_names_are_bijective_base26():
    assert index_to_name(0) == "a"
    assert index_to_name(25) == "z"
    assert index_to_name(26) == "aa"
    assert index_to_name(27) == "ab"
    assert index_to_name(701) == "zz"
    assert index_to_name(702) == "aaa"
    assert name_to_index("zz") == 701
    assert all(name_to_index(index_to_name(i)) == i for i in range(0, 1000))


def test_name_to_index_rejects_non_letters():
    for bad in ("", "A", "a1", "-"):
        with pytest.raises(InvalidIdentifierError):
            name_to_index(bad)


def test_legacy_ids_keep_their_moniker():
    for n in (0, 1, 7, 12, 250):
        mon = gen_mon_config(f"mon{n}", bootstrap_ip_prefix="2.4.6")
        assert mon.daemon_name == f"mon{n}"
        assert mon.resource_name == f"rook-ceph-mon{n}"
        assert mon.public_ip == f"2.4.6.{n + 1}"
        assert mon.port == DEFAULT_MSGR1_PORT


def test_new_ids_get_mon_prefix():
    mon = gen_mon_config("c", bootstrap_ip_prefix="2.4.6")
    assert mon.resource_name == "rook-ceph-mon-c"
    assert mon.daemon_name == "c"
    assert mon.public_ip == "2.4.6.3"
    assert mon.endpoint == "2.4.6.3:6789"


def test_malformed_ids_raise():
    for bad in ("mon", "monx", "mon-1", "mon1a", "B", "b2"):
        with pytest.raises(InvalidIdentifierError):
            gen_mon_config(bad)
    # still a ValueError for callers that only know that
    with pytest.raises(ValueError):
        gen_mon_config("mon?")


def test_address_is_empty_until_placed():
    mon = gen_mon_config("a")
    assert mon.public_ip == ""
    assert mon.node_name is None

    mon = gen_mon_config("a", public_ip="10.0.0.5", port=6790)
    assert mon.endpoint == "10.0.0.5:6790"


def test_data_path_map():
    mon = gen_mon_config("b", data_dir_host_path="/var/lib/rook")
    assert mon.data_path_map.host_data_dir == "/var/lib/rook/mon-b/data"
    assert mon.data_path_map.container_data_dir == "/var/lib/ceph/mon/ceph-b"
    assert not mon.data_path_map.no_data_on_host

    mon = gen_mon_config("b", data_dir_host_path="")
    assert mon.data_path_map.no_data_on_host
