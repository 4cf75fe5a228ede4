from datetime import datetime, timedelta

import pytest

from redisclusterkit.clusterinfo import (
    ClusterInfos,
    ClusterInfosStatus,
    NodeInfos,
    config_signature,
    decode_node_infos,
    decode_node_start_time,
    format_config_signature,
    split_host_port,
)
from redisclusterkit.node import Node, Nodes
from redisclusterkit.slots import format_slots

MASTER_A = "aaaa000000000000000000000000000000000001"
MASTER_B = "bbbb000000000000000000000000000000000002"
SLAVE_C = "cccc000000000000000000000000000000000003"

CLUSTER_NODES = (
    f"{SLAVE_C} 127.0.0.1:30004@31004 slave {MASTER_A} 0 1426238317239 4 connected\n"
    f"{MASTER_B} 127.0.0.1:30002@31002 master - 0 1426238316232 2 connected 5461-10922\n"
    f"{MASTER_A} :30001@31001 myself,master - 0 0 1 connected 0-5460 "
    f"[42->-{MASTER_B}] [43-<-{MASTER_B}]\n"
)


def test_decode_node_infos_myself():
    infos = decode_node_infos(CLUSTER_NODES, "10.0.0.5:30001")
    node = infos.node
    assert node.id == MASTER_A
    assert node.ip == "10.0.0.5"
    assert node.port == "30001"
    assert node.role == "master"
    assert node.link_state == "connected"
    assert node.slots == list(range(0, 5461))
    assert node.migrating_slots == {42: MASTER_B}
    assert node.importing_slots == {43: MASTER_B}
    assert node.config_epoch == 1


def test_decode_node_infos_friends():
    infos = decode_node_infos(CLUSTER_NODES, "10.0.0.5:30001")
    assert [n.id for n in infos.friends] == [SLAVE_C, MASTER_B]
    slave, master = infos.friends
    assert slave.role == "slave"
    assert slave.master_referent == MASTER_A
    assert slave.ip == "127.0.0.1"
    assert slave.port == "30004"
    assert slave.pong_recv == 1426238317239
    assert master.master_referent == ""
    assert master.slots == list(range(5461, 10923))


def test_decode_node_infos_skips_short_lines_and_bad_address():
    text = "short line\nid1 noport master - 0 0 1 connected 5\n"
    infos = decode_node_infos(text, "10.0.0.1:6379")
    assert len(infos.friends) == 1
    friend = infos.friends[0]
    assert friend.ip == ""
    assert friend.port == "6379"
    assert friend.slots == [5]


def test_decode_node_infos_failure_flags():
    text = "id1 1.2.3.4:6379@16379 master,fail? - 0 0 1 disconnected\n"
    friend = decode_node_infos(text, "1.2.3.4:6379").friends[0]
    assert friend.fail_status == ["fail?"]
    assert friend.link_state == "disconnected"


def test_decode_node_start_time():
    before = datetime.now()
    start = decode_node_start_time("redis_version:5.0\r\nuptime_in_seconds:100\r\n")
    after = datetime.now()
    assert before - timedelta(seconds=100) <= start <= after - timedelta(seconds=100)


def test_decode_node_start_time_missing():
    with pytest.raises(ValueError):
        decode_node_start_time("redis_version:5.0\n")


def test_decode_node_start_time_bad_value():
    with pytest.raises(ValueError):
        decode_node_start_time("uptime_in_seconds:abc\n")


def test_split_host_port():
    assert split_host_port("10.0.0.1:6379") == ("10.0.0.1", "6379")
    assert split_host_port(":6379") == ("", "6379")
    assert split_host_port("a:b:c") == ("a:b", "c")


def test_split_host_port_invalid():
    with pytest.raises(ValueError):
        split_host_port("nocolon")


def _master(node_id, ip, slots):
    return Node(id=node_id, ip=ip, role="master", slots=list(slots))


def test_config_signature_only_masters():
    nodes = [
        _master(MASTER_A, "10.0.0.1", [0, 1]),
        Node(id=SLAVE_C, ip="10.0.0.3", role="slave", slots=[7]),
    ]
    assert config_signature(nodes) == {"10.0.0.1:6379": [0, 1]}


def test_format_config_signature_sorted():
    signature = {"10.0.0.2:6379": [3], "10.0.0.1:6379": [0, 1, 2]}
    expected = (
        "map["
        f"10.0.0.1:6379:{format_slots([0, 1, 2])}\n"
        f"10.0.0.2:6379:{format_slots([3])}\n"
        "]"
    )
    assert format_config_signature(signature) == expected


def _consistent_infos():
    a = _master(MASTER_A, "10.0.0.1", [0, 1])
    b = _master(MASTER_B, "10.0.0.2", [2, 3])
    return ClusterInfos(
        infos={
            "10.0.0.1:6379": NodeInfos(
                node=a, friends=Nodes([_master(MASTER_B, "10.0.0.2", [2, 3])])
            ),
            "10.0.0.2:6379": NodeInfos(
                node=b, friends=Nodes([_master(MASTER_A, "10.0.0.1", [0, 1])])
            ),
        }
    )


def test_compute_status_consistent():
    infos = _consistent_infos()
    assert infos.compute_status() is True
    assert infos.status is ClusterInfosStatus.CONSISTENT


def test_compute_status_inconsistent():
    infos = _consistent_infos()
    infos.infos["10.0.0.2:6379"].friends[0].slots = [0]
    assert infos.compute_status() is False
    assert infos.status is ClusterInfosStatus.INCONSISTENT


def test_compute_status_already_set():
    infos = _consistent_infos()
    infos.status = ClusterInfosStatus.PARTIAL
    assert infos.compute_status() is False
    assert infos.status is ClusterInfosStatus.PARTIAL


def test_get_nodes():
    infos = _consistent_infos()
    assert sorted(n.id for n in infos.get_nodes()) == [MASTER_A, MASTER_B]


def test_new_cluster_infos_defaults():
    infos = ClusterInfos()
    assert infos.status.value == "Unset"
    assert infos.infos == {}
    assert list(infos.get_nodes()) == []