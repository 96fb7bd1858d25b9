import networkx as nx
import pytest

from schedule_synthesis.environment.default_topologies import example_topology, star_topology
from schedule_synthesis.environment.flow import FlowBuilder
from schedule_synthesis.environment.network import Network
from schedule_synthesis.reservation.routing import build_path_tree, find_switch_path


def test_switch_path_in_line(line_network):
    path = find_switch_path(line_network, "dev1", "dev3")
    assert [switch.name for switch in path] == ["switch1", "switch2", "switch3"]


def test_switch_path_takes_direct_link():
    network, _, _ = example_topology()
    path = find_switch_path(network, "dev1", "dev5")
    assert [switch.name for switch in path] == ["switch1", "switch3"]


def test_no_path_raises():
    network = Network()
    network.add_device("a")
    network.add_device("b")
    network.add_switch("s1")
    network.create_link("a", "s1")
    with pytest.raises(nx.NetworkXNoPath):
        find_switch_path(network, "a", "b")


def test_devices_do_not_forward():
    network = Network()
    for name in ("a", "b", "relay_device"):
        network.add_device(name)
    network.add_switch("s1")
    network.add_switch("s2")
    network.create_link("a", "s1")
    network.create_link("s1", "relay_device")
    network.create_link("relay_device", "s2")
    network.create_link("s2", "b")
    with pytest.raises(nx.NetworkXNoPath):
        find_switch_path(network, "a", "b")


def test_path_tree_shares_common_switches():
    network, talker, listeners = star_topology(branches=2, devices_per_branch=2)
    flow = FlowBuilder().publish_subscribe(network.get_node(talker))
    build_path_tree(flow, network, listeners)

    assert sorted(flow.end_device_names) == sorted(listeners)
    core = flow.path_tree.root.children
    assert [node.name for node in core] == ["core"]
    assert [node.name for node in core[0].children] == ["switch1", "switch2"]
    for listener in listeners:
        nodes = flow.get_nodes_to(listener).unwrap()
        assert len(nodes) == 4


def test_path_tree_unreachable_sink():
    network, talker, listeners = star_topology(branches=1, devices_per_branch=1)
    network.add_device("isolated")
    flow = FlowBuilder().publish_subscribe(network.get_node(talker))
    with pytest.raises(nx.NetworkXNoPath):
        build_path_tree(flow, network, ["isolated"])
