import logging
from decimal import Decimal
from fractions import Fraction

import pytest

from schedule_synthesis.environment.default_topologies import line_topology
from schedule_synthesis.environment.flow import FlowBuilder, PublishSubscribeFlow
from schedule_synthesis.logging import disable_debug_logging
from schedule_synthesis.reservation.schedule_generator import add_flow, generate_schedule, init_topology


def test_init_topology_state(line_network):
    state = init_topology(line_network)
    assert state["network"] is line_network
    assert state["flows"] == []
    assert state["config"].packet_upper_bound_range == 5


def test_add_unicast_flow_is_routed_and_converted(line_network, builder):
    state = init_topology(line_network)
    n = line_network.get_node
    flow = builder.unicast(n("dev1"), n("dev3"), sending_periodicity=Decimal("250"))

    results = add_flow(flow, state)

    scheduled = results["flow"]
    assert results["success"]
    assert isinstance(scheduled, PublishSubscribeFlow)
    assert scheduled.name == flow.name
    assert [node.name for node in scheduled.get_nodes_to("dev3").unwrap()] == ["dev1", "switch1", "switch2",
                                                                               "switch3", "dev3"]
    # defaults of the talker
    assert scheduled.packet_size == n("dev1").packet_size
    assert n("switch2").get_port("switch3").list_of_periods == [Decimal("250")]


def test_flow_names_must_be_unique(line_network):
    state = init_topology(line_network)
    n = line_network.get_node
    add_flow(FlowBuilder().unicast(n("dev1"), n("dev2")), state)
    with pytest.raises(AssertionError):
        add_flow(FlowBuilder().unicast(n("dev2"), n("dev3")), state)


def test_generate_schedule(line_network, builder):
    state = init_topology(line_network)
    n = line_network.get_node
    add_flow(builder.unicast(n("dev1"), n("dev3"), first_sending_time=10, sending_periodicity=100,
                             packet_size=64, priority=5), state)
    publish_subscribe = builder.publish_subscribe(n("dev3"), sending_periodicity=200, packet_size=128,
                                                  maximum_jitter=20)
    publish_subscribe.add_to_path(n("dev3"), n("switch3"))
    publish_subscribe.add_to_path(n("switch3"), n("switch2"))
    publish_subscribe.add_to_path(n("switch2"), n("dev2"))
    publish_subscribe.add_to_path(n("switch2"), n("switch1"))
    publish_subscribe.add_to_path(n("switch1"), n("dev1"))
    add_flow(publish_subscribe, state)

    results = generate_schedule(state)

    assert results["success"]
    statistics = results["statistics"]
    assert statistics["flow1"]["first_sending_time"] == 10
    assert set(statistics["flow2"]["latencies"]) == {"dev2", "dev1"}
    for flow in state["flows"]:
        flow_statistics = statistics[flow.name]
        for device_name, latencies in flow_statistics["latencies"].items():
            assert len(latencies) == 5
            assert all(latency <= Fraction(flow.maximum_latency) for latency in latencies)
        averages = [sum(latencies, Fraction(0)) / len(latencies)
                    for latencies in flow_statistics["latencies"].values()]
        assert flow_statistics["average_latency"] == sum(averages, Fraction(0)) / len(averages)


def test_flows_of_different_builders(line_network):
    # both builders start counting at 1, the flows only differ by name
    state = init_topology(line_network)
    n = line_network.get_node
    first = FlowBuilder().unicast(n("dev1"), n("dev2"), name="a", first_sending_time=10, sending_periodicity=100,
                                  packet_size=64)
    second = FlowBuilder().unicast(n("dev1"), n("dev2"), name="b", first_sending_time=200,
                                   sending_periodicity=100, packet_size=64)
    assert first.instance == second.instance
    add_flow(first, state)
    add_flow(second, state)

    results = generate_schedule(state)

    assert results["success"]
    assert results["statistics"]["a"]["first_sending_time"] == 10
    assert results["statistics"]["b"]["first_sending_time"] == 200
    assert str(state["flows"][0].first_sending_time_z3) != str(state["flows"][1].first_sending_time_z3)


def test_hop_times_and_jitter(line_network, builder):
    state = init_topology(line_network)
    n = line_network.get_node
    add_flow(builder.unicast(n("dev1"), n("dev3"), first_sending_time=10, sending_periodicity=100,
                             packet_size=64), state)

    statistics = generate_schedule(state)["statistics"]["flow1"]

    hops = statistics["hops"]["dev3"]
    assert [(hop["node"], hop["next_hop"]) for hop in hops] == [("switch1", "switch2"), ("switch2", "switch3"),
                                                               ("switch3", "dev3")]
    assert hops[0]["departure_times"] == [10 + 100 * i for i in range(5)]
    for hop in hops:
        assert len(hop["scheduled_times"]) == 5
        # time to travel 1 on every link
        assert hop["arrival_times"] == [departure + 1 for departure in hop["departure_times"]]
        assert all(scheduled >= arrival for scheduled, arrival in zip(hop["scheduled_times"], hop["arrival_times"]))
    for previous, hop in zip(hops, hops[1:]):
        assert hop["departure_times"] == previous["scheduled_times"]

    latencies = statistics["latencies"]["dev3"]
    average = sum(latencies, Fraction(0)) / 5
    assert statistics["average_latency_per_device"]["dev3"] == average
    assert statistics["jitters"]["dev3"] == [abs(latency - average) for latency in latencies]
    assert statistics["average_jitter_per_device"]["dev3"] == sum(statistics["jitters"]["dev3"], Fraction(0)) / 5
    assert statistics["average_jitter"] == statistics["average_jitter_per_device"]["dev3"]
    assert statistics["average_jitter"] >= 0


def test_hypercycle_shorter_than_periodicity():
    network, switches, devices = line_topology(length=2, automated_application_period=True)
    network.get_node("switch1").get_port("switch2").defined_hypercycle_size = Decimal("50")
    state = init_topology(network)
    n = network.get_node
    add_flow(FlowBuilder().unicast(n("dev1"), n("dev2"), sending_periodicity=100, packet_size=64), state)

    with pytest.raises(ValueError):
        generate_schedule(state)


def test_infeasible_latency(line_network, builder):
    state = init_topology(line_network)
    n = line_network.get_node
    add_flow(builder.unicast(n("dev1"), n("dev3"), maximum_latency=1, packet_size=64), state)

    results = generate_schedule(state)

    assert not results["success"]
    assert results["model"] is None
    assert results["statistics"] == {}


def test_output_enables_debug_logging(line_network):
    init_topology(line_network, output=True)
    try:
        assert logging.getLogger("schedule_synthesis").level == logging.DEBUG
    finally:
        disable_debug_logging()
