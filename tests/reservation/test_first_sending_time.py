import logging
from decimal import Decimal

import z3

from schedule_synthesis.environment.default_topologies import line_topology
from schedule_synthesis.environment.flow import FlowBuilder
from schedule_synthesis.environment.network import Network
from schedule_synthesis.reservation.flow_compiler import assert_first_sending_time, compile_flow, \
    get_first_hop_cycle_duration, get_first_hop_port


def _proved(solver, claim):
    solver.push()
    solver.add(z3.Not(claim))
    result = solver.check()
    solver.pop()
    return result == z3.unsat


def _compiled_flow(network, first_sending_time, packet_size=Decimal("64")):
    n = network.get_node
    flow = FlowBuilder().publish_subscribe(n("dev1"), first_sending_time=first_sending_time,
                                           sending_periodicity=Decimal("100"), packet_size=packet_size)
    flow.add_to_path(n("dev1"), n("switch1"))
    flow.add_to_path(n("switch1"), n("switch2"))
    flow.add_to_path(n("switch2"), n("dev2"))
    compile_flow(flow)
    return flow


def test_first_hop_port_faces_the_talker(two_listener_flow, line_network):
    assert get_first_hop_port(two_listener_flow) is line_network.get_node("switch1").get_port("dev1")


def test_fixed_first_sending_time_is_kept(two_listener_flow, solver):
    assert_first_sending_time(two_listener_flow, solver)

    assert two_listener_flow.first_sending_time == Decimal("10")
    assert _proved(solver, two_listener_flow.first_sending_time_z3 == 10)
    for device_name in ("dev2", "dev3"):
        first = two_listener_flow.get_fragments_to(device_name).unwrap()[0]
        assert _proved(solver, first.departure_times[0] == 10)


def test_too_early_first_sending_time_becomes_variable(caplog):
    network, _, _ = line_topology(length=2, cycle_duration=Decimal("50"))
    # 64 bytes at 125 bytes/us need 0.512 us
    flow = _compiled_flow(network, Decimal("0.5"))
    solver = z3.Solver()

    with caplog.at_level(logging.WARNING):
        assert_first_sending_time(flow, solver)

    assert flow.first_sending_time is None
    assert "Making first sending time a variable" in caplog.text

    fst = flow.first_sending_time_z3
    cycle_start = get_first_hop_port(flow).cycle_start()
    assert _proved(solver, fst >= z3.Q(64, 125))
    assert _proved(solver, fst <= cycle_start + 50)
    solver.add(cycle_start == 0)
    assert solver.check() == z3.sat
    solver.add(fst > 50)
    assert solver.check() == z3.unsat


def test_unset_first_sending_time_is_bounded():
    network, _, _ = line_topology(length=2, cycle_duration=Decimal("20"))
    flow = _compiled_flow(network, None, packet_size=Decimal("250"))
    solver = z3.Solver()
    assert_first_sending_time(flow, solver)

    fst = flow.first_sending_time_z3
    solver.add(get_first_hop_port(flow).cycle_start() == 0)
    assert _proved(solver, z3.And(fst >= 2, fst <= 20))
    solver.add(fst == 2)
    assert solver.check() == z3.sat


def test_cycle_duration_falls_back_to_smallest_outgoing_cycle():
    network = Network()
    for switch in ("switch1", "switch2"):
        network.add_switch(switch)
    for device in ("dev1", "dev2", "dev3"):
        network.add_device(device)
    network.create_link("dev1", "switch1", cycle_duration=0)
    network.create_link("switch1", "switch2", cycle_duration=Decimal("80"))
    network.create_link("switch1", "dev2", cycle_duration=Decimal("40"))
    network.create_link("switch2", "dev3", cycle_duration=Decimal("10"))

    n = network.get_node
    flow = FlowBuilder().publish_subscribe(n("dev1"), first_sending_time=5, sending_periodicity=100,
                                           packet_size=64)
    flow.add_to_path(n("dev1"), n("switch1"))
    flow.add_to_path(n("switch1"), n("switch2"))
    flow.add_to_path(n("switch1"), n("dev2"))
    flow.add_to_path(n("switch2"), n("dev3"))
    compile_flow(flow)

    assert get_first_hop_cycle_duration(flow) == Decimal("40")
