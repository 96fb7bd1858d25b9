from decimal import Decimal
from fractions import Fraction

import pytest
import z3

from schedule_synthesis.analytics.latency import assert_latency_and_jitter_bounds, get_average_jitter_z3, \
    get_average_latency_to_device_z3, get_average_latency_z3, get_first_port_speed, \
    get_first_transmission_delay, get_jitter_z3, get_latency_z3, get_packet_count_to_device, \
    get_sum_of_all_dev_latency_z3, get_sum_of_latency_z3, latency_expression
from schedule_synthesis.analytics.z3_helper_functions import model_value
from schedule_synthesis.environment.flow import FlowBuilder
from schedule_synthesis.reservation.flow_compiler import assert_first_sending_time, bind_all_fragments, \
    compile_flow, register_periods


def _proved(solver, claim):
    solver.push()
    solver.add(z3.Not(claim))
    result = solver.check()
    solver.pop()
    return result == z3.unsat


@pytest.fixture
def unicast_flow(line_network):
    n = line_network.get_node
    # flow10: a name of its own next to two_listener_flow (flow1)
    flow = FlowBuilder(first_instance=10).unicast(n("dev1"), n("dev3"),
                                                  path=[n("switch1"), n("switch2"), n("switch3")],
                                                  first_sending_time=10, sending_periodicity=100, packet_size=64)
    register_periods(flow)
    compile_flow(flow)
    return flow


def _schedule(flow, network, solver):
    bind_all_fragments(flow, solver)
    assert_first_sending_time(flow, solver)
    for switch in network.switches:
        switch.to_constraints(solver)


def test_first_transmission_delay(two_listener_flow):
    assert get_first_port_speed(two_listener_flow) == Decimal("125")
    assert get_first_transmission_delay(two_listener_flow) == Decimal("0.512")


def test_latency_definition(two_listener_flow, solver):
    latency = get_latency_z3(two_listener_flow, solver, 2, "dev3")
    assert str(latency) == "flow1LatencyOfPacket2Fordev3"

    first, _, last = two_listener_flow.get_fragments_to("dev3").unwrap()
    claim = latency == z3.Q(64, 125) + last.scheduled_times[2] - first.departure_times[2]
    assert _proved(solver, claim)


def test_unknown_listener(unicast_flow, two_listener_flow, solver):
    with pytest.raises(LookupError):
        get_latency_z3(unicast_flow, solver, 0, "dev2")
    with pytest.raises(LookupError):
        get_latency_z3(two_listener_flow, solver, 0, "switch2")


def test_packet_count_to_device(two_listener_flow, unicast_flow):
    assert get_packet_count_to_device(two_listener_flow, "dev2") == 5
    assert get_packet_count_to_device(unicast_flow) == 5


def test_average_latency_is_exact_mean(unicast_flow, solver):
    average = get_average_latency_to_device_z3(unicast_flow, solver)
    total = sum([latency_expression(unicast_flow, i) for i in range(5)])
    assert _proved(solver, average == total / 5)


def test_average_latency_from_model(unicast_flow, line_network, solver):
    _schedule(unicast_flow, line_network, solver)
    average = get_average_latency_z3(unicast_flow, solver)
    assert solver.check() == z3.sat
    model = solver.model()

    latencies = [model_value(model, latency_expression(unicast_flow, i)) for i in range(5)]
    assert model_value(model, average) == sum(latencies, Fraction(0)) / 5
    assert all(latency > 0 for latency in latencies)


def test_sum_of_latency_is_ordered(unicast_flow, solver):
    total = get_sum_of_latency_z3(unicast_flow, solver, 2)
    # ((latency0 + latency1) + latency2)
    assert str(total.arg(1)) == "flow10LatencyOfPacket2Fordev3"
    assert [str(term) for term in total.arg(0).children()] == ["flow10LatencyOfPacket0Fordev3",
                                                               "flow10LatencyOfPacket1Fordev3"]


def test_average_for_listeners_with_different_hop_counts(two_listener_flow, line_network, solver):
    _schedule(two_listener_flow, line_network, solver)
    to_dev2 = get_average_latency_to_device_z3(two_listener_flow, solver, "dev2")
    to_dev3 = get_average_latency_to_device_z3(two_listener_flow, solver, "dev3")
    average = get_average_latency_z3(two_listener_flow, solver)

    assert _proved(solver, average == (to_dev2 + to_dev3) / 2)
    assert solver.check() == z3.sat
    model = solver.model()
    assert model_value(model, average) == (model_value(model, to_dev2) + model_value(model, to_dev3)) / 2


def test_sum_over_all_listeners(two_listener_flow, solver):
    total = get_sum_of_all_dev_latency_z3(two_listener_flow, solver, 1)
    claim = total == (get_sum_of_latency_z3(two_listener_flow, solver, 1, "dev2") +
                      get_sum_of_latency_z3(two_listener_flow, solver, 1, "dev3"))
    assert _proved(solver, claim)


def test_jitter_is_absolute_deviation(unicast_flow, solver):
    for i in range(5):
        jitter = get_jitter_z3(unicast_flow, solver, i)
        latency = get_latency_z3(unicast_flow, solver, i)
        average = get_average_latency_to_device_z3(unicast_flow, solver)
        assert _proved(solver, jitter >= 0)
        assert _proved(solver, z3.Or(jitter == latency - average, jitter == average - latency))


def test_average_jitter_non_negative(two_listener_flow, solver):
    assert _proved(solver, get_average_jitter_z3(two_listener_flow, solver) >= 0)


def test_bounds(unicast_flow, line_network, solver):
    unicast_flow.maximum_latency = Decimal("20")
    unicast_flow.maximum_jitter = Decimal("0")
    _schedule(unicast_flow, line_network, solver)
    assert_latency_and_jitter_bounds(unicast_flow, solver)

    assert solver.check() == z3.sat
    model = solver.model()
    latencies = [model_value(model, latency_expression(unicast_flow, i)) for i in range(5)]
    assert all(latency <= 20 for latency in latencies)
    # no jitter: every packet has the same latency
    assert len(set(latencies)) == 1

    solver.add(get_latency_z3(unicast_flow, solver, 0) < 3)
    assert solver.check() == z3.unsat


def test_jitter_reuses_given_average(unicast_flow, solver):
    average = get_average_latency_to_device_z3(unicast_flow, solver)
    before = len(solver.assertions())
    get_jitter_z3(unicast_flow, solver, 3, average_latency=average)
    # latency and jitter definitions only
    assert len(solver.assertions()) == before + 2


def test_jitter_bound_grows_linearly(unicast_flow, solver):
    unicast_flow.maximum_latency = None
    unicast_flow.maximum_jitter = Decimal("5")
    assert_latency_and_jitter_bounds(unicast_flow, solver)
    # average: 5 latency definitions, per packet: latency, jitter and bound
    assert len(solver.assertions()) == 5 + 3 * 5
