"""Shared fixtures: small topologies and compiled flows."""

from decimal import Decimal

import pytest
import z3

from schedule_synthesis.environment.default_topologies import line_topology
from schedule_synthesis.environment.flow import FlowBuilder
from schedule_synthesis.reservation.flow_compiler import compile_flow, register_periods


@pytest.fixture
def builder():
    return FlowBuilder()


@pytest.fixture
def line_network():
    """switch1 - switch2 - switch3 with dev1, dev2, dev3 attached in that order."""
    network, switches, devices = line_topology(length=3, devices_per_switch=1)
    return network


@pytest.fixture
def solver():
    return z3.Solver()


@pytest.fixture
def two_listener_flow(line_network, builder):
    """Publish subscribe flow dev1 -> dev2 (2 hops) and dev1 -> dev3 (3 hops), compiled."""
    n = line_network.get_node
    flow = builder.publish_subscribe(n('dev1'), first_sending_time=Decimal('10'),
                                     sending_periodicity=Decimal('100'), packet_size=Decimal('64'))
    flow.add_to_path(n('dev1'), n('switch1')).unwrap()
    flow.add_to_path(n('switch1'), n('switch2')).unwrap()
    flow.add_to_path(n('switch2'), n('dev2')).unwrap()
    flow.add_to_path(n('switch2'), n('switch3')).unwrap()
    flow.add_to_path(n('switch3'), n('dev3')).unwrap()
    flow.resolve_device_defaults()
    register_periods(flow)
    compile_flow(flow)
    return flow
