#     Copyright (C) 2024 Lisa Maile
#
#     lisa.maile@fau.de
#
#     This file is part of the DYnamic Reliable rEal-time Communication in Tsn (DYRECTsn) framework.
#
#     DYRECTsn is free software: you can redistribute it and/or modify
#     it under the terms of the GNU Lesser General Public License as published by
#     the Free Software Foundation, either version 3 of the License, or
#     (at your option) any later version.
#
#     DYRECTsn is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU Lesser General Public License for more details.
#
#     You should have received a copy of the GNU Lesser General Public License
#     along with DYRECTsn.  If not, see <http://www.gnu.org/licenses/>.
#
from decimal import Decimal
from typing import Optional

import z3

from schedule_synthesis.analytics.z3_helper_functions import to_real
from schedule_synthesis.config import SYNTHESIS_CONFIG, SynthesisConfig
from schedule_synthesis.environment.flow import Flow, PublishSubscribeFlow, UnicastFlow
from schedule_synthesis.environment.flow_fragment import FlowFragment
from schedule_synthesis.environment.nodes import Device, PortNotFoundError, Switch
from schedule_synthesis.environment.path_tree import PathNode
from schedule_synthesis.logging import get_logger

logger = get_logger(__name__)


def compile_flow(flow: Flow, config: Optional[SynthesisConfig] = None) -> None:
    """
    Generates the z3 variables of the flow and one fragment per hop.

    All times are microseconds and all sizes are bytes.

    @param flow: flow with resolved timing values (see Flow.resolve_device_defaults)
    @param config: packet bound and priority range, the configuration of the flow or SYNTHESIS_CONFIG by default
    """
    if config is None:
        config = flow.config if flow.config is not None else SYNTHESIS_CONFIG

    assert flow.sending_periodicity is not None and flow.sending_periodicity > 0, \
        "Flow {} needs a positive sending periodicity before compilation".format(flow.name)
    assert flow.packet_size is not None, "Flow {} needs a packet size before compilation".format(flow.name)
    assert len(flow.fragments) == 0, "Flow {} is already compiled".format(flow.name)

    if isinstance(flow, PublishSubscribeFlow):
        publish_subscribe_to_z3(flow, config)
    elif isinstance(flow, UnicastFlow):
        unicast_to_z3(flow, config)
    else:
        raise TypeError("Unknown flow type {}".format(type(flow).__name__))


def _flow_to_z3(flow: Flow, config: SynthesisConfig) -> None:
    # values shared by every fragment of the flow
    flow.config = config
    if config.is_fixed_priority(flow.priority_value):
        flow.priority_z3 = z3.IntVal(flow.priority_value)
    else:
        flow.priority_z3 = z3.Int('{}Priority'.format(flow.name))
    flow.first_sending_time_z3 = z3.Real('{}FirstSendingTime'.format(flow.name))
    flow.sending_periodicity_z3 = to_real(flow.sending_periodicity)


def _new_fragment(flow: Flow, packet_count: int) -> FlowFragment:
    fragment = FlowFragment(flow.path_tree if isinstance(flow, PublishSubscribeFlow) else flow,
                            len(flow.fragments), flow.name, packet_count)
    flow.add_fragment(fragment)
    return fragment


def _fragment_priority(flow: Flow, fragment: FlowFragment, config: SynthesisConfig):
    if config.is_fixed_priority(flow.priority_value):
        # fixed priority per flow
        return flow.priority_z3
    return z3.Int('{}Priority'.format(fragment.name))


def get_packet_count(flow: Flow, port, config: SynthesisConfig) -> int:
    """
    :return: floor(hypercycle / periodicity) if the port uses an automated application period,
             the packet upper bound otherwise
    :raises ValueError: if no packet of the flow fits on the port
    """
    if port.uses_automated_application_period():
        packet_count = int(port.hypercycle_length() // flow.sending_periodicity)
    else:
        packet_count = config.packet_upper_bound_range

    if packet_count < 1:
        logger.error("Flow {} sends no packet through port {} (hypercycle {}, periodicity {})".format(
            flow.name, port.name, port.hypercycle_length() if port.uses_automated_application_period() else None,
            flow.sending_periodicity))
        raise ValueError("Port {} models no packet of flow {}, the hypercycle must be at least "
                         "the periodicity {}".format(port.name, flow.name, flow.sending_periodicity))
    return packet_count


def _get_relay(path_node: PathNode) -> Switch:
    if not isinstance(path_node.node, Switch):
        logger.error("Node {} forwards a flow but is not a switch".format(path_node.name))
        raise PortNotFoundError("Node {} has no outgoing ports, only switches can forward flows".format(
            path_node.name))
    return path_node.node


# ----------------------------------------------------------------------------------------------------------------
# -------------------------------------------  Publish Subscribe  ------------------------------------------------
# ----------------------------------------------------------------------------------------------------------------

def publish_subscribe_to_z3(flow: PublishSubscribeFlow, config: Optional[SynthesisConfig] = None) -> None:
    if config is None:
        config = SYNTHESIS_CONFIG

    assert isinstance(flow.start_device, Device), "The root of flow {} must be a device".format(flow.name)

    _flow_to_z3(flow, config)

    logger.debug("Compiling flow {}: periodicity {}, first sending time {}".format(
        flow.name, flow.sending_periodicity, flow.first_sending_time))

    node_to_z3(flow, flow.path_tree.root, None, config)


def node_to_z3(flow: PublishSubscribeFlow, node: PathNode, fragment: Optional[FlowFragment],
               config: Optional[SynthesisConfig] = None) -> Optional[FlowFragment]:
    """
    Given a node of the tree, iterates over its children. For each grandchild, a fragment is created.
    This represents the departure from the child (coming from node), and the scheduled time
    towards the grandchild.

    :param flow: flow that owns the tree
    :param node: current node (grandparent of the hop)
    :param fragment: fragment arriving at node, None at the root
    :param config: packet bound and priority range
    :return: the last fragment created in the subtree of node
    """
    if config is None:
        config = SYNTHESIS_CONFIG

    flow_fragment = None

    # a listener, nothing to schedule below it
    if node.is_leaf():
        return flow_fragment

    for child in node.children:
        for grandchild in child.children:
            relay = _get_relay(child)
            port = relay.get_port(grandchild.name)
            packet_count = get_packet_count(flow, port, config)

            flow_fragment = _new_fragment(flow, packet_count)
            flow_fragment.next_hop = grandchild.name
            flow_fragment.node_name = relay.name
            flow_fragment.port = port
            flow_fragment.path_node_index = child.index

            feeding_fragment = None
            if node.is_root():
                # first hop, departure = talker sending times
                for i in range(packet_count):
                    flow_fragment.add_departure_time(
                        flow.first_sending_time_z3 + to_real(flow.sending_periodicity * i))
            else:
                # departure = scheduled time of the fragment that leaves node towards child
                position = child.position_among_siblings()
                feeding_fragment = node.flow_fragments[position]
                for i in range(packet_count):
                    flow_fragment.add_departure_time(
                        feeding_fragment.port.scheduled_time(i, feeding_fragment))

            flow_fragment.priority = _fragment_priority(flow, flow_fragment, config)

            for i in range(packet_count):
                flow_fragment.add_scheduled_time(port.scheduled_time(i, flow_fragment))

            flow_fragment.periodicity = flow.sending_periodicity_z3
            flow_fragment.packet_size = to_real(flow.packet_size)
            flow_fragment.packet_size_value = flow.packet_size

            # adding fragment to the tree node and to the switch (and its port)
            child.add_flow_fragment(flow_fragment)
            relay.add_to_fragment_list(flow_fragment)

            if feeding_fragment is not None:
                flow_fragment.set_previous_fragment(feeding_fragment)
                feeding_fragment.add_to_next_fragments(flow_fragment)

            logger.debug("Flow {}: fragment {} from {} to {} with {} packets".format(
                flow.name, flow_fragment.name, relay.name, grandchild.name, packet_count))

        if flow_fragment is None:
            continue

        if fragment is not None and flow_fragment.previous_fragment is None:
            flow_fragment.set_previous_fragment(fragment)

        next_fragment = node_to_z3(flow, child, flow_fragment, config)

        if next_fragment is not None and next_fragment.previous_index == flow_fragment.index:
            flow_fragment.add_to_next_fragments(next_fragment)

    return flow_fragment


# ----------------------------------------------------------------------------------------------------------------
# ------------------------------------------------  Unicast  -----------------------------------------------------
# ----------------------------------------------------------------------------------------------------------------

def unicast_to_z3(flow: UnicastFlow, config: Optional[SynthesisConfig] = None) -> None:
    """
    Legacy compilation for unicast flows that were not converted to a tree:
    one fragment for every switch of the path.
    """
    if config is None:
        config = SYNTHESIS_CONFIG

    assert len(flow.path) > 0, "Unicast flow {} has no path".format(flow.name)

    _flow_to_z3(flow, config)

    for switch_index in range(len(flow.path)):
        path_to_z3(flow, switch_index, config)


def path_to_z3(flow: UnicastFlow, switch_index: int, config: Optional[SynthesisConfig] = None) -> FlowFragment:
    if config is None:
        config = SYNTHESIS_CONFIG

    relay = flow.path[switch_index]
    if switch_index == len(flow.path) - 1:
        next_hop = flow.end_device.name
    else:
        next_hop = flow.path[switch_index + 1].name
    port = relay.get_port(next_hop)
    packet_count = get_packet_count(flow, port, config)

    previous = flow.fragments[-1] if len(flow.fragments) > 0 else None

    flow_fragment = _new_fragment(flow, packet_count)
    flow_fragment.node_name = relay.name
    flow_fragment.next_hop = next_hop
    flow_fragment.port = port

    for i in range(packet_count):
        if previous is None:
            flow_fragment.add_departure_time(flow.first_sending_time_z3 + to_real(flow.sending_periodicity * i))
        else:
            flow_fragment.add_departure_time(previous.port.scheduled_time(i, previous))

    flow_fragment.priority = _fragment_priority(flow, flow_fragment, config)
    for i in range(packet_count):
        flow_fragment.add_scheduled_time(port.scheduled_time(i, flow_fragment))
    flow_fragment.periodicity = flow.sending_periodicity_z3
    flow_fragment.packet_size = to_real(flow.packet_size)
    flow_fragment.packet_size_value = flow.packet_size

    if previous is not None:
        flow_fragment.set_previous_fragment(previous)
        previous.add_to_next_fragments(flow_fragment)

    relay.add_to_fragment_list(flow_fragment)
    return flow_fragment


# ----------------------------------------------------------------------------------------------------------------
# ------------------------------------------------  Binding  -----------------------------------------------------
# ----------------------------------------------------------------------------------------------------------------

def bind_to_next_fragment(flow: Flow, solver: z3.Solver, fragment: FlowFragment) -> None:
    """
    scheduled time of packet i at this hop = departure time of packet i at every next hop
    """
    for next_fragment in fragment.next_fragments:
        for i in range(min(fragment.packet_count, next_fragment.packet_count)):
            solver.add(fragment.port.scheduled_time(i, fragment) ==
                       next_fragment.port.departure_time(i, next_fragment))
        bind_to_next_fragment(flow, solver, next_fragment)


def bind_all_fragments(flow: Flow, solver: z3.Solver) -> None:
    if isinstance(flow, UnicastFlow):
        if len(flow.fragments) > 0:
            bind_to_next_fragment(flow, solver, flow.fragments[0])
        return

    for node in flow.path_tree.root.children:
        for fragment in node.flow_fragments:
            bind_to_next_fragment(flow, solver, fragment)


# ----------------------------------------------------------------------------------------------------------------
# -------------------------------------------  First Sending Time  -----------------------------------------------
# ----------------------------------------------------------------------------------------------------------------

def get_first_hop_port(flow: Flow):
    """
    :return: port of the first switch on the link to the talker
    """
    if isinstance(flow, UnicastFlow):
        first_switch = flow.path[0]
    else:
        first_switch = flow.path_tree.root.children[0].node
    return first_switch.get_port(flow.start_device.name)


def get_first_hop_fragments(flow: Flow) -> list:
    if isinstance(flow, UnicastFlow):
        return flow.fragments[:1]
    return flow.path_tree.root.children[0].flow_fragments


def get_first_hop_cycle_duration(flow: Flow) -> Decimal:
    """
    :return: cycle duration of the first hop, if it is 0, the smallest non-zero cycle duration of the
             fragments leaving the first switch
    """
    cycle_duration = get_first_hop_port(flow).cycle_duration()

    if cycle_duration == 0:
        for fragment in get_first_hop_fragments(flow):
            current_cycle_duration = fragment.port.cycle_duration()
            if current_cycle_duration == 0:
                continue
            if cycle_duration == 0 or cycle_duration > current_cycle_duration:
                cycle_duration = current_cycle_duration

    return cycle_duration


def assert_first_sending_time(flow: Flow, solver: z3.Solver) -> None:
    """
    A fixed first sending time is kept if the packet can completely leave the talker before it.
    Otherwise, the first sending time is a variable between the transmission time of the packet and the
    end of the first cycle of the first hop.
    """
    first_port = get_first_hop_port(flow)
    first_port_speed = first_port.speed()
    first_port_cycle_start = first_port.cycle_start()
    first_port_cycle_duration = get_first_hop_cycle_duration(flow)
    transmission_time = flow.packet_size / first_port_speed

    if flow.first_sending_time is not None and transmission_time >= flow.first_sending_time:
        logger.warning("First packet of flow {} must have enough time to leave the source ({} >= {}). "
                       "Making first sending time a variable.".format(flow.name, transmission_time,
                                                                      flow.first_sending_time))
        flow.first_sending_time = None

    if flow.first_sending_time is not None:
        logger.debug("Flow {}: first sending time fixed to {}".format(flow.name, flow.first_sending_time))
        solver.add(flow.first_sending_time_z3 == to_real(flow.first_sending_time))
        return

    solver.add(flow.first_sending_time_z3 >= to_real(transmission_time))
    solver.add(flow.first_sending_time_z3 <= first_port_cycle_start + to_real(first_port_cycle_duration))


# ----------------------------------------------------------------------------------------------------------------
# -------------------------------------------  Periods and Packets  ----------------------------------------------
# ----------------------------------------------------------------------------------------------------------------

def register_periods(flow: Flow, node: Optional[PathNode] = None) -> None:
    """
    Adds the periodicity of the flow to the list of periods of every port used by the flow.
    This is used for the automated application periods (hypercycle) of the ports.
    """
    if isinstance(flow, UnicastFlow):
        for switch_index, switch in enumerate(flow.path):
            next_hop = flow.end_device.name if switch_index == len(flow.path) - 1 \
                else flow.path[switch_index + 1].name
            switch.get_port(next_hop).register_periodicity(flow.sending_periodicity)
        return

    if node is None:
        node = flow.path_tree.root

    if node.is_leaf():
        return
    elif isinstance(node.node, Device):
        for child in node.children:
            register_periods(flow, child)
    else:
        relay = _get_relay(node)
        for child in node.children:
            port = relay.get_port(child.name)
            register_periods(flow, child)
            port.register_periodicity(flow.sending_periodicity)


def derive_max_packet_count(flow: Flow, node: Optional[PathNode] = None) -> int:
    """
    Searches the fragments for the highest number of packets of a fragment.
    This is the bound for all packets of the flow in analyses that are not per listener.
    """
    if isinstance(flow, UnicastFlow):
        for fragment in flow.fragments:
            flow.num_of_packets_sent = max(flow.num_of_packets_sent, fragment.packet_count)
        return flow.num_of_packets_sent

    if node is None:
        node = flow.path_tree.root

    if node.is_leaf():
        return flow.num_of_packets_sent
    elif isinstance(node.node, Device):
        for child in node.children:
            derive_max_packet_count(flow, child)
    else:
        for index, fragment in enumerate(node.flow_fragments):
            if flow.num_of_packets_sent < fragment.packet_count:
                flow.num_of_packets_sent = fragment.packet_count
            derive_max_packet_count(flow, node.children[index])

    return flow.num_of_packets_sent
