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
from typing import List, Optional, Tuple

import z3

from schedule_synthesis.analytics.z3_helper_functions import absolute_difference, mean, sum_expressions, to_real
from schedule_synthesis.environment.flow import Flow, UnicastFlow
from schedule_synthesis.environment.flow_fragment import FlowFragment
from schedule_synthesis.logging import get_logger
from schedule_synthesis.reservation.flow_compiler import get_first_hop_port

logger = get_logger(__name__)


def get_first_port_speed(flow: Flow) -> Decimal:
    return get_first_hop_port(flow).speed()


def get_first_transmission_delay(flow: Flow) -> Decimal:
    """
    time the talker needs to put the packet on the first link
    """
    return flow.packet_size / get_first_port_speed(flow)


def get_fragments_to_device(flow: Flow, device_name: Optional[str] = None) -> List[FlowFragment]:
    """
    :param flow: compiled flow
    :param device_name: listener, can be omitted for unicast flows
    :return: fragments from the talker to the listener
    :raises LookupError: if device_name is not a listener of the flow
    """
    if isinstance(flow, UnicastFlow):
        if device_name is not None and device_name != flow.end_device.name:
            raise LookupError("NOT_FOUND: {} is not the listener of flow {}".format(device_name, flow.name))
        fragments = flow.fragments
    else:
        if device_name is None:
            assert len(flow.end_device_names) == 1, \
                "Flow {} has several listeners, the listener must be given".format(flow.name)
            device_name = flow.end_device_names[0]
        fragments = flow.get_fragments_to(device_name).unwrap()

    assert len(fragments) > 0, "Flow {} is not compiled".format(flow.name)
    return fragments


def _destination_name(flow: Flow, device_name: Optional[str]) -> str:
    if device_name is not None:
        return device_name
    return flow.end_device_names[0]


def _first_and_last_fragment(flow: Flow, device_name: Optional[str]) -> Tuple[FlowFragment, FlowFragment]:
    fragments = get_fragments_to_device(flow, device_name)
    return fragments[0], fragments[-1]


def get_packet_count_to_device(flow: Flow, device_name: Optional[str] = None) -> int:
    """
    number of packets modeled on every hop towards the listener
    """
    packets = min(fragment.packet_count for fragment in get_fragments_to_device(flow, device_name))
    assert packets > 0, "Flow {} models no packet towards {}".format(flow.name, _destination_name(flow, device_name))
    return packets


# ----------------------------------------------------------------------------------------------------------------
# ------------------------------------------------  Latency  -----------------------------------------------------
# ----------------------------------------------------------------------------------------------------------------

def latency_expression(flow: Flow, index: int, device_name: Optional[str] = None) -> z3.ArithRef:
    """
    Latency of packet [index] from the talker to the listener:
    scheduled time at the last hop - departure time at the first hop + first transmission delay.

    :param flow: compiled flow
    :param index: packet number
    :param device_name: listener, can be omitted for unicast flows
    :return: expression over the scheduled and departure times
    """
    first_fragment, last_fragment = _first_and_last_fragment(flow, device_name)
    assert 0 <= index < min(first_fragment.packet_count, last_fragment.packet_count), \
        "Packet {} is not modeled for flow {}".format(index, flow.name)

    first_transmission_delay = to_real(get_first_transmission_delay(flow))
    return first_transmission_delay + (last_fragment.port.scheduled_time(index, last_fragment) -
                                       first_fragment.port.departure_time(index, first_fragment))


def get_latency_z3(flow: Flow, solver: z3.Solver, index: int, device_name: Optional[str] = None) -> z3.ArithRef:
    """
    :param solver: solver that receives the defining equality of the latency variable
    :return: z3 variable holding the latency (see latency_expression)
    """
    latency = z3.Real('{}LatencyOfPacket{}For{}'.format(flow.name, index, _destination_name(flow, device_name)))
    solver.add(latency == latency_expression(flow, index, device_name))
    return latency


def get_sum_of_latency_z3(flow: Flow, solver: z3.Solver, index: int,
                          device_name: Optional[str] = None) -> z3.ArithRef:
    """
    latency[0] + latency[1] + ... + latency[index]
    """
    return sum_expressions([get_latency_z3(flow, solver, i, device_name) for i in range(index + 1)])


def get_sum_of_all_dev_latency_z3(flow: Flow, solver: z3.Solver, index: int) -> z3.ArithRef:
    return sum_expressions([get_sum_of_latency_z3(flow, solver, index, device_name)
                            for device_name in flow.end_device_names])


def get_average_latency_to_device_z3(flow: Flow, solver: z3.Solver,
                                     device_name: Optional[str] = None) -> z3.ArithRef:
    packets = get_packet_count_to_device(flow, device_name)
    return get_sum_of_latency_z3(flow, solver, packets - 1, device_name) / z3.RealVal(packets)


def get_average_latency_z3(flow: Flow, solver: z3.Solver) -> z3.ArithRef:
    """
    unicast: average over the packets of the path,
    publish subscribe: average of the average latencies of all listeners
    """
    if isinstance(flow, UnicastFlow):
        return get_average_latency_to_device_z3(flow, solver)
    return mean([get_average_latency_to_device_z3(flow, solver, device_name)
                 for device_name in flow.end_device_names])


# ----------------------------------------------------------------------------------------------------------------
# -------------------------------------------------  Jitter  -----------------------------------------------------
# ----------------------------------------------------------------------------------------------------------------

def get_jitter_z3(flow: Flow, solver: z3.Solver, index: int, device_name: Optional[str] = None,
                  average_latency: Optional[z3.ArithRef] = None) -> z3.ArithRef:
    """
    |latency[index] - average latency| towards the listener as z3 variable

    :param average_latency: average latency to the listener if it was already built,
                            callers that need several jitters build it once
    """
    if average_latency is None:
        average_latency = get_average_latency_to_device_z3(flow, solver, device_name)
    latency = get_latency_z3(flow, solver, index, device_name)

    jitter = z3.Real('{}JitterOfPacket{}For{}'.format(flow.name, index, _destination_name(flow, device_name)))
    solver.add(jitter == absolute_difference(latency, average_latency))

    return jitter


def get_sum_of_jitter_z3(flow: Flow, solver: z3.Solver, index: int,
                         device_name: Optional[str] = None) -> z3.ArithRef:
    average_latency = get_average_latency_to_device_z3(flow, solver, device_name)
    return sum_expressions([get_jitter_z3(flow, solver, i, device_name, average_latency)
                            for i in range(index + 1)])


def get_sum_of_all_dev_jitter_z3(flow: Flow, solver: z3.Solver, index: int) -> z3.ArithRef:
    return sum_expressions([get_sum_of_jitter_z3(flow, solver, index, device_name)
                            for device_name in flow.end_device_names])


def get_average_jitter_to_device_z3(flow: Flow, solver: z3.Solver,
                                    device_name: Optional[str] = None) -> z3.ArithRef:
    packets = get_packet_count_to_device(flow, device_name)
    return get_sum_of_jitter_z3(flow, solver, packets - 1, device_name) / z3.RealVal(packets)


def get_average_jitter_z3(flow: Flow, solver: z3.Solver) -> z3.ArithRef:
    if isinstance(flow, UnicastFlow):
        return get_average_jitter_to_device_z3(flow, solver)
    return mean([get_average_jitter_to_device_z3(flow, solver, device_name)
                 for device_name in flow.end_device_names])


# ----------------------------------------------------------------------------------------------------------------
# -------------------------------------------------  Bounds  -----------------------------------------------------
# ----------------------------------------------------------------------------------------------------------------

def assert_latency_and_jitter_bounds(flow: Flow, solver: z3.Solver) -> None:
    """
    every packet to every listener respects the maximum latency and the maximum jitter of the flow (if set)
    """
    if flow.maximum_latency is None and flow.maximum_jitter is None:
        return

    for device_name in flow.end_device_names:
        # one average per listener, shared by the jitter of all packets
        average_latency = None
        if flow.maximum_jitter is not None:
            average_latency = get_average_latency_to_device_z3(flow, solver, device_name)

        for i in range(get_packet_count_to_device(flow, device_name)):
            if flow.maximum_latency is not None:
                solver.add(get_latency_z3(flow, solver, i, device_name) <= to_real(flow.maximum_latency))
            if flow.maximum_jitter is not None:
                jitter = get_jitter_z3(flow, solver, i, device_name, average_latency)
                solver.add(jitter <= to_real(flow.maximum_jitter))

    logger.debug("Flow {}: latency bound {} and jitter bound {} asserted".format(
        flow.name, flow.maximum_latency, flow.maximum_jitter))
