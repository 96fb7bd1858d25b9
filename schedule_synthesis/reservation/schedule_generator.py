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
from fractions import Fraction
from typing import Optional

import z3

from schedule_synthesis.analytics.latency import assert_latency_and_jitter_bounds, get_fragments_to_device, \
    get_packet_count_to_device, \
    latency_expression
from schedule_synthesis.analytics.z3_helper_functions import model_value
from schedule_synthesis.config import SYNTHESIS_CONFIG, SynthesisConfig
from schedule_synthesis.environment.flow import Flow, UnicastFlow
from schedule_synthesis.environment.network import Network
from schedule_synthesis.logging import enable_debug_logging, get_logger
from schedule_synthesis.reservation.flow_compiler import assert_first_sending_time, bind_all_fragments, \
    compile_flow, derive_max_packet_count, register_periods
from schedule_synthesis.reservation.routing import find_switch_path

logger = get_logger(__name__)


def init_topology(network: Network, config: Optional[SynthesisConfig] = None, output=False):
    """
    Creates the state of one scheduling problem: the topology, the solver that collects all constraints
    and the flows that are scheduled together.

    @param network: topology with devices, switches and ports
    @param config: packet bound and priority range, SYNTHESIS_CONFIG by default
    @param output: log every step of the compilation
    @return: schedule_state with
                schedule_state['network']: Network
                schedule_state['solver']: z3.Solver
                schedule_state['flows']: List with the added flows
                schedule_state['config']: SynthesisConfig
    """
    if output:
        enable_debug_logging()

    if config is None:
        config = SYNTHESIS_CONFIG

    logger.debug("---------------------- Start Initialization ------------------------")
    for switch in network.switches:
        for port in switch.ports.values():
            logger.debug("Port {}: speed {}, time to travel {}, cycle duration {}".format(
                port.name, port.speed(), port.time_to_travel, port.cycle_duration()))
    logger.debug("---------------------- End Initialization ------------------------")

    schedule_state = {'network': network, 'solver': z3.Solver(), 'flows': [], 'config': config}
    return schedule_state


def add_flow(flow: Flow, schedule_state):
    """
    Prepares a flow for the scheduling: unicast flows without path are routed, all unicast flows are
    converted to publish subscribe flows, unset timing values come from the talker and the periodicity
    is registered at every port on the way.

    @param flow: Flow to schedule
    @param schedule_state: dictionary as returned by init_topology
    @return: results with
                results['success']
                results['flow']: the flow that is scheduled (converted for unicast flows)
                results['schedule_state']
    """
    assert flow.name not in [f.name for f in schedule_state['flows']], \
        "Flows must be unique in the network (error for flow {})".format(flow.name)

    logger.debug("------------------- Add Flow ----------------------")
    logger.debug(flow)

    flow.config = schedule_state['config']
    if isinstance(flow, UnicastFlow):
        if len(flow.path) == 0:
            for switch in find_switch_path(schedule_state['network'], flow.start_device.name,
                                           flow.end_device.name):
                flow.add_to_path(switch)
            logger.debug("Path found: {}".format([switch.name for switch in flow.path]))
        flow = flow.convert_to_publish_subscribe()

    flow.resolve_device_defaults()
    register_periods(flow)
    schedule_state['flows'].append(flow)

    return {'success': True, 'flow': flow, 'schedule_state': schedule_state}


def generate_schedule(schedule_state):
    """
    Compiles all added flows into constraints and solves them.

    @param schedule_state: dictionary as returned by init_topology, with all flows added
    @return: results with
                results['success']: whether a schedule exists
                results['model']: z3 model (None if no schedule exists)
                results['statistics']
                        statistics[flow name]['first_sending_time']
                        statistics[flow name]['latencies']: {listener: [latency of packet 0, 1, ...]}
                        statistics[flow name][...]: see get_statistics
    """
    solver = schedule_state['solver']
    config = schedule_state['config']
    network = schedule_state['network']

    logger.debug("------------------- Compile Flows ----------------------")
    # periods of all flows are registered before, so the hypercycles are complete here
    for flow in schedule_state['flows']:
        compile_flow(flow, config)
        derive_max_packet_count(flow)
        bind_all_fragments(flow, solver)
        assert_first_sending_time(flow, solver)
        assert_latency_and_jitter_bounds(flow, solver)
        logger.debug("Flow {} compiled into {} fragments, at most {} packets".format(
            flow.name, len(flow.fragments), flow.num_of_packets_sent))

    for switch in network.switches:
        switch.to_constraints(solver)

    logger.debug("------------------- Solve ----------------------")
    check = solver.check()
    success = check == z3.sat
    logger.info("Schedule for {} flows: {}".format(len(schedule_state['flows']), check))

    results = {'success': success, 'model': None, 'statistics': {}}
    if success:
        model = solver.model()
        results['model'] = model
        results['statistics'] = get_statistics(schedule_state, model)

    return results


def _mean(values):
    if len(values) == 0:
        return None
    return sum(values, Fraction(0)) / len(values)


def get_hop_times(flow: Flow, model, device_name):
    """
    Departure, arrival and scheduled time of every packet on every hop towards the listener.

    @return: one dictionary per hop (first hop first) with
                hop['node'], hop['next_hop']
                hop['departure_times'], hop['arrival_times'], hop['scheduled_times']: [packet 0, 1, ...]
    """
    hops = []
    for fragment in get_fragments_to_device(flow, device_name):
        packets = range(fragment.packet_count)
        hops.append({
            'node': fragment.node_name,
            'next_hop': fragment.next_hop,
            'departure_times': [model_value(model, fragment.port.departure_time(i, fragment)) for i in packets],
            'arrival_times': [model_value(model, fragment.port.arrival_time(i, fragment)) for i in packets],
            'scheduled_times': [model_value(model, fragment.port.scheduled_time(i, fragment)) for i in packets],
        })
    return hops


def get_statistics(schedule_state, model):
    """
    Reads the schedule of all flows back from the model (exact fractions).

    @return: statistics[flow name] with
                ['first_sending_time']
                ['latencies']: {listener: [latency of packet 0, 1, ...]}
                ['average_latency_per_device']: {listener: average latency}
                ['average_latency']: mean of the average latencies of the listeners
                ['jitters']: {listener: [|latency - average latency| of packet 0, 1, ...]}
                ['average_jitter_per_device']: {listener: average jitter}
                ['average_jitter']: mean of the average jitters of the listeners
                ['hops']: {listener: see get_hop_times}
    """
    statistics = {}
    for flow in schedule_state['flows']:
        latencies = {}
        jitters = {}
        hops = {}
        for device_name in flow.end_device_names:
            latencies[device_name] = [model_value(model, latency_expression(flow, i, device_name))
                                      for i in range(get_packet_count_to_device(flow, device_name))]
            average = _mean(latencies[device_name])
            jitters[device_name] = [abs(latency - average) for latency in latencies[device_name]]
            hops[device_name] = get_hop_times(flow, model, device_name)

        average_latency_per_device = {device_name: _mean(values) for device_name, values in latencies.items()}
        average_jitter_per_device = {device_name: _mean(values) for device_name, values in jitters.items()}
        statistics[flow.name] = {
            'first_sending_time': model_value(model, flow.first_sending_time_z3),
            'latencies': latencies,
            'average_latency_per_device': average_latency_per_device,
            'average_latency': _mean(list(average_latency_per_device.values())),
            'jitters': jitters,
            'average_jitter_per_device': average_jitter_per_device,
            'average_jitter': _mean(list(average_jitter_per_device.values())),
            'hops': hops,
        }
    return statistics
