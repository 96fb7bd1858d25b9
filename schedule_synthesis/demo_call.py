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

from schedule_synthesis.environment.default_topologies import example_topology
from schedule_synthesis.environment.flow import FlowBuilder
from schedule_synthesis.reservation.routing import build_path_tree
from schedule_synthesis.reservation.schedule_generator import add_flow, generate_schedule, init_topology


def print_flow_information(flow, results):
    """
    Pretty print of the tree and the latencies of a flow after the schedule was generated.
    """
    print("Flow Details: Source: ", flow.start_device.name, ", Destinations: ", flow.end_device_names,
          ", Bytes: ", flow.packet_size, ", Periodicity: ", flow.sending_periodicity,
          "us , Max. latency: ", flow.maximum_latency, "us , Priority: ", flow.priority_value)
    for device_name in flow.end_device_names:
        nodes = flow.get_nodes_to(device_name).unwrap()
        print("Path: ", ' -> '.join(str(node.name) for node in nodes))

    if not results['success']:
        print('No schedule found!')
        return

    statistics = results['statistics'][flow.name]
    print(f"First sending time: {float(statistics['first_sending_time']):.3f}us")
    for device_name, latencies in statistics['latencies'].items():
        print(f"Latencies to {device_name}: " + ', '.join(f'{float(v):.3f}us' for v in latencies))
    print(f"Average latency: {float(statistics['average_latency']):.3f}us")


def run_demo(output=False):
    """
    General information:
    Everything is in bytes and microseconds. The port speed is in bytes per microsecond (125 = 1 Gbit/s).
    To reduce rounding errors, every float is converted to Decimal, the solver works with exact rationals.

    Priorities between 0 and 7 are fixed for the whole flow, every other value (or None) lets the solver
    choose a priority per hop.
    """
    network, switches, devices = example_topology(port_speed=Decimal('125'), time_to_travel=Decimal('1'),
                                                  cycle_duration=Decimal('100'), output=output)
    schedule_state = init_topology(network, output=output)

    builder = FlowBuilder()
    flows = []
    # unicast flow with given priority and path, it is converted to a tree when it is added
    flows.append(builder.unicast(network.get_node('dev1'), network.get_node('dev3'),
                                 path=[network.get_node('switch1'), network.get_node('switch2')],
                                 first_sending_time=Decimal('10'), sending_periodicity=Decimal('500'),
                                 packet_size=Decimal('256'), priority=6))
    # unicast flow, the path is found by the framework
    flows.append(builder.unicast(network.get_node('dev2'), network.get_node('dev6'),
                                 packet_size=Decimal('128'), maximum_jitter=Decimal('50')))
    # publish subscribe flow with three listeners, the solver decides the first sending time and the priorities
    publish_subscribe = builder.publish_subscribe(network.get_node('dev4'), first_sending_time=-1,
                                                  sending_periodicity=Decimal('1000'), packet_size=Decimal('512'))
    build_path_tree(publish_subscribe, network, ['dev1', 'dev5', 'dev6'])
    flows.append(publish_subscribe)

    scheduled_flows = [add_flow(flow, schedule_state)['flow'] for flow in flows]
    results = generate_schedule(schedule_state)

    for flow in scheduled_flows:
        print_flow_information(flow, results)

    return results


if __name__ == "__main__":
    run_demo(output=True)
