#     Copyright (C) 2024 Lisa Maile
#
#     lisa.maile@fau.de
#
#     This file is part of the DYnamic Reliable rEal-time Communication in Tsn (DYRECTsn) framework.
#
#     DYRECTsn is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, either version 3 of the License, or
#     (at your option) any later version.
#
#     DYRECTsn is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with DYRECTsn.  If not, see <http://www.gnu.org/licenses/>.
#
from decimal import Decimal

import matplotlib.pyplot as plt
import networkx as nx

from schedule_synthesis.environment.network import Network


def _draw(network: Network):
    colors = ['lightblue' if node in [switch.name for switch in network.switches] else 'lightgreen'
              for node in network.graph.nodes]
    nx.draw(network.graph, with_labels=True, node_color=colors)
    plt.show()


def example_topology(port_speed=Decimal('125'), time_to_travel=Decimal('1'), cycle_duration=Decimal('0'),
                     automated_application_period=False, output=False):
    """
    Three switches in a triangle with two devices each.

    Parameters:
        port_speed: in bytes/microsecond (125 = 1 Gbit/s);
        time_to_travel: propagation delay of every link in microseconds;
        cycle_duration: cycle duration of every port, 0 if unknown;
        automated_application_period: whether the ports derive the number of packets from the hypercycle;
        output: whether the plot of the topology should be drawn;
    """
    network = Network()
    link = {'port_speed': port_speed, 'time_to_travel': time_to_travel, 'cycle_duration': cycle_duration,
            'automated_application_period': automated_application_period}

    # add the switches
    switches = ['switch1', 'switch2', 'switch3']
    for switch in switches:
        network.add_switch(switch)
    # Default parameter of create_link: bidirectional=True
    network.create_link('switch1', 'switch2', **link)
    network.create_link('switch2', 'switch3', **link)
    network.create_link('switch1', 'switch3', **link)

    # add the devices
    devices = ['dev1', 'dev2', 'dev3', 'dev4', 'dev5', 'dev6']
    for index, device in enumerate(devices):
        network.add_device(device)
        network.create_link(device, switches[index // 2], **link)

    if output:
        _draw(network)

    return network, switches, devices


def line_topology(length=3, devices_per_switch=1, port_speed=Decimal('125'), time_to_travel=Decimal('1'),
                  cycle_duration=Decimal('0'), automated_application_period=False, output=False):
    """
    switch1 - switch2 - ... - switch<length>, every switch with devices_per_switch devices
    """
    network = Network()
    link = {'port_speed': port_speed, 'time_to_travel': time_to_travel, 'cycle_duration': cycle_duration,
            'automated_application_period': automated_application_period}

    switches = []
    for i in range(length):
        switches.append(network.add_switch('switch{}'.format(i + 1)).name)
        if i > 0:
            network.create_link(switches[i - 1], switches[i], **link)

    devices = []
    for switch in switches:
        for i in range(devices_per_switch):
            device = network.add_device('dev{}'.format(len(devices) + 1)).name
            network.create_link(device, switch, **link)
            devices.append(device)

    if output:
        _draw(network)

    return network, switches, devices


def star_topology(branches=3, devices_per_branch=2, port_speed=Decimal('125'), time_to_travel=Decimal('1'),
                  cycle_duration=Decimal('0'), automated_application_period=False, output=False):
    """
    one central switch with a talker, every branch switch connects devices_per_branch listeners
    """
    network = Network()
    link = {'port_speed': port_speed, 'time_to_travel': time_to_travel, 'cycle_duration': cycle_duration,
            'automated_application_period': automated_application_period}

    network.add_switch('core')
    talker = network.add_device('talker').name
    network.create_link(talker, 'core', **link)

    switches = ['core']
    listeners = []
    for n in range(branches):
        branch = network.add_switch('switch{}'.format(n + 1)).name
        network.create_link('core', branch, **link)
        switches.append(branch)
        for i in range(devices_per_branch):
            listener = network.add_device('dev{}'.format(len(listeners) + 1)).name
            network.create_link(branch, listener, **link)
            listeners.append(listener)

    if output:
        _draw(network)

    return network, talker, listeners
