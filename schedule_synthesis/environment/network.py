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
from typing import Dict, List, Union

import networkx as nx

from schedule_synthesis.environment.nodes import Device, Switch


class Network:
    """
    class which contains the topology: devices, switches and the ports of the switches

    the graph keeps one node per device/switch (attribute 'node') and one edge per direction of a link
    """

    def __init__(self) -> None:
        self.graph = nx.DiGraph()
        self.nodes: Dict[str, Union[Device, Switch]] = {}

    def add_device(self, name, **device_parameters) -> Device:
        assert name not in self.nodes, "Node names must be unique (error for {})".format(name)
        device = Device(name, **device_parameters)
        self.nodes[name] = device
        self.graph.add_node(name, node=device)
        return device

    def add_switch(self, name) -> Switch:
        assert name not in self.nodes, "Node names must be unique (error for {})".format(name)
        switch = Switch(name)
        self.nodes[name] = switch
        self.graph.add_node(name, node=switch)
        return switch

    def get_node(self, name) -> Union[Device, Switch]:
        assert name in self.nodes, "Node {} is not part of the network".format(name)
        return self.nodes[name]

    @property
    def devices(self) -> List[Device]:
        return [node for node in self.nodes.values() if isinstance(node, Device)]

    @property
    def switches(self) -> List[Switch]:
        return [node for node in self.nodes.values() if isinstance(node, Switch)]

    def create_link(self, nodeA, nodeB, port_speed=None, time_to_travel=None, cycle_duration=0,
                    automated_application_period=False, defined_hypercycle_size=None, bidirectional=True):
        """
        connects two existing nodes, every switch end of the link gets an outgoing port

        :param nodeA: name of the first node
        :param nodeB: name of the second node
        :param port_speed: bytes per microsecond
        :param time_to_travel: propagation delay in microseconds
        :param cycle_duration: cycle duration of the created ports
        :param automated_application_period: whether the created ports derive the packet count from the hypercycle
        :param defined_hypercycle_size: fixed hypercycle of the created ports
        :param bidirectional: whether nodeB -> nodeA is created as well
        """
        port_parameters = {'port_speed': port_speed, 'time_to_travel': time_to_travel,
                           'cycle_duration': cycle_duration,
                           'automated_application_period': automated_application_period,
                           'defined_hypercycle_size': defined_hypercycle_size}

        directions = [(nodeA, nodeB)]
        if bidirectional:
            directions.append((nodeB, nodeA))

        for u, v in directions:
            source = self.get_node(u)
            self.get_node(v)
            port = None
            if isinstance(source, Switch):
                port = source.create_port(v, **port_parameters)
            self.graph.add_edge(u, v, port=port)
