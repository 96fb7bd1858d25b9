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
from typing import Dict, List

import z3

from schedule_synthesis.analytics.z3_helper_functions import to_decimal
from schedule_synthesis.environment.port import Port
from schedule_synthesis.environment.profiles import default_profile
from schedule_synthesis.logging import get_logger

logger = get_logger(__name__)


class PortNotFoundError(LookupError):
    """A relay has no outgoing port towards the requested next hop."""


class Device:
    """
    end device (talker or listener), it only knows the default values of the flows it sends
    """

    def __init__(self, name, packet_periodicity=None, first_t1_time=None, packet_size=None,
                 hard_constraint_time=None):
        periodicity, first_sending, size, max_latency = default_profile
        self.name = name
        self.packet_periodicity = to_decimal(packet_periodicity if packet_periodicity is not None else periodicity)
        self.first_t1_time = to_decimal(first_t1_time if first_t1_time is not None else first_sending)
        self.packet_size = to_decimal(packet_size if packet_size is not None else size)
        self.hard_constraint_time = to_decimal(hard_constraint_time if hard_constraint_time is not None
                                               else max_latency)

    def __repr__(self):
        return (f"Device(name={self.name}, packet_periodicity={self.packet_periodicity}, "
                f"first_t1_time={self.first_t1_time}, packet_size={self.packet_size}, "
                f"hard_constraint_time={self.hard_constraint_time})")


class Switch:
    """
    relay node: has one outgoing port per neighbor and keeps every flow fragment that leaves through it
    """

    def __init__(self, name):
        self.name = name
        self.ports: Dict[str, Port] = {}
        self.fragments = []

    def __repr__(self):
        return "Switch(name={}, connects_to={})".format(self.name, self.connects_to)

    @property
    def connects_to(self) -> List[str]:
        return list(self.ports.keys())

    def create_port(self, connects_to, **port_parameters) -> Port:
        assert connects_to not in self.ports, \
            "Switch {} already has a port to {}".format(self.name, connects_to)
        port = Port('{}->{}'.format(self.name, connects_to), connects_to, **port_parameters)
        self.ports[connects_to] = port
        return port

    def get_port(self, next_hop) -> Port:
        """
        :param next_hop: name of the neighbor
        :return: the outgoing port to next_hop
        :raises PortNotFoundError: if the switch is not connected to next_hop
        """
        port = self.ports.get(next_hop)
        if port is None:
            logger.error("Switch {} has no port to {} (ports: {})".format(self.name, next_hop, self.connects_to))
            raise PortNotFoundError("Switch {} has no port to {}".format(self.name, next_hop))
        return port

    def add_to_fragment_list(self, fragment) -> None:
        """the fragment is kept on the switch and on the port it leaves through"""
        self.fragments.append(fragment)
        fragment.port.add_fragment(fragment)

    def to_constraints(self, solver: z3.Solver) -> None:
        for port in self.ports.values():
            port.to_constraints(solver)
