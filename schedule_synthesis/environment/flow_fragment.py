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
from typing import List, Optional


class FlowFragment:
    """
    one hop of a flow: the packets leave node_name through port towards next_hop

    previous/next fragments are indices into the fragment arena of the owner (path tree or unicast flow)
    """

    def __init__(self, owner, index, flow_name, packet_count):
        self.owner = owner
        self.index = index
        self.flow_name = flow_name
        self.name = '{}Fragment{}'.format(flow_name, index)
        self.packet_count = packet_count

        self.node_name = None
        self.next_hop = None
        self.port = None
        self.path_node_index: Optional[int] = None

        # z3 values, per packet and per fragment
        self.departure_times = []
        self.scheduled_times = []
        self.priority = None
        self.periodicity = None
        self.packet_size = None
        self.packet_size_value = Decimal('0')

        self.previous_index: Optional[int] = None
        self.next_indices: List[int] = []

    def __repr__(self):
        return (f"FlowFragment(name={self.name}, node={self.node_name}, next_hop={self.next_hop}, "
                f"packets={self.packet_count}, previous={self.previous_index}, next={self.next_indices})")

    def add_departure_time(self, departure_time):
        self.departure_times.append(departure_time)

    def add_scheduled_time(self, scheduled_time):
        self.scheduled_times.append(scheduled_time)

    def get_departure_time(self, index):
        return self.departure_times[index]

    def get_scheduled_time(self, index):
        return self.scheduled_times[index]

    def get_arrival_time(self, index):
        return self.port.arrival_time(index, self)

    @property
    def previous_fragment(self) -> Optional["FlowFragment"]:
        if self.previous_index is None:
            return None
        return self.owner.fragments[self.previous_index]

    @property
    def next_fragments(self) -> List["FlowFragment"]:
        return [self.owner.fragments[i] for i in self.next_indices]

    def set_previous_fragment(self, fragment):
        self.previous_index = fragment.index

    def add_to_next_fragments(self, fragment):
        if fragment.index not in self.next_indices:
            self.next_indices.append(fragment.index)
