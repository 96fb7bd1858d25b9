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
from enum import IntEnum
from typing import List, Optional

from schedule_synthesis.analytics.z3_helper_functions import to_decimal
from schedule_synthesis.config import SYNTHESIS_CONFIG, SynthesisConfig
from schedule_synthesis.environment.nodes import Device, Switch
from schedule_synthesis.environment.path_tree import Lookup, PathNode, PathTree
from schedule_synthesis.logging import get_logger

logger = get_logger(__name__)


class FlowKind(IntEnum):
    UNICAST = 0
    PUBLISH_SUBSCRIBE = 1


def _unset_or_decimal(value) -> Optional[Decimal]:
    # -1 (or any negative value) is the "unset" sentinel
    if value is None:
        return None
    value = to_decimal(value)
    if value < 0:
        return None
    return value


class Flow:
    """
    stream of periodic packets from one talker to one or more listeners

    timing values that are None are inherited from the talker (resolve_device_defaults) or left to the solver
    """
    kind: FlowKind

    def __init__(self, name, instance, first_sending_time=None, sending_periodicity=None, packet_size=None,
                 maximum_latency=None, maximum_jitter=None, priority=None):
        self.name = name  # used for all z3 variable names, must be unique
        self.instance = instance
        self.first_sending_time = _unset_or_decimal(first_sending_time)
        self.sending_periodicity = _unset_or_decimal(sending_periodicity)
        self.packet_size = _unset_or_decimal(packet_size)
        self.maximum_latency = _unset_or_decimal(maximum_latency)
        self.maximum_jitter = _unset_or_decimal(maximum_jitter)
        self.priority_value = priority

        # After compilation, these are filled.
        self.first_sending_time_z3 = None
        self.sending_periodicity_z3 = None
        self.priority_z3 = None
        self.num_of_packets_sent = 0

        # configuration the flow is scheduled with, SYNTHESIS_CONFIG until one is assigned
        self.config: Optional[SynthesisConfig] = None

    def __repr__(self):
        return (
            f"{type(self).__name__}(name={self.name}, instance={self.instance}, "
            f"first_sending_time={self.first_sending_time}, sending_periodicity={self.sending_periodicity}, "
            f"packet_size={self.packet_size}, maximum_latency={self.maximum_latency}, "
            f"maximum_jitter={self.maximum_jitter}, priority={self.priority_value})")

    @property
    def fixed_priority(self) -> bool:
        config = self.config if self.config is not None else SYNTHESIS_CONFIG
        return config.is_fixed_priority(self.priority_value)

    @property
    def start_device(self) -> Device:
        raise NotImplementedError

    @property
    def fragments(self) -> list:
        raise NotImplementedError

    @property
    def end_device_names(self) -> List[str]:
        raise NotImplementedError

    def resolve_device_defaults(self) -> None:
        """fills every unset timing value (except the jitter) with the default of the talker"""
        device = self.start_device
        assert device is not None, "Flow {} has no start device".format(self.name)
        if self.sending_periodicity is None:
            self.sending_periodicity = device.packet_periodicity
        if self.first_sending_time is None:
            self.first_sending_time = device.first_t1_time
        if self.packet_size is None:
            self.packet_size = device.packet_size
        if self.maximum_latency is None:
            self.maximum_latency = device.hard_constraint_time

    def _timing_parameters(self) -> dict:
        return {'first_sending_time': self.first_sending_time, 'sending_periodicity': self.sending_periodicity,
                'packet_size': self.packet_size, 'maximum_latency': self.maximum_latency,
                'maximum_jitter': self.maximum_jitter, 'priority': self.priority_value}


class UnicastFlow(Flow):
    """
    flow with one listener, the path is the ordered list of switches between talker and listener
    """
    kind = FlowKind.UNICAST

    def __init__(self, name, instance, start_device: Device, end_device: Device, path=None, **timing):
        super().__init__(name, instance, **timing)
        self._start_device = start_device
        self.end_device = end_device
        self.path: List[Switch] = list(path) if path is not None else []
        self._fragments = []

    @property
    def start_device(self) -> Device:
        return self._start_device

    @property
    def fragments(self) -> list:
        return self._fragments

    @property
    def end_device_names(self) -> List[str]:
        return [self.end_device.name]

    def add_to_path(self, switch: Switch) -> None:
        self.path.append(switch)

    def add_fragment(self, fragment) -> None:
        assert fragment.index == len(self._fragments), \
            "Fragment {} does not belong at position {}".format(fragment.name, len(self._fragments))
        self._fragments.append(fragment)

    def convert_to_publish_subscribe(self) -> "PublishSubscribeFlow":
        """
        builds the equivalent distribution tree without branches:
        talker -> switches of the path in order -> listener

        :return: publish subscribe flow with the same name, instance and timing values
        """
        assert len(self.path) > 0, "Unicast flow {} has no path to convert".format(self.name)
        converted = PublishSubscribeFlow(self.name, self.instance, self._start_device, **self._timing_parameters())
        converted.config = self.config
        node = converted.path_tree.root
        for switch in self.path:
            node = node.add_child(switch)
        node.add_child(self.end_device)
        logger.debug("Flow {} converted to a publish subscribe flow with path {}".format(
            self.name, [switch.name for switch in self.path]))
        return converted


class PublishSubscribeFlow(Flow):
    """
    flow with a distribution tree: the root is the talker, the leaves are the listeners
    """
    kind = FlowKind.PUBLISH_SUBSCRIBE

    def __init__(self, name, instance, start_device: Device, path_tree: Optional[PathTree] = None, **timing):
        super().__init__(name, instance, **timing)
        if path_tree is None:
            path_tree = PathTree()
            path_tree.add_root(start_device)
        assert path_tree.root is not None and path_tree.root.node is start_device, \
            "The root of the path tree of flow {} must be its start device".format(name)
        self.path_tree = path_tree

    @property
    def start_device(self) -> Device:
        return self.path_tree.root.node

    @property
    def fragments(self) -> list:
        return self.path_tree.fragments

    @property
    def end_devices(self) -> List[PathNode]:
        return self.path_tree.get_leaves()

    @property
    def end_device_names(self) -> List[str]:
        return [leaf.name for leaf in self.path_tree.get_leaves()]

    def add_fragment(self, fragment) -> None:
        self.path_tree.add_fragment(fragment)

    def add_to_path(self, source, destination) -> Lookup:
        """
        adds destination as child of the tree node named like source

        :param source: device or switch that is already part of the tree
        :param destination: device or switch to add
        :return: FOUND with the new PathNode, NOT_FOUND if source is not part of the tree
        """
        lookup = self.path_tree.search_node(source.name)
        if not lookup.found:
            logger.error("Source node {} not found in tree of flow {}".format(source.name, self.name))
            return lookup
        existing = [child for child in lookup.value.children if child.name == destination.name]
        if existing:
            return Lookup.of(existing[0])
        return Lookup.of(lookup.value.add_child(destination))

    def get_nodes_to(self, device_name) -> Lookup:
        return self.path_tree.get_nodes_to(device_name)

    def get_fragments_to(self, device_name) -> Lookup:
        return self.path_tree.get_fragments_to(device_name)

    def get_hop_priority(self, node_name) -> Lookup:
        """
        :param node_name: name of a node of the tree
        :return: FOUND with the fixed priority or the z3 priority of the fragment arriving at node_name
        """
        if self.fixed_priority:
            return Lookup.of(self.priority_value)

        lookup = self.path_tree.search_node(node_name)
        if not lookup.found:
            return lookup
        node = lookup.value
        if node.is_root() or node.parent.is_root():
            return Lookup.kind_mismatch("No fragment arrives at {}".format(node_name))

        parent = node.parent
        position = node.position_among_siblings()
        if position >= len(parent.fragment_indices):
            return Lookup.not_found("Flow {} is not compiled".format(self.name))
        return Lookup.of(self.path_tree.fragments[parent.fragment_indices[position]].priority)


class FlowBuilder:
    """
    creates flows with unique instance numbers, one builder per scheduling problem
    """

    def __init__(self, first_instance=1):
        self._next_instance = first_instance

    def next_instance(self) -> int:
        instance = self._next_instance
        self._next_instance += 1
        return instance

    def unicast(self, start_device: Device, end_device: Device, path=None, name=None, **timing) -> UnicastFlow:
        instance = self.next_instance()
        if name is None:
            name = 'flow{}'.format(instance)
        return UnicastFlow(name, instance, start_device, end_device, path, **timing)

    def publish_subscribe(self, start_device: Device, name=None, **timing) -> PublishSubscribeFlow:
        instance = self.next_instance()
        if name is None:
            name = 'flow{}'.format(instance)
        return PublishSubscribeFlow(name, instance, start_device, **timing)
