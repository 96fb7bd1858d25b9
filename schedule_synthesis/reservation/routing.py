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
from typing import List

import networkx as nx

from schedule_synthesis.environment.flow import PublishSubscribeFlow
from schedule_synthesis.environment.network import Network
from schedule_synthesis.environment.nodes import Switch


def _relay_view(network: Network, *endpoints):
    # only switches forward, devices are allowed as endpoints
    allowed = set(switch.name for switch in network.switches)
    allowed.update(endpoints)
    return nx.subgraph_view(network.graph, filter_node=lambda node: node in allowed)


def find_switch_path(network: Network, source, sink) -> List[Switch]:
    """
    Shortest path (in hops) from source to sink that only uses switches as intermediate nodes.

    Parameters:
    - network: topology
    - source: name of the talker
    - sink: name of the listener

    Returns:
    - The switches between source and sink in order.
    """
    if not nx.has_path(_relay_view(network, source, sink), source, sink):
        raise nx.NetworkXNoPath(f"No path between {source} and {sink}")

    path = nx.shortest_path(_relay_view(network, source, sink), source, sink)
    assert len(path) > 2, "{} and {} must be connected through at least one switch".format(source, sink)
    return [network.get_node(name) for name in path[1:-1]]


def build_path_tree(flow: PublishSubscribeFlow, network: Network, sinks) -> PublishSubscribeFlow:
    """
    Adds the shortest paths from the talker of the flow to all sinks to its path tree.
    All paths come from one shortest path tree, so two listeners share the switches up to the branch.
    """
    source = flow.start_device.name
    view = _relay_view(network, source)
    switch_paths = nx.single_source_shortest_path(view, source)

    for sink in sinks:
        # last switch: the one connected to the sink with the shortest path from the talker
        candidates = [u for u in network.graph.predecessors(sink)
                      if u in switch_paths and isinstance(network.get_node(u), Switch)]
        if not candidates:
            raise nx.NetworkXNoPath(f"No path between {source} and {sink}")
        last_switch = min(candidates, key=lambda u: (len(switch_paths[u]), str(u)))
        path = switch_paths[last_switch] + [sink]

        for u, v in zip(path[:-1], path[1:]):
            flow.add_to_path(network.get_node(u), network.get_node(v)).unwrap()

    return flow
