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
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, List, Optional

from schedule_synthesis.logging import get_logger

logger = get_logger(__name__)


class LookupStatus(IntEnum):
    FOUND = 0
    NOT_FOUND = 1
    KIND_MISMATCH = 2


@dataclass(frozen=True)
class Lookup:
    """Result of a search in a path tree or a flow."""

    status: LookupStatus
    value: Any = None
    message: str = ""

    @classmethod
    def of(cls, value) -> "Lookup":
        return cls(LookupStatus.FOUND, value)

    @classmethod
    def not_found(cls, message) -> "Lookup":
        return cls(LookupStatus.NOT_FOUND, None, message)

    @classmethod
    def kind_mismatch(cls, message) -> "Lookup":
        return cls(LookupStatus.KIND_MISMATCH, None, message)

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND

    def unwrap(self):
        """
        :return: the found value
        :raises LookupError: for NOT_FOUND and KIND_MISMATCH
        """
        if not self.found:
            raise LookupError("{}: {}".format(self.status.name, self.message))
        return self.value


class PathNode:
    """
    node of a path tree, wraps a device or a switch

    parent, children and fragments are stored as indices into the arenas of the owning tree,
    fragment_indices[k] is the fragment leaving this node towards children[k]
    """

    def __init__(self, tree: "PathTree", index: int, node, parent_index: Optional[int] = None):
        self.tree = tree
        self.index = index
        self.node = node
        self.parent_index = parent_index
        self.child_indices: List[int] = []
        self.fragment_indices: List[int] = []

    def __repr__(self):
        return "PathNode(name={}, index={}, parent={}, children={})".format(self.name, self.index,
                                                                            self.parent_index, self.child_indices)

    @property
    def name(self):
        return self.node.name

    @property
    def parent(self) -> Optional["PathNode"]:
        if self.parent_index is None:
            return None
        return self.tree.nodes[self.parent_index]

    @property
    def children(self) -> List["PathNode"]:
        return [self.tree.nodes[i] for i in self.child_indices]

    @property
    def flow_fragments(self) -> list:
        return [self.tree.fragments[i] for i in self.fragment_indices]

    def is_leaf(self) -> bool:
        return len(self.child_indices) == 0

    def is_root(self) -> bool:
        return self.parent_index is None

    def add_child(self, node) -> "PathNode":
        child = self.tree._new_node(node, self.index)
        self.child_indices.append(child.index)
        return child

    def position_among_siblings(self) -> int:
        assert not self.is_root(), "The root has no siblings"
        return self.parent.child_indices.index(self.index)

    def add_flow_fragment(self, fragment) -> None:
        self.fragment_indices.append(fragment.index)


class PathTree:
    """
    distribution tree of a flow: the root is the talker, the leaves are the listeners
    and all other nodes are switches

    the tree owns its nodes and the fragments generated for its edges
    """

    def __init__(self):
        self.nodes: List[PathNode] = []
        self.fragments = []

    def __repr__(self):
        return "PathTree(nodes={})".format([node.name for node in self.nodes])

    @property
    def root(self) -> Optional[PathNode]:
        if len(self.nodes) == 0:
            return None
        return self.nodes[0]

    def _new_node(self, node, parent_index: Optional[int]) -> PathNode:
        path_node = PathNode(self, len(self.nodes), node, parent_index)
        self.nodes.append(path_node)
        return path_node

    def add_root(self, node) -> PathNode:
        if self.root is not None:
            raise ValueError("Path tree already has the root {}".format(self.root.name))
        return self._new_node(node, None)

    def add_fragment(self, fragment) -> None:
        assert fragment.index == len(self.fragments), \
            "Fragment {} does not belong at position {}".format(fragment.name, len(self.fragments))
        self.fragments.append(fragment)

    def search_node(self, name, start_node: Optional[PathNode] = None) -> Lookup:
        """
        depth-first search (preorder) for the node with the given name

        :param name: name of the device or switch
        :param start_node: node of this tree where the search starts, default is the root
        :return: FOUND with the PathNode or NOT_FOUND
        """
        if start_node is None:
            start_node = self.root
        if start_node is None:
            return Lookup.not_found("Empty path tree, {} not found".format(name))
        if start_node.tree is not self:
            return Lookup.not_found("Start node {} belongs to another tree".format(start_node.name))

        stack = [start_node]
        while stack:
            current = stack.pop()
            if current.name == name:
                return Lookup.of(current)
            # reversed keeps the preorder of the children
            stack.extend(reversed(current.children))

        return Lookup.not_found("Node {} not found in tree of {}".format(name, start_node.name))

    def get_leaves(self) -> List[PathNode]:
        leaves = []
        if self.root is None:
            return leaves
        stack = [self.root]
        while stack:
            current = stack.pop()
            if current.is_leaf():
                leaves.append(current)
            else:
                stack.extend(reversed(current.children))
        return leaves

    def get_nodes_to(self, name) -> Lookup:
        """
        :param name: name of a listener (leaf)
        :return: FOUND with the nodes from the root to that leaf, KIND_MISMATCH if name is not a leaf
        """
        lookup = self.search_node(name)
        if not lookup.found:
            return lookup

        leaf = lookup.value
        if not leaf.is_leaf():
            return Lookup.kind_mismatch("Node {} forwards the flow, it is not a destination".format(name))

        nodes = []
        current = leaf
        while current is not None:
            nodes.append(current)
            current = current.parent
        nodes.reverse()
        return Lookup.of(nodes)

    def get_fragments_to(self, name) -> Lookup:
        """
        :param name: name of a listener (leaf)
        :return: FOUND with the fragments used from the root to that leaf (first hop first)
        """
        lookup = self.get_nodes_to(name)
        if not lookup.found:
            return lookup

        nodes = lookup.value
        fragments = []
        # the root only sends to the first switch, fragments start at the first switch
        for node, child in zip(nodes[1:-1], nodes[2:]):
            position = child.position_among_siblings()
            if position >= len(node.fragment_indices):
                return Lookup.not_found("No fragment from {} to {}, the flow is not compiled".format(node.name,
                                                                                                    child.name))
            fragments.append(self.fragments[node.fragment_indices[position]])
        return Lookup.of(fragments)
