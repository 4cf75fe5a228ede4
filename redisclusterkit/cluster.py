"""A Redis cluster as a set of nodes indexed by ID."""

from __future__ import annotations

from dataclasses import dataclass, field

from redisclusterkit.errors import NodeNotFoundError
from redisclusterkit.node import Node, NodeFunc, Nodes


@dataclass
class ClusterActionsInfo:
    """Information about the action currently running on the cluster."""

    nbslots_to_migrate: int = 0


@dataclass
class Cluster:
    """A Redis cluster."""

    name: str
    namespace: str
    nodes: dict[str, Node] = field(default_factory=dict)
    status: str = ""
    nodes_placement: str = ""
    actions_info: ClusterActionsInfo = field(default_factory=ClusterActionsInfo)

    def add_node(self, node: Node) -> None:
        """Add a node, replacing any node with the same ID."""
        previous = self.nodes.get(node.id)
        if previous is not None:
            previous.clear()
        self.nodes[node.id] = node

    def get_node_by_id(self, node_id: str) -> Node:
        """The node with the given ID; raise NodeNotFoundError if absent."""
        try:
            return self.nodes[node_id]
        except KeyError:
            raise NodeNotFoundError() from None

    def get_node_by_ip(self, ip: str) -> Node:
        """The first node with the given IP."""
        return self.get_node_by_func(lambda node: node.ip == ip)

    def get_node_by_pod_name(self, name: str) -> Node:
        """The first node running in the named pod."""
        return self.get_node_by_func(lambda node: node.pod_name == name)

    def get_node_by_func(self, func: NodeFunc) -> Node:
        """The first node matching the predicate; raise NodeNotFoundError if none."""
        for node in self.nodes.values():
            if func(node):
                return node
        raise NodeNotFoundError()

    def get_nodes_by_func(self, func: NodeFunc) -> Nodes:
        """All nodes matching the predicate; raise NodeNotFoundError if none."""
        return Nodes(self.nodes.values()).get_nodes_by_func(func)