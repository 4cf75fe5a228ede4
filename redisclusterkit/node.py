"""Redis cluster nodes as seen through CLUSTER NODES, and collections of them."""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from redisclusterkit.errors import NodeNotFoundError
from redisclusterkit.slots import format_slots
from redisclusterkit.utils import slice_join

DEFAULT_REDIS_PORT = "6379"
REDIS_MASTER_ROLE = "master"
REDIS_SLAVE_ROLE = "slave"

REDIS_LINK_STATE_CONNECTED = "connected"
REDIS_LINK_STATE_DISCONNECTED = "disconnected"

NODE_STATUS_PFAIL = "fail?"
NODE_STATUS_FAIL = "fail"
NODE_STATUS_HANDSHAKE = "handshake"
NODE_STATUS_NOADDR = "noaddr"
NODE_STATUS_NOFLAGS = "noflags"

_ROLES = (REDIS_MASTER_ROLE, REDIS_SLAVE_ROLE)
_LINK_STATES = (REDIS_LINK_STATE_CONNECTED, REDIS_LINK_STATE_DISCONNECTED)
_FAIL_STATUSES = (
    NODE_STATUS_FAIL,
    NODE_STATUS_PFAIL,
    NODE_STATUS_HANDSHAKE,
    NODE_STATUS_NOADDR,
    NODE_STATUS_NOFLAGS,
)


class NodeRole(enum.Enum):
    """Role of a node in the cluster."""

    MASTER = "Master"
    SLAVE = "Slave"
    NONE = "None"


@dataclass(eq=False)
class Node:
    """A Redis cluster node."""

    id: str = ""
    ip: str = ""
    port: str = DEFAULT_REDIS_PORT
    role: str = ""
    link_state: str = ""
    master_referent: str = ""
    fail_status: list[str] = field(default_factory=list)
    ping_sent: int = 0
    pong_recv: int = 0
    config_epoch: int = 0
    slots: list[int] = field(default_factory=list)
    balance: int = 0
    migrating_slots: dict[int, str] = field(default_factory=dict)
    importing_slots: dict[int, str] = field(default_factory=dict)
    server_start_time: datetime | None = None
    node_name: str = ""
    pod_name: str = ""
    stateful_set: str = ""

    def set_role(self, flags: str) -> None:
        """Set the role from a comma separated flag list; raise ValueError if none found."""
        self.role = ""
        for flag in flags.split(","):
            if flag in _ROLES:
                self.role = flag
        if not self.role:
            raise ValueError("node setRole failed")

    def get_role(self) -> NodeRole:
        """The node's role, inferred from its master or slots when not set."""
        if self.role == REDIS_MASTER_ROLE:
            return NodeRole.MASTER
        if self.role == REDIS_SLAVE_ROLE:
            return NodeRole.SLAVE
        if self.master_referent:
            return NodeRole.SLAVE
        if self.slots:
            return NodeRole.MASTER
        return NodeRole.NONE

    def ip_port(self) -> str:
        """The address as host:port, with IPv6 hosts in brackets."""
        host = f"[{self.ip}]" if ":" in self.ip else self.ip
        return f"{host}:{self.port}"

    def set_link_status(self, status: str) -> None:
        """Set the link state; raise ValueError for an unknown state."""
        self.link_state = status if status in _LINK_STATES else ""
        if not self.link_state:
            raise ValueError("Node SetLinkStatus failed")

    def set_failure_status(self, flags: str) -> None:
        """Keep the failure flags found in a comma separated flag list."""
        self.fail_status = [flag for flag in flags.split(",") if flag in _FAIL_STATUSES]

    def set_referent_master(self, ref: str) -> None:
        """Set the master this node replicates; "-" means none."""
        self.master_referent = "" if ref == "-" else ref

    def total_slots(self) -> int:
        """Number of slots served by the node."""
        return len(self.slots)

    def has_status(self, flag: str) -> bool:
        """True if the node carries the given failure flag."""
        return flag in self.fail_status

    def clear(self) -> None:
        """Release resources attached to the node; nothing is held at present."""

    def __str__(self) -> str:
        status = "[" + " ".join(self.fail_status) + "]"
        text = (
            f"{{Redis ID: {self.id}, role: {self.get_role().value}, "
            f"master: {self.master_referent}, link: {self.link_state}, "
            f"status: {status}, addr: {self.ip_port()}, "
            f"slots: {format_slots(self.slots)}, "
            f"len(migratingSlots): {len(self.migrating_slots)}, "
            f"len(importingSlots): {len(self.importing_slots)}"
        )
        if self.server_start_time is not None:
            text += f", ServerStartTime: {self.server_start_time:%Y-%m-%d %H:%M:%S}"
        return text + "}"


NodeFunc = Callable[[Node], bool]


class Nodes(list):
    """A list of nodes with lookup, filter and sort helpers."""

    def __init__(self, nodes: Iterable[Node] = ()) -> None:
        super().__init__(nodes)

    def __str__(self) -> str:
        return slice_join(self, ",")

    def get_nodes_by_func(self, func: NodeFunc) -> Nodes:
        """Nodes matching the predicate; raise NodeNotFoundError if there are none."""
        found = self.filter_by_func(func)
        if not found:
            raise NodeNotFoundError()
        return found

    def sort_nodes(self) -> Nodes:
        """Sort in place by node ID and return self."""
        self.sort(key=by_id)
        return self

    def get_node_by_id(self, node_id: str) -> Node:
        """The node with the given ID; raise NodeNotFoundError if absent."""
        for node in self:
            if node.id == node_id:
                return node
        raise NodeNotFoundError()

    def count_by_func(self, func: NodeFunc) -> int:
        """Number of nodes matching the predicate."""
        return sum(1 for node in self if func(node))

    def filter_by_func(self, func: NodeFunc) -> Nodes:
        """A new list of the nodes matching the predicate."""
        return Nodes(node for node in self if func(node))

    def sort_by_func(self, key: Callable[[Node], Any]) -> Nodes:
        """Sort in place, stably, by the key function and return self."""
        self.sort(key=key)
        return self


def new_node(node_id: str, ip: str, pod_name: str = "", node_name: str = "") -> Node:
    """A node with defaults, bound to a pod and the host it runs on."""
    return Node(id=node_id, ip=ip, pod_name=pod_name, node_name=node_name)


def is_master_with_no_slot(node: Node) -> bool:
    """True for a master serving no slot."""
    return node.get_role() is NodeRole.MASTER and node.total_slots() == 0


def is_master_with_slot(node: Node) -> bool:
    """True for a master serving at least one slot."""
    return node.get_role() is NodeRole.MASTER and node.total_slots() > 0


def is_slave(node: Node) -> bool:
    """True for a replica."""
    return node.get_role() is NodeRole.SLAVE


def by_id(node: Node) -> str:
    """Sort key ordering nodes by ID."""
    return node.id