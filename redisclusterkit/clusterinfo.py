"""Decoding of CLUSTER NODES / INFO output and consistency checks across node views."""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from redisclusterkit.node import REDIS_MASTER_ROLE, Node, Nodes, by_id
from redisclusterkit.slots import format_slots

_log = logging.getLogger(__name__)

_UINT_RE = re.compile(r"[0-9]+")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT64_MAX = 2**64 - 1

_SLOT_SEPARATOR = "-"
_IMPORTING_SEPARATOR = "-<-"
_MIGRATING_SEPARATOR = "->-"


class ClusterInfosStatus(str, enum.Enum):
    """How complete and consistent the collected cluster view is."""

    UNSET = "Unset"
    PARTIAL = "Partial"
    INCONSISTENT = "Inconsistent"
    CONSISTENT = "Consistent"


@dataclass
class NodeInfos:
    """What one node reports: itself, and its view of the other nodes."""

    node: Node = field(default_factory=Node)
    friends: Nodes = field(default_factory=Nodes)


@dataclass
class ClusterInfos:
    """Node infos for every node of the cluster, keyed by address."""

    infos: dict[str, NodeInfos] = field(default_factory=dict)
    status: ClusterInfosStatus = ClusterInfosStatus.UNSET

    def compute_status(self) -> bool:
        """Set the status from the collected views; True only when consistent.

        Does nothing and returns False when a status is already set.
        """
        if self.status is not ClusterInfosStatus.UNSET:
            return False

        consolidated = config_signature(self.get_nodes().sort_by_func(by_id))
        _log.debug("consolidated view:\n%s", format_config_signature(consolidated))
        for addr, node_infos in self.infos.items():
            view = Nodes([*node_infos.friends, node_infos.node]).sort_by_func(by_id)
            signature = config_signature(view)
            if signature != consolidated:
                _log.debug(
                    "inconsistency from %s (ID: %s):\n%s\nVS\n%s",
                    addr,
                    node_infos.node.id,
                    format_config_signature(consolidated),
                    format_config_signature(signature),
                )
                self.status = ClusterInfosStatus.INCONSISTENT

        if self.status is ClusterInfosStatus.UNSET:
            self.status = ClusterInfosStatus.CONSISTENT
            return True
        return False

    def get_nodes(self) -> Nodes:
        """Each node as it sees itself."""
        return Nodes(node_infos.node for node_infos in self.infos.values())


def decode_node_start_time(text: str) -> datetime:
    """Start time of a Redis instance computed from INFO output's uptime_in_seconds.

    Raises ValueError when the field is missing or not an integer.
    """
    for line in text.split("\n"):
        values = line.split(":")
        if values[0] != "uptime_in_seconds":
            continue
        raw = values[1].strip() if len(values) > 1 else ""
        if not _INT_RE.fullmatch(raw):
            raise ValueError(
                f"error while decoding redis instance uptime in seconds. string : {raw}"
            )
        return datetime.now() - timedelta(seconds=int(raw))
    raise ValueError("error while decoding redis instance uptime in seconds. no data found")


def _parse_int64(text: str) -> int | None:
    if not _INT_RE.fullmatch(text):
        return None
    number = int(text)
    return number if _INT64_MIN <= number <= _INT64_MAX else None


def _parse_slot(text: str) -> int:
    if not _UINT_RE.fullmatch(text) or int(text) > _UINT64_MAX:
        raise ValueError(f"invalid slot {text!r}")
    return int(text)


def _decode_slot_entry(entry: str, node: Node) -> None:
    """Apply one slot entry of a CLUSTER NODES line to the node; raise ValueError if bad."""
    parts = entry.split(_SLOT_SEPARATOR)
    if len(parts) == 3:
        slot = _parse_slot(parts[0].removeprefix("["))
        separator = _SLOT_SEPARATOR + parts[1] + _SLOT_SEPARATOR
        other_id = parts[2].removesuffix("]")
        if separator == _IMPORTING_SEPARATOR:
            node.importing_slots[slot] = other_id
        elif separator == _MIGRATING_SEPARATOR:
            node.migrating_slots[slot] = other_id
        else:
            raise ValueError(f"impossible to decode slot {entry}")
        return
    low = _parse_slot(parts[0])
    high = _parse_slot(parts[1]) if len(parts) > 1 else low
    node.slots.extend(range(low, high + 1))


def _host_of(addr: str) -> str:
    """Host part of a host:port address, or "" when it cannot be split."""
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0 or addr[end + 1 : end + 2] != ":":
            return ""
        return addr[1:end]
    host, sep, _ = addr.rpartition(":")
    if not sep or ":" in host:
        return ""
    return host


def decode_node_infos(text: str, addr: str) -> NodeInfos:
    """Decode CLUSTER NODES output collected from the node at ``addr``."""
    infos = NodeInfos()
    for line in text.split("\n"):
        values = line.split(" ")
        if len(values) < 8:
            _log.debug("not enough values in line split, ignoring line: '%s'", line)
            continue

        node = Node(id=values[0])
        try:
            ip, port = split_host_port(values[1].split("@")[0])
        except ValueError:
            _log.error(
                "error while decoding node info for node '%s', cannot split ip:port ('%s')",
                node.id,
                values[1],
            )
        else:
            node.ip = ip or _host_of(addr)
            node.port = port

        flags = values[2]
        try:
            node.set_role(flags)
        except ValueError:
            pass
        node.set_failure_status(flags)
        node.set_referent_master(values[3])
        for attr, raw in (
            ("ping_sent", values[4]),
            ("pong_recv", values[5]),
            ("config_epoch", values[6]),
        ):
            number = _parse_int64(raw)
            if number is not None:
                setattr(node, attr, number)
        try:
            node.set_link_status(values[7])
        except ValueError:
            pass

        for entry in values[8:]:
            try:
                _decode_slot_entry(entry, node)
            except ValueError:
                continue

        if flags.startswith("myself"):
            infos.node = node
        else:
            infos.friends.append(node)
    return infos


def config_signature(nodes: Iterable[Node]) -> dict[str, list[int]]:
    """Slots of each master keyed by address: identifies one view of the cluster."""
    return {
        node.ip_port(): list(node.slots) for node in nodes if node.role == REDIS_MASTER_ROLE
    }


def format_config_signature(signature: Mapping[str, list[int]]) -> str:
    """Readable form of a signature, addresses in sorted order."""
    body = "".join(f"{addr}:{format_slots(signature[addr])}\n" for addr in sorted(signature))
    return f"map[{body}]"


def split_host_port(address: str) -> tuple[str, str]:
    """Split at the last colon; raise ValueError when there is none."""
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"splitHostPort failed, invalid address {address}")
    return host, port